# ==============================================================================
# Tests for CaptureAgent — agent/capture.py
# ==============================================================================
"""
Tests for session identity, device classification, target description and
the lifecycle hooks of the capture agent. Delivery is mocked.
"""

import logging
from concurrent.futures import Future
from unittest.mock import MagicMock, patch

import pytest

from clicktrail.agent.capture import (
    CaptureAgent,
    TargetElement,
    classify_device,
    describe_target,
    generate_session_id,
)
from clicktrail.base.transport import DeliveryResult
from clicktrail.infrastructure.storage import FileClientStorage, MemoryClientStorage

CLOCK = 1714564800.5


def _resolved(result: DeliveryResult) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


@pytest.fixture()
def delivery():
    mock = MagicMock()
    mock.request.return_value = _resolved(DeliveryResult.success("request", 200))
    mock.teardown.return_value = DeliveryResult.success("beacon")
    return mock


@pytest.fixture()
def agent(delivery):
    return CaptureAgent(
        delivery,
        MemoryClientStorage(),
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        clock=lambda: CLOCK,
    )


# ==============================================================================
# Session identity
# ==============================================================================


class TestSessionIdentity:
    def test_generates_and_persists(self, delivery):
        storage = MemoryClientStorage()
        agent = CaptureAgent(delivery, storage)
        assert storage.get_item("analytics_session_id") == agent.session_id

    def test_stable_across_page_loads(self, delivery):
        storage = MemoryClientStorage()
        first = CaptureAgent(delivery, storage).session_id
        second = CaptureAgent(delivery, storage).session_id
        assert first == second

    def test_reuses_existing_id(self, delivery):
        storage = MemoryClientStorage({"analytics_session_id": "known"})
        assert CaptureAgent(delivery, storage).session_id == "known"

    def test_new_id_after_storage_cleared(self, delivery):
        storage = MemoryClientStorage()
        first = CaptureAgent(delivery, storage).session_id
        storage.remove_item("analytics_session_id")
        assert CaptureAgent(delivery, storage).session_id != first

    def test_file_storage_survives_restart(self, delivery, tmp_path):
        path = tmp_path / "state" / "storage.json"
        first = CaptureAgent(delivery, FileClientStorage(path)).session_id
        second = CaptureAgent(delivery, FileClientStorage(path)).session_id
        assert first == second
        assert path.exists()

    def test_unwritable_storage_still_yields_id(self, delivery):
        storage = MagicMock()
        storage.get_item.return_value = None
        storage.set_item.side_effect = OSError("read-only")
        assert CaptureAgent(delivery, storage).session_id

    def test_fallback_id_when_uuid_unavailable(self):
        with patch("clicktrail.agent.capture.uuid.uuid4", side_effect=NotImplementedError):
            session_id = generate_session_id()
        assert session_id.startswith("s_")
        assert len(session_id) > 2


# ==============================================================================
# Device classification
# ==============================================================================


class TestClassifyDevice:
    @pytest.mark.parametrize(
        "user_agent",
        [
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) Mobile/15E148",
            "Mozilla/5.0 (Linux; Android 14; Pixel 8)",
            "Mozilla/5.0 (iPad; CPU OS 17_5 like Mac OS X)",
            "Mozilla/5.0 (compatible; MSIE 10.0; Windows Phone 8.0; IEMobile/10.0)",
        ],
    )
    def test_mobile(self, user_agent):
        assert classify_device(user_agent) == "mobile"

    def test_desktop(self):
        assert classify_device("Mozilla/5.0 (Windows NT 10.0; Win64; x64)") == "desktop"

    def test_unknown(self):
        assert classify_device(None) == "unknown"
        assert classify_device("") == "unknown"


# ==============================================================================
# Target description
# ==============================================================================


class TestDescribeTarget:
    def test_id_wins(self):
        assert describe_target(TargetElement("BUTTON", id="buy", class_name="btn")) == "#buy"

    def test_path_with_first_class(self):
        body = TargetElement("BODY")
        card = TargetElement("DIV", class_name="  card featured ", parent=body)
        link = TargetElement("A", class_name="link", parent=card)
        assert describe_target(link) == "body > div.card > a.link"

    def test_depth_bounded_to_five(self):
        node = TargetElement("HTML")
        for tag in ("BODY", "MAIN", "SECTION", "DIV", "UL", "LI", "SPAN"):
            node = TargetElement(tag, parent=node)
        assert describe_target(node) == "section > div > ul > li > span"

    def test_non_string_class_ignored(self):
        svg = TargetElement("SVG", class_name=object())
        assert describe_target(svg) == "svg"

    def test_missing_element(self):
        assert describe_target(None) is None
        assert describe_target(TargetElement("")) is None

    def test_failure_returns_none(self):
        class Exploding:
            tag_name = "DIV"
            class_name = None

            @property
            def id(self):
                raise RuntimeError("detached")

        assert describe_target(Exploding()) is None


# ==============================================================================
# Lifecycle hooks
# ==============================================================================


class TestLifecycleHooks:
    def test_on_load_posts_empty_batch(self, agent, delivery):
        agent.on_load()
        delivery.request.assert_called_once_with(
            "POST", {"sessionId": agent.session_id, "device": "desktop", "events": []}
        )

    def test_on_click_puts_singleton(self, agent, delivery):
        target = TargetElement("BUTTON", id="buy")
        agent.on_click(120, 340, target, doc_width=1280, doc_height=2400)

        method, payload = delivery.request.call_args.args
        assert method == "PUT"
        assert payload["sessionId"] == agent.session_id
        assert payload["events"] == [
            {
                "type": "click",
                "x": 120,
                "y": 340,
                "selector": "#buy",
                "timestamp": 1714564800500,
                "device": "desktop",
                "doc_w": 1280,
                "doc_h": 2400,
            }
        ]

    def test_on_click_without_target(self, agent, delivery):
        agent.on_click(1, 2)
        event = delivery.request.call_args.args[1]["events"][0]
        assert event["selector"] is None
        assert "doc_w" not in event

    def test_on_unload_uses_teardown(self, agent, delivery):
        result = agent.on_unload()

        assert result.ok
        delivery.request.assert_not_called()
        payload = delivery.teardown.call_args.args[0]
        assert payload["events"] == [
            {"type": "unload", "timestamp": 1714564800500, "device": "desktop"}
        ]

    def test_send_event_wraps_single_event(self, agent, delivery):
        agent.send_event({"type": "navigation"})
        assert delivery.request.call_args.args == (
            "PUT",
            {"sessionId": agent.session_id, "device": "desktop", "events": [{"type": "navigation"}]},
        )

    def test_send_event_list(self, agent, delivery):
        agent.send_event([{"type": "a"}, {"type": "b"}])
        assert len(delivery.request.call_args.args[1]["events"]) == 2

    def test_failures_are_logged_not_raised(self, agent, delivery, caplog):
        delivery.request.return_value = _resolved(DeliveryResult.failure("request", "refused"))
        delivery.teardown.return_value = DeliveryResult.failure("sync", "timeout")

        with caplog.at_level(logging.WARNING, logger="clicktrail.agent.capture"):
            agent.on_click(1, 1)
            result = agent.on_unload()

        assert not result.ok
        assert "refused" in caplog.text
        assert "timeout" in caplog.text

    def test_close_releases_delivery(self, agent, delivery):
        agent.close()
        delivery.close.assert_called_once_with(wait=True)
