# ==============================================================================
# Tests for the Delivery Subsystem — agent/delivery.py
# ==============================================================================
"""
Tests for the three delivery tiers and teardown tier selection.

HTTP is mocked at the requests.Session level. No transport may raise.
"""

import json
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from clicktrail.agent.delivery import (
    AsyncRequestTransport,
    BeaconTransport,
    Delivery,
    SyncTransport,
    ThreadedBeacon,
)
from clicktrail.base.transport import DeliveryResult
from clicktrail.utils.config import AgentSettings

URL = "http://collector.test/api/sessions"
PAYLOAD = {"sessionId": "s1", "device": "desktop", "events": []}


def _http(status_code: int = 200, error: Exception | None = None) -> MagicMock:
    http = MagicMock(spec=requests.Session)
    if error is not None:
        http.request.side_effect = error
    else:
        http.request.return_value = MagicMock(status_code=status_code)
    return http


# ==============================================================================
# Tier 1: async request
# ==============================================================================


class TestAsyncRequestTransport:
    def test_success(self):
        transport = AsyncRequestTransport(http=_http(200))
        result = transport.submit("POST", URL, PAYLOAD).result(timeout=5)
        transport.close()

        assert result.ok
        assert result.transport == "request"
        assert result.status_code == 200

    def test_sends_json_body(self):
        http = _http(200)
        transport = AsyncRequestTransport(http=http, timeout=3.0)
        transport.send("PUT", URL, PAYLOAD)
        transport.close()

        http.request.assert_called_once()
        args, kwargs = http.request.call_args
        assert args == ("PUT", URL)
        assert kwargs["json"] == PAYLOAD
        assert kwargs["timeout"] == 3.0

    def test_http_error_status(self):
        transport = AsyncRequestTransport(http=_http(500))
        result = transport.send("PUT", URL, PAYLOAD)
        transport.close()

        assert not result.ok
        assert result.status_code == 500
        assert result.error.transport == "request"

    def test_connection_error_is_a_result(self):
        transport = AsyncRequestTransport(http=_http(error=requests.ConnectionError("refused")))
        result = transport.submit("PUT", URL, PAYLOAD).result(timeout=5)
        transport.close()

        assert not result.ok
        assert "refused" in str(result.error)

    def test_submit_after_close(self):
        transport = AsyncRequestTransport(http=_http(200))
        transport.close()
        result = transport.submit("PUT", URL, PAYLOAD).result(timeout=5)
        assert not result.ok


# ==============================================================================
# Tier 2: beacon
# ==============================================================================


class TestBeaconTransport:
    def test_unavailable_without_beacon(self):
        transport = BeaconTransport()
        assert transport.available is False
        assert not transport.send("POST", URL, PAYLOAD).ok

    def test_queued(self):
        beacon = MagicMock(return_value=True)
        result = BeaconTransport(beacon).send("POST", URL, PAYLOAD)

        assert result.ok
        url, data = beacon.call_args.args
        assert url == URL
        assert json.loads(data) == PAYLOAD

    def test_refused(self):
        result = BeaconTransport(MagicMock(return_value=False)).send("POST", URL, PAYLOAD)
        assert not result.ok

    def test_beacon_exception_is_a_result(self):
        result = BeaconTransport(MagicMock(side_effect=RuntimeError("gone"))).send("POST", URL, PAYLOAD)
        assert not result.ok
        assert "gone" in str(result.error)


class TestThreadedBeacon:
    def test_delivers_in_background(self):
        http = MagicMock(spec=requests.Session)
        beacon = ThreadedBeacon(http=http)

        assert beacon(URL, b"{}") is True
        beacon.close(timeout=5)

        http.post.assert_called_once()
        assert http.post.call_args.args == (URL,)
        assert http.post.call_args.kwargs["data"] == b"{}"

    def test_refuses_after_close(self):
        beacon = ThreadedBeacon(http=MagicMock(spec=requests.Session))
        beacon.close(timeout=5)
        assert beacon(URL, b"{}") is False

    def test_send_failure_does_not_stop_worker(self):
        http = MagicMock(spec=requests.Session)
        http.post.side_effect = [requests.ConnectionError("down"), MagicMock()]
        beacon = ThreadedBeacon(http=http)

        beacon(URL, b"1")
        beacon(URL, b"2")
        beacon.close(timeout=5)

        assert http.post.call_count == 2

    def test_unexpected_error_does_not_stop_worker(self):
        http = MagicMock(spec=requests.Session)
        http.post.side_effect = [RuntimeError("boom"), MagicMock()]
        beacon = ThreadedBeacon(http=http)

        beacon(URL, b"1")
        beacon(URL, b"2")
        beacon.close(timeout=5)

        assert http.post.call_count == 2
        assert not beacon._thread.is_alive()

    def test_close_does_not_block_when_queue_stays_full(self):
        release = threading.Event()
        http = MagicMock(spec=requests.Session)
        http.post.side_effect = lambda *args, **kwargs: release.wait(5)
        beacon = ThreadedBeacon(http=http, maxsize=1)

        beacon(URL, b"1")
        # wait until the sender holds the first payload, then fill the queue
        for _ in range(100):
            if http.post.called:
                break
            time.sleep(0.01)
        assert beacon(URL, b"2") is True

        started = time.monotonic()
        beacon.close(timeout=0.2)
        assert time.monotonic() - started < 2

        release.set()
        beacon._queue.put(None)
        beacon._thread.join(5)
        assert not beacon._thread.is_alive()


# ==============================================================================
# Tier 3: synchronous fallback
# ==============================================================================


class TestSyncTransport:
    def test_short_timeout(self):
        http = _http(200)
        result = SyncTransport(http=http, timeout=1.0).send("PUT", URL, PAYLOAD)

        assert result.ok
        assert result.transport == "sync"
        assert http.request.call_args.kwargs["timeout"] == 1.0

    def test_timeout_is_a_result(self):
        result = SyncTransport(http=_http(error=requests.Timeout("slow"))).send("PUT", URL, PAYLOAD)
        assert not result.ok


# ==============================================================================
# Tier selection
# ==============================================================================


class TestDelivery:
    @pytest.fixture()
    def request_tier(self):
        tier = MagicMock(spec=AsyncRequestTransport)
        return tier

    @pytest.fixture()
    def sync_tier(self):
        tier = MagicMock(spec=SyncTransport)
        tier.send.return_value = DeliveryResult.success("sync", 200)
        return tier

    def test_normal_operation_uses_async_tier(self, request_tier, sync_tier):
        delivery = Delivery(URL, request_tier, BeaconTransport(MagicMock(return_value=True)), sync_tier)
        delivery.request("PUT", PAYLOAD)

        request_tier.submit.assert_called_once_with("PUT", URL, PAYLOAD)
        sync_tier.send.assert_not_called()

    def test_teardown_prefers_beacon(self, request_tier, sync_tier):
        beacon = MagicMock(return_value=True)
        delivery = Delivery(URL, request_tier, BeaconTransport(beacon), sync_tier)

        result = delivery.teardown(PAYLOAD)

        assert result.transport == "beacon"
        beacon.assert_called_once()
        sync_tier.send.assert_not_called()

    def test_teardown_falls_back_when_beacon_refuses(self, request_tier, sync_tier):
        delivery = Delivery(URL, request_tier, BeaconTransport(MagicMock(return_value=False)), sync_tier)

        result = delivery.teardown(PAYLOAD)

        assert result.transport == "sync"
        sync_tier.send.assert_called_once_with("PUT", URL, PAYLOAD)

    def test_teardown_without_beacon(self, request_tier, sync_tier):
        result = Delivery(URL, request_tier, sync=sync_tier).teardown(PAYLOAD)
        assert result.transport == "sync"

    def test_teardown_without_any_transport(self, request_tier):
        result = Delivery(URL, request_tier).teardown(PAYLOAD)
        assert not result.ok

    def test_close_releases_all_tiers(self, request_tier, sync_tier):
        Delivery(URL, request_tier, sync=sync_tier).close()
        request_tier.close.assert_called_once_with(wait=True)
        sync_tier.close.assert_called_once()

    def test_from_settings(self):
        settings = AgentSettings(endpoint=URL, sync_timeout=0.5, workers=1)
        delivery = Delivery.from_settings(settings)
        assert delivery.endpoint == URL
        delivery.close()
