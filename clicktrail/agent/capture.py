# ==============================================================================
# Event Capture Agent
# ==============================================================================
"""
Page-side capture agent.

The host page feeds the agent its lifecycle and interaction signals:

    agent = CaptureAgent.from_settings(user_agent=ua)
    agent.on_load()
    agent.on_click(120, 340, target, doc_width=1280, doc_height=2400)
    agent.on_unload()

The agent keeps a stable session id in client storage, enriches each event
with coordinates, a CSS-like selector of the clicked element and the device
class, then hands the batch to the Delivery subsystem. Delivery failures are
logged and dropped; nothing here raises into page code.
"""

import logging
import random
import re
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from clicktrail.agent.delivery import BeaconFunc, Delivery
from clicktrail.base.storage import ClientStorage
from clicktrail.base.transport import DeliveryResult
from clicktrail.core.models import DeviceClass, EventKind
from clicktrail.infrastructure.storage import FileClientStorage
from clicktrail.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

STORAGE_KEY = "analytics_session_id"
MOBILE_PATTERN = re.compile(r"Mobi|Android|iPhone|iPad|iPod|IEMobile|Windows Phone")
MAX_SELECTOR_DEPTH = 5

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def fallback_session_id() -> str:
    """Session id built from the clock and a random suffix."""
    return "s_" + _base36(int(time.time() * 1000)) + _base36(random.getrandbits(52))


def generate_session_id() -> str:
    """Random UUID, or a clock-based id when no entropy source is available."""
    try:
        return str(uuid.uuid4())
    except (OSError, NotImplementedError) as e:
        logger.debug("uuid4 unavailable, using fallback id: %s", e)
        return fallback_session_id()


def classify_device(user_agent: str | None) -> str:
    """
    Classify a user-agent string as mobile or desktop.

    Args:
        user_agent: Raw user-agent string

    Returns:
        "mobile", "desktop", or "unknown" when no user agent is available
    """
    if not user_agent:
        return DeviceClass.UNKNOWN.value
    if MOBILE_PATTERN.search(user_agent):
        return DeviceClass.MOBILE.value
    return DeviceClass.DESKTOP.value


@dataclass
class TargetElement:
    """Minimal description of a page element and its ancestors."""

    tag_name: str
    id: str | None = None
    class_name: Any = None
    parent: "TargetElement | None" = None


def describe_target(element: Any) -> str | None:
    """
    Build a short CSS-like path for an element.

    An element with an id is described as ``#id``. Otherwise each ancestor
    (up to five levels, starting at the element) contributes ``tag`` or
    ``tag.firstclass``, joined with `` > ``.

    Args:
        element: TargetElement or any object with tag_name/id/class_name/parent

    Returns:
        Selector string, or None for a missing element or on any failure
    """
    try:
        if element is None or not getattr(element, "tag_name", None):
            return None
        if getattr(element, "id", None):
            return f"#{element.id}"

        parts = []
        node = element
        while (
            node is not None
            and getattr(node, "tag_name", None)
            and len(parts) < MAX_SELECTOR_DEPTH
        ):
            name = str(node.tag_name).lower()
            class_name = getattr(node, "class_name", None)
            # SVG elements expose a non-string className
            if isinstance(class_name, str) and class_name.split():
                name += "." + class_name.split()[0]
            parts.insert(0, name)
            node = getattr(node, "parent", None)
        return " > ".join(parts)
    except Exception as e:  # host elements may raise from any attribute
        logger.debug("Could not describe target: %s", e)
        return None


class CaptureAgent:
    """
    Observes page signals and delivers events for one session.

    Args:
        delivery: Delivery subsystem for the collection endpoint
        storage: Client storage holding the session id
        user_agent: User-agent string used to classify the device
        storage_key: Storage key for the session id
        clock: Returns the current time in seconds (for testing)
    """

    def __init__(
        self,
        delivery: Delivery,
        storage: ClientStorage,
        user_agent: str | None = None,
        storage_key: str = STORAGE_KEY,
        clock: Callable[[], float] | None = None,
    ):
        self._delivery = delivery
        self._storage = storage
        self._storage_key = storage_key
        self._clock = clock or time.time
        self.device = classify_device(user_agent)
        self.session_id = self.get_or_create_session_id()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        user_agent: str | None = None,
        beacon: BeaconFunc | None = None,
        storage: ClientStorage | None = None,
    ) -> "CaptureAgent":
        """Build an agent with file-backed storage and the configured endpoint."""
        settings = settings or get_settings()
        return cls(
            delivery=Delivery.from_settings(settings.agent, beacon=beacon),
            storage=storage or FileClientStorage(settings.agent.storage_file),
            user_agent=user_agent,
            storage_key=settings.agent.storage_key,
        )

    # ==========================================================================
    # Session identity
    # ==========================================================================

    def get_or_create_session_id(self) -> str:
        """
        Return the stored session id, generating and persisting one if absent.

        If storage cannot be written the id is still returned; it just won't
        survive the next page load.
        """
        try:
            session_id = self._storage.get_item(self._storage_key)
        except OSError as e:
            logger.warning("Client storage unreadable: %s", e)
            session_id = None
        if session_id:
            return session_id

        session_id = generate_session_id()
        try:
            self._storage.set_item(self._storage_key, session_id)
        except OSError as e:
            logger.warning("Could not persist session id: %s", e)
        return session_id

    # ==========================================================================
    # Lifecycle hooks
    # ==========================================================================

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _payload(self, events: list[dict]) -> dict:
        return {"sessionId": self.session_id, "device": self.device, "events": events}

    def on_load(self) -> Future:
        """Register the session: POST with an empty event batch."""
        return self._dispatch("POST", self._payload([]))

    def on_click(
        self,
        x: float,
        y: float,
        target: Any = None,
        doc_width: float | None = None,
        doc_height: float | None = None,
    ) -> Future:
        """Record one click as a singleton batch appended via PUT."""
        event = {
            "type": EventKind.CLICK.value,
            "x": x,
            "y": y,
            "selector": describe_target(target),
            "timestamp": self._now_ms(),
            "device": self.device,
        }
        if doc_width is not None:
            event["doc_w"] = doc_width
        if doc_height is not None:
            event["doc_h"] = doc_height
        return self._dispatch("PUT", self._payload([event]))

    def on_unload(self) -> DeliveryResult:
        """Send a final unload event through the teardown path."""
        event = {
            "type": EventKind.UNLOAD.value,
            "timestamp": self._now_ms(),
            "device": self.device,
        }
        result = self._delivery.teardown(self._payload([event]))
        self._discard(result)
        return result

    def send_event(self, event_or_events: dict | list[dict]) -> Future:
        """Debug hook: PUT an arbitrary event or list of events."""
        events = event_or_events if isinstance(event_or_events, list) else [event_or_events]
        return self._dispatch("PUT", self._payload(events))

    def close(self, wait: bool = True) -> None:
        """Release delivery resources, waiting for queued requests by default."""
        self._delivery.close(wait=wait)

    # ==========================================================================
    # Result handling
    # ==========================================================================

    def _dispatch(self, method: str, payload: dict) -> Future:
        future = self._delivery.request(method, payload)
        future.add_done_callback(self._discard_future)
        return future

    def _discard_future(self, future: Future) -> None:
        if future.cancelled():
            logger.debug("Delivery cancelled for session %s", self.session_id)
            return
        self._discard(future.result())

    def _discard(self, result: DeliveryResult) -> None:
        # Lost events are accepted; failures are only logged.
        if result.ok:
            logger.debug("Delivered via %s (status=%s)", result.transport, result.status_code)
        else:
            logger.warning("Delivery via %s failed: %s", result.transport, result.error)
