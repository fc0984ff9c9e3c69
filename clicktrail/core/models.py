# ==============================================================================
# Clicktrail Domain Models
# ==============================================================================
"""
Pydantic models for captured interaction events and sessions.

These models are used for:
- Parsing loosely-structured event payloads sent by capture agents (RawEvent)
- The canonical, post-normalization event shape that is persisted (Event)
- The per-session document returned by the ingestion API (Session)

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Event kinds emitted by the capture agent."""

    CLICK = "click"
    UNLOAD = "unload"
    NAVIGATION = "navigation"
    LOAD = "load"


class DeviceClass(str, Enum):
    """Coarse device classification used to partition a session's events."""

    MOBILE = "mobile"
    DESKTOP = "desktop"
    UNKNOWN = "unknown"


class RawEvent(BaseModel):
    """
    An event payload exactly as a producer sent it.

    Every field is optional and untyped so that parsing never fails; the
    normalization functions decide which values are usable. Both the long
    (``position_x``, ``event_type``) and short (``x``, ``type``) spellings
    are kept side by side.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event_type: Any = None
    kind: Any = Field(default=None, alias="type")
    position_x: Any = None
    position_y: Any = None
    x: Any = None
    y: Any = None
    rel_x: Any = None
    rel_y: Any = None
    doc_w: Any = None
    doc_h: Any = None
    selector: Any = None
    device: Any = None
    timestamp: Any = None
    meta: Any = None

    @classmethod
    def parse(cls, payload: Any) -> "RawEvent":
        """Parse any payload into a RawEvent; non-objects become an empty event."""
        if isinstance(payload, RawEvent):
            return payload
        if isinstance(payload, Mapping):
            return cls.model_validate({str(k): v for k, v in payload.items()})
        return cls()


class Event(BaseModel):
    """
    Canonical event as stored in a session's device bucket.

    Attributes:
        event_type: Event kind, never empty (defaults to "click")
        position_x: Absolute x coordinate in pixels
        position_y: Absolute y coordinate in pixels
        rel_x: x relative to the document width, in [0, 1] when known
        rel_y: y relative to the document height, in [0, 1] when known
        selector: CSS-selector-like path of the target element
        device: Device class of the producer
        timestamp: When the event happened (UTC)
        meta: Free-form producer metadata
        x: Verbatim copy of position_x
        y: Verbatim copy of position_y
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(default=EventKind.CLICK.value, min_length=1)
    position_x: int | float | None = None
    position_y: int | float | None = None
    rel_x: float | None = None
    rel_y: float | None = None
    selector: str | None = None
    device: str | None = None
    timestamp: datetime
    meta: Any = None
    x: int | float | None = None
    y: int | float | None = None

    def to_document(self) -> dict:
        """Serialize for storage (JSON-compatible, ISO-8601 timestamp)."""
        return self.model_dump(mode="json")


class Session(BaseModel):
    """
    A durable record of one browsing visit.

    Serialized with camelCase keys to match the wire format:
    ``{sessionId, startTime, updatedAt, eventCount, devices}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    start_time: datetime = Field(..., alias="startTime")
    updated_at: datetime = Field(..., alias="updatedAt")
    event_count: int = Field(default=0, alias="eventCount")
    devices: dict[str, list[Event]] = Field(default_factory=dict)

    @property
    def device_classes(self) -> list[str]:
        """Device classes that have a bucket in this session."""
        return list(self.devices)

    @property
    def stored_event_count(self) -> int:
        """Number of events actually held in the device buckets."""
        return sum(len(events) for events in self.devices.values())

    def to_document(self) -> dict:
        """Serialize to the JSON document returned by the API."""
        return self.model_dump(mode="json", by_alias=True)
