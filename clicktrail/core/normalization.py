# ==============================================================================
# Event Normalization - Pure Domain Logic
# ==============================================================================
"""
Total normalization of heterogeneous event payloads into canonical Events.

Producers send events in several shapes (long or short field names, absolute
or relative coordinates, epoch milliseconds or ISO strings). Every field of
the canonical Event is resolved through an explicit fallback chain:

    event_type   event_type -> type -> "click"
    position_x   position_x -> x -> None            (numbers only)
    position_y   position_y -> y -> None            (numbers only)
    rel_x        rel_x -> position_x / doc_w -> None
    rel_y        rel_y -> position_y / doc_h -> None
    selector     selector -> None                   (non-empty strings only)
    device       device -> batch device key -> None
    timestamp    timestamp (epoch ms or ISO-8601) -> now
    meta         meta -> None                       (NaN and infinities become null)

Normalization never raises: unusable values fall through to the next link.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from clicktrail.core.models import DeviceClass, Event, EventKind, RawEvent


def is_number(value: Any) -> bool:
    """True for finite ints and floats; booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond the float range
        return False


def _first_number(*candidates: Any) -> int | float | None:
    for candidate in candidates:
        if is_number(candidate):
            return candidate
    return None


def _first_text(*candidates: Any) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def _relative(explicit: Any, absolute: Any, extent: Any) -> float | None:
    if is_number(explicit):
        return float(explicit)
    if is_number(absolute) and is_number(extent) and extent != 0:
        try:
            ratio = absolute / extent
        except OverflowError:
            return None
        return ratio if math.isfinite(ratio) else None
    return None


def _finite(value: Any) -> Any:
    """Copy of a JSON-like value with NaN and infinities replaced by None."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(item) for item in value]
    return value


def _device(value: Any) -> str | None:
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


def parse_timestamp(value: Any, now: datetime) -> datetime:
    """
    Coerce a producer timestamp to an aware UTC datetime.

    Args:
        value: Epoch milliseconds (number or numeric string), an ISO-8601
               string, or a datetime
        now: Fallback used when the value is missing or uncoercible

    Returns:
        Timezone-aware datetime
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return now
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return now
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    # Zero is treated as "not supplied"
    if is_number(value) and value:
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return now

    return now


def normalize_event(
    payload: Any,
    default_device: str | None = None,
    now: datetime | None = None,
) -> Event:
    """
    Normalize one raw event payload.

    Args:
        payload: Raw event (dict, RawEvent, or anything else)
        default_device: Batch-level device key used when the event has none
        now: Receive time used when the event carries no usable timestamp

    Returns:
        Canonical Event
    """
    raw = RawEvent.parse(payload)
    now = now or datetime.now(timezone.utc)

    position_x = _first_number(raw.position_x, raw.x)
    position_y = _first_number(raw.position_y, raw.y)

    return Event(
        event_type=_first_text(raw.event_type, raw.kind) or EventKind.CLICK.value,
        position_x=position_x,
        position_y=position_y,
        rel_x=_relative(raw.rel_x, position_x, raw.doc_w),
        rel_y=_relative(raw.rel_y, position_y, raw.doc_h),
        selector=_first_text(raw.selector),
        device=_device(raw.device) or _device(default_device),
        timestamp=parse_timestamp(raw.timestamp, now),
        meta=_finite(raw.meta) or None,
        x=position_x,
        y=position_y,
    )


def normalize_events(
    payload: Any,
    default_device: str | None = None,
    now: datetime | None = None,
) -> list[Event]:
    """
    Normalize a batch of raw events.

    Accepts a single event object or a list of them. ``None`` yields an
    empty batch. All events in one call share the same receive time.
    """
    if payload is None:
        return []
    items = payload if isinstance(payload, (list, tuple)) else [payload]
    now = now or datetime.now(timezone.utc)
    return [normalize_event(item, default_device, now) for item in items]


def resolve_device_key(device: Any, events: Any) -> str:
    """
    Pick the device bucket for a batch.

    Explicit batch device, else the first event's device, else "unknown".
    """
    if device:
        return _device(device)

    first = events[0] if isinstance(events, (list, tuple)) and events else events
    if isinstance(first, Mapping) and first.get("device"):
        return _device(first["device"])

    return DeviceClass.UNKNOWN.value
