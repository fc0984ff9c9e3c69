# ==============================================================================
# Session Reconstruction - Pure Domain Logic
# ==============================================================================
"""
Turns a stored Session into presentation artifacts.

- Timeline: every device bucket flattened into one chronological stream
- Spatial buckets: click density keyed on coordinates rounded to 1/1000
- Heatmap markers: per-event marker geometry derived from bucket density

Relative coordinates are frequently absent (capture agents rarely know the
document size), so every spatial computation falls back to the absolute
coordinates.
"""

import math
import sys
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from clicktrail.core.models import Event, Session

# Bucket precision: three decimal places of a relative coordinate
BUCKET_SCALE = 1000

# Intensity ceiling for marker scaling
INTENSITY_CEILING = 10

# Marker geometry
MARKER_BASE_SIZE = 22
MARKER_SIZE_STEP = 8
MARKER_BASE_OPACITY = 0.12
MARKER_OPACITY_STEP = 0.1
MARKER_MAX_OPACITY = 0.95


def js_round(value: float) -> int:
    """Round half toward positive infinity (JavaScript Math.round).

    Overflowed values saturate at the largest float; NaN rounds to 0.
    """
    if math.isnan(value):
        return 0
    if math.isinf(value):
        value = math.copysign(sys.float_info.max, value)
    return math.floor(value + 0.5)


def _utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def flatten_events(session: Session) -> list[Event]:
    """
    Flatten all device buckets, stamping each event with its owning device.

    Events keep their bucket order; buckets are visited in storage order.
    """
    events = []
    for device, bucket in session.devices.items():
        for event in bucket:
            events.append(event.model_copy(update={"device": device}))
    return events


def build_timeline(session: Session) -> list[Event]:
    """
    Build the chronological event timeline of a session.

    Timestamps are coerced to aware UTC datetimes and events sorted ascending.
    The sort is stable, so ties keep their flattened order.

    Args:
        session: Stored session document

    Returns:
        Events sorted by timestamp
    """
    events = [
        event.model_copy(update={"timestamp": _utc(event.timestamp)})
        for event in flatten_events(session)
    ]
    events.sort(key=lambda event: event.timestamp)
    return events


def _axis(relative: float | None, absolute: float | None) -> float:
    if relative is not None:
        return relative
    if absolute is not None:
        return absolute
    return 0


def bucket_key(event: Event) -> tuple[int, int]:
    """Discrete (x, y) density cell of an event."""
    return (
        js_round(_axis(event.rel_x, event.position_x) * BUCKET_SCALE),
        js_round(_axis(event.rel_y, event.position_y) * BUCKET_SCALE),
    )


def bucket_events(events: Iterable[Event]) -> Counter:
    """
    Count events per density cell.

    The result only depends on the multiset of cells, never on event order.
    """
    return Counter(bucket_key(event) for event in events)


@dataclass(frozen=True)
class HeatmapMarker:
    """
    Geometry of one heatmap dot.

    Attributes:
        left: Horizontal position, or None when the event has no coordinates
        top: Vertical position, or None when the event has no coordinates
        unit: "%" for relative placement, "px" for absolute placement
        intensity: Bucket count capped at the intensity ceiling
        size: Dot diameter in pixels
        opacity: Dot opacity
        event: The event the marker stands for
    """

    left: float | None
    top: float | None
    unit: str
    intensity: int
    size: int
    opacity: float
    event: Event

    def to_dict(self) -> dict:
        return {
            "left": self.left,
            "top": self.top,
            "unit": self.unit,
            "intensity": self.intensity,
            "size": self.size,
            "opacity": self.opacity,
            "event": self.event.to_document(),
        }


def _percent(relative: float) -> float:
    return max(0.0, min(100.0, js_round(relative * 10000) / 100))


def _placement(event: Event) -> tuple[float | None, float | None, str]:
    if event.rel_x is not None and event.rel_y is not None:
        return _percent(event.rel_x), _percent(event.rel_y), "%"
    if event.position_x is not None and event.position_y is not None:
        return event.position_x, event.position_y, "px"
    return None, None, "px"


def marker_intensity(count: int, ceiling: int = INTENSITY_CEILING) -> int:
    """Intensity of a cell, at least 1 and at most the ceiling."""
    return min(ceiling, count or 1)


def heatmap_markers(session: Session, ceiling: int = INTENSITY_CEILING) -> list[HeatmapMarker]:
    """
    Derive marker geometry for every event in a session.

    Args:
        session: Stored session document
        ceiling: Maximum intensity used for size/opacity scaling

    Returns:
        One marker per event, in flattened order
    """
    events = flatten_events(session)
    buckets = bucket_events(events)

    markers = []
    for event in events:
        intensity = marker_intensity(buckets.get(bucket_key(event), 0), ceiling)
        left, top, unit = _placement(event)
        markers.append(
            HeatmapMarker(
                left=left,
                top=top,
                unit=unit,
                intensity=intensity,
                size=MARKER_BASE_SIZE + intensity * MARKER_SIZE_STEP,
                opacity=round(
                    min(MARKER_MAX_OPACITY, MARKER_BASE_OPACITY + intensity * MARKER_OPACITY_STEP),
                    4,
                ),
                event=event,
            )
        )
    return markers
