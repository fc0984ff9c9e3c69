# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies.

This module contains:
- Domain models (RawEvent, Event, Session, EventKind, DeviceClass)
- Error taxonomy
- Event normalization (fallback chains, never raises)
- Session reconstruction (timeline, density buckets, heatmap markers)

All code here is framework-agnostic and easily unit-testable.
"""

from clicktrail.core.errors import (
    ClicktrailError,
    NotFoundError,
    StoreError,
    TransportError,
    ValidationError,
)
from clicktrail.core.models import DeviceClass, Event, EventKind, RawEvent, Session
from clicktrail.core.normalization import (
    normalize_event,
    normalize_events,
    parse_timestamp,
    resolve_device_key,
)
from clicktrail.core.reconstruction import (
    HeatmapMarker,
    bucket_events,
    bucket_key,
    build_timeline,
    flatten_events,
    heatmap_markers,
)

__all__ = [
    # Errors
    "ClicktrailError",
    "NotFoundError",
    "StoreError",
    "TransportError",
    "ValidationError",
    # Models
    "DeviceClass",
    "Event",
    "EventKind",
    "RawEvent",
    "Session",
    # Normalization
    "normalize_event",
    "normalize_events",
    "parse_timestamp",
    "resolve_device_key",
    # Reconstruction
    "HeatmapMarker",
    "bucket_events",
    "bucket_key",
    "build_timeline",
    "flatten_events",
    "heatmap_markers",
]
