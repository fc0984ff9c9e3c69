# ==============================================================================
# Ingestion Service
# ==============================================================================
"""
Validates, normalizes and applies event batches to the session store.

The service is stateless: every call works only with its arguments and the
injected repository, so one instance is shared by all request handlers.

Create (POST) and Append (PUT) share the same upsert-and-append path. Append
on an unknown session creates it, so an unload beacon that overtakes the
load-time create neither fails nor duplicates the session. startTime is
written only when the row is actually inserted, whichever call inserts it.
"""

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from clicktrail.base.repositories import SessionRepository
from clicktrail.core.errors import NotFoundError, ValidationError
from clicktrail.core.models import Session
from clicktrail.core.normalization import normalize_events, resolve_device_key

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def clamp_limit(
    limit: Any,
    default: int = DEFAULT_LIST_LIMIT,
    maximum: int = MAX_LIST_LIMIT,
) -> int:
    """
    Clamp a caller-supplied list limit to [1, maximum].

    Strings are parsed by their leading integer ("25", "25abc" -> 25);
    missing or non-numeric values use the default.
    """
    value: int | None = None
    if isinstance(limit, int) and not isinstance(limit, bool):
        value = limit
    elif isinstance(limit, float):
        value = int(limit)
    elif isinstance(limit, str):
        match = _LEADING_INT.match(limit)
        if match:
            value = int(match.group(1))

    if value is None:
        value = default
    return min(maximum, max(1, value))


def _require_session_id(body: Mapping) -> str:
    session_id = body.get("sessionId")
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValidationError("sessionId is required")
    return session_id


class IngestionService:
    """
    Create/append/read operations over a SessionRepository.

    Args:
        repository: Connected session store
        default_limit: List size when the caller gives none
        max_limit: Hard cap on list size
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        repository: SessionRepository,
        default_limit: int = DEFAULT_LIST_LIMIT,
        max_limit: int = MAX_LIST_LIMIT,
        clock: Callable[[], datetime] | None = None,
    ):
        self._repository = repository
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def repository(self) -> SessionRepository:
        return self._repository

    def _apply(self, session_id: str, device: Any, events: Any) -> Session:
        now = self._clock()
        device_key = resolve_device_key(device, events)
        normalized = normalize_events(events, device_key, now)
        session = self._repository.upsert_events(session_id, device_key, normalized, now)
        logger.info(
            "Session %s: +%d events on %s (total %d)",
            session_id,
            len(normalized),
            device_key,
            session.event_count,
        )
        return session

    def create(self, body: Any) -> Session:
        """
        Create a session, or upsert into an existing one.

        Body: ``{sessionId, device?, events?}``. ``events`` may be absent,
        a single event object or a list.

        Raises:
            ValidationError: sessionId missing
            StoreError: store failure
        """
        body = body if isinstance(body, Mapping) else {}
        session_id = _require_session_id(body)
        return self._apply(session_id, body.get("device"), body.get("events"))

    def append(self, body: Any) -> Session:
        """
        Append events to a session, creating it if absent.

        Body: ``{sessionId, device?, events}`` with a non-empty ``events``.

        Raises:
            ValidationError: sessionId or events missing
            StoreError: store failure
        """
        body = body if isinstance(body, Mapping) else {}
        session_id = _require_session_id(body)
        events = body.get("events")
        if not events and not isinstance(events, Mapping):
            raise ValidationError("events are required")
        return self._apply(session_id, body.get("device"), events)

    def get(self, session_id: str) -> Session:
        """
        Fetch a single session.

        Raises:
            NotFoundError: no session with that id
            StoreError: store failure
        """
        session = self._repository.get(session_id)
        if session is None:
            raise NotFoundError("session not found")
        return session

    def list_sessions(self, limit: Any = None) -> list[Session]:
        """List sessions, most recently updated first, with a clamped limit."""
        return self._repository.list_recent(
            clamp_limit(limit, self._default_limit, self._max_limit)
        )
