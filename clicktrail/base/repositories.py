# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Repository ABC for session persistence.

This defines the "what" (append a batch to a session) not the "how"
(a JSONB upsert, a MULTI/EXEC transaction). Concrete implementations in
infrastructure/ handle the specifics.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from clicktrail.core.models import Event, Session


class SessionRepository(ABC):
    """
    Repository for per-session event documents.

    Implementations own their connection pool: connect() is called once at
    service startup and close() once at shutdown. Every other method is
    called concurrently from request handlers.
    """

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection pool to the data store."""
        ...

    @abstractmethod
    def upsert_events(
        self,
        session_id: str,
        device: str,
        events: list[Event],
        now: datetime,
    ) -> Session:
        """
        Atomically create-or-update a session and append events.

        In one store operation:
        - set startTime only if the session is being inserted
        - set updatedAt to ``now``
        - append ``events`` to the ``device`` bucket (creating it, even empty)
        - increment eventCount by ``len(events)``

        Args:
            session_id: Session identifier
            device: Device bucket key
            events: Normalized events, in arrival order
            now: Write time

        Returns:
            The session document after the write

        Raises:
            StoreError: If the store cannot be reached or written
        """
        ...

    @abstractmethod
    def get(self, session_id: str) -> Session | None:
        """
        Fetch one session.

        Returns:
            The session, or None if it does not exist

        Raises:
            StoreError: If the store cannot be reached
        """
        ...

    @abstractmethod
    def list_recent(self, limit: int) -> list[Session]:
        """
        List sessions, most recently updated first.

        Args:
            limit: Maximum number of sessions (already clamped by the caller)

        Raises:
            StoreError: If the store cannot be reached
        """
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Check if the store is reachable. Never raises."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connections and release resources."""
        ...
