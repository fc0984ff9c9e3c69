# ==============================================================================
# PostgreSQL Session Repository
# ==============================================================================
"""
PostgreSQL implementation of SessionRepository.

Each session is one row; events are kept in a JSONB object keyed by device
class. Appending a batch is a single INSERT ... ON CONFLICT DO UPDATE
statement, so concurrent writers to the same session serialize on the row
lock and neither batch is lost.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

import psycopg2
from psycopg2.extras import Json, RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from clicktrail.base.repositories import SessionRepository
from clicktrail.core.errors import StoreError
from clicktrail.core.models import Event, Session
from clicktrail.utils.config import Settings, get_settings
from clicktrail.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)

# Connection timeout
CONNECT_TIMEOUT = 10

SESSION_COLUMNS = "session_id, start_time, updated_at, event_count, devices"


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


def _row_to_session(row: dict) -> Session:
    """Convert a sessions row (RealDictCursor) to a Session."""
    return Session(
        session_id=row["session_id"],
        start_time=row["start_time"],
        updated_at=row["updated_at"],
        event_count=row["event_count"],
        devices=row["devices"] or {},
    )


class PostgreSQLSessionRepository(SessionRepository):
    """
    PostgreSQL implementation of SessionRepository.

    Uses a psycopg2 ThreadedConnectionPool so request handlers running in
    the server's thread pool each borrow their own connection.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the session repository.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._pool: ThreadedConnectionPool | None = None
        self._schema = self._settings.postgres.schema_name

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
    def connect(self) -> None:
        """Create the connection pool."""
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._pool = ThreadedConnectionPool(
            self._settings.store.pool_min,
            self._settings.store.pool_max,
            conn_string,
        )
        logger.info(
            "PostgreSQLSessionRepository connected (schema=%s, pool=%d-%d)",
            self._schema,
            self._settings.store.pool_min,
            self._settings.store.pool_max,
        )

    @contextmanager
    def _cursor(self) -> Iterator[RealDictCursor]:
        """Borrow a pooled connection and yield a dict cursor inside a transaction."""
        if self._pool is None:
            raise RuntimeError("PostgreSQL pool not established. Call connect() first.")

        conn = self._pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            self._pool.putconn(conn, close=bool(conn.closed))

    def upsert_events(
        self,
        session_id: str,
        device: str,
        events: list[Event],
        now: datetime,
    ) -> Session:
        """Insert or update a session row and append events to a device bucket."""
        params = {
            "session_id": session_id,
            "device": device,
            "events": Json([event.to_document() for event in events]),
            "count": len(events),
            "now": now,
        }
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self._schema}.sessions AS s
                        (session_id, start_time, updated_at, event_count, devices)
                    VALUES (
                        %(session_id)s, %(now)s, %(now)s, %(count)s,
                        jsonb_build_object(%(device)s::text, %(events)s::jsonb)
                    )
                    ON CONFLICT (session_id) DO UPDATE SET
                        updated_at = GREATEST(s.updated_at, EXCLUDED.updated_at),
                        event_count = s.event_count + EXCLUDED.event_count,
                        devices = jsonb_set(
                            s.devices,
                            ARRAY[%(device)s::text],
                            COALESCE(s.devices -> %(device)s::text, '[]'::jsonb)
                                || %(events)s::jsonb,
                            true
                        )
                    RETURNING {SESSION_COLUMNS}
                    """,
                    params,
                )
                row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error("Upsert failed for session %s: %s", session_id, e)
            raise StoreError(f"Failed to write session {session_id}: {e}") from e

        logger.debug("Appended %d events to %s/%s", len(events), session_id, device)
        return _row_to_session(row)

    def get(self, session_id: str) -> Session | None:
        """Fetch one session row."""
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"SELECT {SESSION_COLUMNS} FROM {self._schema}.sessions WHERE session_id = %s",
                    (session_id,),
                )
                row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreError(f"Failed to read session {session_id}: {e}") from e

        return _row_to_session(row) if row else None

    def list_recent(self, limit: int) -> list[Session]:
        """List sessions by updated_at descending."""
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {SESSION_COLUMNS}
                    FROM {self._schema}.sessions
                    ORDER BY updated_at DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
        except psycopg2.Error as e:
            raise StoreError(f"Failed to list sessions: {e}") from e

        return [_row_to_session(row) for row in rows]

    def ping(self) -> bool:
        """Check if PostgreSQL is reachable through the pool."""
        try:
            with self._cursor() as cur:
                cur.execute("SELECT 1")
                return cur.fetchone() is not None
        except (psycopg2.Error, RuntimeError):
            return False

    def close(self) -> None:
        """Close all pooled connections."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.info("PostgreSQLSessionRepository pool closed")
            except psycopg2.Error as e:
                logger.warning("Error closing pool: %s", e)
            finally:
                self._pool = None


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    try:
        settings = settings or get_settings()
        conn = psycopg2.connect(_add_connect_timeout(settings.postgres.connection_string))
        conn.close()
        return True
    except psycopg2.Error:
        return False
