# ==============================================================================
# Valkey Session Repository
# ==============================================================================
"""
Valkey/Redis implementation of SessionRepository.

Key layout (prefix defaults to "clicktrail"):

    {prefix}:meta:{id}                  hash: session_id, start_time, updated_at, event_count
    {prefix}:devices:{id}               sorted set: device keys, scored by first write
    {prefix}:events:{id}:{device}       list: JSON-encoded events in arrival order
    {prefix}:sessions                   sorted set: session ids scored by updated_at

Session ids and device keys are client strings, so both are percent-encoded
(":" included) before they go into a key. Each key kind has its own
namespace, so no session can address another session's keys.

A batch append is one MULTI/EXEC transaction, so the metadata, the device
bucket and the recency index always move together.
"""

import json
import logging
from datetime import datetime
from urllib.parse import quote

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError
from redis.retry import Retry

from clicktrail.base.repositories import SessionRepository
from clicktrail.core.errors import StoreError
from clicktrail.core.models import Event, Session
from clicktrail.utils.config import Settings, get_settings
from clicktrail.utils.retry import (
    REDIS_RETRY_EXCEPTIONS,
    VALKEY_RETRIES,
    retry_light,
)

logger = logging.getLogger(__name__)


def _encode(part: str) -> str:
    return quote(part, safe="")


class ValkeySessionRepository(SessionRepository):
    """
    Valkey/Redis implementation of SessionRepository.

    Configured with:
    - 10 second socket timeouts for fast failure detection
    - Client-level retries with exponential backoff for dropped connections
    - Health check interval to keep pooled connections alive
    """

    def __init__(self, settings: Settings | None = None, client: redis.Redis | None = None):
        """
        Initialize the session repository.

        Args:
            settings: Application settings. If None, uses get_settings().
            client: Redis client instance. If None, one is created on connect().
        """
        self._settings = settings or get_settings()
        self._client = client
        self._prefix = self._settings.store.key_prefix

    @property
    def client(self) -> redis.Redis | None:
        """Get the underlying Redis client."""
        return self._client

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _meta_key(self, session_id: str) -> str:
        return f"{self._prefix}:meta:{_encode(session_id)}"

    def _devices_key(self, session_id: str) -> str:
        return f"{self._prefix}:devices:{_encode(session_id)}"

    def _bucket_key(self, session_id: str, device: str) -> str:
        return f"{self._prefix}:events:{_encode(session_id)}:{_encode(device)}"

    @property
    def _index_key(self) -> str:
        return f"{self._prefix}:sessions"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @retry_light(REDIS_RETRY_EXCEPTIONS, logger)
    def connect(self) -> None:
        """Create the client (unless one was injected) and verify it responds."""
        if self._client is None:
            retry_strategy = Retry(ExponentialBackoff(cap=8, base=1), retries=VALKEY_RETRIES)
            self._client = redis.from_url(
                self._settings.valkey.url,
                decode_responses=True,
                socket_timeout=10,
                socket_connect_timeout=10,
                retry=retry_strategy,
                retry_on_error=list(REDIS_RETRY_EXCEPTIONS),
                health_check_interval=30,
                max_connections=self._settings.store.pool_max,
            )
        self._client.ping()
        logger.info("ValkeySessionRepository connected (prefix=%s)", self._prefix)

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Valkey client not established. Call connect() first.")
        return self._client

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def upsert_events(
        self,
        session_id: str,
        device: str,
        events: list[Event],
        now: datetime,
    ) -> Session:
        """Create-or-update a session and append events in one transaction."""
        client = self._require_client()
        stamp = now.isoformat()
        score = now.timestamp()
        meta_key = self._meta_key(session_id)

        try:
            pipe = client.pipeline(transaction=True)
            pipe.hsetnx(meta_key, "start_time", stamp)
            pipe.hset(meta_key, mapping={"session_id": session_id, "updated_at": stamp})
            pipe.hincrby(meta_key, "event_count", len(events))
            pipe.zadd(self._devices_key(session_id), {device: score}, nx=True)
            if events:
                pipe.rpush(
                    self._bucket_key(session_id, device),
                    *[json.dumps(event.to_document()) for event in events],
                )
            pipe.zadd(self._index_key, {session_id: score})
            pipe.execute()
        except RedisError as e:
            logger.error("Upsert failed for session %s: %s", session_id, e)
            raise StoreError(f"Failed to write session {session_id}: {e}") from e

        logger.debug("Appended %d events to %s/%s", len(events), session_id, device)
        session = self.get(session_id)
        if session is None:
            raise StoreError(f"Session {session_id} vanished after write")
        return session

    def get(self, session_id: str) -> Session | None:
        """Read the metadata hash and every device bucket of a session."""
        client = self._require_client()
        try:
            meta = client.hgetall(self._meta_key(session_id))
            if not meta:
                return None
            devices = client.zrange(self._devices_key(session_id), 0, -1)
            pipe = client.pipeline(transaction=True)
            for device in devices:
                pipe.lrange(self._bucket_key(session_id, device), 0, -1)
            buckets = pipe.execute() if devices else []
        except RedisError as e:
            raise StoreError(f"Failed to read session {session_id}: {e}") from e

        return Session(
            session_id=meta.get("session_id", session_id),
            start_time=meta.get("start_time") or meta["updated_at"],
            updated_at=meta["updated_at"],
            event_count=int(meta.get("event_count", 0)),
            devices={
                device: [json.loads(item) for item in items]
                for device, items in zip(devices, buckets)
            },
        )

    def list_recent(self, limit: int) -> list[Session]:
        """List sessions from the recency index, newest first."""
        client = self._require_client()
        try:
            session_ids = client.zrevrange(self._index_key, 0, limit - 1)
        except RedisError as e:
            raise StoreError(f"Failed to list sessions: {e}") from e

        sessions = []
        for session_id in session_ids:
            try:
                session = self.get(session_id)
            except StoreError as e:
                logger.warning("Skipping unreadable session %s: %s", session_id, e)
                continue
            if session is not None:
                sessions.append(session)
        return sessions

    def ping(self) -> bool:
        """Check if Valkey is reachable."""
        try:
            return bool(self._require_client().ping())
        except (RedisError, RuntimeError):
            return False

    def clear(self) -> int:
        """
        Delete every key under the store prefix.

        Returns:
            Count of keys deleted
        """
        client = self._require_client()
        keys = list(client.scan_iter(f"{self._prefix}:*"))
        if keys:
            return client.delete(*keys)
        return 0

    def close(self) -> None:
        """Close the connection pool."""
        if self._client is not None:
            try:
                self._client.close()
                logger.info("ValkeySessionRepository connection closed")
            except RedisError as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._client = None
