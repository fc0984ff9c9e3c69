# ==============================================================================
# Session Store Adapters
# ==============================================================================
"""
Session store adapters implementing base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py) - JSONB document per session
- Valkey (valkey.py) - hash + per-device lists per session
"""

from clicktrail.base.repositories import SessionRepository
from clicktrail.infrastructure.repositories.postgresql import (
    PostgreSQLSessionRepository,
    check_postgresql_connection,
)
from clicktrail.infrastructure.repositories.valkey import ValkeySessionRepository
from clicktrail.utils.config import Settings, get_settings


def get_session_repository(settings: Settings | None = None) -> SessionRepository:
    """
    Build the session repository selected by STORE_IMPL.

    The repository is returned unconnected; the caller owns connect()/close().
    """
    settings = settings or get_settings()
    if settings.store.impl == "valkey":
        return ValkeySessionRepository(settings)
    return PostgreSQLSessionRepository(settings)


__all__ = [
    "PostgreSQLSessionRepository",
    "ValkeySessionRepository",
    "check_postgresql_connection",
    "get_session_repository",
]
