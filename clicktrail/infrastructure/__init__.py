# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

- repositories/ - Session store adapters (PostgreSQL, Valkey)
- storage.py - Capture agent client storage (file, memory)
"""

from clicktrail.infrastructure.repositories import (
    PostgreSQLSessionRepository,
    ValkeySessionRepository,
    check_postgresql_connection,
    get_session_repository,
)
from clicktrail.infrastructure.storage import FileClientStorage, MemoryClientStorage

__all__ = [
    # Repositories
    "PostgreSQLSessionRepository",
    "ValkeySessionRepository",
    "check_postgresql_connection",
    "get_session_repository",
    # Client storage
    "FileClientStorage",
    "MemoryClientStorage",
]
