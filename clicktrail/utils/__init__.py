# ==============================================================================
# Clicktrail Utilities
# ==============================================================================
"""
Shared utilities: configuration, database bootstrap, retry policies, paths.
"""

from clicktrail.utils.config import (
    AgentSettings,
    ApiSettings,
    PostgresSettings,
    Settings,
    StoreSettings,
    ValkeySettings,
    get_settings,
)
from clicktrail.utils.db import ensure_schema, reset_schema

__all__ = [
    # Config
    "AgentSettings",
    "ApiSettings",
    "PostgresSettings",
    "Settings",
    "StoreSettings",
    "ValkeySettings",
    "get_settings",
    # Database
    "ensure_schema",
    "reset_schema",
]
