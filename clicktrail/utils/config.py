# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="postgres", description="PostgreSQL password")
    database: str = Field(default="clicktrail", description="Database name")
    schema_name: str = Field(default="clicktrail", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ValkeySettings(BaseSettings):
    """Valkey (Redis-compatible) connection settings for the Valkey session store."""

    model_config = SettingsConfigDict(env_prefix="VALKEY_")

    host: str = Field(default="localhost", description="Valkey host")
    port: int = Field(default=6379, description="Valkey port")
    password: Optional[str] = Field(default=None, description="Valkey password")
    db: int = Field(default=0, description="Valkey database number")
    ssl: bool = Field(default=False, description="Use SSL/TLS connection")

    @property
    def url(self) -> str:
        """Build Valkey connection URL."""
        scheme = "rediss" if self.ssl else "redis"
        if self.password:
            return f"{scheme}://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


class StoreSettings(BaseSettings):
    """Session store settings.

    Selects the repository implementation and sizes its connection pool.
    """

    model_config = SettingsConfigDict(env_prefix="STORE_")

    impl: Literal["postgresql", "valkey"] = Field(
        default="postgresql",
        description="Session store implementation (postgresql, valkey)",
    )
    pool_min: int = Field(default=1, description="Minimum pooled connections")
    pool_max: int = Field(default=10, description="Maximum pooled connections")
    key_prefix: str = Field(default="clicktrail", description="Key prefix for the Valkey store")


class ApiSettings(BaseSettings):
    """Ingestion HTTP API settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")
    path: str = Field(default="/api/sessions", description="Sessions resource path")
    default_limit: int = Field(default=100, description="Default session list size")
    max_limit: int = Field(default=1000, description="Hard cap on session list size")


class AgentSettings(BaseSettings):
    """Capture agent settings."""

    model_config = SettingsConfigDict(env_prefix="AGENT_")

    endpoint: str = Field(
        default="http://localhost:3000/api/sessions",
        description="Collection endpoint URL",
    )
    storage_file: Path = Field(
        default=Path(".clicktrail/storage.json"),
        description="Client storage file holding the session id",
    )
    storage_key: str = Field(
        default="analytics_session_id", description="Client storage key for the session id"
    )
    request_timeout: float = Field(default=5.0, description="Async request timeout in seconds")
    sync_timeout: float = Field(
        default=1.0, description="Synchronous teardown fallback timeout in seconds"
    )
    workers: int = Field(default=2, description="Worker threads for async delivery")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    valkey: ValkeySettings = Field(default_factory=ValkeySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)

    # General settings
    debug: bool = Field(default=False, description="Force DEBUG logging for the server")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
