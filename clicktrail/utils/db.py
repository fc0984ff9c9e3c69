# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Database utility functions for the PostgreSQL session store.

Provides schema initialization and reset.
Includes retry logic with exponential backoff for network resilience.
"""

import logging
from pathlib import Path

import psycopg2
from jinja2 import Template

from clicktrail.utils.config import Settings, get_settings
from clicktrail.utils.paths import get_init_sql_path
from clicktrail.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_standard

logger = logging.getLogger(__name__)


def get_schema_file() -> Path | None:
    """Get the schema init.sql path, or None if not found."""
    path = get_init_sql_path()
    if path.exists():
        return path
    # Fallback to current directory
    cwd_path = Path.cwd() / "schema" / "init.sql"
    if cwd_path.exists():
        return cwd_path
    return None


def render_schema_sql(schema_name: str) -> str:
    """Render the schema SQL template with the given schema name."""
    schema_file = get_schema_file()
    if not schema_file:
        raise RuntimeError(
            "Schema file (schema/init.sql) not found. "
            "Make sure you're running from the project root."
        )

    template = Template(schema_file.read_text())
    return template.render(schema_name=schema_name)


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def ensure_database_exists(settings: Settings | None = None) -> None:
    """
    Ensure the target database exists, creating it if needed.

    Connects to the 'postgres' maintenance database to check and create
    the target database.

    Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
    """
    settings = settings or get_settings()
    target_db = settings.postgres.database
    admin_conn_string = (
        f"postgresql://{settings.postgres.user}:{settings.postgres.password}@"
        f"{settings.postgres.host}:{settings.postgres.port}/postgres"
        f"?sslmode={settings.postgres.sslmode}"
    )

    # CREATE DATABASE cannot run inside a transaction
    conn = psycopg2.connect(admin_conn_string, connect_timeout=5)
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
            if cur.fetchone() is None:
                logger.info("Creating database '%s'...", target_db)
                cur.execute(f'CREATE DATABASE "{target_db}"')
                logger.info("Database '%s' created.", target_db)
    finally:
        conn.close()


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def check_schema_exists(settings: Settings | None = None) -> bool:
    """
    Check if the sessions table exists.

    Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
    """
    settings = settings or get_settings()
    with psycopg2.connect(settings.postgres.connection_string, connect_timeout=5) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = %s
                    AND table_name = 'sessions'
                )
                """,
                (settings.postgres.schema_name,),
            )
            result = cur.fetchone()
            return result[0] if result else False


def ensure_schema(settings: Settings | None = None) -> None:
    """
    Ensure database schema exists, initializing if needed.

    This function is idempotent and safe to call multiple times.
    It will create the database if it doesn't exist.

    Raises:
        RuntimeError: If schema file not found or initialization fails
    """
    settings = settings or get_settings()
    ensure_database_exists(settings)

    if check_schema_exists(settings):
        return

    schema_name = settings.postgres.schema_name
    logger.info("Initializing database schema '%s'...", schema_name)

    try:
        schema_sql = render_schema_sql(schema_name)
        with psycopg2.connect(settings.postgres.connection_string) as conn:
            with conn.cursor() as cur:
                cur.execute(schema_sql)
            conn.commit()
        logger.info("Database schema '%s' initialized.", schema_name)
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to initialize schema: {e}") from e


def reset_schema(settings: Settings | None = None) -> None:
    """
    Drop and recreate the database schema.

    WARNING: This deletes all sessions!
    """
    settings = settings or get_settings()
    schema_name = settings.postgres.schema_name

    try:
        schema_sql = render_schema_sql(schema_name)
        with psycopg2.connect(settings.postgres.connection_string) as conn:
            with conn.cursor() as cur:
                cur.execute(f"DROP SCHEMA IF EXISTS {schema_name} CASCADE")
                cur.execute(schema_sql)
            conn.commit()
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to reset schema: {e}") from e
