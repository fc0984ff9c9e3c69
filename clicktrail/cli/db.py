# ==============================================================================
# Database Commands
# ==============================================================================
"""
Session store bootstrap commands.

`db init` creates the PostgreSQL schema. `db reset` wipes the configured
store: PostgreSQL schema is dropped and recreated, Valkey keys under the
configured prefix are deleted.
"""

from typing import Annotated

import typer

from clicktrail.cli.shared import C, I
from clicktrail.infrastructure.repositories import check_postgresql_connection
from clicktrail.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def db_init() -> None:
    """Create the PostgreSQL database and schema if they don't exist.

    Examples:
        clicktrail db init
    """
    from clicktrail.utils.db import ensure_schema

    settings = get_settings()
    schema = settings.postgres.schema_name

    print()
    print(f"  Initializing schema '{C.WHITE}{schema}{C.RESET}'...")
    try:
        ensure_schema(settings)
    except Exception as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} Failed to initialize schema: {e}{C.RESET}")
        raise typer.Exit(1)
    print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{schema}' ready{C.RESET}")
    print()


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Delete every stored session.

    Examples:
        clicktrail db reset       # With confirmation prompt
        clicktrail db reset -y    # Skip confirmation
    """
    settings = get_settings()
    impl = settings.store.impl

    if not confirm:
        typer.confirm(f"This will DELETE all sessions from {impl}. Are you sure?", abort=True)

    print()
    if impl == "valkey":
        from clicktrail.infrastructure.repositories import ValkeySessionRepository

        print(f"  Deleting keys under '{C.WHITE}{settings.store.key_prefix}:*{C.RESET}'...")
        repository = ValkeySessionRepository(settings)
        try:
            repository.connect()
            deleted = repository.clear()
        except Exception as e:
            print(f"{C.BRIGHT_RED}{I.CROSS} Failed to reset Valkey: {e}{C.RESET}")
            raise typer.Exit(1)
        finally:
            repository.close()
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Valkey reset ({deleted} keys deleted){C.RESET}")
    else:
        from clicktrail.utils.db import reset_schema

        schema = settings.postgres.schema_name
        print(f"  Resetting PostgreSQL schema '{C.WHITE}{schema}{C.RESET}'...")
        if not check_postgresql_connection(settings):
            print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to PostgreSQL{C.RESET}")
            raise typer.Exit(1)
        try:
            reset_schema(settings)
        except Exception as e:
            print(f"{C.BRIGHT_RED}{I.CROSS} Failed to reset PostgreSQL: {e}{C.RESET}")
            raise typer.Exit(1)
        print(f"{C.BRIGHT_GREEN}{I.CHECK} PostgreSQL reset{C.RESET}")
    print()
