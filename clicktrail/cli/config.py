# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration display for the clicktrail CLI.
"""

import json
from typing import Annotated

import typer

from clicktrail.cli.shared import C
from clicktrail.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    if json_output:
        config = {
            "store": {
                "impl": settings.store.impl,
                "pool_min": settings.store.pool_min,
                "pool_max": settings.store.pool_max,
                "key_prefix": settings.store.key_prefix,
            },
            "postgresql": {
                "host": settings.postgres.host,
                "port": settings.postgres.port,
                "database": settings.postgres.database,
                "schema": settings.postgres.schema_name,
                "user": settings.postgres.user,
                "password": settings.postgres.password,
                "sslmode": settings.postgres.sslmode,
            },
            "valkey": {
                "host": settings.valkey.host,
                "port": settings.valkey.port,
                "db": settings.valkey.db,
                "ssl_enabled": settings.valkey.ssl,
                "password": settings.valkey.password,
            },
            "api": {
                "host": settings.api.host,
                "port": settings.api.port,
                "path": settings.api.path,
                "default_limit": settings.api.default_limit,
                "max_limit": settings.api.max_limit,
            },
            "agent": {
                "endpoint": settings.agent.endpoint,
                "storage_file": str(settings.agent.storage_file),
                "storage_key": settings.agent.storage_key,
                "request_timeout": settings.agent.request_timeout,
                "sync_timeout": settings.agent.sync_timeout,
                "workers": settings.agent.workers,
            },
            "log_level": settings.log_level,
        }
        print(json.dumps(config, indent=2))
        return

    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Store{C.RESET}")
    print(f"  Backend:    {C.WHITE}{settings.store.impl}{C.RESET}")
    print(f"  Pool:       {C.WHITE}{settings.store.pool_min}-{settings.store.pool_max}{C.RESET}")
    print()

    print(f"{C.CYAN}PostgreSQL{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.postgres.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.postgres.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
    print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
    print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
    print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print()

    print(f"{C.CYAN}Valkey{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.valkey.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.valkey.port}{C.RESET}")
    valkey_ssl = "enabled" if settings.valkey.ssl else "disabled"
    print(f"  SSL:        {C.WHITE}{valkey_ssl}{C.RESET}")
    print(f"  Prefix:     {C.WHITE}{settings.store.key_prefix}{C.RESET}")
    print()

    print(f"{C.CYAN}API{C.RESET}")
    print(f"  Bind:       {C.WHITE}{settings.api.host}:{settings.api.port}{C.RESET}")
    print(f"  Path:       {C.WHITE}{settings.api.path}{C.RESET}")
    print(
        f"  Limits:     {C.WHITE}default {settings.api.default_limit}, "
        f"max {settings.api.max_limit}{C.RESET}"
    )
    print()

    print(f"{C.CYAN}Agent{C.RESET}")
    print(f"  Endpoint:   {C.WHITE}{settings.agent.endpoint}{C.RESET}")
    print(f"  Storage:    {C.WHITE}{settings.agent.storage_file}{C.RESET}")
    print(
        f"  Timeouts:   {C.WHITE}{settings.agent.request_timeout}s async, "
        f"{settings.agent.sync_timeout}s sync{C.RESET}"
    )
    print()
