# ==============================================================================
# Serve Command
# ==============================================================================
"""
Runs the ingestion API under uvicorn.
"""

import logging
from typing import Annotated, Optional

import typer
import uvicorn

from clicktrail.cli.shared import C
from clicktrail.utils.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    init_db: Annotated[
        bool, typer.Option("--init-db", help="Create the PostgreSQL schema before serving")
    ] = False,
) -> None:
    """Start the ingestion API server.

    Host and port default to API_HOST / API_PORT. The session store is
    chosen by STORE_IMPL. DEBUG=true overrides LOG_LEVEL.

    Examples:
        clicktrail serve
        clicktrail serve --port 8080 --init-db
    """
    from clicktrail.api.server import create_app

    settings = get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
    )

    if init_db and settings.store.impl == "postgresql":
        from clicktrail.utils.db import ensure_schema

        ensure_schema(settings)

    bind_host = host or settings.api.host
    bind_port = port or settings.api.port
    print(
        f"  Serving {C.WHITE}http://{bind_host}:{bind_port}{settings.api.path}{C.RESET} "
        f"{C.DIM}(store: {settings.store.impl}){C.RESET}"
    )
    uvicorn.run(
        create_app(settings),
        host=bind_host,
        port=bind_port,
        log_level=logging.getLevelName(level).lower(),
    )
