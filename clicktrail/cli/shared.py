# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared constants and helpers used across CLI command modules.

This module provides:
- ANSI color codes and status icons
- Store access for read-only commands
"""

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from clicktrail.base.repositories import SessionRepository
from clicktrail.infrastructure.repositories import get_session_repository
from clicktrail.utils.config import Settings, get_settings

# ==============================================================================
# ANSI Colors and Icons
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    CIRCLE = "●"
    ARROW = "→"


# Module-level aliases for convenience
C, I = Colors, Icons


# ==============================================================================
# Store Helpers
# ==============================================================================


@contextmanager
def open_repository(settings: Settings | None = None) -> Iterator[SessionRepository]:
    """
    Connect the configured session store for the duration of a command.

    Exits the command with status 1 if the store cannot be reached.
    """
    settings = settings or get_settings()
    repository = get_session_repository(settings)
    try:
        repository.connect()
    except Exception as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to {settings.store.impl}: {e}{C.RESET}")
        raise typer.Exit(1)
    try:
        yield repository
    finally:
        repository.close()


__all__ = ["C", "Colors", "I", "Icons", "open_repository"]
