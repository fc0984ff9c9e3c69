# ==============================================================================
# Tests for CLI Serve Command
# ==============================================================================
"""
Unit tests for `clicktrail serve` log level selection.

uvicorn.run, logging.basicConfig and the app factory are patched so no
server is started.
"""

import logging
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from clicktrail.cli.server import serve
from clicktrail.utils.config import Settings

runner = CliRunner()


def _make_app():
    """Create a minimal Typer app with the serve command for testing."""
    app = typer.Typer()
    app.command("serve")(serve)
    app.command("noop")(lambda: None)
    return app


class TestServeLogLevel:
    @pytest.mark.parametrize(
        "debug,log_level,expected",
        [
            (False, "WARNING", logging.WARNING),
            (True, "WARNING", logging.DEBUG),
            (False, "bogus", logging.INFO),
        ],
    )
    def test_level_from_settings(self, debug, log_level, expected):
        settings = Settings(debug=debug, log_level=log_level)
        with (
            patch("clicktrail.cli.server.get_settings", return_value=settings),
            patch("clicktrail.cli.server.logging.basicConfig") as basic_config,
            patch("clicktrail.cli.server.uvicorn.run") as run,
            patch("clicktrail.api.server.create_app") as create_app,
        ):
            result = runner.invoke(_make_app(), ["serve"])

        assert result.exit_code == 0
        assert basic_config.call_args.kwargs["level"] == expected
        create_app.assert_called_once_with(settings)
        assert run.call_args.kwargs["port"] == settings.api.port

    def test_debug_passed_to_uvicorn(self):
        settings = Settings(debug=True)
        with (
            patch("clicktrail.cli.server.get_settings", return_value=settings),
            patch("clicktrail.cli.server.logging.basicConfig"),
            patch("clicktrail.cli.server.uvicorn.run") as run,
            patch("clicktrail.api.server.create_app"),
        ):
            runner.invoke(_make_app(), ["serve"])

        assert run.call_args.kwargs["log_level"] == "debug"
