# ==============================================================================
# Tests for CLI Help Commands
# ==============================================================================
"""
Tests that all CLI help commands generate the expected output.

Verifies that every command and subcommand in the clicktrail CLI:
- Exits with code 0 when invoked with --help
- Contains the expected description text
- Lists the expected subcommands or options

These tests use the real app from clicktrail.app so the full command tree
is wired up and Typer can introspect every command signature.
"""

import pytest
from typer.testing import CliRunner

from clicktrail.app import app

runner = CliRunner()


# ==============================================================================
# Root App
# ==============================================================================


class TestRootHelp:
    """Tests for the root `clicktrail --help` output."""

    def test_exit_code(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0

    def test_description(self):
        result = runner.invoke(app, ["--help"])
        assert "Clicktrail session ingestion CLI" in result.output

    def test_lists_all_subcommands(self):
        result = runner.invoke(app, ["--help"])
        for cmd in ["agent", "config", "db", "serve", "sessions"]:
            assert cmd in result.output, f"Missing command: {cmd}"


# ==============================================================================
# Command groups
# ==============================================================================


class TestGroupHelp:
    """Each command group lists its subcommands."""

    @pytest.mark.parametrize(
        "group, description, subcommands",
        [
            ("db", "Session store bootstrap", ["init", "reset"]),
            ("sessions", "Inspect stored sessions", ["list", "show", "timeline", "heatmap"]),
            ("config", "Configuration management", ["show"]),
            ("agent", "Capture agent tools", ["simulate"]),
        ],
    )
    def test_group(self, group, description, subcommands):
        result = runner.invoke(app, [group, "--help"])
        assert result.exit_code == 0
        assert description in result.output
        for cmd in subcommands:
            assert cmd in result.output, f"Missing subcommand: {group} {cmd}"


# ==============================================================================
# Command options
# ==============================================================================


class TestCommandHelp:
    """Commands expose their documented options."""

    @pytest.mark.parametrize(
        "command, options",
        [
            (["serve"], ["--host", "--port", "--init-db"]),
            (["db", "reset"], ["--yes"]),
            (["sessions", "list"], ["--limit", "--query", "--json"]),
            (["sessions", "show"], ["--json"]),
            (["sessions", "timeline"], ["--json"]),
            (["sessions", "heatmap"], ["--json"]),
            (["config", "show"], ["--json"]),
            (["agent", "simulate"], ["--clicks", "--mobile", "--endpoint", "--beacon"]),
        ],
    )
    def test_options(self, command, options):
        result = runner.invoke(app, [*command, "--help"])
        assert result.exit_code == 0
        for opt in options:
            assert opt in result.output, f"Missing option: {opt}"

    def test_serve_description(self):
        result = runner.invoke(app, ["serve", "--help"])
        assert "Start the ingestion API server" in result.output
