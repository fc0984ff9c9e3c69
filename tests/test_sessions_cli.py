# ==============================================================================
# Tests for CLI Session and Config Commands
# ==============================================================================
"""
Unit tests for `clicktrail sessions ...` and `clicktrail config show`.

The session store is the fakeredis-backed repository from conftest; the
commands' settings and repository factory are patched to use it. CLI
output is captured via typer.testing.CliRunner.
"""

import json
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from clicktrail.app import app as cli_app
from clicktrail.cli.sessions import (
    sessions_heatmap,
    sessions_list,
    sessions_show,
    sessions_timeline,
)

runner = CliRunner()


def _make_app():
    """Create a minimal Typer app with session commands for testing."""
    app = typer.Typer()
    app.command("list")(sessions_list)
    app.command("show")(sessions_show)
    app.command("timeline")(sessions_timeline)
    app.command("heatmap")(sessions_heatmap)
    return app


@pytest.fixture()
def cli_store(settings, repository, service):
    """Seed two sessions and point the CLI at the fakeredis store."""
    service.create({"sessionId": "alpha-1", "device": "desktop"})
    service.append(
        {
            "sessionId": "alpha-1",
            "device": "desktop",
            "events": [
                {"x": 150, "y": 300, "doc_w": 300, "doc_h": 600, "timestamp": 1714564802000},
                {"x": 150, "y": 300, "doc_w": 300, "doc_h": 600, "timestamp": 1714564801000},
            ],
        }
    )
    service.append({"sessionId": "beta-2", "device": "mobile", "events": [{"type": "unload"}]})

    with (
        patch("clicktrail.cli.sessions.get_settings", return_value=settings),
        patch("clicktrail.cli.shared.get_session_repository", return_value=repository),
    ):
        yield repository


# ==============================================================================
# sessions list
# ==============================================================================


class TestSessionsList:
    def test_json_newest_first(self, cli_store):
        result = runner.invoke(_make_app(), ["list", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [s["sessionId"] for s in data] == ["beta-2", "alpha-1"]

    def test_query_filters_by_id(self, cli_store):
        result = runner.invoke(_make_app(), ["list", "--json", "--query", "ALPHA"])
        assert [s["sessionId"] for s in json.loads(result.output)] == ["alpha-1"]

    def test_query_matches_event_count(self, cli_store):
        result = runner.invoke(_make_app(), ["list", "--json", "-q", "2"])
        ids = {s["sessionId"] for s in json.loads(result.output)}
        assert ids == {"alpha-1", "beta-2"}

    def test_limit(self, cli_store):
        result = runner.invoke(_make_app(), ["list", "--json", "--limit", "1"])
        assert len(json.loads(result.output)) == 1

    def test_table_summary(self, cli_store):
        result = runner.invoke(_make_app(), ["list"])
        assert result.exit_code == 0
        assert "Total events:" in result.output
        assert "alpha-1" in result.output


# ==============================================================================
# sessions show / timeline / heatmap
# ==============================================================================


class TestSessionViews:
    def test_show_json(self, cli_store):
        result = runner.invoke(_make_app(), ["show", "alpha-1", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["eventCount"] == 2

    def test_show_unknown_exits_1(self, cli_store):
        result = runner.invoke(_make_app(), ["show", "missing", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == "session not found"

    def test_timeline_json_sorted(self, cli_store):
        result = runner.invoke(_make_app(), ["timeline", "alpha-1", "--json"])
        stamps = [e["timestamp"] for e in json.loads(result.output)]
        assert stamps == sorted(stamps)
        assert len(stamps) == 2

    def test_heatmap_json(self, cli_store):
        result = runner.invoke(_make_app(), ["heatmap", "alpha-1", "--json"])
        data = json.loads(result.output)
        assert data["buckets"] == [{"x": 500, "y": 500, "count": 2}]
        assert data["markers"][0]["intensity"] == 2

    def test_heatmap_table(self, cli_store):
        result = runner.invoke(_make_app(), ["heatmap", "alpha-1"])
        assert result.exit_code == 0
        assert "Buckets:" in result.output


# ==============================================================================
# config show
# ==============================================================================


class TestConfigShow:
    def test_json(self, settings):
        with patch("clicktrail.cli.config.get_settings", return_value=settings):
            result = runner.invoke(cli_app, ["config", "show", "--json"])

        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["store"]["impl"] == "valkey"
        assert config["store"]["key_prefix"] == "test"
        assert config["api"]["path"] == "/api/sessions"
        assert config["agent"]["storage_key"] == "analytics_session_id"
