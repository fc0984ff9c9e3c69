# ==============================================================================
# Clicktrail CLI
# ==============================================================================
"""
Command-line interface for the clicktrail session ingestion service.

Usage:
    clicktrail --help
    clicktrail serve
    clicktrail config show
    clicktrail db init
    clicktrail db reset -y
    clicktrail sessions list --limit 20
    clicktrail sessions show <id>
    clicktrail sessions timeline <id>
    clicktrail sessions heatmap <id>
    clicktrail agent simulate --clicks 10
"""

import os

import typer

# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="clicktrail",
    help="Clicktrail session ingestion CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

from clicktrail.cli.server import serve

app.command("serve")(serve)

db_app = typer.Typer(
    help="Session store bootstrap",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from clicktrail.cli.db import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

sessions_app = typer.Typer(
    help="Inspect stored sessions",
    no_args_is_help=True,
)
app.add_typer(sessions_app, name="sessions")

from clicktrail.cli.sessions import (
    sessions_heatmap,
    sessions_list,
    sessions_show,
    sessions_timeline,
)

sessions_app.command("list")(sessions_list)
sessions_app.command("show")(sessions_show)
sessions_app.command("timeline")(sessions_timeline)
sessions_app.command("heatmap")(sessions_heatmap)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from clicktrail.cli.config import config_show

config_app.command("show")(config_show)

agent_app = typer.Typer(
    help="Capture agent tools",
    no_args_is_help=True,
)
app.add_typer(agent_app, name="agent")

from clicktrail.cli.agent import agent_simulate

agent_app.command("simulate")(agent_simulate)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
