# ==============================================================================
# Session Commands
# ==============================================================================
"""
Read-only views over the session store.

Lists recent sessions and reconstructs one session as a timeline or as
heatmap buckets, the same views the dashboard renders.
"""

import json as _json
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from clicktrail.cli.shared import C, I, open_repository
from clicktrail.core.errors import NotFoundError
from clicktrail.core.models import Session
from clicktrail.core.reconstruction import bucket_events, build_timeline, heatmap_markers
from clicktrail.service.ingestion import IngestionService
from clicktrail.utils.config import get_settings


# ==============================================================================
# Helper Functions
# ==============================================================================


def _format_ts(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "—"


def _matches(session: Session, query: str) -> bool:
    """Case-insensitive match on session id or event count."""
    query = query.lower()
    return query in session.session_id.lower() or query in str(session.event_count)


def _load_session(session_id: str, json_output: bool) -> Session:
    settings = get_settings()
    with open_repository(settings) as repository:
        service = IngestionService(repository)
        try:
            return service.get(session_id)
        except NotFoundError:
            if json_output:
                print(_json.dumps({"error": "session not found", "sessionId": session_id}))
            else:
                print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} Session '{session_id}' not found{C.RESET}\n")
            raise typer.Exit(1)


# ==============================================================================
# Commands
# ==============================================================================


def sessions_list(
    limit: Annotated[
        Optional[int], typer.Option("--limit", "-n", help="Maximum sessions to fetch")
    ] = None,
    query: Annotated[
        Optional[str], typer.Option("--query", "-q", help="Filter by session id or event count")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List sessions, most recently updated first.

    Examples:
        clicktrail sessions list
        clicktrail sessions list --limit 20 --query 3f2a
        clicktrail sessions list --json
    """
    settings = get_settings()
    with open_repository(settings) as repository:
        service = IngestionService(
            repository,
            default_limit=settings.api.default_limit,
            max_limit=settings.api.max_limit,
        )
        sessions = service.list_sessions(limit)

    if query:
        sessions = [s for s in sessions if _matches(s, query)]

    if json_output:
        print(_json.dumps([s.to_document() for s in sessions]))
        return

    if not sessions:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No sessions found{C.RESET}\n")
        return

    console = Console()
    table = Table(title="Sessions", show_header=True, header_style="bold")
    table.add_column("Session", justify="left")
    table.add_column("Devices", justify="left")
    table.add_column("Events", justify="right")
    table.add_column("Started", justify="left")
    table.add_column("Updated", justify="left")

    for session in sessions:
        table.add_row(
            session.session_id,
            ", ".join(session.device_classes) or "—",
            f"{session.event_count:,}",
            _format_ts(session.start_time),
            _format_ts(session.updated_at),
        )

    total_events = sum(s.event_count for s in sessions)
    print()
    console.print(table)
    print(f"  {C.BOLD}Sessions:{C.RESET}      {len(sessions):,}")
    print(f"  {C.BOLD}Total events:{C.RESET}  {total_events:,}")
    print()


def sessions_show(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show one stored session document.

    Examples:
        clicktrail sessions show 3f2a9c1e-...
    """
    session = _load_session(session_id, json_output)

    if json_output:
        print(_json.dumps(session.to_document()))
        return

    print()
    print(f"{C.BOLD}Session {session.session_id}{C.RESET}")
    print(f"  Started:    {C.WHITE}{_format_ts(session.start_time)}{C.RESET}")
    print(f"  Updated:    {C.WHITE}{_format_ts(session.updated_at)}{C.RESET}")
    print(f"  Events:     {C.WHITE}{session.event_count:,}{C.RESET}")
    for device, events in session.devices.items():
        print(f"  {C.CYAN}{device}{C.RESET}: {len(events):,} events")
    print()


def sessions_timeline(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show a session's events in chronological order.

    Examples:
        clicktrail sessions timeline 3f2a9c1e-...
        clicktrail sessions timeline 3f2a9c1e-... --json
    """
    timeline = build_timeline(_load_session(session_id, json_output))

    if json_output:
        print(_json.dumps([event.to_document() for event in timeline]))
        return

    console = Console()
    table = Table(title=f"Timeline — {session_id}", show_header=True, header_style="bold")
    table.add_column("Time", justify="left")
    table.add_column("Type", justify="left")
    table.add_column("Device", justify="left")
    table.add_column("Position", justify="right")
    table.add_column("Selector", justify="left")

    for event in timeline:
        if event.position_x is not None and event.position_y is not None:
            position = f"{event.position_x}, {event.position_y}"
        else:
            position = "—"
        table.add_row(
            event.timestamp.strftime("%H:%M:%S.%f")[:-3],
            event.event_type,
            event.device or "—",
            position,
            event.selector or "—",
        )

    print()
    console.print(table)
    print(f"  {C.BOLD}Events:{C.RESET}  {len(timeline):,}")
    print()


def sessions_heatmap(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show click density buckets for a session.

    Buckets are the relative (or absolute) coordinates scaled by 1000 and
    rounded, so nearby clicks share a cell.

    Examples:
        clicktrail sessions heatmap 3f2a9c1e-...
    """
    session = _load_session(session_id, json_output)
    markers = heatmap_markers(session)
    buckets = bucket_events(marker.event for marker in markers)

    if json_output:
        print(
            _json.dumps(
                {
                    "sessionId": session.session_id,
                    "eventCount": len(markers),
                    "buckets": [
                        {"x": x, "y": y, "count": count}
                        for (x, y), count in sorted(buckets.items())
                    ],
                    "markers": [marker.to_dict() for marker in markers],
                }
            )
        )
        return

    if not buckets:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} Session has no events{C.RESET}\n")
        return

    console = Console()
    table = Table(title=f"Heatmap — {session_id}", show_header=True, header_style="bold")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Count", justify="right", style="bold")

    for (x, y), count in buckets.most_common():
        table.add_row(str(x), str(y), f"{count:,}")

    print()
    console.print(table)
    print(f"  {C.BOLD}Events:{C.RESET}   {len(markers):,}")
    print(f"  {C.BOLD}Buckets:{C.RESET}  {len(buckets):,}")
    print()
