"""calendar: list upcoming events, view one event, search by subject, today / week views."""

from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

from rich.table import Table
import typer

from graph_cli.config import CALENDAR_SCOPES, DEFAULT_PROFILE
from graph_cli.errors import GraphCliError
from graph_cli.graph.client import GraphClient
from graph_cli.graph.dates import resolve_range, to_graph_datetime
from graph_cli.graph.mapping import event_summary
from graph_cli.utils.logger import bind_context, clear_context

from .shared import OutputFormat, console, fail, finish, logger, require_auth


class CalendarCommand(str, Enum):
    list = "list"
    view = "view"
    search = "search"
    today = "today"
    week = "week"


def fetch_events(
    client: GraphClient,
    token: str,
    command: CalendarCommand,
    start: datetime | None = None,
    end: datetime | None = None,
    top: int = 10,
    query: str | None = None,
    event_id: str | None = None,
) -> Any:
    """Run one Graph query for the sub-command and return the display records."""
    if command == CalendarCommand.view:
        event = client.request(f"/me/events/{quote(event_id or '', safe='')}", token)
        return event_summary(event)

    if command == CalendarCommand.search:
        # $search is not supported on events, so match on subject
        escaped = (query or "").replace("'", "''")
        response = client.request(
            "/me/events",
            token,
            params={
                "$filter": f"contains(subject,'{escaped}')",
                "$top": top,
                "$orderby": "start/dateTime desc",
            },
        )
        return [event_summary(e) for e in response.get("value", [])]

    response = client.request(
        "/me/calendarView",
        token,
        params={
            "startDateTime": to_graph_datetime(start),
            "endDateTime": to_graph_datetime(end),
            "$top": top,
            "$orderby": "start/dateTime",
        },
    )
    return [event_summary(e) for e in response.get("value", [])]


def _when(event: dict[str, Any]) -> str:
    start = (event.get("start") or {}).get("dateTime", "")
    end = (event.get("end") or {}).get("dateTime", "")
    if event.get("isAllDay"):
        return f"{start[:10]} (all day)"
    return f"{start[:16].replace('T', ' ')} - {end[11:16]}"


def print_events_text(command: CalendarCommand, data: Any) -> None:
    if command == CalendarCommand.view:
        console.print(f"[bold]{data.get('subject') or '(no subject)'}[/bold]")
        console.print(f"When: {_when(data)}")
        if data.get("location"):
            console.print(f"Where: {data['location']}")
        organizer = data.get("organizer") or {}
        if organizer:
            console.print(f"Organizer: {organizer.get('name') or organizer.get('address')}")
        for attendee in data.get("attendees", []):
            email = attendee.get("email") or {}
            console.print(f"  - {email.get('name') or email.get('address')} ({attendee.get('status') or 'none'})")
        if data.get("bodyPreview"):
            console.print()
            console.print(data["bodyPreview"], markup=False)
        return

    if not data:
        console.print("No events found.")
        return
    table = Table()
    table.add_column("When", style="green")
    table.add_column("Subject")
    table.add_column("Location")
    table.add_column("ID", style="dim", overflow="fold")
    for event in data:
        table.add_row(_when(event), event.get("subject") or "(no subject)", event.get("location") or "", event["id"])
    console.print(table)


def calendar(
    command: CalendarCommand = typer.Argument(CalendarCommand.list, help="list | view | search | today | week"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Credential profile"),
    top: int = typer.Option(10, "--top", min=1, help="Number of results"),
    start: str | None = typer.Option(None, "--start", help="Start date: ISO date, today, tomorrow or +7d, +1m, +1y from now"),
    end: str | None = typer.Option(None, "--end", help="End date: ISO date or +7d, +1m, +1y from start"),
    query: str | None = typer.Option(None, "--query", help="Subject search (for 'search')"),
    event_id: str | None = typer.Option(None, "--id", help="Event ID (for 'view')"),
    output_format: OutputFormat = typer.Option(OutputFormat.json, "--format", help="json or text"),
) -> None:
    """View and search calendar events via Microsoft Graph.

    Examples: --start today --end +7d, --start 2024-01-01 --end 2024-01-31.
    """
    log = logger.bind(command="calendar", subcommand=command.value, profile=profile)

    if command == CalendarCommand.view and not event_id:
        fail("--id is required for 'view' command", output_format)
    if command == CalendarCommand.search and not query:
        fail("--query is required for 'search' command", output_format)
    try:
        range_start, range_end = resolve_range(command.value, start, end)
    except ValueError as e:
        fail(str(e), output_format)

    bind_context(command="calendar", profile=profile)
    try:
        with GraphClient(profile=profile) as client:
            token = require_auth(client, CALENDAR_SCOPES, output_format)
            data = fetch_events(client, token, command, range_start, range_end, top, query, event_id)
    except GraphCliError as e:
        log.warning("calendar.error", error=str(e))
        fail(str(e), output_format)
    finally:
        clear_context()

    log.info("calendar.complete", count=len(data) if isinstance(data, list) else 1)
    if output_format == OutputFormat.text:
        print_events_text(command, data)
        return
    finish({"status": "success", "data": data})
