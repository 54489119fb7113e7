"""emails: list, read and search messages, and list mail folders."""

from enum import Enum
from typing import Any
from urllib.parse import quote

from rich.table import Table
import typer

from graph_cli.config import DEFAULT_PROFILE, MAIL_SCOPES
from graph_cli.errors import GraphCliError
from graph_cli.graph.client import GraphClient
from graph_cli.graph.mapping import email_detail, email_summary, folder_summary
from graph_cli.utils.body_text import body_to_text
from graph_cli.utils.logger import bind_context, clear_context

from .shared import OutputFormat, console, fail, finish, logger, require_auth

READ_SELECT = "id,subject,from,receivedDateTime,body,bodyPreview,isRead,hasAttachments"


class EmailCommand(str, Enum):
    list = "list"
    read = "read"
    search = "search"
    folders = "folders"


def fetch_emails(
    client: GraphClient,
    token: str,
    command: EmailCommand,
    folder: str = "inbox",
    top: int = 10,
    query: str | None = None,
    message_id: str | None = None,
) -> Any:
    """Run one Graph query for the sub-command and return the display records."""
    if command == EmailCommand.list:
        response = client.request(
            f"/me/mailFolders/{quote(folder, safe='')}/messages",
            token,
            params={"$top": top, "$orderby": "receivedDateTime desc"},
        )
        return [email_summary(m) for m in response.get("value", [])]

    if command == EmailCommand.read:
        message = client.request(
            f"/me/messages/{quote(message_id or '', safe='')}",
            token,
            params={"$select": READ_SELECT},
        )
        return email_detail(message)

    if command == EmailCommand.search:
        # Graph rejects $orderby together with $search; results come back by relevance.
        escaped = (query or "").replace('"', '\\"')
        response = client.request(
            "/me/messages",
            token,
            params={"$search": f'"{escaped}"', "$top": top},
        )
        return [email_summary(m) for m in response.get("value", [])]

    response = client.request("/me/mailFolders", token, params={"$top": 50})
    return [folder_summary(f) for f in response.get("value", [])]


def _sender(record: dict[str, Any]) -> str:
    sender = record.get("from") or {}
    return sender.get("name") or sender.get("address") or ""


def print_emails_text(command: EmailCommand, data: Any) -> None:
    if command == EmailCommand.folders:
        table = Table(title="Mail folders")
        table.add_column("Folder", style="cyan")
        table.add_column("Unread", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("ID", style="dim")
        for f in data:
            table.add_row(f["displayName"], str(f["unreadItemCount"]), str(f["totalItemCount"]), f["id"])
        console.print(table)
        return

    if command == EmailCommand.read:
        console.print(f"[bold]Subject:[/bold] {data.get('subject') or '(no subject)'}")
        console.print(f"[bold]From:[/bold] {_sender(data)}")
        console.print(f"[bold]Received:[/bold] {data.get('receivedDateTime') or ''}")
        if data.get("hasAttachments"):
            console.print("[bold]Attachments:[/bold] yes")
        body = data.get("body") or {}
        text = body_to_text(body.get("content", ""), body.get("contentType", "text"))
        console.print()
        console.print(text or data.get("bodyPreview") or "", markup=False)
        return

    if not data:
        console.print("No messages found.")
        return
    table = Table()
    table.add_column("", width=1)
    table.add_column("Received", style="green")
    table.add_column("From")
    table.add_column("Subject")
    table.add_column("ID", style="dim", overflow="fold")
    for m in data:
        table.add_row(
            "" if m["isRead"] else "*",
            m.get("receivedDateTime") or "",
            _sender(m),
            m.get("subject") or "(no subject)",
            m["id"],
        )
    console.print(table)


def emails(
    command: EmailCommand = typer.Argument(..., help="list | read | search | folders"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Credential profile"),
    folder: str = typer.Option("inbox", "--folder", help="Folder name or ID (for 'list')"),
    top: int = typer.Option(10, "--top", min=1, help="Number of results"),
    query: str | None = typer.Option(None, "--query", help="Search query (for 'search')"),
    message_id: str | None = typer.Option(None, "--id", help="Message ID (for 'read')"),
    output_format: OutputFormat = typer.Option(OutputFormat.json, "--format", help="json or text"),
) -> None:
    """Read, list and search email via Microsoft Graph.

    Search query examples: from:sender@example.com, subject:meeting,
    hasAttachments:true, "exact phrase".
    """
    log = logger.bind(command="emails", subcommand=command.value, profile=profile)

    if command == EmailCommand.read and not message_id:
        fail("--id is required for 'read' command", output_format)
    if command == EmailCommand.search and not query:
        fail("--query is required for 'search' command", output_format)

    bind_context(command="emails", profile=profile)
    try:
        with GraphClient(profile=profile) as client:
            token = require_auth(client, MAIL_SCOPES, output_format)
            data = fetch_emails(client, token, command, folder, top, query, message_id)
    except GraphCliError as e:
        log.warning("emails.error", error=str(e))
        fail(str(e), output_format)
    finally:
        clear_context()

    log.info("emails.complete", count=len(data) if isinstance(data, list) else 1)
    if output_format == OutputFormat.text:
        print_emails_text(command, data)
        return
    finish({"status": "success", "data": data})
