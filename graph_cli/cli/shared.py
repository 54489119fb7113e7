"""Shared CLI helpers: consoles, logger, option types, response output and auth gating."""

import json
from enum import Enum
from typing import Any, NoReturn

import typer
from rich.console import Console

from graph_cli.auth.handler import AuthHandler, AuthOk
from graph_cli.graph.client import GraphClient
from graph_cli.utils.logger import get_logger

console = Console()
err_console = Console(stderr=True)
logger = get_logger("graph_cli.cli")


class OutputFormat(str, Enum):
    json = "json"
    text = "text"


def print_json(payload: Any) -> None:
    """Write one compact JSON document to stdout."""
    typer.echo(json.dumps(payload, default=str))


def finish(payload: dict[str, Any], success: bool | None = None) -> NoReturn:
    """Print a response and exit: 0 for success, 1 otherwise."""
    print_json(payload)
    if success is None:
        success = payload.get("status") == "success"
    raise typer.Exit(0 if success else 1)


def fail(error: str, output_format: OutputFormat = OutputFormat.json) -> NoReturn:
    if output_format == OutputFormat.text:
        err_console.print(f"[red]Error: {error}[/red]")
        raise typer.Exit(1)
    finish({"status": "error", "error": error})


def require_auth(
    client: GraphClient,
    scopes: list[str],
    output_format: OutputFormat = OutputFormat.json,
) -> str:
    """Return a bearer token, or print the auth_required / auth_pending response and exit 1."""
    result = AuthHandler(client).ensure(scopes)
    if isinstance(result, AuthOk):
        return result.token
    logger.info("cli.auth_gate", profile=client.profile, status=result.status)
    if output_format == OutputFormat.text:
        instructions = result.instructions
        if result.status == "auth_pending":
            err_console.print("[yellow]Sign-in is still pending.[/yellow]")
        else:
            err_console.print(f"[yellow]Authentication required:[/yellow] {result.reason}")
        if instructions is not None:
            err_console.print(
                f"Open [bold]{instructions.verificationUri}[/bold] and enter code "
                f"[bold]{instructions.userCode}[/bold], then run the command again."
            )
        raise typer.Exit(1)
    finish(result.response())
