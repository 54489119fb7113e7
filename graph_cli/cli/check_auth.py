"""check-auth and check-auth-complete: non-interactive auth status for an orchestrating caller."""

import math
from typing import Any

import typer

from graph_cli.auth.credentials import expires_in_seconds
from graph_cli.auth.handler import AuthHandler, AuthOk
from graph_cli.config import ALL_SCOPES, DEFAULT_PROFILE
from graph_cli.errors import GraphCliError
from graph_cli.graph.client import GraphClient

from .shared import console, finish, logger


def _report_check(result: dict[str, Any], as_json: bool) -> None:
    valid = result["status"] == "valid"
    if as_json:
        finish(result, success=valid)
    if valid:
        console.print("Auth status: Valid")
        if result.get("account"):
            console.print(f"Account: {result['account']}")
        if result.get("expiresIn") is not None:
            console.print(f"Expires in: {math.floor(result['expiresIn'] / 60 + 0.5)} minutes")
    else:
        console.print("Auth status: Authentication required")
        if result.get("error"):
            console.print(f"Reason: {result['error']}")
    raise typer.Exit(0 if valid else 1)


def check_auth(
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Credential profile name"),
    as_json: bool = typer.Option(False, "--json", help="Output result as JSON"),
) -> None:
    """Report whether a valid token is available, refreshing it silently if needed.

    Exit code 0 when valid, 1 when authentication is required.
    """
    log = logger.bind(command="check-auth", profile=profile)
    try:
        with GraphClient(profile=profile) as client:
            outcome = AuthHandler(client).check(ALL_SCOPES)
    except GraphCliError as e:
        log.error("check_auth.error", error=str(e))
        _report_check({"status": "needs-auth", "error": str(e)}, as_json)

    if isinstance(outcome, AuthOk):
        credential = outcome.credential
        log.info("check_auth.valid", account=credential.account)
        _report_check(
            {
                "status": "valid",
                "expiresIn": expires_in_seconds(credential),
                "account": credential.account,
            },
            as_json,
        )
    log.info("check_auth.needs_auth", reason=outcome.reason)
    _report_check({"status": "needs-auth", "error": outcome.reason}, as_json)


def check_auth_complete(
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Credential profile name"),
    as_json: bool = typer.Option(False, "--json", help="Output result as JSON"),
) -> None:
    """Check whether a device-code sign-in has completed. Call after the user says they signed in."""
    log = logger.bind(command="check-auth-complete", profile=profile)
    try:
        with GraphClient(profile=profile) as client:
            result = AuthHandler(client).complete()
    except GraphCliError as e:
        log.error("check_auth_complete.error", error=str(e))
        if as_json:
            finish({"status": "failed", "error": str(e)}, success=False)
        console.print("Authentication failed")
        console.print(f"Error: {e}")
        raise typer.Exit(1)

    log.info("check_auth_complete.result", status=result.status)
    complete = result.status == "complete"
    if as_json:
        finish(result.model_dump(exclude_none=True), success=complete)
    if complete:
        console.print("Authentication complete!")
        if result.account:
            console.print(f"Account: {result.account}")
    elif result.status == "pending":
        console.print("Authentication still pending")
        if result.error:
            console.print(f"Note: {result.error}")
    else:
        console.print("Authentication failed")
        if result.error:
            console.print(f"Error: {result.error}")
    raise typer.Exit(0 if complete else 1)
