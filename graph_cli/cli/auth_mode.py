"""auth: sign in with the device-code flow, or list / delete stored credential profiles."""

from rich.table import Table
import typer

from graph_cli.auth.credentials import CredentialStore, is_token_expired
from graph_cli.auth.provider import DeviceCodeInstructions
from graph_cli.config import ALL_SCOPES, DEFAULT_PROFILE, SERVICE_NAME
from graph_cli.errors import AuthenticationError, GraphCliError
from graph_cli.graph.client import GraphClient
from graph_cli.utils.logger import bind_context, clear_context

from .shared import console, err_console, finish, logger, print_json


def _parse_scopes(scopes: str | None) -> list[str]:
    if not scopes:
        return list(ALL_SCOPES)
    return [s.strip() for s in scopes.split(",") if s.strip()]


def _list_profiles(as_json: bool) -> None:
    store = CredentialStore()
    rows = []
    for name in store.list_profiles(SERVICE_NAME):
        cred = store.get(SERVICE_NAME, name)
        if cred is None:
            continue
        rows.append(
            {
                "profile": name,
                "account": cred.account,
                "scopes": cred.scopes,
                "clientId": cred.client_id,
                "tenantId": cred.tenant_id,
                "status": "expired" if is_token_expired(cred) else "valid",
            }
        )

    if as_json:
        print_json({"status": "success", "profiles": rows})
        return
    if not rows:
        console.print("No credential profiles found.")
        console.print("Run 'graph-cli auth' to create one.")
        return

    table = Table(title="Microsoft Graph credential profiles")
    table.add_column("Profile", style="cyan")
    table.add_column("Account", style="green")
    table.add_column("Scopes")
    table.add_column("Client ID")
    table.add_column("Tenant ID")
    table.add_column("Status", justify="center")
    for row in rows:
        status = "[red]EXPIRED[/red]" if row["status"] == "expired" else "[green]Valid[/green]"
        table.add_row(
            row["profile"],
            row["account"],
            ", ".join(row["scopes"]),
            row["clientId"] or "",
            row["tenantId"] or "",
            status,
        )
    console.print(table)


def _delete_profile(profile: str, as_json: bool) -> None:
    deleted = CredentialStore().delete(SERVICE_NAME, profile)
    logger.info("auth.delete", profile=profile, deleted=deleted)
    if as_json:
        print_json({"status": "success", "profile": profile, "deleted": deleted})
    elif deleted:
        console.print(f"Deleted credential profile: {profile}")
    else:
        console.print(f"Profile not found: {profile}")


def auth(
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Credential profile name"),
    client_id: str | None = typer.Option(None, "--client-id", help="Azure AD application (client) ID"),
    tenant_id: str | None = typer.Option(None, "--tenant-id", help="Azure AD tenant ID (default: common)"),
    scopes: str | None = typer.Option(None, "--scopes", help="Comma-separated scopes (default: all)"),
    list_: bool = typer.Option(False, "--list", help="List stored credential profiles"),
    delete: bool = typer.Option(False, "--delete", help="Delete the credential profile"),
    as_json: bool = typer.Option(False, "--json", help="Output result as JSON"),
    no_wait: bool = typer.Option(False, "--no-wait", help="Print the sign-in code and exit without waiting"),
) -> None:
    """Authenticate with Microsoft Graph using the device-code flow."""
    log = logger.bind(command="auth", profile=profile)

    if list_:
        _list_profiles(as_json)
        return
    if delete:
        _delete_profile(profile, as_json)
        return

    requested = _parse_scopes(scopes)
    bind_context(command="auth", profile=profile)
    log.info("auth.start", scopes=requested, no_wait=no_wait)

    if not as_json:
        console.print("Authenticating with Microsoft Graph...")
        console.print(f"Profile: {profile}")
        console.print(f"Client ID: {client_id or '(using default Graph Explorer client)'}")
        if tenant_id:
            console.print(f"Tenant ID: {tenant_id}")
        console.print(f"Scopes: {', '.join(requested)}\n")

    def _show_code(instructions: DeviceCodeInstructions) -> None:
        target = err_console if as_json else console
        target.print(instructions.message or (
            f"To sign in, open {instructions.verificationUri} and enter the code {instructions.userCode}"
        ))

    try:
        with GraphClient(profile=profile, client_id=client_id, tenant_id=tenant_id) as client:
            if no_wait:
                instructions = client.begin_authentication(requested)
                log.info("auth.pending", expires_in=instructions.expiresIn)
                if as_json:
                    finish({"status": "auth_required", **instructions.model_dump()}, success=True)
                _show_code(instructions)
                console.print("\nRun 'graph-cli check-auth-complete' after signing in.")
                return
            credential = client.authenticate(requested, on_code=_show_code)
    except AuthenticationError as e:
        log.warning("auth.failed", error=str(e))
        if as_json:
            finish({"status": "error", "error": f"Authentication failed: {e}"})
        err_console.print(f"[red]Authentication failed: {e}[/red]")
        raise typer.Exit(1)
    except GraphCliError as e:
        log.error("auth.error", error=str(e))
        if as_json:
            finish({"status": "error", "error": str(e)})
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        clear_context()

    log.info("auth.complete", account=credential.account)
    if as_json:
        finish(
            {
                "status": "success",
                "profile": profile,
                "account": credential.account,
                "expiresAt": credential.to_record()["expiresAt"],
            }
        )
    console.print("\n[green]Authentication successful![/green]")
    console.print(f"  Account: {credential.account}")
    console.print(f"  Expires: {credential.expires_at.astimezone():%Y-%m-%d %H:%M:%S}")
    if client_id:
        console.print("  Client ID saved for future use")
    console.print(f"\nCredentials saved to profile: {profile}")
