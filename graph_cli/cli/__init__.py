"""CLI commands: one module per script (auth, check-auth, emails, calendar)."""

from typer import Typer

from graph_cli.cli import auth_mode, calendar_mode, check_auth, emails_mode

app = Typer(help="Microsoft Graph email and calendar access", no_args_is_help=True)


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(auth_mode.auth)
    app.command(name="check-auth")(check_auth.check_auth)
    app.command(name="check-auth-complete")(check_auth.check_auth_complete)
    app.command()(emails_mode.emails)
    app.command()(calendar_mode.calendar)


register_commands()
