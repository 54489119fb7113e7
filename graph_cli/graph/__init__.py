"""Microsoft Graph REST client, response models and display mapping."""

from graph_cli.graph.client import GraphClient
from graph_cli.graph.dates import parse_date, resolve_range
from graph_cli.graph.mapping import (
    email_detail,
    email_summary,
    event_summary,
    folder_summary,
)

__all__ = [
    "GraphClient",
    "parse_date",
    "resolve_range",
    "email_detail",
    "email_summary",
    "event_summary",
    "folder_summary",
]
