"""Utility modules."""

from graph_cli.utils.logger import bind_context, clear_context, get_logger

__all__ = [
    "bind_context",
    "clear_context",
    "get_logger",
]
