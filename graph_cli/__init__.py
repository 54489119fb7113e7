"""Command-line access to Microsoft Graph mail and calendar data."""

__version__ = "0.1.0"
