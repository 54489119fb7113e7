"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
CONFIG_DIR = Path(os.getenv("GRAPH_CLI_HOME") or Path.home() / ".config" / "graph-cli").expanduser()
CREDENTIALS_PATH = Path(os.getenv("GRAPH_CLI_CREDENTIALS_PATH") or CONFIG_DIR / "credentials.json").expanduser()
DEVICE_FLOW_PATH = Path(os.getenv("GRAPH_CLI_DEVICE_FLOW_PATH") or CONFIG_DIR / "device_flows.json").expanduser()

# Service key under which Graph credentials are stored
SERVICE_NAME = "microsoft-graph"
DEFAULT_PROFILE = "default"

# Identity platform. The default client is the public Graph Explorer app.
DEFAULT_CLIENT_ID = os.getenv("GRAPH_CLIENT_ID") or "14d82eec-204b-4c2f-b7e8-296a70dab67e"
DEFAULT_TENANT_ID = os.getenv("GRAPH_TENANT_ID") or "common"
AUTHORITY_HOST = "https://login.microsoftonline.com"

# Graph REST API
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_HTTP_TIMEOUT = float(os.getenv("GRAPH_HTTP_TIMEOUT") or "30")

# Delegated scopes grouped by feature (MSAL adds openid/profile/offline_access itself)
GRAPH_SCOPES = {
    "user": ["User.Read"],
    "mail": ["Mail.Read"],
    "calendar": ["Calendars.Read"],
}
ALL_SCOPES = GRAPH_SCOPES["user"] + GRAPH_SCOPES["mail"] + GRAPH_SCOPES["calendar"]
MAIL_SCOPES = GRAPH_SCOPES["user"] + GRAPH_SCOPES["mail"]
CALENDAR_SCOPES = GRAPH_SCOPES["user"] + GRAPH_SCOPES["calendar"]

# Used when the identity provider omits expires_in
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

# Logging (stdout carries command output, so the console log goes to stderr)
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "WARNING").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"
LOG_FILE = os.getenv("LOG_FILE", "")
