"""Exception hierarchy shared by the store, the identity provider and the Graph client."""


class GraphCliError(Exception):
    """Base class for errors raised by graph_cli."""


class CredentialStoreError(GraphCliError):
    """The credential file could not be read or written."""


class AuthenticationError(GraphCliError):
    """No usable token: device code expired or rejected, refresh failed, or no credential."""


class AuthorizationPendingError(AuthenticationError):
    """A device-code flow was started but the user has not finished signing in."""


class GraphTransportError(GraphCliError):
    """The Graph API could not be reached."""


class GraphAPIError(GraphCliError):
    """The Graph API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Graph API error: {status_code} - {body}")
