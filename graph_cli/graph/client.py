"""Microsoft Graph client: token acquisition for one profile plus authenticated GET requests."""

from datetime import datetime
from typing import Any, Callable

import httpx

from graph_cli.auth.credentials import (
    Credential,
    CredentialStore,
    DeviceFlowStore,
    is_token_expired,
    utcnow,
)
from graph_cli.auth.provider import (
    DeviceCodeInstructions,
    DeviceFlow,
    IdentityProvider,
    MsalIdentityProvider,
    TokenResponse,
)
from graph_cli.config import (
    DEFAULT_CLIENT_ID,
    DEFAULT_PROFILE,
    DEFAULT_TENANT_ID,
    GRAPH_BASE_URL,
    GRAPH_HTTP_TIMEOUT,
    SERVICE_NAME,
)
from graph_cli.errors import (
    AuthenticationError,
    AuthorizationPendingError,
    GraphAPIError,
    GraphTransportError,
)
from graph_cli.utils.logger import get_logger

logger = get_logger("graph_cli.graph_client")


class GraphClient:
    """Graph access for a single credential profile.

    The client id and tenant come from the explicit arguments, else from the
    profile's stored credential, else from GRAPH_CLIENT_ID / GRAPH_TENANT_ID,
    else the public Graph Explorer client on the multi-tenant "common" authority.
    """

    def __init__(
        self,
        profile: str = DEFAULT_PROFILE,
        client_id: str | None = None,
        tenant_id: str | None = None,
        store: CredentialStore | None = None,
        flow_store: DeviceFlowStore | None = None,
        provider: IdentityProvider | None = None,
        http: httpx.Client | None = None,
        service: str = SERVICE_NAME,
    ):
        self.profile = profile
        self.service = service
        self.store = store or CredentialStore()
        self.flow_store = flow_store or DeviceFlowStore()
        stored = self.store.get(service, profile)
        # Only non-default ids are saved with the credential
        self._profile_client_id = client_id or (stored.client_id if stored else None)
        self._profile_tenant_id = tenant_id or (stored.tenant_id if stored else None)
        self.client_id = self._profile_client_id or DEFAULT_CLIENT_ID
        self.tenant_id = self._profile_tenant_id or DEFAULT_TENANT_ID
        self.provider = provider or MsalIdentityProvider(self.client_id, self.tenant_id)
        self._http = http
        self.log = logger.bind(profile=profile)

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=GRAPH_HTTP_TIMEOUT)
        return self._http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Credentials

    def load_credential(self) -> Credential | None:
        return self.store.get(self.service, self.profile)

    def _persist_new(self, token: TokenResponse) -> Credential:
        """Store the result of an interactive sign-in."""
        credential = Credential(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=token.expires_at,
            account=token.account or "",
            scopes=token.scopes,
            client_id=self._profile_client_id,
            tenant_id=self._profile_tenant_id,
        )
        self.store.set(self.service, self.profile, credential)
        self.flow_store.delete(self.service, self.profile)
        self.log.info("graph_client.authenticated", account=credential.account)
        return credential

    def authenticate(
        self,
        scopes: list[str],
        on_code: Callable[[DeviceCodeInstructions], None] | None = None,
    ) -> Credential:
        """Run the device-code flow to completion and store the credential.

        Blocks until the user signs in or the code expires (AuthenticationError).
        """
        flow = self.provider.initiate_device_flow(scopes)
        if on_code is not None:
            on_code(flow.instructions())
        token = self.provider.acquire_token_by_device_flow(flow, wait=True)
        return self._persist_new(token)

    def begin_authentication(self, scopes: list[str]) -> DeviceCodeInstructions:
        """Start a device-code flow and keep it for a later poll_authentication()."""
        flow = self.provider.initiate_device_flow(scopes)
        self.flow_store.set_record(self.service, self.profile, flow.model_dump())
        self.log.info("graph_client.device_flow.saved", expires_at=flow.expires_at)
        return flow.instructions()

    def pending_flow(self) -> DeviceFlow | None:
        record = self.flow_store.get_record(self.service, self.profile)
        if record is None:
            return None
        return DeviceFlow.model_validate(record)

    def poll_authentication(self) -> Credential | None:
        """Poll a saved device-code flow once.

        Returns None when no flow is saved. Raises AuthorizationPendingError
        while the user has not finished, and AuthenticationError (dropping the
        saved flow) when it expired or was rejected.
        """
        flow = self.pending_flow()
        if flow is None:
            return None
        if flow.is_expired():
            self.flow_store.delete(self.service, self.profile)
            raise AuthenticationError("Device code expired - please authenticate again")
        try:
            token = self.provider.acquire_token_by_device_flow(flow, wait=False)
        except AuthorizationPendingError:
            raise
        except AuthenticationError:
            self.flow_store.delete(self.service, self.profile)
            raise
        return self._persist_new(token)

    def refresh(self, credential: Credential, scopes: list[str]) -> Credential:
        """Silent refresh. Keeps the old refresh token and account when the provider omits them."""
        if not credential.refresh_token:
            raise AuthenticationError("Token expired, no refresh token")
        token = self.provider.acquire_token_by_refresh_token(credential.refresh_token, scopes)
        refreshed = Credential(
            access_token=token.access_token,
            refresh_token=token.refresh_token or credential.refresh_token,
            expires_at=token.expires_at,
            account=token.account or credential.account,
            scopes=token.scopes or credential.scopes,
            client_id=credential.client_id,
            tenant_id=credential.tenant_id,
        )
        self.store.set(self.service, self.profile, refreshed)
        self.log.info("graph_client.refreshed", account=refreshed.account)
        return refreshed

    def get_credential(self, scopes: list[str], now: datetime | None = None) -> Credential:
        """Return an unexpired credential, refreshing it silently if needed."""
        credential = self.load_credential()
        if credential is None:
            raise AuthenticationError("No credentials found")
        if not is_token_expired(credential, now or utcnow()):
            return credential
        if not credential.refresh_token:
            raise AuthenticationError("Token expired, no refresh token")
        try:
            return self.refresh(credential, scopes)
        except AuthenticationError as e:
            self.log.warning("graph_client.refresh_failed", error=str(e))
            raise AuthenticationError(f"Refresh failed: {e}") from e

    # Requests

    def request(self, endpoint: str, token: str, params: dict[str, Any] | None = None) -> Any:
        """GET GRAPH_BASE_URL + endpoint with a bearer token and return the parsed JSON."""
        url = f"{GRAPH_BASE_URL}{endpoint}"
        self.log.debug("graph_client.request", endpoint=endpoint, params=params)
        try:
            response = self.http.get(
                url,
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TransportError as e:
            self.log.error("graph_client.transport_error", endpoint=endpoint, error=str(e))
            raise GraphTransportError(f"Cannot reach Microsoft Graph: {e}") from e
        if not response.is_success:
            self.log.warning("graph_client.api_error", endpoint=endpoint, status=response.status_code)
            raise GraphAPIError(response.status_code, response.text)
        return response.json()

    def graph_request(
        self,
        endpoint: str,
        scopes: list[str],
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Ensure a valid token for scopes, then GET the endpoint."""
        credential = self.get_credential(scopes)
        return self.request(endpoint, credential.access_token, params=params)
