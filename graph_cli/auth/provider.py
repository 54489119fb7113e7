"""Identity-provider seam: device-code and refresh-token grants.

Callers depend on the IdentityProvider protocol; MsalIdentityProvider is the
MSAL-backed implementation used by the CLI.
"""

import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

import msal
import requests
from pydantic import BaseModel

from graph_cli.config import AUTHORITY_HOST, DEFAULT_TOKEN_LIFETIME_SECONDS
from graph_cli.errors import AuthenticationError, AuthorizationPendingError
from graph_cli.utils.logger import get_logger

logger = get_logger("graph_cli.auth.provider")

# Errors the token endpoint returns while the user has not finished signing in
PENDING_ERRORS = ("authorization_pending", "slow_down")


class DeviceCodeInstructions(BaseModel):
    """What the user needs to complete sign-in on another device."""

    userCode: str
    verificationUri: str
    expiresIn: int
    message: str = ""


class DeviceFlow(BaseModel):
    """A started device-code flow. `state` is the provider's opaque flow dict."""

    user_code: str
    verification_uri: str
    expires_at: float
    message: str = ""
    scopes: list[str] = []
    state: dict[str, Any] = {}

    def is_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at

    def instructions(self, now: float | None = None) -> DeviceCodeInstructions:
        remaining = self.expires_at - (now if now is not None else time.time())
        return DeviceCodeInstructions(
            userCode=self.user_code,
            verificationUri=self.verification_uri,
            expiresIn=max(0, int(remaining)),
            message=self.message,
        )


class TokenResponse(BaseModel):
    """Normalized result of a successful token grant."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: datetime
    account: Optional[str] = None
    scopes: list[str] = []


class IdentityProvider(Protocol):
    """Capability interface for the OAuth grants the CLI needs."""

    def initiate_device_flow(self, scopes: list[str]) -> DeviceFlow:
        """Start a device-code flow and return the code the user must enter."""
        ...

    def acquire_token_by_device_flow(self, flow: DeviceFlow, wait: bool = True) -> TokenResponse:
        """Poll the flow. With wait=False, poll once and raise AuthorizationPendingError if unfinished."""
        ...

    def acquire_token_by_refresh_token(self, refresh_token: str, scopes: list[str]) -> TokenResponse:
        """Redeem a refresh token for a new access token without user interaction."""
        ...


def _error_message(result: dict[str, Any], default: str) -> str:
    return result.get("error_description") or result.get("error") or default


@contextmanager
def _msal_errors(action: str):
    """Raise AuthenticationError for what MSAL throws instead of returning an error dict."""
    try:
        yield
    except requests.RequestException as e:
        logger.warning("provider.network_error", action=action, error=str(e))
        raise AuthenticationError(f"{action}: cannot reach the identity provider: {e}") from e
    except ValueError as e:
        # Authority discovery failure, e.g. an unknown tenant
        logger.warning("provider.msal_error", action=action, error=str(e))
        raise AuthenticationError(f"{action}: {e}") from e


def token_response_from_result(result: dict[str, Any], requested_scopes: list[str]) -> TokenResponse:
    """Convert an MSAL result dict into a TokenResponse."""
    expires_in = int(result.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
    claims = result.get("id_token_claims") or {}
    account = claims.get("preferred_username") or claims.get("email") or claims.get("upn")
    scope = result.get("scope")
    if isinstance(scope, str):
        scopes = scope.split()
    elif scope:
        scopes = list(scope)
    else:
        scopes = list(requested_scopes)
    return TokenResponse(
        access_token=result["access_token"],
        refresh_token=result.get("refresh_token"),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        account=account,
        scopes=scopes,
    )


class MsalIdentityProvider:
    """IdentityProvider backed by msal.PublicClientApplication."""

    def __init__(self, client_id: str, tenant_id: str):
        self.client_id = client_id
        self.tenant_id = tenant_id
        self._app: msal.PublicClientApplication | None = None

    @property
    def app(self) -> msal.PublicClientApplication:
        # Built on first use: constructing the app performs authority discovery over the network.
        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=self.client_id,
                authority=f"{AUTHORITY_HOST}/{self.tenant_id}",
            )
        return self._app

    def initiate_device_flow(self, scopes: list[str]) -> DeviceFlow:
        with _msal_errors("Failed to create device flow"):
            flow = self.app.initiate_device_flow(scopes=scopes)
        if "user_code" not in flow:
            raise AuthenticationError(_error_message(flow, "Failed to create device flow"))
        logger.info("provider.device_flow.started", tenant_id=self.tenant_id, expires_in=flow.get("expires_in"))
        return DeviceFlow(
            user_code=flow["user_code"],
            verification_uri=flow.get("verification_uri", ""),
            expires_at=float(flow.get("expires_at") or time.time() + int(flow.get("expires_in", 900))),
            message=flow.get("message", ""),
            scopes=list(scopes),
            state=flow,
        )

    def acquire_token_by_device_flow(self, flow: DeviceFlow, wait: bool = True) -> TokenResponse:
        state = dict(flow.state)
        scopes = flow.scopes
        with _msal_errors("Device flow failed"):
            if wait:
                result = self.app.acquire_token_by_device_flow(state)
            else:
                result = self.app.acquire_token_by_device_flow(state, exit_condition=lambda _flow: True)
        if "access_token" in result:
            return token_response_from_result(result, scopes)
        if result.get("error") in PENDING_ERRORS:
            raise AuthorizationPendingError("Waiting for the user to complete sign-in")
        logger.warning("provider.device_flow.failed", error=result.get("error"))
        raise AuthenticationError(_error_message(result, "Device flow failed"))

    def acquire_token_by_refresh_token(self, refresh_token: str, scopes: list[str]) -> TokenResponse:
        with _msal_errors("Token refresh failed"):
            result = self.app.acquire_token_by_refresh_token(refresh_token, scopes=scopes)
        if not result or "access_token" not in result:
            raise AuthenticationError(_error_message(result or {}, "Refresh returned no result"))
        return token_response_from_result(result, scopes)
