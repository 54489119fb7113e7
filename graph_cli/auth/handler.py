"""Decides whether a command can proceed, returning a tagged result instead of raising.

`AuthOk` carries a usable token. `AuthRequired` means the caller has to send
the user through the device-code flow; `AuthPending` means that flow was
started and the user has not finished it yet.
"""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel

from graph_cli.auth.credentials import Credential, is_token_expired, utcnow
from graph_cli.auth.provider import DeviceCodeInstructions
from graph_cli.errors import AuthenticationError, AuthorizationPendingError
from graph_cli.graph.client import GraphClient
from graph_cli.utils.logger import get_logger

logger = get_logger("graph_cli.auth.handler")


class AuthOk(BaseModel):
    status: Literal["ok"] = "ok"
    token: str
    credential: Credential


class _NeedsInteraction(BaseModel):
    status: str
    reason: str
    instructions: Optional[DeviceCodeInstructions] = None

    def response(self) -> dict[str, Any]:
        """Payload printed for the orchestrating caller."""
        payload: dict[str, Any] = {"status": self.status}
        if self.instructions is not None:
            payload.update(self.instructions.model_dump())
        payload["error"] = self.reason
        return payload


class AuthRequired(_NeedsInteraction):
    status: Literal["auth_required"] = "auth_required"


class AuthPending(_NeedsInteraction):
    status: Literal["auth_pending"] = "auth_pending"


AuthResult = Union[AuthOk, AuthRequired, AuthPending]


class CompletionResult(BaseModel):
    """Outcome of check-auth-complete."""

    status: Literal["complete", "pending", "failed"]
    account: Optional[str] = None
    error: Optional[str] = None


class AuthHandler:
    """Single decision point for 'do we have a usable token for these scopes'."""

    def __init__(self, client: GraphClient):
        self.client = client
        self.log = logger.bind(profile=client.profile)

    def check(self, scopes: list[str], now: datetime | None = None) -> AuthOk | AuthRequired:
        """Silent check: stored token, else refresh-token grant. Never prompts."""
        try:
            credential = self.client.get_credential(scopes, now=now)
        except AuthenticationError as e:
            self.log.info("auth.check.needs_auth", reason=str(e))
            return AuthRequired(reason=str(e))
        return AuthOk(token=credential.access_token, credential=credential)

    def ensure(self, scopes: list[str], now: datetime | None = None) -> AuthResult:
        """Like check(), but falls back to the device-code flow.

        A previously started flow is polled once; otherwise a new flow is
        started and its instructions returned with auth_required.
        """
        result = self.check(scopes, now=now)
        if isinstance(result, AuthOk):
            return result

        flow = self.client.pending_flow()
        if flow is not None:
            try:
                credential = self.client.poll_authentication()
            except AuthorizationPendingError as e:
                return AuthPending(reason=str(e), instructions=flow.instructions())
            except AuthenticationError as e:
                self.log.info("auth.ensure.pending_flow_failed", reason=str(e))
            else:
                if credential is not None:
                    return AuthOk(token=credential.access_token, credential=credential)

        try:
            instructions = self.client.begin_authentication(scopes)
        except AuthenticationError as e:
            return AuthRequired(reason=f"{result.reason}; could not start sign-in: {e}")
        return AuthRequired(reason=result.reason, instructions=instructions)

    def complete(self, now: datetime | None = None) -> CompletionResult:
        """Report whether an interactive sign-in has finished for this profile."""
        now = now or utcnow()
        credential = self.client.load_credential()
        if credential is not None and not is_token_expired(credential, now):
            return CompletionResult(status="complete", account=credential.account)

        try:
            polled = self.client.poll_authentication()
        except AuthorizationPendingError as e:
            return CompletionResult(status="pending", error=str(e))
        except AuthenticationError as e:
            return CompletionResult(status="failed", error=str(e))
        if polled is not None:
            return CompletionResult(status="complete", account=polled.account)

        if credential is None:
            return CompletionResult(status="pending", error="No credentials found yet")
        return CompletionResult(
            status="failed",
            error="Credentials expired - please try authenticating again",
        )
