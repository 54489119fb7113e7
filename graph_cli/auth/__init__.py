"""Credential storage and token acquisition for delegated Graph API access."""

from graph_cli.auth.credentials import (
    Credential,
    CredentialStore,
    DeviceFlowStore,
    expires_in_seconds,
    is_token_expired,
)
from graph_cli.auth.provider import (
    DeviceCodeInstructions,
    DeviceFlow,
    IdentityProvider,
    MsalIdentityProvider,
    TokenResponse,
)

__all__ = [
    "Credential",
    "CredentialStore",
    "DeviceFlowStore",
    "expires_in_seconds",
    "is_token_expired",
    "DeviceCodeInstructions",
    "DeviceFlow",
    "IdentityProvider",
    "MsalIdentityProvider",
    "TokenResponse",
]
