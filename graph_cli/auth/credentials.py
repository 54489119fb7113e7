"""Credential model, JSON-file credential store and token freshness check.

The store file maps service name -> profile name -> record. Every mutation
rewrites the whole document under an in-process lock. Separate processes
writing the same file concurrently can still lose an update (last writer wins).
"""

import json
import math
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from graph_cli import config
from graph_cli.errors import CredentialStoreError
from graph_cli.utils.logger import get_logger

logger = get_logger("graph_cli.auth.credentials")


class Credential(BaseModel):
    """Cached token set for one service + profile."""

    access_token: str = Field(alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_at: datetime = Field(alias="expiresAt")
    account: str = ""
    scopes: list[str] = []
    client_id: Optional[str] = Field(None, alias="clientId")
    tenant_id: Optional[str] = Field(None, alias="tenantId")

    class Config:
        populate_by_name = True

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_record(self) -> dict[str, Any]:
        """Serialize with camelCase keys and ISO-8601 timestamps."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_token_expired(credential: Credential, now: datetime | None = None) -> bool:
    """True when now is at or past the stored expiry (no safety margin)."""
    now = now or utcnow()
    return now >= credential.expires_at


def expires_in_seconds(credential: Credential, now: datetime | None = None) -> int:
    """Whole seconds until expiry, never negative."""
    now = now or utcnow()
    return max(0, math.floor((credential.expires_at - now).total_seconds()))


class JsonProfileStore:
    """Read-modify-write access to a JSON document of service -> profile -> record."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CredentialStoreError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise CredentialStoreError(f"Malformed store file {self._path}: top level is not an object")
        return data

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        """Replace the whole file; readers see either the old or the new document."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CredentialStoreError(f"Cannot write {self._path}: {e}") from e

    def get_record(self, service: str, profile: str) -> dict[str, Any] | None:
        return self._read().get(service, {}).get(profile)

    def set_record(self, service: str, profile: str, record: dict[str, Any]) -> None:
        with self._lock:
            data = self._read()
            data.setdefault(service, {})[profile] = record
            self._write(data)
        logger.debug("store.set", path=str(self._path), service=service, profile=profile)

    def delete(self, service: str, profile: str) -> bool:
        """Remove a profile. Returns False when it did not exist."""
        with self._lock:
            data = self._read()
            profiles = data.get(service)
            if not profiles or profile not in profiles:
                return False
            del profiles[profile]
            if not profiles:
                del data[service]
            self._write(data)
        logger.debug("store.delete", path=str(self._path), service=service, profile=profile)
        return True

    def list_profiles(self, service: str) -> list[str]:
        return list(self._read().get(service, {}))


class CredentialStore(JsonProfileStore):
    """Credential file (defaults to ~/.config/graph-cli/credentials.json)."""

    def __init__(self, path: str | Path | None = None):
        super().__init__(path or config.CREDENTIALS_PATH)

    def get(self, service: str, profile: str) -> Credential | None:
        record = self.get_record(service, profile)
        if record is None:
            return None
        try:
            return Credential.model_validate(record)
        except ValidationError as e:
            raise CredentialStoreError(
                f"Malformed credential for {service}/{profile} in {self.path}: {e}"
            ) from e

    def set(self, service: str, profile: str, credential: Credential) -> None:
        self.set_record(service, profile, credential.to_record())


class DeviceFlowStore(JsonProfileStore):
    """Device-code flows started without waiting, kept until polled to completion."""

    def __init__(self, path: str | Path | None = None):
        super().__init__(path or config.DEVICE_FLOW_PATH)
