"""Secret lookup and the credential precedence chain."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..publishing.models import Credentials
from ..utils.file_helper import write_text_atomic
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

CREDENTIAL_FIELDS = ("inbox_address", "inbox_secret", "platform_handle")
CREDENTIAL_ENV_KEYS = {
    "inbox_address": "EMAIL",
    "inbox_secret": "EMAIL_PASSWORD",
    "platform_handle": "MEDIUM_USER_NAME",
    "google_api_key": "GOOGLE_API_KEY",
}


class SecretNotFoundError(KeyError):
    """Raised when a secret cannot be resolved."""


class MissingCredentialsError(ValueError):
    """No source supplied a complete set of publishing credentials."""

    def __init__(self, missing: Iterable[str], *, detail: str | None = None) -> None:
        self.missing = tuple(missing)
        message = f"Missing required credentials: {', '.join(self.missing)}"
        super().__init__(f"{message} ({detail})" if detail else message)


class SecretProvider(ABC):
    """Abstract secret lookup contract."""

    name: str = "secrets"

    @abstractmethod
    def get_secret(self, key: str) -> str:
        """Return the secret associated with ``key``."""


class EnvSecretProvider(SecretProvider):
    """Reads secrets from process environment variables.

    ``aliases`` maps logical keys to variable names; unmapped keys are
    upper-cased with dots turned into underscores.
    """

    name = "environment"

    def __init__(
        self,
        prefix: str = "",
        *,
        aliases: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._env = os.environ if environ is None else environ
        self._prefix = prefix
        self._aliases = dict(aliases or {})

    def get_secret(self, key: str) -> str:
        variable = self._aliases.get(key)
        if variable is None:
            compound = f"{self._prefix}{key}" if self._prefix else key
            variable = compound.upper().replace(".", "_")
        value = self._env.get(variable, "")
        if not value:
            raise SecretNotFoundError(variable)
        return value


class MappingSecretProvider(SecretProvider):
    """Wraps a simple dictionary (per-call values, tests)."""

    name = "explicit"

    def __init__(self, mapping: Mapping[str, Any]) -> None:
        self._mapping = mapping

    def get_secret(self, key: str) -> str:
        value = self._mapping.get(key)
        if not value:
            raise SecretNotFoundError(key)
        return str(value)


class ChainedSecretProvider(SecretProvider):
    """Tries multiple providers until one returns a secret."""

    name = "chain"

    def __init__(self, providers: Iterable[SecretProvider]) -> None:
        self._providers = tuple(providers)

    def get_secret(self, key: str) -> str:
        for provider in self._providers:
            try:
                return provider.get_secret(key)
            except SecretNotFoundError:
                continue
        raise SecretNotFoundError(key)


@dataclass(slots=True)
class StoredCredentials:
    inbox_address: str
    inbox_secret: str
    platform_handle: str
    google_api_key: str | None = None
    saved_at: str | None = None

    def to_credentials(self) -> Credentials:
        return Credentials(self.inbox_address, self.inbox_secret, self.platform_handle)

    def redacted(self) -> dict[str, Any]:
        return {
            "inbox_address": self.inbox_address,
            "platform_handle": self.platform_handle,
            "has_inbox_secret": bool(self.inbox_secret),
            "has_google_api_key": bool(self.google_api_key),
            "saved_at": self.saved_at,
        }


class CredentialStore(SecretProvider):
    """Credentials saved on disk as JSON, readable only by the owner."""

    name = "saved"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoredCredentials | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Ignoring unreadable credentials file %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return StoredCredentials(
            inbox_address=str(data.get("inbox_address", "")),
            inbox_secret=str(data.get("inbox_secret", "")),
            platform_handle=str(data.get("platform_handle", "")),
            google_api_key=data.get("google_api_key") or None,
            saved_at=data.get("saved_at"),
        )

    def save(
        self, credentials: Credentials, *, google_api_key: str | None = None
    ) -> StoredCredentials:
        credentials.validate()
        record = StoredCredentials(
            inbox_address=credentials.inbox_address,
            inbox_secret=credentials.inbox_secret,
            platform_handle=credentials.platform_handle,
            google_api_key=google_api_key,
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
        write_text_atomic(
            self.path, json.dumps(asdict(record), ensure_ascii=False, indent=2), private=True
        )
        LOGGER.info(
            "Saved credentials", extra={"event": "credentials_saved", "path": str(self.path)}
        )
        return record

    def delete(self) -> bool:
        if not self.path.exists():
            return False
        self.path.unlink()
        LOGGER.info(
            "Deleted credentials",
            extra={"event": "credentials_deleted", "path": str(self.path)},
        )
        return True

    def get_secret(self, key: str) -> str:
        record = self.load()
        value = getattr(record, key, None) if record is not None else None
        if not value:
            raise SecretNotFoundError(key)
        return str(value)


def default_providers(store: CredentialStore | None = None) -> list[SecretProvider]:
    providers: list[SecretProvider] = []
    if store is not None:
        providers.append(store)
    providers.append(EnvSecretProvider(aliases=CREDENTIAL_ENV_KEYS))
    return providers


def _as_mapping(explicit: Credentials | Mapping[str, Any] | None) -> Mapping[str, Any]:
    if explicit is None:
        return {}
    if isinstance(explicit, Credentials):
        return {name: getattr(explicit, name) for name in CREDENTIAL_FIELDS}
    return explicit


def resolve_credentials(
    explicit: Credentials | Mapping[str, Any] | None = None,
    *,
    providers: Iterable[SecretProvider] | None = None,
) -> Credentials:
    """Return the first complete credential set: explicit, then each provider.

    Sources are not mixed; a source missing any field is skipped as a whole.
    """

    sources: list[SecretProvider] = [MappingSecretProvider(_as_mapping(explicit))]
    sources.extend(providers if providers is not None else default_providers())

    supplied: set[str] = set()
    for provider in sources:
        values: dict[str, str] = {}
        for field_name in CREDENTIAL_FIELDS:
            try:
                values[field_name] = provider.get_secret(field_name)
            except SecretNotFoundError:
                continue
        supplied.update(values)
        if len(values) == len(CREDENTIAL_FIELDS):
            LOGGER.info(
                "Using %s credentials",
                provider.name,
                extra={"event": "credentials_resolved", "source": provider.name},
            )
            return Credentials(**values)

    missing = [name for name in CREDENTIAL_FIELDS if name not in supplied]
    if missing:
        raise MissingCredentialsError(missing)
    raise MissingCredentialsError(
        CREDENTIAL_FIELDS, detail="each source is incomplete and sources are not combined"
    )


def resolve_secret(
    key: str, *, explicit: str | None = None, providers: Iterable[SecretProvider] = ()
) -> str | None:
    """Look ``key`` up across ``providers`` unless ``explicit`` is given."""

    if explicit:
        return explicit
    try:
        return ChainedSecretProvider(providers).get_secret(key)
    except SecretNotFoundError:
        return None


__all__ = [
    "CREDENTIAL_ENV_KEYS",
    "ChainedSecretProvider",
    "CredentialStore",
    "EnvSecretProvider",
    "MappingSecretProvider",
    "MissingCredentialsError",
    "SecretNotFoundError",
    "SecretProvider",
    "StoredCredentials",
    "default_providers",
    "resolve_credentials",
    "resolve_secret",
]
