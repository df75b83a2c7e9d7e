"""Security utilities package."""

from __future__ import annotations

from .credential_provider import (
    ChainedSecretProvider,
    CredentialStore,
    EnvSecretProvider,
    MissingCredentialsError,
    SecretProvider,
    default_providers,
    resolve_credentials,
    resolve_secret,
)

__all__ = [
    "ChainedSecretProvider",
    "CredentialStore",
    "EnvSecretProvider",
    "MissingCredentialsError",
    "SecretProvider",
    "default_providers",
    "resolve_credentials",
    "resolve_secret",
]
