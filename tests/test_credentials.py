from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from blogpilot.publishing.models import Credentials
from blogpilot.security import (
    CredentialStore,
    EnvSecretProvider,
    MissingCredentialsError,
    resolve_credentials,
    resolve_secret,
)
from blogpilot.security.credential_provider import CREDENTIAL_ENV_KEYS

ENV = {"EMAIL": "env@example.com", "EMAIL_PASSWORD": "env-secret", "MEDIUM_USER_NAME": "envwriter"}


def _env_provider(environ: dict[str, str]) -> EnvSecretProvider:
    return EnvSecretProvider(aliases=CREDENTIAL_ENV_KEYS, environ=environ)


def test_store_roundtrip_and_redaction(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "state" / "credentials.json")
    assert store.load() is None

    store.save(Credentials("me@example.com", "hunter2", "@writer"), google_api_key="g-key")

    record = store.load()
    assert record is not None
    assert record.to_credentials() == Credentials("me@example.com", "hunter2", "writer")
    assert record.google_api_key == "g-key"
    assert "hunter2" not in json.dumps(record.redacted())
    assert record.redacted()["has_inbox_secret"] is True
    if os.name != "nt":
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    assert store.delete() is True
    assert store.delete() is False


def test_store_refuses_incomplete_credentials(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        CredentialStore(tmp_path / "c.json").save(Credentials("me@example.com", "", "writer"))


def test_explicit_credentials_win(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "c.json")
    store.save(Credentials("saved@example.com", "saved", "saved"))

    resolved = resolve_credentials(
        Credentials("cli@example.com", "cli", "cli"), providers=[store, _env_provider(ENV)]
    )

    assert resolved.inbox_address == "cli@example.com"


def test_saved_credentials_beat_environment(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "c.json")
    store.save(Credentials("saved@example.com", "saved", "saved"))

    resolved = resolve_credentials(None, providers=[store, _env_provider(ENV)])

    assert resolved == Credentials("saved@example.com", "saved", "saved")


def test_environment_used_when_nothing_saved(tmp_path: Path) -> None:
    resolved = resolve_credentials(
        {"inbox_address": "partial@example.com"},
        providers=[CredentialStore(tmp_path / "c.json"), _env_provider(ENV)],
    )

    # A partial explicit set is not merged into the environment set.
    assert resolved == Credentials("env@example.com", "env-secret", "envwriter")


def test_incomplete_sources_raise() -> None:
    with pytest.raises(MissingCredentialsError) as excinfo:
        resolve_credentials(
            {"inbox_address": "a@example.com"},
            providers=[_env_provider({"EMAIL_PASSWORD": "x"})],
        )

    assert excinfo.value.missing == ("platform_handle",)
    assert "Missing required credentials" in str(excinfo.value)


def test_resolve_secret_prefers_explicit(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "c.json")
    store.save(Credentials("a@example.com", "x", "w"), google_api_key="saved-key")

    assert resolve_secret("google_api_key", explicit="cli-key", providers=[store]) == "cli-key"
    assert resolve_secret("google_api_key", providers=[store]) == "saved-key"
    assert resolve_secret("google_api_key", providers=[_env_provider({})]) is None
