from __future__ import annotations

from pathlib import Path

import pytest

from blogpilot.settings import load_config


def test_load_config_reads_sections(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BLOGPILOT_CONFIG", raising=False)
    data_dir = tmp_path / "data"
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        f"""
[app]
platform = "medium"
owner = "me"

[paths]
data_dir = "{data_dir.as_posix()}"

[browser]
headless = true
extra_args = ["--lang=en-US"]

[timings]
publish_budget = 120
scan_attempts = 5
auth_poll_interval = 1

[generation]
model = "gemini-2.5-flash"
thinking_budget = 512
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.paths.data_dir == data_dir
    assert config.paths.diagnostics_dir == data_dir / "diagnostics"
    assert config.paths.pipeline_state_dir == data_dir / "state" / "pipeline"
    assert config.paths.diagnostics_dir.is_dir()
    assert config.browser.headless is True
    assert config.browser.extra_args == ("--lang=en-US",)
    assert config.browser.profile_dir == data_dir / "state" / "browser-profile"
    assert config.timings.publish_budget == 120.0
    assert isinstance(config.timings.publish_budget, float)
    assert config.timings.scan_attempts == 5
    assert config.timings.email_arrival_delay == 15.0
    assert config.generation.model == "gemini-2.5-flash"
    assert config.generation.thinking_budget == 512
    assert config.extra == {"owner": "me"}


def test_explicit_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.toml")


def test_env_var_selects_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_file = tmp_path / "alt.toml"
    config_file.write_text(
        f'[paths]\ndata_dir = "{(tmp_path / "d").as_posix()}"\n[app]\ninbox = "gmail"\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("BLOGPILOT_CONFIG", str(config_file))

    config = load_config(create_dirs=False)

    assert config.paths.data_dir == tmp_path / "d"
    assert config.inbox == "gmail"
    assert not (tmp_path / "d").exists()
