"""Tests for CLI helper utilities."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from blogpilot.app import cli
from blogpilot.app.pipeline import PipelineRunner, PipelineStep


def _build_runner() -> PipelineRunner:
    steps = [
        PipelineStep("research", lambda ctx: None),
        PipelineStep("generate", lambda ctx: None, depends_on=("research",)),
        PipelineStep("publish", lambda ctx: None, depends_on=("generate",)),
    ]
    return PipelineRunner(steps)


def _config_file(tmp_path: Path) -> str:
    path = tmp_path / "config.toml"
    path.write_text(f'[paths]\ndata_dir = "{(tmp_path / "data").as_posix()}"\n', encoding="utf-8")
    return str(path)


def test_select_steps_includes_dependencies() -> None:
    runner = _build_runner()
    selection = cli._select_steps(runner, ["Publish"])
    assert selection == ["research", "generate", "publish"]


def test_select_steps_validates_names() -> None:
    runner = _build_runner()
    with pytest.raises(SystemExit) as excinfo:
        cli._select_steps(runner, ["unknown"])
    assert excinfo.value.code == 2


def test_credentials_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = _config_file(tmp_path)
    base = ["--config", config, "--log-plain", "--log-level", "warning", "credentials"]

    assert cli.main([*base, "show"]) == 0
    assert "<no-credentials>" in capsys.readouterr().out

    assert (
        cli.main(
            [*base, "save", "--email", "me@example.com", "--email-password", "pw", "--handle", "@me"]
        )
        == 0
    )
    saved = json.loads(capsys.readouterr().out)
    assert saved["platform_handle"] == "me"
    assert "pw" not in json.dumps(saved)

    assert cli.main([*base, "delete"]) == 0
    assert "Credentials deleted" in capsys.readouterr().out


def test_pipeline_inspect_without_state(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = _config_file(tmp_path)

    code = cli.main(["--config", config, "--log-plain", "pipeline", "--topic", "x", "inspect"])

    assert code == 0
    assert "<no-state>" in capsys.readouterr().out


def test_publish_without_credentials_exits_with_usage_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name in ("EMAIL", "EMAIL_PASSWORD", "MEDIUM_USER_NAME"):
        monkeypatch.delenv(name, raising=False)
    article = tmp_path / "article.json"
    article.write_text(json.dumps({"title": "T", "body": "B"}), encoding="utf-8")

    code = cli.main(["--config", _config_file(tmp_path), "--log-plain", "publish", str(article)])

    assert code == 2
