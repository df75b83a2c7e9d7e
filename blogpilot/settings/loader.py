"""Helpers for loading configuration and static settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

try:  # pragma: no cover - Python 3.11+ includes tomllib
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older versions
    import tomli as tomllib  # type: ignore[no-redef]

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_NAME = "config.toml"
CONFIG_ENV_VAR = "BLOGPILOT_CONFIG"


@dataclass(slots=True)
class HttpSettings:
    timeout: float = 10.0
    max_attempts: int = 3
    backoff_factor: float = 1.5


@dataclass(slots=True)
class PathSettings:
    data_dir: Path
    state_dir: Path
    log_dir: Path
    diagnostics_dir: Path
    articles_dir: Path
    credentials_file: Path

    @property
    def pipeline_state_dir(self) -> Path:
        return self.state_dir / "pipeline"


@dataclass(slots=True)
class BrowserSettings:
    """Launch options for the automation browser."""

    profile_dir: Path
    headless: bool = False
    channel: str | None = None
    executable_path: Path | None = None
    slow_mo_ms: int = 50
    user_agent: str | None = None
    extra_args: tuple[str, ...] = ()


@dataclass(slots=True)
class PublishTimings:
    """Every wait used by the publishing workflow.

    Seconds unless the name ends in ``_ms``. The defaults were tuned against
    Gmail and Medium; tests construct instances with zeros.
    """

    publish_budget: float = 600.0
    navigation_timeout_ms: int = 60_000
    candidate_timeout_ms: int = 3_000
    cascade_budget_ms: int | None = None
    page_settle: float = 3.0
    inbox_login_grace: float = 15.0
    email_arrival_delay: float = 15.0
    inbox_refresh_settle: float = 5.0
    search_settle: float = 4.0
    message_open_delay: float = 3.0
    scan_attempts: int = 3
    scan_retry_delay: float = 5.0
    auth_wait: float = 30.0
    auth_poll_interval: float = 3.0
    editor_settle: float = 5.0
    clipboard_settle: float = 0.1
    title_settle: float = 0.5
    body_settle: float = 1.5
    typing_delay_ms: int = 1
    tag_settle: float = 0.5
    publish_dialog_settle: float = 3.0
    publish_settle: float = 5.0
    share_settle: float = 2.0


@dataclass(slots=True)
class ResearchSettings:
    news_key_env: str = "NEWS_API_KEY"
    youtube_key_env: str = "YOUTUBE_API_KEY"
    google_key_env: str = "GOOGLE_API_KEY"
    search_cx_env: str = "BLOG_SEARCH_CX"
    news_page_size: int = 10
    video_results: int = 10
    blog_results: int = 10
    web_results: int = 10
    max_workers: int = 4
    extract_limit: int = 3
    extract_chars: int = 1500


@dataclass(slots=True)
class GenerationSettings:
    model: str = "gemini-2.0-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    thinking_budget: int | None = None
    timeout: float = 60.0
    max_paragraphs: int = 6


@dataclass(slots=True)
class AppConfig:
    paths: PathSettings
    browser: BrowserSettings
    timings: PublishTimings
    http: HttpSettings
    research: ResearchSettings
    generation: GenerationSettings
    platform: str = "medium"
    inbox: str = "gmail"
    extra: dict[str, Any] = field(default_factory=dict)


def _to_path(value: str | None, *, fallback: Path) -> Path:
    if not value:
        return fallback
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _config_path(explicit: str | os.PathLike[str] | None = None) -> Path:
    candidate: Path
    if explicit:
        candidate = Path(explicit)
    else:
        env_value = os.environ.get(CONFIG_ENV_VAR)
        candidate = Path(env_value) if env_value else PROJECT_ROOT / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _load_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _ensure_directories(paths: Iterable[Path]) -> None:
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)


def _pick(section: dict[str, Any], cls: type, *, names: Iterable[str]) -> dict[str, Any]:
    """Return the keys of ``section`` that ``cls`` understands, coerced to the default's type."""

    defaults = cls()
    picked: dict[str, Any] = {}
    for name in names:
        if name not in section:
            continue
        raw = section[name]
        default = getattr(defaults, name)
        if raw is None or default is None:
            picked[name] = raw
        elif isinstance(default, bool):
            picked[name] = bool(raw)
        elif isinstance(default, int):
            picked[name] = int(raw)
        elif isinstance(default, float):
            picked[name] = float(raw)
        else:
            picked[name] = raw
    return picked


def _build_browser(section: dict[str, Any], *, state_dir: Path) -> BrowserSettings:
    executable = section.get("executable_path")
    return BrowserSettings(
        profile_dir=_to_path(section.get("profile_dir"), fallback=state_dir / "browser-profile"),
        headless=bool(section.get("headless", False)),
        channel=section.get("channel") or None,
        executable_path=Path(executable).expanduser() if executable else None,
        slow_mo_ms=int(section.get("slow_mo_ms", 50)),
        user_agent=section.get("user_agent") or None,
        extra_args=tuple(str(arg) for arg in section.get("extra_args", ())),
    )


def load_config(
    config_path: str | os.PathLike[str] | None = None,
    *,
    create_dirs: bool = True,
) -> AppConfig:
    """Load ``config.toml``; an absent default file yields built-in defaults."""

    path = _config_path(config_path)
    explicit = bool(config_path) or bool(os.environ.get(CONFIG_ENV_VAR))
    data = _load_toml(path, required=explicit)

    app_section = data.get("app", {})
    paths_section = data.get("paths", {})

    data_dir = _to_path(paths_section.get("data_dir"), fallback=PROJECT_ROOT / "data")
    state_dir = _to_path(paths_section.get("state_dir"), fallback=data_dir / "state")
    paths = PathSettings(
        data_dir=data_dir,
        state_dir=state_dir,
        log_dir=_to_path(paths_section.get("log_dir"), fallback=data_dir / "logs"),
        diagnostics_dir=_to_path(
            paths_section.get("diagnostics_dir"), fallback=data_dir / "diagnostics"
        ),
        articles_dir=_to_path(paths_section.get("articles_dir"), fallback=data_dir / "articles"),
        credentials_file=_to_path(
            paths_section.get("credentials_file"), fallback=state_dir / "credentials.json"
        ),
    )

    if create_dirs:
        _ensure_directories(
            (
                paths.data_dir,
                paths.state_dir,
                paths.log_dir,
                paths.diagnostics_dir,
                paths.articles_dir,
                paths.credentials_file.parent,
            )
        )

    timings_section = data.get("timings", {})
    http_section = data.get("http", {})
    research_section = data.get("research", {})
    generation_section = data.get("generation", {})

    recognised_app = {"platform", "inbox"}
    return AppConfig(
        paths=paths,
        browser=_build_browser(data.get("browser", {}), state_dir=state_dir),
        timings=PublishTimings(
            **_pick(timings_section, PublishTimings, names=PublishTimings.__slots__)
        ),
        http=HttpSettings(**_pick(http_section, HttpSettings, names=HttpSettings.__slots__)),
        research=ResearchSettings(
            **_pick(research_section, ResearchSettings, names=ResearchSettings.__slots__)
        ),
        generation=GenerationSettings(
            **_pick(generation_section, GenerationSettings, names=GenerationSettings.__slots__)
        ),
        platform=str(app_section.get("platform", "medium")),
        inbox=str(app_section.get("inbox", "gmail")),
        extra={k: v for k, v in app_section.items() if k not in recognised_app},
    )

