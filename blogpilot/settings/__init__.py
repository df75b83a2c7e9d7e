"""Settings package exports."""

from .loader import (
    AppConfig,
    BrowserSettings,
    GenerationSettings,
    HttpSettings,
    PathSettings,
    PublishTimings,
    ResearchSettings,
    load_config,
)

__all__ = [
    "AppConfig",
    "BrowserSettings",
    "GenerationSettings",
    "HttpSettings",
    "PathSettings",
    "PublishTimings",
    "ResearchSettings",
    "load_config",
]
