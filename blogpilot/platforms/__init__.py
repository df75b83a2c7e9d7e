"""Site profiles for publishing targets and inbox providers."""

from __future__ import annotations

from .base import Cascade, InboxProvider, PlatformRegistry, TargetPlatform
from .factory import DEFAULT_REGISTRY, DictPlatformRegistry
from .gmail import GMAIL
from .medium import MEDIUM

__all__ = [
    "Cascade",
    "DEFAULT_REGISTRY",
    "DictPlatformRegistry",
    "GMAIL",
    "InboxProvider",
    "MEDIUM",
    "PlatformRegistry",
    "TargetPlatform",
]
