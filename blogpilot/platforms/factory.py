"""Registry of known site profiles."""

from __future__ import annotations

from typing import Mapping

from .base import InboxProvider, PlatformRegistry, TargetPlatform
from .gmail import GMAIL
from .medium import MEDIUM


class DictPlatformRegistry(PlatformRegistry):
    """Simple mapping-backed registry."""

    def __init__(
        self,
        targets: Mapping[str, TargetPlatform],
        inboxes: Mapping[str, InboxProvider],
    ) -> None:
        self._targets = {key.lower(): value for key, value in targets.items()}
        self._inboxes = {key.lower(): value for key, value in inboxes.items()}

    def target(self, name: str) -> TargetPlatform:
        try:
            return self._targets[name.lower()]
        except KeyError as exc:
            raise ValueError(
                f"Unsupported platform: {name} (known: {', '.join(sorted(self._targets))})"
            ) from exc

    def inbox(self, name: str) -> InboxProvider:
        try:
            return self._inboxes[name.lower()]
        except KeyError as exc:
            raise ValueError(
                f"Unsupported inbox provider: {name} (known: {', '.join(sorted(self._inboxes))})"
            ) from exc


DEFAULT_REGISTRY = DictPlatformRegistry({MEDIUM.name: MEDIUM}, {GMAIL.name: GMAIL})
