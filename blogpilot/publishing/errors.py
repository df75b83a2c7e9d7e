"""Exceptions raised inside the publishing workflow.

None of these cross :meth:`MediumPublisher.publish`; the orchestrator maps
them into a failed :class:`PublishingResult`.
"""

from __future__ import annotations

from typing import Any, Mapping

from .models import PublishStage


class PublishError(RuntimeError):
    """Base class carrying the stage that failed."""

    default_stage: PublishStage | None = None

    def __init__(
        self,
        message: str,
        *,
        stage: PublishStage | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage or self.default_stage
        self.details = dict(details or {})


class EnvironmentFailure(PublishError):
    """The local environment cannot host a session; never retried."""

    default_stage = PublishStage.LAUNCH


class BrowserLaunchError(EnvironmentFailure):
    pass


class ProfileLockedError(EnvironmentFailure):
    pass


class ElementNotFoundError(PublishError):
    """No candidate of a selector cascade matched within its budget."""

    def __init__(self, label: str, candidates: tuple[str, ...] = (), **kwargs: Any) -> None:
        super().__init__(f"Could not find {label}", **kwargs)
        self.label = label
        self.candidates = candidates


class AuthenticationError(PublishError):
    default_stage = PublishStage.EMAIL_AUTH


class CompositionError(PublishError):
    default_stage = PublishStage.COMPOSE


__all__ = [
    "AuthenticationError",
    "BrowserLaunchError",
    "CompositionError",
    "ElementNotFoundError",
    "EnvironmentFailure",
    "ProfileLockedError",
    "PublishError",
]
