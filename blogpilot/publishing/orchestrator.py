"""End-to-end publish call: one session, one result, no exceptions out."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncContextManager, Callable, Iterable, Mapping

from playwright.async_api import Error as PlaywrightError

from ..platforms import DEFAULT_REGISTRY, InboxProvider, TargetPlatform
from ..settings import AppConfig, load_config
from ..utils.logging import get_logger
from .auth import PlatformAuthenticator
from .composer import ArticleComposer
from .diagnostics import DiagnosticsRecorder
from .errors import AuthenticationError, PublishError
from .inbox import EmailAuthFlow
from .models import (
    Credentials,
    PublishingResult,
    PublishRequest,
    PublishStage,
    UrlResolution,
    UrlTier,
    Visibility,
    normalize_tags,
)
from .result import ResultExtractor
from .selectors import SelectorCascade
from .session import BrowserSession, acquire_session

LOGGER = get_logger(__name__)

SessionFactory = Callable[[], AsyncContextManager[BrowserSession]]


@dataclass(slots=True)
class _Progress:
    stage: PublishStage = PublishStage.LAUNCH
    diagnostics: list[Path] = field(default_factory=list)

    def enter(self, stage: PublishStage) -> None:
        self.stage = stage
        LOGGER.info("Stage %s", stage.value, extra={"event": "publish_stage", "stage": stage.value})


def _format_error(stage: PublishStage | None, message: str) -> str:
    return f"[{stage.value}] {message}" if stage else message


class MediumPublisher:
    """Drive one article from an empty browser profile to a public URL.

    :meth:`publish` always returns a :class:`PublishingResult`. Failures carry
    the stage that was running and, when a page was available, a screenshot
    path in ``diagnostics``.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        platform: TargetPlatform | None = None,
        inbox: InboxProvider | None = None,
        session_factory: SessionFactory | None = None,
        diagnostics: DiagnosticsRecorder | None = None,
    ) -> None:
        self.config = config or load_config()
        self.timings = self.config.timings
        self.platform = platform or DEFAULT_REGISTRY.target(self.config.platform)
        self.inbox = inbox or DEFAULT_REGISTRY.inbox(self.config.inbox)
        self.cascade = SelectorCascade(
            timeout_per_candidate_ms=self.timings.candidate_timeout_ms,
            total_timeout_ms=self.timings.cascade_budget_ms,
        )
        self.authenticator = PlatformAuthenticator(self.platform, self.cascade, self.timings)
        self.composer = ArticleComposer(self.platform, self.cascade, self.timings)
        self.extractor = ResultExtractor(self.platform, self.cascade, self.timings)
        self.diagnostics = diagnostics or DiagnosticsRecorder(self.config.paths.diagnostics_dir)
        self._session_factory = session_factory or self._default_session
        self.last_auth_flow: EmailAuthFlow | None = None

    def _default_session(self) -> AsyncContextManager[BrowserSession]:
        return acquire_session(
            self.config.browser,
            navigation_timeout_ms=self.timings.navigation_timeout_ms,
        )

    async def publish(self, request: PublishRequest) -> PublishingResult:
        try:
            request.validate()
        except ValueError as exc:
            return self._failure(None, f"Invalid publish request: {exc}", ())

        progress = _Progress()
        budget = self.timings.publish_budget or None
        try:
            return await asyncio.wait_for(self._run(request, progress), timeout=budget)
        except asyncio.TimeoutError:
            return self._failure(
                progress.stage,
                f"Publishing exceeded the {budget:g}s time budget",
                progress.diagnostics,
            )
        except PublishError as exc:
            return self._failure(
                exc.stage or progress.stage, str(exc), progress.diagnostics, details=exc.details
            )
        except PlaywrightError as exc:
            return self._failure(progress.stage, f"Browser error: {exc}", progress.diagnostics)
        except Exception as exc:  # noqa: BLE001 - the result is the only channel to the caller
            LOGGER.exception("Unexpected publishing failure")
            return self._failure(progress.stage, f"Unexpected error: {exc}", progress.diagnostics)

    async def _run(self, request: PublishRequest, progress: _Progress) -> PublishingResult:
        async with self._session_factory() as session:
            page = session.page
            try:
                progress.enter(PublishStage.AUTH_CHECK)
                await self.authenticator.open_home(page)
                if await self.authenticator.check_authenticated(page):
                    LOGGER.info(
                        "Already signed in; skipping email sign-in",
                        extra={"event": "auth_skip"},
                    )
                else:
                    progress.enter(PublishStage.EMAIL_AUTH)
                    await self._authenticate_by_email(session, request.credentials)

                progress.enter(PublishStage.EDITOR)
                await self.composer.open_editor(page)

                progress.enter(PublishStage.COMPOSE)
                await self.composer.compose(page, request.article)

                progress.enter(PublishStage.SUBMIT)
                tags = request.options.tags or normalize_tags(request.article.tags)
                published = await self.composer.submit(page, request.options, tags)

                progress.enter(PublishStage.RESOLVE_URL)
                if published:
                    resolution = await self.extractor.extract(
                        page, request.credentials.platform_handle
                    )
                else:
                    resolution = UrlResolution(url=page.url, tier=UrlTier.UNKNOWN, strategy="draft")
                progress.enter(PublishStage.DONE)
            except (PublishError, PlaywrightError) as exc:
                stage = getattr(exc, "stage", None) or progress.stage
                shot = await self.diagnostics.capture(page, stage.value)
                if shot is not None:
                    progress.diagnostics.append(shot)
                raise

        LOGGER.info(
            "Published article",
            extra={
                "event": "publish_success",
                "url": resolution.url,
                "tier": resolution.tier.value,
                "draft": request.options.visibility is Visibility.DRAFT,
            },
        )
        return PublishingResult(
            success=True,
            url=resolution.url,
            published_at=datetime.now(timezone.utc),
            stage=PublishStage.DONE,
            url_tier=resolution.tier,
            diagnostics=tuple(str(path) for path in progress.diagnostics),
        )

    async def _authenticate_by_email(
        self, session: BrowserSession, credentials: Credentials
    ) -> None:
        flow = EmailAuthFlow(
            self.platform, self.inbox, self.authenticator, self.cascade, self.timings
        )
        self.last_auth_flow = flow
        try:
            await flow.run(session, credentials)
        except AuthenticationError as error:
            # One last look in case the platform signed us in without confirming.
            try:
                recovered = await self.authenticator.check_authenticated(session.page)
            except PlaywrightError as exc:
                LOGGER.warning("Authentication recheck failed: %s", exc)
                raise error from exc
            if recovered:
                LOGGER.warning(
                    "Email sign-in reported failure but the session is authenticated",
                    extra={"event": "auth_recovered"},
                )
                return
            raise

    def _failure(
        self,
        stage: PublishStage | None,
        message: str,
        diagnostics: Iterable[Path],
        *,
        details: Mapping[str, Any] | None = None,
    ) -> PublishingResult:
        error = _format_error(stage, message)
        LOGGER.error(
            "Publishing failed: %s",
            error,
            extra={
                "event": "publish_failed",
                "stage": stage.value if stage else None,
                "details": dict(details or {}),
            },
        )
        return PublishingResult(
            success=False,
            error=error,
            stage=stage,
            diagnostics=tuple(str(path) for path in diagnostics),
        )


__all__ = ["MediumPublisher"]
