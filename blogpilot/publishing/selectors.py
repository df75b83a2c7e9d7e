"""Ordered selector fallback used by every DOM interaction."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..platforms.base import Cascade
from ..utils.logging import get_logger
from .errors import ElementNotFoundError
from .models import PublishStage

LOGGER = get_logger(__name__)

Candidates = Cascade | Sequence[str]


@dataclass(frozen=True, slots=True)
class CascadeMatch:
    """The element a cascade settled on and which candidate found it."""

    label: str
    selector: str
    index: int
    locator: Locator


def _label_of(candidates: Candidates, label: str | None) -> str:
    if label:
        return label
    if isinstance(candidates, Cascade):
        return candidates.label
    return "element"


class SelectorCascade:
    """Try candidate selectors in order until one is visible.

    ``timeout_per_candidate_ms`` bounds each wait, ``total_timeout_ms`` bounds a
    whole pass, and ``passes`` with ``backoff_seconds`` retry the full list.
    """

    def __init__(
        self,
        *,
        timeout_per_candidate_ms: int = 3_000,
        total_timeout_ms: int | None = None,
        passes: int = 1,
        backoff_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_per_candidate_ms = max(1, int(timeout_per_candidate_ms))
        self.total_timeout_ms = total_timeout_ms
        self.passes = max(1, passes)
        self.backoff_seconds = backoff_seconds
        self._clock = clock

    async def resolve(
        self,
        page: Page,
        candidates: Candidates,
        timeout_per_candidate_ms: int | None = None,
        *,
        label: str | None = None,
    ) -> CascadeMatch | None:
        name = _label_of(candidates, label)
        selectors = tuple(candidates)
        per_candidate = max(1, int(timeout_per_candidate_ms or self.timeout_per_candidate_ms))

        for attempt in range(1, self.passes + 1):
            match = await self._single_pass(page, name, selectors, per_candidate)
            if match is not None:
                return match
            if attempt < self.passes and self.backoff_seconds:
                await asyncio.sleep(self.backoff_seconds * attempt)

        LOGGER.debug(
            "Cascade found nothing",
            extra={"event": "cascade_miss", "label": name, "candidates": list(selectors)},
        )
        return None

    async def _single_pass(
        self,
        page: Page,
        name: str,
        selectors: tuple[str, ...],
        per_candidate: int,
    ) -> CascadeMatch | None:
        started = self._clock()
        for index, selector in enumerate(selectors):
            wait_ms = per_candidate
            if self.total_timeout_ms is not None:
                remaining = self.total_timeout_ms - (self._clock() - started) * 1000
                if remaining <= 0:
                    break
                wait_ms = max(1, min(wait_ms, int(remaining)))
            locator = page.locator(selector).first
            try:
                await locator.wait_for(state="visible", timeout=wait_ms)
            except PlaywrightTimeoutError:
                continue
            except PlaywrightError as exc:
                LOGGER.debug("Selector %s rejected: %s", selector, exc)
                continue
            LOGGER.debug(
                "Cascade matched",
                extra={"event": "cascade_hit", "label": name, "selector": selector, "index": index},
            )
            return CascadeMatch(label=name, selector=selector, index=index, locator=locator)
        return None

    async def require(
        self,
        page: Page,
        candidates: Candidates,
        timeout_per_candidate_ms: int | None = None,
        *,
        label: str | None = None,
        stage: PublishStage | None = None,
    ) -> CascadeMatch:
        match = await self.resolve(page, candidates, timeout_per_candidate_ms, label=label)
        if match is None:
            raise ElementNotFoundError(
                _label_of(candidates, label),
                tuple(candidates),
                stage=stage,
                details={"candidates": list(candidates)},
            )
        return match

    async def first_present(
        self, page: Page, candidates: Candidates, *, label: str | None = None
    ) -> CascadeMatch | None:
        """Like :meth:`resolve` but without waiting; used for presence checks."""

        name = _label_of(candidates, label)
        for index, selector in enumerate(candidates):
            locator = page.locator(selector)
            try:
                if await locator.count() > 0:
                    return CascadeMatch(
                        label=name, selector=selector, index=index, locator=locator.first
                    )
            except PlaywrightError as exc:
                LOGGER.debug("Selector %s rejected: %s", selector, exc)
        return None


__all__ = ["CascadeMatch", "SelectorCascade"]
