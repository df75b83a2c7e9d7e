"""Resolve the public URL of a freshly published article."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable
from urllib.parse import urljoin, urlsplit, urlunsplit

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..platforms.base import TargetPlatform
from ..settings import PublishTimings
from ..utils.logging import get_logger
from .models import UrlResolution, UrlTier
from .selectors import SelectorCascade

LOGGER = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
SHARE_FIELD_SELECTOR = "input"
ANCHOR_SELECTOR = "a[href]"
MAX_ANCHORS = 300


def canonical_url(url: str) -> str:
    """Drop query string and fragment (share links carry tracking params)."""

    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class ResultExtractor:
    """Best-effort URL resolution; never raises.

    Strategies run from most to least trustworthy and the tier of the result
    records which kind fired. Reading the URL leaves the page as it found it,
    so repeated calls agree.
    """

    def __init__(
        self,
        platform: TargetPlatform,
        cascade: SelectorCascade,
        timings: PublishTimings,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.platform = platform
        self.cascade = cascade
        self.timings = timings
        self._sleep = sleep

    async def extract(self, page: Page, handle: str = "") -> UrlResolution:
        strategies = (
            ("share_dialog", self._from_share_dialog),
            ("current_url", self._from_current_url),
            ("page_anchor", self._from_page_anchors),
        )
        for name, strategy in strategies:
            try:
                url = await strategy(page, handle)
            except PlaywrightError as exc:
                LOGGER.debug("URL strategy %s failed: %s", name, exc)
                continue
            if url:
                return self._done(UrlResolution(url=url, tier=UrlTier.RESOLVED, strategy=name))

        if handle:
            try:
                url = await self._from_profile(page, handle)
            except PlaywrightError as exc:
                LOGGER.debug("Profile lookup failed: %s", exc)
                url = None
            if url:
                return self._done(
                    UrlResolution(url=url, tier=UrlTier.ESTIMATED, strategy="profile")
                )

        return self._done(UrlResolution(url=page.url, tier=UrlTier.UNKNOWN, strategy="raw_url"))

    def _done(self, resolution: UrlResolution) -> UrlResolution:
        LOGGER.info(
            "Resolved published URL",
            extra={
                "event": "url_resolved",
                "url": resolution.url,
                "tier": resolution.tier.value,
                "strategy": resolution.strategy,
            },
        )
        return resolution

    def _matches(self, url: str, handle: str) -> bool:
        if not self.platform.is_article_url(url):
            return False
        if handle:
            return f"/@{handle.lower()}/" in url.lower()
        return True

    async def _from_share_dialog(self, page: Page, handle: str) -> str | None:
        button = await self.cascade.resolve(page, self.platform.share_button)
        if button is None:
            return None
        await button.locator.click()
        await self._sleep(self.timings.share_settle)
        try:
            fields = page.locator(SHARE_FIELD_SELECTOR)
            for index in range(await fields.count()):
                value = (await fields.nth(index).input_value()).strip()
                if value and (self.platform.owns(value) or "/@" in value):
                    return canonical_url(value)
            return None
        finally:
            await page.keyboard.press("Escape")

    async def _from_current_url(self, page: Page, handle: str) -> str | None:
        url = page.url
        return canonical_url(url) if self._matches(url, handle) else None

    async def _from_page_anchors(self, page: Page, handle: str) -> str | None:
        anchors = page.locator(ANCHOR_SELECTOR)
        total = min(await anchors.count(), MAX_ANCHORS)
        for index in range(total):
            href = await anchors.nth(index).get_attribute("href")
            if not href:
                continue
            url = urljoin(page.url, href)
            if self._matches(url, handle):
                return canonical_url(url)
        return None

    async def _from_profile(self, page: Page, handle: str) -> str | None:
        origin = page.url
        await page.goto(self.platform.profile_url(handle), wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)
        try:
            return await self._from_page_anchors(page, handle)
        finally:
            if origin and origin != page.url:
                await page.goto(origin, wait_until="domcontentloaded")


__all__ = ["ResultExtractor", "canonical_url"]
