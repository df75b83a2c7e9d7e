"""Cross-tab sign-in through a one-time link delivered by email.

The flow owns two tabs of the same session: the inbox tab, opened lazily,
and the target tab, which requests the email and later consumes the link.
Tabs are driven one after the other, never concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Sequence
from urllib.parse import parse_qs, urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..platforms.base import InboxProvider, TargetPlatform
from ..settings import PublishTimings
from ..utils.logging import get_logger
from .auth import PlatformAuthenticator
from .errors import AuthenticationError, PublishError
from .models import AuthenticationLink, AuthFlowState, Credentials, PublishStage
from .selectors import SelectorCascade
from .session import BrowserSession

LOGGER = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
ANCHOR_SELECTOR = "a[href]"
MIN_FALLBACK_LINK_LENGTH = 20
MAX_ANCHORS = 300


def unwrap_redirect(href: str, provider: InboxProvider) -> str:
    """Return the destination of a provider click-tracking URL, or ``href``."""

    parsed = urlparse(href)
    host = (parsed.hostname or "").lower()
    if host not in provider.redirect_hosts or parsed.path != "/url":
        return href
    query = parse_qs(parsed.query)
    for name in provider.redirect_params:
        values = query.get(name)
        if values and values[0].startswith("http"):
            return values[0]
    return href


def pick_auth_link(
    links: Iterable[tuple[str, str]],
    platform: TargetPlatform,
    provider: InboxProvider,
) -> str | None:
    """Choose the sign-in link among ``(href, text)`` pairs.

    A link qualifies when it points at the platform and both its href and its
    visible text look authentication-related. Otherwise the first platform
    link long enough to carry a token wins.
    """

    fallback: str | None = None
    for raw_href, text in links:
        href = unwrap_redirect(raw_href.strip(), provider)
        if not platform.owns(href):
            continue
        lowered_href = href.lower()
        lowered_text = " ".join(text.lower().split())
        if any(marker in lowered_href for marker in platform.auth_href_markers) and any(
            marker in lowered_text for marker in platform.auth_text_markers
        ):
            return href
        if fallback is None and len(href) > MIN_FALLBACK_LINK_LENGTH:
            fallback = href
    return fallback


class EmailAuthFlow:
    """State machine for one magic-link sign-in.

    ``state`` and ``history`` stay inspectable after :meth:`run` returns or
    raises. A flow consumes at most one link and cannot be run twice.
    """

    def __init__(
        self,
        platform: TargetPlatform,
        provider: InboxProvider,
        authenticator: PlatformAuthenticator,
        cascade: SelectorCascade,
        timings: PublishTimings,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.platform = platform
        self.provider = provider
        self.authenticator = authenticator
        self.cascade = cascade
        self.timings = timings
        self._sleep = sleep
        self.state = AuthFlowState.IDLE
        self.history: list[AuthFlowState] = [AuthFlowState.IDLE]
        self.consumed: list[AuthenticationLink] = []
        self.scan_attempts = 0

    def _transition(self, state: AuthFlowState) -> None:
        LOGGER.info(
            "Email sign-in %s -> %s",
            self.state.value,
            state.value,
            extra={"event": "auth_flow_state", "state": state.value},
        )
        self.state = state
        self.history.append(state)

    async def run(self, session: BrowserSession, credentials: Credentials) -> AuthenticationLink:
        if self.state is not AuthFlowState.IDLE:
            raise AuthenticationError("Email sign-in flow already ran in this session")
        try:
            inbox = await self._open_inbox(session)
            await self.authenticator.request_sign_in(session.page, credentials.inbox_address)
            self._transition(AuthFlowState.SIGN_IN_REQUESTED)

            self._transition(AuthFlowState.AWAITING_EMAIL)
            link = await self._await_link(inbox)
            self._transition(AuthFlowState.LINK_FOUND)

            await self._consume(session.page, link)
            self._transition(AuthFlowState.LINK_CONSUMED)

            if not await self.authenticator.wait_until_authenticated(session.page):
                raise AuthenticationError(
                    "Sign-in link was followed but the platform never showed a signed-in page"
                )
            self._transition(AuthFlowState.AUTHENTICATED)
            return link
        except AuthenticationError:
            self._transition(AuthFlowState.FAILED)
            raise
        except PublishError as exc:
            self._transition(AuthFlowState.FAILED)
            raise AuthenticationError(
                str(exc), stage=PublishStage.EMAIL_AUTH, details=exc.details
            ) from exc
        except PlaywrightError as exc:
            self._transition(AuthFlowState.FAILED)
            raise AuthenticationError(f"Browser error during email sign-in: {exc}") from exc

    async def _open_inbox(self, session: BrowserSession) -> Page:
        inbox = await session.open_inbox()
        await inbox.goto(self.provider.inbox_url, wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)
        ready = None
        if not self.provider.needs_login(inbox.url):
            ready = await self.cascade.resolve(inbox, self.provider.search_box)
        if ready is None:
            LOGGER.warning(
                "Inbox not ready; waiting %.0fs for manual sign-in",
                self.timings.inbox_login_grace,
                extra={
                    "event": "inbox_login_grace",
                    "provider": self.provider.name,
                    "url": inbox.url,
                },
            )
            await self._sleep(self.timings.inbox_login_grace)
        self._transition(AuthFlowState.INBOX_OPENED)
        return inbox

    async def _await_link(self, inbox: Page) -> AuthenticationLink:
        strategies: Sequence[tuple[str, Callable[[Page], Awaitable[str | None]]]] = (
            ("search", self._search_inbox),
            ("recent_rows", self._scan_recent_rows),
            ("page_anchors", self._scan_page_anchors),
        )
        attempts = max(1, self.timings.scan_attempts)
        await self._sleep(self.timings.email_arrival_delay)

        for attempt in range(1, attempts + 1):
            self.scan_attempts = attempt
            await inbox.reload(wait_until="domcontentloaded")
            await self._sleep(self.timings.inbox_refresh_settle)
            for name, strategy in strategies:
                try:
                    href = await strategy(inbox)
                except PlaywrightError as exc:
                    LOGGER.debug("Inbox strategy %s failed: %s", name, exc)
                    continue
                if href:
                    LOGGER.info(
                        "Found sign-in link",
                        extra={"event": "auth_link_found", "strategy": name, "attempt": attempt},
                    )
                    return AuthenticationLink(url=href, strategy=name)
            LOGGER.info(
                "No sign-in link yet",
                extra={"event": "auth_link_missing", "attempt": attempt, "attempts": attempts},
            )
            if attempt < attempts:
                await self._sleep(self.timings.scan_retry_delay)

        raise AuthenticationError(
            f"Could not retrieve sign-in link from inbox after {attempts} attempts",
            details={
                "attempts": attempts,
                "strategies": [name for name, _ in strategies],
                "inbox_url": inbox.url,
            },
        )

    async def _search_inbox(self, inbox: Page) -> str | None:
        box = await self.cascade.resolve(inbox, self.provider.search_box)
        if box is None:
            return None
        query = self.provider.search_query(
            self.platform.sign_in_sender, self.platform.sign_in_subject
        )
        await box.locator.click()
        await box.locator.fill(query)
        await box.locator.press("Enter")
        await self._sleep(self.timings.search_settle)

        row = await self.cascade.resolve(inbox, self.provider.message_rows)
        if row is None:
            return None
        await row.locator.click()
        await self._sleep(self.timings.message_open_delay)
        return await self._read_message_link(inbox)

    async def _scan_recent_rows(self, inbox: Page) -> str | None:
        await inbox.goto(self.provider.inbox_url, wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)
        match = await self.cascade.resolve(inbox, self.provider.message_rows)
        if match is None:
            return None
        rows = inbox.locator(match.selector)
        total = min(await rows.count(), self.provider.row_scan_limit)
        for index in range(total):
            row = rows.nth(index)
            text = (await row.inner_text()).lower()
            if not any(keyword in text for keyword in self.platform.email_keywords):
                continue
            await row.click()
            await self._sleep(self.timings.message_open_delay)
            return await self._read_message_link(inbox)
        return None

    async def _scan_page_anchors(self, inbox: Page) -> str | None:
        return await self._read_message_link(inbox)

    async def _read_message_link(self, page: Page) -> str | None:
        anchors = page.locator(ANCHOR_SELECTOR)
        total = min(await anchors.count(), MAX_ANCHORS)
        links: list[tuple[str, str]] = []
        for index in range(total):
            anchor = anchors.nth(index)
            href = await anchor.get_attribute("href")
            if not href:
                continue
            links.append((href, await anchor.inner_text()))
        return pick_auth_link(links, self.platform, self.provider)

    async def _consume(self, page: Page, link: AuthenticationLink) -> None:
        if any(used.url == link.url for used in self.consumed):
            raise AuthenticationError("Sign-in link was already used in this session")
        self.consumed.append(link)
        await page.goto(link.url, wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)


__all__ = ["EmailAuthFlow", "pick_auth_link", "unwrap_redirect"]
