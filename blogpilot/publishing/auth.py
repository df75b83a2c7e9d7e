"""Authentication state on the publishing target."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..platforms.base import TargetPlatform
from ..settings import PublishTimings
from ..utils.logging import get_logger
from .errors import AuthenticationError, ElementNotFoundError
from .models import PublishStage
from .selectors import SelectorCascade

LOGGER = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class AuthSignals:
    """Independent observations of one page.

    ``prompt`` is kept for diagnostics only: marketing copy such as "Become a
    member" also shows up for signed-in users.
    """

    url: str
    compose: bool
    identity: bool
    prompt: bool
    auth_path: bool

    @property
    def authenticated(self) -> bool:
        return (self.compose or self.identity) and not self.auth_path


class PlatformAuthenticator:
    """Detects a signed-in session and requests sign-in emails.

    The check is a heuristic over page markup, not proof of a session; a
    "Write" link added to anonymous navigation would make it report a false
    positive.
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

    async def open_home(self, page: Page) -> None:
        await page.goto(self.platform.home_url, wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)

    async def read_signals(self, page: Page) -> AuthSignals:
        url = page.url
        compose = await self.cascade.first_present(page, self.platform.compose_affordance)
        identity = await self.cascade.first_present(page, self.platform.identity_affordance)
        prompt = await self.cascade.first_present(page, self.platform.member_prompt)
        return AuthSignals(
            url=url,
            compose=compose is not None,
            identity=identity is not None,
            prompt=prompt is not None,
            auth_path=self.platform.is_auth_path(url),
        )

    async def check_authenticated(self, page: Page) -> bool:
        signals = await self.read_signals(page)
        LOGGER.info(
            "Authentication check",
            extra={
                "event": "auth_check",
                "authenticated": signals.authenticated,
                "compose": signals.compose,
                "identity": signals.identity,
                "prompt": signals.prompt,
                "auth_path": signals.auth_path,
                "url": signals.url,
            },
        )
        return signals.authenticated

    async def wait_until_authenticated(self, page: Page) -> bool:
        """Poll :meth:`check_authenticated` for at most ``auth_wait`` seconds."""

        interval = self.timings.auth_poll_interval
        polls = int(self.timings.auth_wait // interval) if interval > 0 else 0
        for poll in range(polls + 1):
            if await self.check_authenticated(page):
                return True
            if poll < polls:
                await self._sleep(interval)
        return False

    async def request_sign_in(self, page: Page, address: str) -> None:
        """Ask the platform to email a one-time sign-in link to ``address``."""

        platform = self.platform
        stage = PublishStage.EMAIL_AUTH
        try:
            await page.goto(platform.sign_in_url, wait_until="domcontentloaded")
            await self._sleep(self.timings.page_settle)

            field = await self.cascade.resolve(page, platform.email_input)
            if field is None:
                button = await self.cascade.resolve(page, platform.sign_in_buttons)
                if button is not None:
                    await button.locator.click()
                    await self._sleep(self.timings.page_settle)
                email_button = await self.cascade.require(
                    page, platform.email_sign_in_buttons, stage=stage
                )
                await email_button.locator.click()
                await self._sleep(self.timings.page_settle)
                field = await self.cascade.require(page, platform.email_input, stage=stage)

            await field.locator.click()
            await field.locator.fill(address)

            submit = await self.cascade.resolve(page, platform.email_submit)
            if submit is not None:
                await submit.locator.click()
            else:
                await field.locator.press("Enter")
            await self._sleep(self.timings.page_settle)
        except ElementNotFoundError as exc:
            raise AuthenticationError(
                f"Could not request a sign-in email: {exc}", stage=stage
            ) from exc
        except PlaywrightError as exc:
            raise AuthenticationError(
                f"Browser error while requesting a sign-in email: {exc}", stage=stage
            ) from exc

        LOGGER.info(
            "Requested sign-in email",
            extra={"event": "sign_in_requested", "platform": platform.name},
        )


__all__ = ["AuthSignals", "PlatformAuthenticator"]
