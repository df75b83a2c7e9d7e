"""Browser process ownership for a single publish call."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from playwright.async_api import BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..settings import BrowserSettings
from ..utils.logging import get_logger
from .errors import BrowserLaunchError, ProfileLockedError

LOGGER = get_logger(__name__)

STEALTH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-extensions",
    "--disable-dev-shm-usage",
)
STEALTH_INIT_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"
)
CLIPBOARD_PERMISSIONS = ("clipboard-read", "clipboard-write")


class ProfileLock:
    """Exclusive claim on a browser profile directory.

    Chromium refuses to share a profile between processes, so two publish
    calls on one profile must not overlap. A lock left behind by a dead
    process is taken over.
    """

    LOCK_NAME = ".blogpilot.lock"

    def __init__(self, profile_dir: Path) -> None:
        self.path = Path(profile_dir) / self.LOCK_NAME
        self._held = False

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if not self._is_stale():
                    raise ProfileLockedError(
                        f"Browser profile is in use by another session: {self.path.parent}"
                    ) from None
                LOGGER.warning("Removing stale profile lock %s", self.path)
                self.path.unlink(missing_ok=True)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(str(os.getpid()))
            self._held = True
            return
        raise ProfileLockedError(f"Could not lock browser profile: {self.path.parent}")

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def _is_stale(self) -> bool:
        try:
            pid = int(self.path.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return True
        except ValueError:
            return True
        return not _pid_alive(pid)

    def __enter__(self) -> "ProfileLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    if os.name == "nt":  # pragma: no cover - signal 0 is not a probe on Windows
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


@dataclass(slots=True)
class BrowserSession:
    """Pages owned by one publish call.

    ``page`` is the target-platform tab. The inbox tab does not exist until
    :meth:`open_inbox` is called.
    """

    context: BrowserContext
    page: Page
    navigation_timeout_ms: int = 60_000
    inbox_page: Page | None = None
    closed: bool = False

    async def open_inbox(self) -> Page:
        if self.closed:
            raise RuntimeError("Session already closed")
        if self.inbox_page is None:
            self.inbox_page = await self.context.new_page()
            self.inbox_page.set_default_navigation_timeout(self.navigation_timeout_ms)
        return self.inbox_page

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for page in (self.inbox_page, self.page):
            if page is None:
                continue
            try:
                await page.close()
            except PlaywrightError as exc:
                LOGGER.debug("Ignoring error while closing page: %s", exc)


def launch_options(settings: BrowserSettings) -> dict[str, Any]:
    options: dict[str, Any] = {
        "headless": settings.headless,
        "args": [*STEALTH_ARGS, *settings.extra_args],
        "ignore_default_args": ["--enable-automation"],
        "viewport": {"width": 1366, "height": 900},
        "permissions": list(CLIPBOARD_PERMISSIONS),
    }
    if settings.slow_mo_ms:
        options["slow_mo"] = settings.slow_mo_ms
    if settings.channel:
        options["channel"] = settings.channel
    if settings.executable_path:
        options["executable_path"] = str(settings.executable_path)
    if settings.user_agent:
        options["user_agent"] = settings.user_agent
    return options


@asynccontextmanager
async def _playwright_context(settings: BrowserSettings) -> AsyncIterator[BrowserContext]:
    async with async_playwright() as p:
        try:
            context = await p.chromium.launch_persistent_context(
                str(settings.profile_dir), **launch_options(settings)
            )
        except (PlaywrightError, OSError) as exc:
            raise BrowserLaunchError(f"Failed to launch browser: {exc}") from exc
        try:
            await context.add_init_script(STEALTH_INIT_SCRIPT)
            yield context
        finally:
            try:
                await context.close()
            except PlaywrightError as exc:
                LOGGER.debug("Ignoring error while closing context: %s", exc)
            LOGGER.info("Browser closed", extra={"event": "browser_closed"})


ContextFactory = Callable[[BrowserSettings], Any]


@asynccontextmanager
async def acquire_session(
    settings: BrowserSettings,
    *,
    navigation_timeout_ms: int = 60_000,
    context_factory: ContextFactory | None = None,
) -> AsyncIterator[BrowserSession]:
    """Yield a :class:`BrowserSession`; pages, browser and profile lock are
    released on every exit path, including cancellation."""

    factory = context_factory or _playwright_context
    profile_dir = Path(settings.profile_dir)
    with ProfileLock(profile_dir):
        LOGGER.info(
            "Launching browser",
            extra={"event": "browser_launch", "profile_dir": str(profile_dir)},
        )
        async with factory(settings) as context:
            pages = list(context.pages)
            page = pages[0] if pages else await context.new_page()
            page.set_default_navigation_timeout(navigation_timeout_ms)
            session = BrowserSession(
                context=context, page=page, navigation_timeout_ms=navigation_timeout_ms
            )
            try:
                yield session
            finally:
                await session.close()


__all__ = [
    "BrowserSession",
    "ProfileLock",
    "acquire_session",
    "launch_options",
]
