"""Fill and submit the target platform's rich-text editor."""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, Iterable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from ..platforms.base import TargetPlatform
from ..settings import PublishTimings
from ..utils.logging import get_logger
from .errors import CompositionError
from .models import Article, License, PublishOptions, PublishStage, Visibility, normalize_tags
from .selectors import CascadeMatch, SelectorCascade

LOGGER = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

PASTE_SHORTCUT = "ControlOrMeta+V"
PUBLISH_SHORTCUT = "ControlOrMeta+Enter"
CLIPBOARD_WRITE = "text => navigator.clipboard.writeText(text)"

_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+")
_QUOTE_RE = re.compile(r"^\s*>\s?")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)[^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)[^)]*\)")
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1")
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])")
_UNDERSCORE_ITALIC_RE = re.compile(r"(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)")
_CODE_RE = re.compile(r"`([^`]+)`")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def normalize_body(markdown: str) -> str:
    """Reduce Markdown to plain paragraphs the editor formats itself.

    Heading, list and quote markers go away, emphasis keeps its text, links
    keep their text followed by the URL, and blank runs collapse to one
    empty line.
    """

    lines: list[str] = []
    for raw in markdown.replace("\r\n", "\n").split("\n"):
        if _FENCE_RE.match(raw):
            continue
        line = _HEADING_RE.sub("", raw)
        line = _BULLET_RE.sub("", line)
        line = _QUOTE_RE.sub("", line)
        line = _IMAGE_RE.sub(r"\1", line)
        line = _LINK_RE.sub(r"\1 (\2)", line)
        line = _BOLD_RE.sub(r"\2", line)
        line = _ITALIC_RE.sub(r"\1", line)
        line = _UNDERSCORE_ITALIC_RE.sub(r"\1", line)
        line = _CODE_RE.sub(r"\1", line)
        lines.append(line.rstrip())
    text = "\n".join(lines)
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


async def _field_text(locator: Locator) -> str:
    try:
        text = await locator.inner_text()
    except PlaywrightError:
        text = ""
    if text.strip():
        return text
    try:
        return await locator.input_value()
    except PlaywrightError:
        return ""


class ArticleComposer:
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

    async def open_editor(self, page: Page) -> None:
        """Land on an empty editor: known editor URLs first, then the write button."""

        for url in self.platform.editor_urls:
            try:
                await page.goto(url, wait_until="domcontentloaded")
            except PlaywrightError as exc:
                LOGGER.warning("Editor URL %s failed: %s", url, exc)
                continue
            await self._sleep(self.timings.editor_settle)
            if await self.cascade.resolve(page, self.platform.editor_ready) is not None:
                LOGGER.info("Editor ready", extra={"event": "editor_ready", "url": url})
                return

        await page.goto(self.platform.home_url, wait_until="domcontentloaded")
        await self._sleep(self.timings.page_settle)
        button = await self.cascade.resolve(page, self.platform.write_buttons)
        if button is not None:
            await button.locator.click()
            await self._sleep(self.timings.editor_settle)
            if await self.cascade.resolve(page, self.platform.editor_ready) is not None:
                LOGGER.info("Editor ready", extra={"event": "editor_ready", "url": page.url})
                return

        raise CompositionError("Could not open the article editor", stage=PublishStage.EDITOR)

    async def compose(self, page: Page, article: Article) -> dict[str, str]:
        """Enter title then body; returns the transfer method used for each."""

        methods: dict[str, str] = {}
        title = await self.cascade.require(
            page, self.platform.title_field, stage=PublishStage.COMPOSE
        )
        await title.locator.click()
        methods["title"] = await self._transfer(page, title, article.title.strip(), "title")
        # Enter commits the title and moves the caret into the body.
        await page.keyboard.press("Enter")
        await self._sleep(self.timings.title_settle)

        body_text = normalize_body(article.body)
        if not body_text:
            raise CompositionError("Article body is empty after normalisation")
        body = await self.cascade.require(
            page, self.platform.body_field, stage=PublishStage.COMPOSE
        )
        await body.locator.click()
        methods["body"] = await self._transfer(page, body, body_text, "body")
        await self._sleep(self.timings.body_settle)

        LOGGER.info(
            "Composed article",
            extra={"event": "article_composed", "chars": len(body_text), **methods},
        )
        return methods

    async def _transfer(self, page: Page, field: CascadeMatch, text: str, label: str) -> str:
        try:
            await page.evaluate(CLIPBOARD_WRITE, text)
            await self._sleep(self.timings.clipboard_settle)
            await page.keyboard.press(PASTE_SHORTCUT)
        except PlaywrightError as exc:
            LOGGER.warning(
                "Clipboard transfer for %s failed, typing instead: %s",
                label,
                exc,
                extra={"event": "clipboard_fallback", "field": label},
            )
        else:
            if (await _field_text(field.locator)).strip():
                return "clipboard"
            LOGGER.warning(
                "Clipboard paste left %s empty, typing instead",
                label,
                extra={"event": "clipboard_fallback", "field": label},
            )

        try:
            await field.locator.click()
            await page.keyboard.type(text, delay=self.timings.typing_delay_ms)
        except PlaywrightError as exc:
            raise CompositionError(f"Could not enter the {label}: {exc}") from exc
        if not (await _field_text(field.locator)).strip():
            raise CompositionError(f"The {label} field is still empty after typing")
        return "typing"

    async def submit(self, page: Page, options: PublishOptions, tags: Iterable[str] = ()) -> bool:
        """Publish the open draft. Returns ``False`` when it is left as a draft."""

        if options.visibility is Visibility.DRAFT:
            LOGGER.info("Leaving article as a draft", extra={"event": "draft_saved"})
            return False
        if options.visibility is Visibility.UNLISTED:
            LOGGER.warning(
                "Unlisted visibility is not exposed by the editor; publishing normally",
                extra={"event": "option_ignored", "option": "visibility"},
            )
        if options.license is not License.ALL_RIGHTS_RESERVED:
            LOGGER.warning(
                "License %s must be set from the story settings; keeping the account default",
                options.license.value,
                extra={"event": "option_ignored", "option": "license"},
            )

        button = await self.cascade.resolve(page, self.platform.publish_button)
        if button is not None:
            await button.locator.click()
        else:
            LOGGER.info("Publish button not found, using keyboard shortcut")
            await page.keyboard.press(PUBLISH_SHORTCUT)
        await self._sleep(self.timings.publish_dialog_settle)

        await self.apply_tags(page, tags or options.tags)
        if not options.notify_followers:
            await self._disable_notifications(page)

        confirm = await self.cascade.resolve(page, self.platform.final_publish)
        if confirm is not None:
            await confirm.locator.click()
        else:
            LOGGER.info("Final publish button not found, pressing Enter")
            await page.keyboard.press("Enter")
        await self._sleep(self.timings.publish_settle)
        LOGGER.info("Submitted article", extra={"event": "article_submitted", "url": page.url})
        return True

    async def apply_tags(self, page: Page, tags: Iterable[str]) -> int:
        """Enter at most five tags in order; returns how many were entered."""

        cleaned = normalize_tags(tags)
        if not cleaned:
            return 0
        field = await self.cascade.resolve(page, self.platform.tag_input)
        if field is None:
            LOGGER.warning(
                "Tag input not found; skipping %d tags",
                len(cleaned),
                extra={"event": "tags_skipped"},
            )
            return 0
        applied = 0
        for tag in cleaned:
            await field.locator.click()
            await field.locator.fill(tag)
            await field.locator.press("Enter")
            await self._sleep(self.timings.tag_settle)
            applied += 1
        LOGGER.info("Applied tags", extra={"event": "tags_applied", "tags": list(cleaned)})
        return applied

    async def _disable_notifications(self, page: Page) -> None:
        toggle = await self.cascade.first_present(page, self.platform.notify_toggle)
        if toggle is None:
            LOGGER.warning(
                "Follower notification toggle not found",
                extra={"event": "option_ignored", "option": "notify_followers"},
            )
            return
        try:
            await toggle.locator.set_checked(False)
        except PlaywrightError as exc:
            LOGGER.warning("Could not switch off follower notification: %s", exc)


__all__ = ["ArticleComposer", "normalize_body"]
