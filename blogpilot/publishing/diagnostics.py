"""Failure screenshots keyed by stage."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..utils.file_helper import slugify
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


class DiagnosticsRecorder:
    """Write ``<timestamp>-<label>.png`` screenshots into ``directory``.

    Capturing is best effort: a page that cannot be screenshotted yields
    ``None`` and a debug log line.
    """

    def __init__(self, directory: Path | None, *, enabled: bool = True) -> None:
        self.directory = Path(directory) if directory else None
        self.enabled = enabled and self.directory is not None
        self.captured: list[Path] = []

    async def capture(self, page: Page | None, label: str) -> Path | None:
        if not self.enabled or page is None or self.directory is None:
            return None
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        target = self.directory / f"{stamp}-{slugify(label)}.png"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(target), full_page=True)
        except (PlaywrightError, OSError) as exc:
            LOGGER.debug("Screenshot for %s failed: %s", label, exc)
            return None
        self.captured.append(target)
        LOGGER.info(
            "Saved diagnostic screenshot",
            extra={"event": "diagnostic_screenshot", "stage": label, "path": str(target)},
        )
        return target


__all__ = ["DiagnosticsRecorder"]
