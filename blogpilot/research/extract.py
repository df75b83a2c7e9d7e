"""Visible text of source pages."""

from __future__ import annotations

from typing import Iterable

import requests

from ..settings import HttpSettings
from ..utils.html import html_to_text
from ..utils.logging import get_logger
from .models import WebExtract

LOGGER = get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml",
}


class WebContentExtractor:
    def __init__(
        self,
        *,
        http: HttpSettings | None = None,
        session: requests.Session | None = None,
        max_chars: int = 1500,
    ) -> None:
        self._http = http or HttpSettings()
        self._session = session or requests.Session()
        self._max_chars = max_chars

    def extract_one(self, url: str) -> WebExtract:
        try:
            response = self._session.get(url, headers=DEFAULT_HEADERS, timeout=self._http.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Could not fetch %s: %s", url, exc)
            return WebExtract(url=url, text=f"Content could not be extracted from {url}", ok=False)
        text = html_to_text(response.text, limit=self._max_chars)
        return WebExtract(url=url, text=text, ok=bool(text))

    def extract(self, urls: Iterable[str], *, limit: int = 3) -> list[WebExtract]:
        extracts: list[WebExtract] = []
        for url in list(urls)[:limit]:
            extracts.append(self.extract_one(url))
        LOGGER.info(
            "Extracted page text",
            extra={
                "event": "web_extract",
                "pages": len(extracts),
                "ok": sum(item.ok for item in extracts),
            },
        )
        return extracts


def extract_web_content(
    urls: Iterable[str],
    *,
    limit: int = 3,
    max_chars: int = 1500,
    http: HttpSettings | None = None,
    session: requests.Session | None = None,
) -> list[WebExtract]:
    extractor = WebContentExtractor(http=http, session=session, max_chars=max_chars)
    return extractor.extract(urls, limit=limit)


__all__ = ["WebContentExtractor", "extract_web_content"]
