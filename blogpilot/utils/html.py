"""Helpers for turning fetched HTML into plain text."""

from __future__ import annotations

from bs4 import BeautifulSoup

_NOISE_TAGS = ("script", "style", "noscript", "template", "svg")


def html_to_text(html: str, *, limit: int | None = None, parser: str = "html.parser") -> str:
    soup = BeautifulSoup(html, parser)
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    text = " ".join(soup.get_text(separator=" ").split())
    if limit is not None:
        return text[:limit]
    return text
