from __future__ import annotations

import asyncio

from blogpilot.platforms import MEDIUM
from blogpilot.publishing.models import UrlTier
from blogpilot.publishing.result import ResultExtractor, canonical_url
from blogpilot.publishing.selectors import SelectorCascade

from .fakes import FakeElement, FakePage, zero_timings

SHARE = '[data-testid="headerShareButton"]'
ARTICLE = "https://medium.com/@writer/my-first-post-1a2b3c4d"


def _extractor() -> ResultExtractor:
    return ResultExtractor(MEDIUM, SelectorCascade(timeout_per_candidate_ms=1), zero_timings())


def test_canonical_url_drops_query_and_fragment() -> None:
    assert canonical_url(f"{ARTICLE}?source=share#top") == ARTICLE


def test_share_dialog_url_is_resolved_and_dialog_closed() -> None:
    def open_dialog(page: FakePage) -> None:
        page.elements["input"] = [
            FakeElement(value="search"),
            FakeElement(value=f"{ARTICLE}?source=friends_link"),
        ]

    page = FakePage("https://medium.com/p/1a2b3c4d/edit", {SHARE: [FakeElement(on_click=open_dialog)]})

    resolution = asyncio.run(_extractor().extract(page, "writer"))

    assert resolution.url == ARTICLE
    assert resolution.tier is UrlTier.RESOLVED
    assert resolution.strategy == "share_dialog"
    assert page.events[-1] == ("key", "Escape")


def test_current_url_matching_handle_is_resolved() -> None:
    page = FakePage(f"{ARTICLE}?postPublishedType=initial")

    resolution = asyncio.run(_extractor().extract(page, "writer"))

    assert resolution.url == ARTICLE
    assert resolution.strategy == "current_url"


def test_anchor_for_other_author_is_ignored() -> None:
    page = FakePage(
        "https://medium.com/",
        {
            "a[href]": [
                FakeElement(attrs={"href": "/@someone/other-post-99"}),
                FakeElement(attrs={"href": "/@writer/my-first-post-1a2b3c4d/responses"}),
                FakeElement(attrs={"href": "/@writer/my-first-post-1a2b3c4d"}),
            ]
        },
    )

    resolution = asyncio.run(_extractor().extract(page, "writer"))

    assert resolution.url == ARTICLE
    assert resolution.strategy == "page_anchor"


def test_profile_fallback_is_estimated_and_idempotent() -> None:
    origin = "https://medium.com/new-story"
    profile_listing = {"a[href]": [FakeElement(attrs={"href": "/@writer/my-first-post-1a2b3c4d?source=profile"})]}
    page = FakePage(origin, routes={MEDIUM.profile_url("writer"): profile_listing, origin: {}})
    extractor = _extractor()

    first = asyncio.run(extractor.extract(page, "writer"))
    second = asyncio.run(extractor.extract(page, "writer"))

    assert first == second
    assert first.url == ARTICLE
    assert first.tier is UrlTier.ESTIMATED
    assert page.url == origin


def test_unknown_tier_when_nothing_matches() -> None:
    page = FakePage("https://medium.com/new-story")

    resolution = asyncio.run(_extractor().extract(page))

    assert resolution.tier is UrlTier.UNKNOWN
    assert resolution.url == "https://medium.com/new-story"
