"""Fan research out to every provider and collect what comes back."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping, Protocol, Sequence

from ..settings import HttpSettings, ResearchSettings
from ..utils.logging import get_logger
from .extract import WebContentExtractor
from .models import ResearchData
from .providers import CustomSearchProvider, NewsApiProvider, ResearchError, YouTubeProvider

LOGGER = get_logger(__name__)


class SearchProvider(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    def search(self, query: str) -> list[Any]: ...


def build_query(topic: str, keywords: Iterable[str] = ()) -> str:
    terms = [topic.strip(), *(keyword.strip() for keyword in keywords)]
    return " ".join(term for term in terms if term)


class ResearchService:
    """Run all providers concurrently; one provider failing empties only its list."""

    def __init__(
        self,
        providers: Sequence[SearchProvider],
        *,
        max_workers: int = 4,
        extractor: WebContentExtractor | None = None,
        extract_limit: int = 3,
    ) -> None:
        self._providers = tuple(providers)
        self._max_workers = max(1, max_workers)
        self._extractor = extractor
        self._extract_limit = extract_limit

    @classmethod
    def from_settings(
        cls,
        settings: ResearchSettings,
        http: HttpSettings,
        *,
        google_api_key: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "ResearchService":
        env = os.environ if environ is None else environ
        google_key = google_api_key or env.get(settings.google_key_env)
        cx = env.get(settings.search_cx_env)
        providers: list[SearchProvider] = [
            NewsApiProvider(
                env.get(settings.news_key_env), page_size=settings.news_page_size, http=http
            ),
            YouTubeProvider(
                env.get(settings.youtube_key_env), max_results=settings.video_results, http=http
            ),
            CustomSearchProvider(
                google_key,
                cx,
                name="blogs",
                suffix="blog post",
                num=settings.blog_results,
                http=http,
            ),
            CustomSearchProvider(google_key, cx, name="web", num=settings.web_results, http=http),
        ]
        return cls(
            providers,
            max_workers=settings.max_workers,
            extractor=WebContentExtractor(http=http, max_chars=settings.extract_chars),
            extract_limit=settings.extract_limit,
        )

    def conduct(self, topic: str, keywords: Iterable[str] = ()) -> ResearchData:
        query = build_query(topic, keywords)
        LOGGER.info("Starting research", extra={"event": "research_start", "query": query})
        data = ResearchData(topic=topic, query=query)

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {
                provider.name: pool.submit(self._run_provider, provider, query)
                for provider in self._providers
            }
        for name, future in futures.items():
            items, error = future.result()
            if error:
                data.failures[name] = error
            if hasattr(data, name):
                setattr(data, name, items)

        if self._extractor is not None and self._extract_limit > 0:
            urls = data.source_urls(self._extract_limit)
            if urls:
                data.extracts = self._extractor.extract(urls, limit=self._extract_limit)

        LOGGER.info(
            "Research finished",
            extra={"event": "research_done", **data.counts(), "failed": sorted(data.failures)},
        )
        return data

    @staticmethod
    def _run_provider(provider: SearchProvider, query: str) -> tuple[list[Any], str | None]:
        if not provider.configured:
            LOGGER.warning("%s provider has no API key; skipping", provider.name)
            return [], "not configured"
        try:
            return provider.search(query), None
        except ResearchError as exc:
            LOGGER.warning(
                "%s provider failed: %s", provider.name, exc, extra={"details": exc.details}
            )
            return [], str(exc)
        except Exception as exc:  # noqa: BLE001 - a provider must never sink the others
            LOGGER.exception("%s provider crashed", provider.name)
            return [], f"unexpected error: {exc}"


__all__ = ["ResearchService", "SearchProvider", "build_query"]
