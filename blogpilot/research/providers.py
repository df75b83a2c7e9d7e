"""HTTP clients for the news, video and search APIs."""

from __future__ import annotations

import time
from typing import Any, Mapping

import requests

from ..settings import HttpSettings
from ..utils.logging import get_logger
from .models import NewsArticle, SearchResult, Video

LOGGER = get_logger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}


class ResearchError(RuntimeError):
    """A provider could not return results."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})


class ApiProvider:
    """Shared GET-with-retry for JSON APIs."""

    name = "api"
    endpoint = ""

    def __init__(
        self,
        *,
        http: HttpSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._http = http or HttpSettings()
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return True

    def _get_json(self, params: Mapping[str, Any]) -> dict[str, Any]:
        attempts = max(1, self._http.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(
                    self.endpoint, params=params, timeout=self._http.timeout
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt >= attempts:
                    raise ResearchError(
                        f"{self.name} request failed", details={"reason": str(exc)}
                    ) from exc
                LOGGER.warning(
                    "%s request failed on attempt %d/%d: %s", self.name, attempt, attempts, exc
                )
                time.sleep(self._http.backoff_factor * attempt)
                continue
            except requests.RequestException as exc:
                raise ResearchError(
                    f"{self.name} request failed", details={"reason": str(exc)}
                ) from exc

            if response.status_code in RETRY_STATUSES and attempt < attempts:
                LOGGER.warning(
                    "%s returned %s on attempt %d/%d",
                    self.name,
                    response.status_code,
                    attempt,
                    attempts,
                )
                time.sleep(self._http.backoff_factor * attempt)
                continue
            try:
                response.raise_for_status()
            except requests.HTTPError as exc:
                raise ResearchError(
                    f"{self.name} returned HTTP {response.status_code}",
                    details={"response": response.text[:200]},
                ) from exc
            try:
                data = response.json()
            except ValueError as exc:
                raise ResearchError(
                    f"{self.name} returned invalid JSON", details={"response": response.text[:200]}
                ) from exc
            if not isinstance(data, dict):
                raise ResearchError(f"{self.name} returned an unexpected payload")
            return data
        raise ResearchError(f"{self.name} request failed after retries")


class NewsApiProvider(ApiProvider):
    name = "news"
    endpoint = "https://newsapi.org/v2/everything"

    def __init__(self, api_key: str | None, *, page_size: int = 10, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._page_size = page_size

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def search(self, query: str) -> list[NewsArticle]:
        data = self._get_json(
            {
                "q": query,
                "sortBy": "relevancy",
                "pageSize": self._page_size,
                "language": "en",
                "apiKey": self._api_key,
            }
        )
        articles: list[NewsArticle] = []
        for item in data.get("articles") or []:
            articles.append(
                NewsArticle(
                    title=item.get("title") or "Untitled",
                    description=item.get("description") or "",
                    url=item.get("url") or "",
                    published_at=item.get("publishedAt") or "",
                    source=(item.get("source") or {}).get("name") or "Unknown",
                    content=item.get("content"),
                )
            )
        return articles


class YouTubeProvider(ApiProvider):
    name = "videos"
    endpoint = "https://www.googleapis.com/youtube/v3/search"

    def __init__(self, api_key: str | None, *, max_results: int = 10, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._max_results = max_results

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def search(self, query: str) -> list[Video]:
        data = self._get_json(
            {
                "q": query,
                "part": "snippet",
                "type": "video",
                "maxResults": self._max_results,
                "order": "relevance",
                "key": self._api_key,
            }
        )
        videos: list[Video] = []
        for item in data.get("items") or []:
            snippet = item.get("snippet") or {}
            videos.append(
                Video(
                    title=snippet.get("title") or "Untitled",
                    description=snippet.get("description") or "",
                    video_id=(item.get("id") or {}).get("videoId") or "",
                    channel_title=snippet.get("channelTitle") or "",
                    published_at=snippet.get("publishedAt") or "",
                )
            )
        return videos


class CustomSearchProvider(ApiProvider):
    """Google Programmable Search; ``suffix`` narrows the query (e.g. blogs)."""

    endpoint = "https://www.googleapis.com/customsearch/v1"

    def __init__(
        self,
        api_key: str | None,
        cx: str | None,
        *,
        name: str = "web",
        suffix: str = "",
        num: int = 10,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.name = name
        self._api_key = api_key
        self._cx = cx
        self._suffix = suffix
        # The API rejects num > 10.
        self._num = max(1, min(num, 10))

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._cx)

    def search(self, query: str) -> list[SearchResult]:
        q = f"{query} {self._suffix}".strip()
        data = self._get_json({"q": q, "cx": self._cx, "key": self._api_key, "num": self._num})
        return [
            SearchResult(
                title=item.get("title") or "Untitled",
                snippet=item.get("snippet") or "",
                url=item.get("link") or "",
                display_link=item.get("displayLink") or "",
            )
            for item in data.get("items") or []
        ]


__all__ = [
    "ApiProvider",
    "CustomSearchProvider",
    "NewsApiProvider",
    "ResearchError",
    "YouTubeProvider",
]
