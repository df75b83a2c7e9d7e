from __future__ import annotations

import pytest
import requests

from blogpilot.research import (
    NewsApiProvider,
    NewsArticle,
    ResearchData,
    ResearchError,
    ResearchService,
    SearchResult,
    WebContentExtractor,
    build_query,
    extract_web_content,
)
from blogpilot.settings import HttpSettings

NO_RETRY = HttpSettings(timeout=1, max_attempts=2, backoff_factor=0)


class StubProvider:
    def __init__(self, name: str, items=None, *, error: Exception | None = None, configured=True):
        self.name = name
        self._items = items or []
        self._error = error
        self.configured = configured
        self.queries: list[str] = []

    def search(self, query: str):
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        return list(self._items)


class StubResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class StubSession:
    def __init__(self, responses) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params or {}))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_build_query_joins_non_empty_terms() -> None:
    assert build_query(" ai agents ", ["python", " "]) == "ai agents python"


def test_provider_failures_are_isolated() -> None:
    news = [NewsArticle("N", "d", "https://news.example/1", "2024-01-01", "Wire")]
    blogs = [SearchResult("B", "s", "https://blog.example/post", "blog.example")]
    service = ResearchService(
        [
            StubProvider("news", news),
            StubProvider("videos", error=ResearchError("quota exceeded")),
            StubProvider("blogs", blogs),
            StubProvider("web", error=ValueError("bad payload")),
        ]
    )

    data = service.conduct("AI agents", ["python"])

    assert data.query == "AI agents python"
    assert data.news == news
    assert data.blogs == blogs
    assert data.videos == [] and data.web == []
    assert data.failures["videos"] == "quota exceeded"
    assert data.failures["web"].startswith("unexpected error")


def test_unconfigured_provider_is_skipped() -> None:
    provider = StubProvider("news", configured=False)

    data = ResearchService([provider]).conduct("topic")

    assert provider.queries == []
    assert data.failures == {"news": "not configured"}


def test_news_provider_retries_server_errors() -> None:
    session = StubSession(
        [
            StubResponse(503, text="busy"),
            StubResponse(
                200,
                {
                    "articles": [
                        {
                            "title": "Headline",
                            "description": "Summary",
                            "url": "https://news.example/a",
                            "publishedAt": "2024-05-01",
                            "source": {"name": "Wire"},
                        }
                    ]
                },
            ),
        ]
    )
    provider = NewsApiProvider("key", page_size=5, http=NO_RETRY, session=session)

    articles = provider.search("ai")

    assert [item.title for item in articles] == ["Headline"]
    assert articles[0].source == "Wire"
    assert len(session.calls) == 2
    assert session.calls[0][1]["pageSize"] == 5


def test_news_provider_raises_research_error_on_client_error() -> None:
    provider = NewsApiProvider(
        "key", http=NO_RETRY, session=StubSession([StubResponse(401, text="bad key")])
    )

    with pytest.raises(ResearchError, match="HTTP 401"):
        provider.search("ai")


def test_extractor_strips_markup_and_marks_failures() -> None:
    html = "<html><head><script>var x;</script></head><body><h1>Title</h1><p>Hello   world</p></body></html>"
    session = StubSession(
        [StubResponse(200, text=html), requests.ConnectionError("refused")]
    )
    extractor = WebContentExtractor(http=NO_RETRY, session=session, max_chars=10)

    ok, failed = extractor.extract(["https://a.example", "https://b.example", "https://c.example"], limit=2)

    assert ok.ok and ok.text == "Title Hell"
    assert failed.ok is False
    assert failed.text == "Content could not be extracted from https://b.example"


def test_extract_web_content_caps_pages_and_length() -> None:
    page = "<html><body><p>" + "word " * 600 + "</p></body></html>"
    session = StubSession([StubResponse(200, text=page) for _ in range(3)])
    urls = [f"https://site{index}.example" for index in range(5)]

    extracts = extract_web_content(urls, http=NO_RETRY, session=session)

    assert [call[0] for call in session.calls] == urls[:3]
    assert all(item.ok and len(item.text) <= 1500 for item in extracts)


def test_research_data_roundtrip() -> None:
    data = ResearchData(
        topic="t",
        query="t",
        blogs=[SearchResult("B", "s", "https://blog.example/post", "blog.example")],
        failures={"news": "not configured"},
    )

    assert ResearchData.from_dict(data.as_dict()) == data
    assert data.source_urls() == ["https://blog.example/post"]
