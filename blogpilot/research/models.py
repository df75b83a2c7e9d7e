"""Records returned by research providers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True)
class NewsArticle:
    title: str
    description: str
    url: str
    published_at: str
    source: str
    content: str | None = None


@dataclass(slots=True)
class Video:
    title: str
    description: str
    video_id: str
    channel_title: str
    published_at: str

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}" if self.video_id else ""


@dataclass(slots=True)
class SearchResult:
    title: str
    snippet: str
    url: str
    display_link: str


@dataclass(slots=True)
class WebExtract:
    url: str
    text: str
    ok: bool = True


@dataclass(slots=True)
class ResearchData:
    topic: str
    query: str
    news: list[NewsArticle] = field(default_factory=list)
    videos: list[Video] = field(default_factory=list)
    blogs: list[SearchResult] = field(default_factory=list)
    web: list[SearchResult] = field(default_factory=list)
    extracts: list[WebExtract] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        return {
            "news": len(self.news),
            "videos": len(self.videos),
            "blogs": len(self.blogs),
            "web": len(self.web),
            "extracts": len(self.extracts),
        }

    def source_urls(self, limit: int | None = None) -> list[str]:
        urls: list[str] = []
        for item in (*self.blogs, *self.news, *self.web):
            if item.url and item.url.startswith("http") and item.url not in urls:
                urls.append(item.url)
        return urls[:limit] if limit is not None else urls

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResearchData":
        return cls(
            topic=data.get("topic", ""),
            query=data.get("query", ""),
            news=[NewsArticle(**item) for item in data.get("news", [])],
            videos=[Video(**item) for item in data.get("videos", [])],
            blogs=[SearchResult(**item) for item in data.get("blogs", [])],
            web=[SearchResult(**item) for item in data.get("web", [])],
            extracts=[WebExtract(**item) for item in data.get("extracts", [])],
            failures=dict(data.get("failures", {})),
        )
