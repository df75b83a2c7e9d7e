"""Topic research across news, video and web search APIs."""

from .extract import WebContentExtractor, extract_web_content
from .models import NewsArticle, ResearchData, SearchResult, Video, WebExtract
from .providers import CustomSearchProvider, NewsApiProvider, ResearchError, YouTubeProvider
from .service import ResearchService, build_query

__all__ = [
    "CustomSearchProvider",
    "NewsApiProvider",
    "NewsArticle",
    "ResearchData",
    "ResearchError",
    "ResearchService",
    "SearchResult",
    "Video",
    "WebContentExtractor",
    "WebExtract",
    "YouTubeProvider",
    "build_query",
    "extract_web_content",
]
