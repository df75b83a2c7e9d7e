"""AI utilities for article generation."""

from .generator import (
    ArticleBrief,
    ArticleGenerator,
    GeneratedArticle,
    GenerationError,
    Outline,
    OutlineSection,
)

__all__ = [
    "ArticleBrief",
    "ArticleGenerator",
    "GeneratedArticle",
    "GenerationError",
    "Outline",
    "OutlineSection",
]
