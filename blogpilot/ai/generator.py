"""Gemini-backed article generation: outline, sections, Markdown."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from markdown import markdown as render_markdown

from ..publishing.models import Article, normalize_tags
from ..research import ResearchData, ResearchService
from ..settings import GenerationSettings
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

PROMPT_DIR = Path(__file__).resolve().parent / "prompts"
API_KEY_ENVS = ("GOOGLE_API_KEY", "GEMINI_API_KEY")
MIN_PARAGRAPH_CHARS = 30
_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")
_LEADING_NUMBER_RE = re.compile(r"^\d+\.\s*")


class GenerationError(RuntimeError):
    """The model could not produce a usable article."""


@dataclass(slots=True)
class ArticleBrief:
    topic: str
    tone: str = "informative"
    audience: str = "general readers"
    keywords: tuple[str, ...] = ()


@dataclass(slots=True)
class OutlineSection:
    heading: str
    intent: str = ""
    key_points: list[str] = field(default_factory=list)
    order: int = 0
    paragraphs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Outline:
    title: str
    subtitle: str = ""
    sections: list[OutlineSection] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)
    fallback: bool = False


@dataclass(slots=True)
class GeneratedArticle:
    outline: Outline
    markdown: str
    model: str
    generation_seconds: float
    research: ResearchData | None = None

    @property
    def title(self) -> str:
        return self.outline.title

    def to_article(self, max_tags: int = 5) -> Article:
        return Article(
            title=self.outline.title,
            body=self.markdown,
            tags=normalize_tags(self.outline.hashtags, limit=max_tags),
        )

    def to_html(self) -> str:
        return render_markdown(self.markdown, extensions=["extra"])

    def as_dict(self) -> dict[str, Any]:
        article = self.to_article()
        return {
            **article.as_dict(),
            "subtitle": self.outline.subtitle,
            "outline": asdict(self.outline),
            "model": self.model,
            "generation_seconds": round(self.generation_seconds, 2),
            "research": self.research.counts() if self.research else None,
        }


def parse_outline(text: str) -> Outline | None:
    """Pull the outline JSON out of a model reply; ``None`` if unusable."""

    match = _JSON_BLOCK_RE.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or not data.get("title"):
        return None
    sections: list[OutlineSection] = []
    for index, raw in enumerate(data.get("sections") or [], start=1):
        if not isinstance(raw, dict) or not raw.get("heading"):
            continue
        try:
            order = int(raw.get("order", index))
        except (TypeError, ValueError):
            order = index
        sections.append(
            OutlineSection(
                heading=str(raw["heading"]).strip(),
                intent=str(raw.get("intent") or ""),
                key_points=[str(point) for point in raw.get("key_points") or []],
                order=order,
            )
        )
    if not sections:
        return None
    return Outline(
        title=str(data["title"]).strip(),
        subtitle=str(data.get("subtitle") or "").strip(),
        sections=sections,
        hashtags=[str(tag) for tag in data.get("hashtags") or []],
    )


def fallback_outline(brief: ArticleBrief) -> Outline:
    topic = brief.topic.strip()
    headings = (
        ("Why {topic} Matters Now", "hook_intro"),
        ("Where Most People Go Wrong With {topic}", "problem_exploration"),
        ("A Practical Framework for {topic}", "solution_framework"),
        ("What {topic} Looks Like in Practice", "case_study"),
        ("Your Next Steps", "practical_action"),
    )
    return Outline(
        title=f"{topic}: A Practical Guide",
        subtitle=f"What to know about {topic} and how to act on it",
        sections=[
            OutlineSection(heading=heading.format(topic=topic), intent=intent, order=order)
            for order, (heading, intent) in enumerate(headings, start=1)
        ],
        hashtags=["#" + "".join(topic.split()), *brief.keywords],
        fallback=True,
    )


def split_paragraphs(text: str, *, limit: int = 6) -> list[str]:
    paragraphs: list[str] = []
    for block in re.split(r"\n\s*\n", text or ""):
        cleaned = _LEADING_NUMBER_RE.sub("", block.strip())
        if len(cleaned) > MIN_PARAGRAPH_CHARS:
            paragraphs.append(cleaned)
    return paragraphs[:limit]


def compile_markdown(outline: Outline) -> str:
    parts = [f"# {outline.title}", ""]
    for section in sorted(outline.sections, key=lambda item: item.order):
        if not section.paragraphs:
            continue
        parts.extend([f"## {section.heading}", ""])
        for paragraph in section.paragraphs:
            parts.extend([paragraph, ""])
    return "\n".join(parts).strip() + "\n"


def _research_notes(research: ResearchData | None, *, keywords: Sequence[str] = ()) -> str:
    if research is None:
        return "None."
    lines: list[str] = []
    news = research.news
    if keywords:
        lowered = [word.lower() for word in keywords if len(word) > 3]
        news = [
            item
            for item in research.news
            if any(word in f"{item.title} {item.description}".lower() for word in lowered)
        ] or research.news
    for item in news[:3]:
        lines.append(f"- News: {item.title}: {item.description}")
    for item in research.blogs[:2]:
        lines.append(f"- Blog: {item.title}: {item.snippet}")
    for item in research.videos[:2]:
        lines.append(f"- Video: {item.title}")
    return "\n".join(lines) or "None."


class ArticleGenerator:
    """Produce a Markdown article for a brief, optionally grounded in research."""

    def __init__(
        self,
        client: genai.Client,
        *,
        model: str,
        thinking_budget: int | None = None,
        max_paragraphs: int = 6,
        research: ResearchService | None = None,
        outline_prompt: str | None = None,
        section_prompt: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._thinking_budget = thinking_budget
        self._max_paragraphs = max_paragraphs
        self._research = research
        self._outline_prompt = outline_prompt or self.load_prompt_text(PROMPT_DIR / "outline.txt")
        self._section_prompt = section_prompt or self.load_prompt_text(PROMPT_DIR / "section.txt")
        self._logger = logger or LOGGER

    @staticmethod
    def load_prompt_text(prompt_path: Path) -> str:
        return prompt_path.read_text(encoding="utf-8")

    @staticmethod
    def create_client(api_key: str | None = None, *, timeout: float | None = None) -> genai.Client:
        resolved_key = api_key or next(
            (os.environ[name] for name in API_KEY_ENVS if os.environ.get(name)), None
        )
        if not resolved_key:
            raise GenerationError(
                "Gemini API key not found. Set GOOGLE_API_KEY or pass --api-key."
            )
        http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
        return genai.Client(api_key=resolved_key, http_options=http_options)

    @classmethod
    def from_settings(
        cls,
        settings: GenerationSettings,
        *,
        api_key: str | None = None,
        research: ResearchService | None = None,
    ) -> "ArticleGenerator":
        client = cls.create_client(
            api_key or os.environ.get(settings.api_key_env), timeout=settings.timeout
        )
        LOGGER.info("Initialized ArticleGenerator model=%s", settings.model)
        return cls(
            client,
            model=settings.model,
            thinking_budget=settings.thinking_budget,
            max_paragraphs=settings.max_paragraphs,
            research=research,
        )

    def _make_request(self, prompt_text: str) -> str:
        request_kwargs: dict[str, object] = {
            "model": self._model,
            "contents": prompt_text,
        }
        if self._thinking_budget and self._thinking_budget > 0:
            request_kwargs["config"] = types.GenerateContentConfig(
                thinking_config=types.ThinkingConfig(thinking_budget=self._thinking_budget)
            )
            self._logger.debug("Thinking mode enabled budget=%s", self._thinking_budget)
        try:
            response = self._client.models.generate_content(**request_kwargs)
        except genai_errors.APIError as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc
        return response.text or ""

    def generate(
        self, brief: ArticleBrief, research: ResearchData | None = None
    ) -> GeneratedArticle:
        if not brief.topic.strip():
            raise GenerationError("A topic is required")
        started = time.monotonic()
        if research is None and self._research is not None:
            research = self._research.conduct(brief.topic, brief.keywords)

        outline = self.build_outline(brief, research)
        for section in outline.sections:
            section.paragraphs = self.write_section(section, outline, brief, research)
        if not any(section.paragraphs for section in outline.sections):
            raise GenerationError("The model returned no usable paragraphs")

        article = GeneratedArticle(
            outline=outline,
            markdown=compile_markdown(outline),
            model=self._model,
            generation_seconds=time.monotonic() - started,
            research=research,
        )
        self._logger.info(
            "Generated article",
            extra={
                "event": "article_generated",
                "title": outline.title,
                "sections": len(outline.sections),
                "fallback_outline": outline.fallback,
                "seconds": round(article.generation_seconds, 2),
            },
        )
        return article

    def build_outline(self, brief: ArticleBrief, research: ResearchData | None) -> Outline:
        prompt = self._outline_prompt.format(
            topic=brief.topic,
            audience=brief.audience,
            tone=brief.tone,
            keywords=", ".join(brief.keywords) or "none",
            research=_research_notes(research),
        )
        outline = parse_outline(self._make_request(prompt))
        if outline is None:
            self._logger.warning("Outline reply unusable; using fallback outline")
            return fallback_outline(brief)
        return outline

    def write_section(
        self,
        section: OutlineSection,
        outline: Outline,
        brief: ArticleBrief,
        research: ResearchData | None,
    ) -> list[str]:
        keywords = section.heading.split()
        excerpts = _matching_excerpts(research, keywords)
        prompt = self._section_prompt.format(
            title=outline.title,
            heading=section.heading,
            intent=section.intent or "general",
            key_points=", ".join(section.key_points) or "not specified",
            audience=brief.audience,
            tone=brief.tone,
            research=_research_notes(research, keywords=keywords),
            excerpts=excerpts or "None.",
        )
        paragraphs = split_paragraphs(self._make_request(prompt), limit=self._max_paragraphs)
        if not paragraphs:
            self._logger.warning("No usable paragraphs for section %r", section.heading)
        return paragraphs


def _matching_excerpts(research: ResearchData | None, words: Iterable[str]) -> str:
    if research is None:
        return ""
    lowered = [word.lower() for word in words if len(word) > 3]
    chosen = [
        extract.text[:500]
        for extract in research.extracts
        if extract.ok and any(word in extract.text.lower() for word in lowered)
    ]
    return "\n\n".join(chosen[:2])


__all__ = [
    "ArticleBrief",
    "ArticleGenerator",
    "GeneratedArticle",
    "GenerationError",
    "Outline",
    "OutlineSection",
    "compile_markdown",
    "fallback_outline",
    "parse_outline",
    "split_paragraphs",
]
