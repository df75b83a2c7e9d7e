"""Composable pipeline for research → generate → publish."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Sequence

from ..ai import ArticleBrief, ArticleGenerator, GeneratedArticle
from ..publishing import (
    Article,
    Credentials,
    MediumPublisher,
    PublishingResult,
    PublishOptions,
    PublishRequest,
)
from ..research import ResearchData, ResearchService
from ..security import CredentialStore, default_providers, resolve_credentials, resolve_secret
from ..settings import AppConfig, load_config
from ..utils.file_helper import slugify, write_text_atomic
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class PipelineContext:
    """Mutable context shared between pipeline steps."""

    config: AppConfig
    topic: str
    keywords: tuple[str, ...] = ()
    tone: str = "informative"
    audience: str = "general readers"
    options: PublishOptions = field(default_factory=PublishOptions)
    credentials: Credentials | None = None
    api_key: str | None = None
    dry_run: bool = False
    research: ResearchData | None = None
    article: Article | None = None
    result: PublishingResult | None = None
    research_factory: Callable[["PipelineContext"], ResearchService] | None = None
    generator_factory: Callable[["PipelineContext"], ArticleGenerator] | None = None
    publisher_factory: Callable[["PipelineContext"], MediumPublisher] | None = None

    @property
    def output_root(self) -> Path:
        return self.config.paths.articles_dir / slugify(self.topic)

    @property
    def research_path(self) -> Path:
        return self.output_root / "research.json"

    @property
    def article_path(self) -> Path:
        return self.output_root / "article.json"

    @property
    def result_path(self) -> Path:
        return self.output_root / "result.json"

    def credential_store(self) -> CredentialStore:
        return CredentialStore(self.config.paths.credentials_file)

    def google_api_key(self) -> str | None:
        return resolve_secret(
            "google_api_key",
            explicit=self.api_key,
            providers=[self.credential_store()],
        )


@dataclass(slots=True)
class PipelineStep:
    name: str
    handler: Callable[[PipelineContext], None]
    depends_on: tuple[str, ...] = ()


@dataclass(slots=True)
class PipelineHooks:
    before_step: Callable[[str, PipelineContext], None] | None = None
    after_step: Callable[[str, PipelineContext], None] | None = None
    on_error: Callable[[str, PipelineContext, BaseException], None] | None = None


class PipelineRunner:
    """Executes registered pipeline steps respecting dependencies."""

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        self._steps = list(steps)
        self._step_map: Dict[str, PipelineStep] = {step.name: step for step in steps}
        self._order = [step.name for step in steps]

    @property
    def steps(self) -> list[PipelineStep]:
        return list(self._steps)

    @property
    def step_names(self) -> list[str]:
        return list(self._order)

    def run(
        self,
        context: PipelineContext,
        *,
        only: Iterable[str] | None = None,
        completed: Iterable[str] | None = None,
        hooks: PipelineHooks | None = None,
    ) -> None:
        selected = set(only) if only else None
        executed: set[str] = set(completed or ())
        for name in self._order:
            if name in executed:
                continue
            if selected is not None and name not in selected:
                continue
            step = self._step_map[name]
            if any(dep not in executed for dep in step.depends_on):
                missing = ", ".join(dep for dep in step.depends_on if dep not in executed)
                raise RuntimeError(f"Step '{name}' depends on missing steps: {missing}")
            LOGGER.info("Running pipeline step: %s", name)
            if hooks and hooks.before_step:
                hooks.before_step(name, context)
            try:
                step.handler(context)
            except BaseException as exc:
                if hooks and hooks.on_error:
                    hooks.on_error(name, context, exc)
                raise
            executed.add(name)
            if hooks and hooks.after_step:
                hooks.after_step(name, context)


def _write_json(path: Path, payload: object) -> Path:
    return write_text_atomic(path, json.dumps(payload, ensure_ascii=False, indent=2))


def _run_research(context: PipelineContext) -> None:
    if context.research_factory is not None:
        service = context.research_factory(context)
    else:
        service = ResearchService.from_settings(
            context.config.research,
            context.config.http,
            google_api_key=context.google_api_key(),
        )
    context.research = service.conduct(context.topic, context.keywords)
    _write_json(context.research_path, context.research.as_dict())
    LOGGER.info(
        "Research saved",
        extra={"event": "pipeline.research", "path": str(context.research_path)},
    )


def _run_generate(context: PipelineContext) -> None:
    research = context.research
    if research is None and context.research_path.exists():
        research = ResearchData.from_dict(
            json.loads(context.research_path.read_text(encoding="utf-8"))
        )
    if context.generator_factory is not None:
        generator = context.generator_factory(context)
    else:
        generator = ArticleGenerator.from_settings(
            context.config.generation, api_key=context.google_api_key()
        )
    brief = ArticleBrief(
        topic=context.topic,
        tone=context.tone,
        audience=context.audience,
        keywords=context.keywords,
    )
    generated: GeneratedArticle = generator.generate(brief, research)
    context.article = generated.to_article()
    _write_json(context.article_path, generated.as_dict())
    write_text_atomic(context.article_path.with_suffix(".md"), generated.markdown)
    LOGGER.info(
        "Article saved",
        extra={
            "event": "pipeline.generate",
            "title": generated.title,
            "path": str(context.article_path),
        },
    )


def _run_publish(context: PipelineContext) -> None:
    article = context.article or _load_article(context.article_path)
    if context.dry_run:
        LOGGER.info(
            "Dry run; skipping publish",
            extra={"event": "pipeline.publish", "title": article.title, "dry_run": True},
        )
        return

    credentials = resolve_credentials(
        context.credentials, providers=default_providers(context.credential_store())
    )
    options = context.options
    if not options.tags and article.tags:
        options = PublishOptions(
            tags=article.tags,
            visibility=options.visibility,
            notify_followers=options.notify_followers,
            license=options.license,
        )
    if context.publisher_factory is not None:
        publisher = context.publisher_factory(context)
    else:
        publisher = MediumPublisher(context.config)
    request = PublishRequest(article=article, options=options, credentials=credentials)
    context.result = asyncio.run(publisher.publish(request))
    _write_json(context.result_path, context.result.as_dict())

    if not context.result.success:
        raise RuntimeError(f"Publish step failed: {context.result.error}")
    LOGGER.info(
        "Article published",
        extra={"event": "pipeline.publish", "url": context.result.url},
    )


def _load_article(path: Path) -> Article:
    if not path.exists():
        raise FileNotFoundError(f"No generated article at {path}; run the generate step first")
    return Article.from_dict(json.loads(path.read_text(encoding="utf-8")))


DEFAULT_STEPS = [
    PipelineStep("research", _run_research),
    PipelineStep("generate", _run_generate, depends_on=("research",)),
    PipelineStep("publish", _run_publish, depends_on=("generate",)),
]


def build_default_runner(
    config: AppConfig | None = None, *, topic: str, **options: object
) -> tuple[PipelineRunner, PipelineContext]:
    app_config = config or load_config()
    keywords = options.get("keywords") or ()
    ctx = PipelineContext(
        config=app_config,
        topic=topic,
        keywords=tuple(str(word) for word in keywords),  # type: ignore[union-attr]
        tone=str(options.get("tone") or "informative"),
        audience=str(options.get("audience") or "general readers"),
        options=options.get("publish_options") or PublishOptions(),  # type: ignore[arg-type]
        credentials=options.get("credentials"),  # type: ignore[arg-type]
        api_key=options.get("api_key"),  # type: ignore[arg-type]
        dry_run=bool(options.get("dry_run", False)),
    )
    return PipelineRunner(DEFAULT_STEPS), ctx


__all__ = [
    "DEFAULT_STEPS",
    "PipelineContext",
    "PipelineHooks",
    "PipelineRunner",
    "PipelineStep",
    "build_default_runner",
]
