"""Tests for the pipeline runner orchestration helpers."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from blogpilot.ai import GeneratedArticle, Outline, OutlineSection
from blogpilot.app.pipeline import PipelineHooks, PipelineRunner, PipelineStep, build_default_runner
from blogpilot.publishing import Credentials, PublishingResult, PublishStage
from blogpilot.research import ResearchData

from .fakes import make_config


def test_runner_skips_completed_steps() -> None:
    order: list[str] = []

    steps = [
        PipelineStep("research", lambda ctx: order.append("research")),
        PipelineStep("generate", lambda ctx: order.append("generate"), depends_on=("research",)),
    ]
    runner = PipelineRunner(steps)

    runner.run(object(), completed={"research"})

    assert order == ["generate"]


def test_runner_invokes_hooks_and_propagates_errors() -> None:
    events: list[str] = []

    def step_a(_: object) -> None:
        events.append("run:a")

    def step_b(_: object) -> None:
        events.append("run:b")
        raise RuntimeError("boom")

    hooks = PipelineHooks(
        before_step=lambda name, _: events.append(f"before:{name}"),
        after_step=lambda name, _: events.append(f"after:{name}"),
        on_error=lambda name, _, exc: events.append(f"error:{name}:{type(exc).__name__}"),
    )

    steps = [
        PipelineStep("a", step_a),
        PipelineStep("b", step_b, depends_on=("a",)),
    ]
    runner = PipelineRunner(steps)

    with pytest.raises(RuntimeError):
        runner.run(object(), hooks=hooks)

    assert events == [
        "before:a",
        "run:a",
        "after:a",
        "before:b",
        "run:b",
        "error:b:RuntimeError",
    ]


def test_runner_rejects_missing_dependencies() -> None:
    runner = PipelineRunner(
        [PipelineStep("a", lambda ctx: None), PipelineStep("b", lambda ctx: None, depends_on=("a",))]
    )

    with pytest.raises(RuntimeError, match="depends on missing steps: a"):
        runner.run(object(), only=["b"])


def _generated() -> GeneratedArticle:
    outline = Outline(
        title="Edge AI",
        sections=[OutlineSection("Why", order=1, paragraphs=["Edge inference keeps data local."])],
        hashtags=["#AI", "#Edge"],
    )
    return GeneratedArticle(
        outline=outline,
        markdown="# Edge AI\n\n## Why\n\nEdge inference keeps data local.\n",
        model="stub",
        generation_seconds=0.1,
    )


class StubPublisher:
    def __init__(self, result: PublishingResult) -> None:
        self.result = result
        self.requests = []

    async def publish(self, request):
        self.requests.append(request)
        return self.result


def _runner(tmp_path: Path, **options: object):
    config = make_config(tmp_path)
    runner, context = build_default_runner(config, topic="Edge AI", keywords=["chips"], **options)
    context.research_factory = lambda ctx: SimpleNamespace(
        conduct=lambda topic, keywords: ResearchData(topic=topic, query=f"{topic} chips")
    )
    context.generator_factory = lambda ctx: SimpleNamespace(
        generate=lambda brief, research: _generated()
    )
    return runner, context


def test_default_pipeline_dry_run_writes_artifacts(tmp_path: Path) -> None:
    runner, context = _runner(tmp_path, dry_run=True)

    runner.run(context)

    assert json.loads(context.research_path.read_text(encoding="utf-8"))["query"] == "Edge AI chips"
    saved = json.loads(context.article_path.read_text(encoding="utf-8"))
    assert saved["title"] == "Edge AI"
    assert saved["tags"] == ["AI", "Edge"]
    assert context.article_path.with_suffix(".md").exists()
    assert context.result is None


def test_publish_step_uses_article_tags_and_records_result(tmp_path: Path) -> None:
    publisher = StubPublisher(
        PublishingResult(success=True, url="https://medium.com/@w/edge-ai-1", stage=PublishStage.DONE)
    )
    runner, context = _runner(tmp_path, credentials=Credentials("a@example.com", "x", "w"))
    context.publisher_factory = lambda ctx: publisher

    runner.run(context)

    request = publisher.requests[0]
    assert request.options.tags == ("AI", "Edge")
    assert request.article.title == "Edge AI"
    assert json.loads(context.result_path.read_text(encoding="utf-8"))["success"] is True


def test_failed_publish_fails_the_step(tmp_path: Path) -> None:
    publisher = StubPublisher(PublishingResult(success=False, error="[email_auth] no link"))
    runner, context = _runner(tmp_path, credentials=Credentials("a@example.com", "x", "w"))
    context.publisher_factory = lambda ctx: publisher

    with pytest.raises(RuntimeError, match=r"\[email_auth\] no link"):
        runner.run(context)
