"""Unified command-line interface for research, generation and publishing."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Callable, Iterable, Sequence

from ..ai import ArticleBrief, ArticleGenerator, GenerationError
from ..publishing import (
    Article,
    Credentials,
    License,
    MediumPublisher,
    PublishOptions,
    PublishRequest,
    Visibility,
)
from ..research import ResearchService
from ..security import (
    CredentialStore,
    MissingCredentialsError,
    default_providers,
    resolve_credentials,
    resolve_secret,
)
from ..settings import AppConfig, load_config
from ..utils.file_helper import slugify, write_text_atomic
from ..utils.logging import configure_logging, get_logger
from .pipeline import PipelineContext, PipelineHooks, PipelineRunner, build_default_runner
from .pipeline_state import PipelineState, PipelineStateStore

LOGGER = get_logger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        structured=not args.log_plain,
    )

    handler: Callable[[argparse.Namespace], int] | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return 1
    return handler(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blogpilot", description="blogpilot CLI")
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs instead of JSON",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=("debug", "info", "warning", "error"),
        help="Minimum log level",
    )

    subparsers = parser.add_subparsers(dest="command")

    _add_research_command(subparsers)
    _add_generate_command(subparsers)
    _add_publish_command(subparsers)
    _add_credentials_commands(subparsers)
    _add_pipeline_commands(subparsers)

    return parser


def _add_topic_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--topic", required=True, help="Article topic")
    parser.add_argument(
        "--keyword",
        dest="keywords",
        action="append",
        default=[],
        metavar="WORD",
        help="Extra search keyword (repeatable)",
    )


def _add_research_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    research_parser = subparsers.add_parser("research", help="Collect research for a topic")
    _add_topic_arguments(research_parser)
    research_parser.add_argument("--output", help="Write the research JSON to this file")
    research_parser.set_defaults(handler=_handle_research)


def _add_generate_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    generate_parser = subparsers.add_parser("generate", help="Generate an article with Gemini")
    _add_topic_arguments(generate_parser)
    generate_parser.add_argument("--tone", default="informative")
    generate_parser.add_argument("--audience", default="general readers")
    generate_parser.add_argument("--api-key", dest="api_key", default=None)
    generate_parser.add_argument(
        "--no-research",
        action="store_true",
        help="Generate without calling the research APIs",
    )
    generate_parser.add_argument("--output", help="Article JSON path; defaults under articles_dir")
    generate_parser.add_argument(
        "--html",
        action="store_true",
        help="Also write an HTML rendering next to the JSON file",
    )
    generate_parser.set_defaults(handler=_handle_generate)


def _add_credential_arguments(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--email", required=required, help="Inbox address used to sign in")
    parser.add_argument(
        "--email-password",
        dest="email_password",
        required=required,
        help="Inbox password",
    )
    parser.add_argument("--handle", required=required, help="Platform handle, with or without @")


def _add_publish_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    publish_parser = subparsers.add_parser("publish", help="Publish an article JSON file")
    publish_parser.add_argument("article", help="Path to an article JSON file")
    _add_publish_options(publish_parser)
    _add_credential_arguments(publish_parser, required=False)
    publish_parser.set_defaults(handler=_handle_publish)


def _add_publish_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Tag to apply (repeatable, at most 5 are used)",
    )
    parser.add_argument(
        "--visibility",
        choices=[item.value for item in Visibility],
        default=Visibility.PUBLIC.value,
    )
    parser.add_argument(
        "--license",
        choices=[item.value for item in License],
        default=License.ALL_RIGHTS_RESERVED.value,
    )
    parser.add_argument(
        "--no-notify",
        dest="notify",
        action="store_false",
        help="Do not notify followers",
    )


def _add_credentials_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    credentials_parser = subparsers.add_parser("credentials", help="Manage saved credentials")
    credentials_subparsers = credentials_parser.add_subparsers(
        dest="credentials_command", required=True
    )

    save_parser = credentials_subparsers.add_parser("save", help="Save credentials to disk")
    _add_credential_arguments(save_parser, required=True)
    save_parser.add_argument("--google-api-key", dest="google_api_key", default=None)
    save_parser.set_defaults(handler=_handle_credentials_save)

    show_parser = credentials_subparsers.add_parser("show", help="Show saved credentials")
    show_parser.set_defaults(handler=_handle_credentials_show)

    delete_parser = credentials_subparsers.add_parser("delete", help="Delete saved credentials")
    delete_parser.set_defaults(handler=_handle_credentials_delete)


def _add_pipeline_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    pipeline_parser = subparsers.add_parser("pipeline", help="End-to-end content pipeline")
    pipeline_parser.add_argument("--topic", required=True, help="Topic the pipeline works on")
    pipeline_parser.add_argument(
        "--api-key",
        dest="api_key",
        help="Google API key override passed to research and generation",
        default=None,
    )
    pipeline_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Research and generate, but do not publish",
    )

    pipeline_subparsers = pipeline_parser.add_subparsers(dest="pipeline_command", required=True)

    run_parser = pipeline_subparsers.add_parser("run", help="Run the full pipeline from scratch")
    _add_run_arguments(run_parser)
    run_parser.set_defaults(handler=_handle_pipeline_run)

    resume_parser = pipeline_subparsers.add_parser(
        "resume", help="Resume from the last incomplete step"
    )
    _add_run_arguments(resume_parser)
    resume_parser.set_defaults(handler=_handle_pipeline_resume)

    inspect_parser = pipeline_subparsers.add_parser("inspect", help="Show stored pipeline state")
    inspect_parser.add_argument(
        "--format",
        choices=("json", "table"),
        default="json",
        help="Output format for state inspection",
    )
    inspect_parser.set_defaults(handler=_handle_pipeline_inspect)

    clean_parser = pipeline_subparsers.add_parser("clean", help="Reset pipeline state")
    clean_parser.add_argument(
        "--outputs",
        action="store_true",
        help="Also remove research, article and result files",
    )
    clean_parser.set_defaults(handler=_handle_pipeline_clean)


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--only",
        nargs="+",
        metavar="STEP",
        help="Limit execution to specific steps",
    )
    parser.add_argument(
        "--keyword",
        dest="keywords",
        action="append",
        default=[],
        metavar="WORD",
    )
    parser.add_argument("--tone", default="informative")
    parser.add_argument("--audience", default="general readers")
    _add_publish_options(parser)


def _handle_research(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    store = CredentialStore(config.paths.credentials_file)
    service = ResearchService.from_settings(
        config.research,
        config.http,
        google_api_key=resolve_secret("google_api_key", providers=[store]),
    )
    LOGGER.info(
        "Collecting research",
        extra={"event": "cli.command", "command": "research", "topic": args.topic},
    )
    data = service.conduct(args.topic, args.keywords)
    payload = json.dumps(data.as_dict(), ensure_ascii=False, indent=2)
    if args.output:
        write_text_atomic(Path(args.output), payload)
        print(args.output)
    else:
        print(payload)
    return 0


def _handle_generate(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    store = CredentialStore(config.paths.credentials_file)
    api_key = resolve_secret("google_api_key", explicit=args.api_key, providers=[store])
    research = None
    if not args.no_research:
        research = ResearchService.from_settings(
            config.research, config.http, google_api_key=api_key
        )

    LOGGER.info(
        "Generating article",
        extra={"event": "cli.command", "command": "generate", "topic": args.topic},
    )
    try:
        generator = ArticleGenerator.from_settings(
            config.generation, api_key=api_key, research=research
        )
        generated = generator.generate(
            ArticleBrief(
                topic=args.topic,
                tone=args.tone,
                audience=args.audience,
                keywords=tuple(args.keywords),
            )
        )
    except GenerationError as exc:
        LOGGER.error(
            "Generation failed: %s",
            exc,
            extra={"event": "cli.error", "command": "generate"},
        )
        return 1

    output = Path(args.output) if args.output else _default_article_path(config, args.topic)
    write_text_atomic(output, json.dumps(generated.as_dict(), ensure_ascii=False, indent=2))
    if args.html:
        write_text_atomic(output.with_suffix(".html"), generated.to_html())
    print(output)
    return 0


def _handle_publish(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    article_path = Path(args.article)
    if not article_path.exists():
        LOGGER.error(
            "Article file not found",
            extra={"event": "cli.error", "command": "publish", "path": str(article_path)},
        )
        return 2
    article = Article.from_dict(json.loads(article_path.read_text(encoding="utf-8")))

    try:
        credentials = _resolve_cli_credentials(config, args)
    except MissingCredentialsError as exc:
        LOGGER.error(str(exc), extra={"event": "cli.error", "command": "publish"})
        return 2

    request = PublishRequest(
        article=article,
        options=_publish_options(args, article),
        credentials=credentials,
    )
    LOGGER.info(
        "Publishing article",
        extra={"event": "cli.command", "command": "publish", "title": article.title},
    )
    result = asyncio.run(MediumPublisher(config).publish(request))
    print(json.dumps(result.as_dict(), ensure_ascii=False, indent=2))
    return 0 if result.success else 1


def _handle_credentials_save(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    store = CredentialStore(config.paths.credentials_file)
    try:
        record = store.save(
            Credentials(args.email, args.email_password, args.handle),
            google_api_key=args.google_api_key,
        )
    except ValueError as exc:
        LOGGER.error(str(exc), extra={"event": "cli.error", "command": "credentials.save"})
        return 2
    print(json.dumps(record.redacted(), ensure_ascii=False, indent=2))
    return 0


def _handle_credentials_show(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    record = CredentialStore(config.paths.credentials_file).load()
    if record is None:
        print("<no-credentials>")
        return 0
    print(json.dumps(record.redacted(), ensure_ascii=False, indent=2))
    return 0


def _handle_credentials_delete(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    removed = CredentialStore(config.paths.credentials_file).delete()
    print("Credentials deleted" if removed else "<no-credentials>")
    return 0


def _handle_pipeline_run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    runner, context = _build_runner(config, args)
    state_store = PipelineStateStore(config.paths.pipeline_state_dir)
    state = PipelineState.initialize(context.topic, runner.step_names)
    state_store.save(state)

    LOGGER.info(
        "Pipeline run started",
        extra={
            "event": "cli.command",
            "command": "pipeline.run",
            "topic": context.topic,
            "steps": list(runner.step_names),
        },
    )

    hooks = _build_hooks(state_store, state)
    selection = _select_steps(runner, args.only)

    try:
        runner.run(context, only=selection, hooks=hooks)
    except Exception as exc:
        LOGGER.error(
            "Pipeline run failed: %s",
            exc,
            extra={"event": "cli.command", "command": "pipeline.run", "topic": context.topic},
        )
        return 1

    _report(context)
    LOGGER.info(
        "Pipeline run finished",
        extra={"event": "cli.command", "command": "pipeline.run", "topic": context.topic},
    )
    return 0


def _handle_pipeline_resume(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    runner, context = _build_runner(config, args)
    state_store = PipelineStateStore(config.paths.pipeline_state_dir)
    state = state_store.load(context.topic)
    if state is None:
        LOGGER.error(
            "No previous pipeline run found",
            extra={"event": "cli.error", "command": "pipeline.resume", "topic": context.topic},
        )
        return 2

    state.reset_incomplete()
    completed = set(state.completed_steps())
    pending = [step for step in runner.step_names if step not in completed]
    if not pending:
        LOGGER.info(
            "All pipeline steps already completed",
            extra={"event": "cli.command", "command": "pipeline.resume", "topic": context.topic},
        )
        return 0

    selection = _select_steps(runner, args.only)
    if selection is None:
        selection = pending
    else:
        selection = [step for step in selection if step in pending]

    if not selection:
        LOGGER.info(
            "No matching steps to resume",
            extra={"event": "cli.command", "command": "pipeline.resume", "topic": context.topic},
        )
        return 0

    LOGGER.info(
        "Resuming pipeline",
        extra={
            "event": "cli.command",
            "command": "pipeline.resume",
            "topic": context.topic,
            "remaining": selection,
        },
    )

    hooks = _build_hooks(state_store, state)
    try:
        runner.run(context, only=selection, completed=completed, hooks=hooks)
    except Exception as exc:
        LOGGER.error(
            "Pipeline resume failed: %s",
            exc,
            extra={"event": "cli.command", "command": "pipeline.resume", "topic": context.topic},
        )
        return 1

    _report(context)
    return 0


def _handle_pipeline_inspect(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    state = PipelineStateStore(config.paths.pipeline_state_dir).load(args.topic)
    if state is None:
        LOGGER.warning(
            "No pipeline state recorded",
            extra={"event": "cli.command", "command": "pipeline.inspect", "topic": args.topic},
        )
        print("<no-state>")
        return 0

    if args.format == "table":
        _print_state_table(state)
    else:
        print(json.dumps(state.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _handle_pipeline_clean(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    PipelineStateStore(config.paths.pipeline_state_dir).delete(args.topic)
    LOGGER.info(
        "Cleared pipeline state",
        extra={"event": "cli.command", "command": "pipeline.clean", "topic": args.topic},
    )

    if args.outputs:
        output_root = config.paths.articles_dir / slugify(args.topic)
        if output_root.exists():
            shutil.rmtree(output_root)
        LOGGER.info(
            "Removed generated outputs",
            extra={
                "event": "cli.command",
                "command": "pipeline.clean",
                "topic": args.topic,
                "path": str(output_root),
            },
        )
        print(f"Outputs cleared under {output_root}")
    return 0


def _build_runner(
    config: AppConfig, args: argparse.Namespace
) -> tuple[PipelineRunner, PipelineContext]:
    return build_default_runner(
        config=config,
        topic=args.topic,
        keywords=args.keywords,
        tone=args.tone,
        audience=args.audience,
        publish_options=_publish_options(args),
        api_key=args.api_key,
        dry_run=args.dry_run,
    )


def _publish_options(args: argparse.Namespace, article: Article | None = None) -> PublishOptions:
    tags = args.tags or (article.tags if article is not None else ())
    return PublishOptions(
        tags=tuple(tags),
        visibility=Visibility(args.visibility),
        notify_followers=args.notify,
        license=License(args.license),
    )


def _resolve_cli_credentials(config: AppConfig, args: argparse.Namespace) -> Credentials:
    explicit = {
        key: value
        for key, value in (
            ("inbox_address", args.email),
            ("inbox_secret", args.email_password),
            ("platform_handle", args.handle),
        )
        if value
    }
    store = CredentialStore(config.paths.credentials_file)
    return resolve_credentials(explicit, providers=default_providers(store))


def _default_article_path(config: AppConfig, topic: str) -> Path:
    return config.paths.articles_dir / f"{slugify(topic)}.json"


def _select_steps(runner: PipelineRunner, requested: Iterable[str] | None) -> list[str] | None:
    if requested is None:
        return None

    available = {name.lower(): name for name in runner.step_names}
    desired = [name.lower() for name in requested]
    invalid = [name for name in desired if name not in available]
    if invalid:
        LOGGER.error(
            "Unknown pipeline steps provided",
            extra={"event": "cli.error", "invalid_steps": sorted(set(invalid))},
        )
        raise SystemExit(2)

    selected_keys = set(desired)

    # Pull in dependencies of every requested step.
    changed = True
    while changed:
        changed = False
        for step in runner.steps:
            if step.name.lower() not in selected_keys:
                continue
            for dep in step.depends_on:
                if dep.lower() not in selected_keys:
                    selected_keys.add(dep.lower())
                    changed = True

    return [name for name in runner.step_names if name.lower() in selected_keys]


def _build_hooks(store: PipelineStateStore, state: PipelineState) -> PipelineHooks:
    def before(step: str, _: PipelineContext) -> None:
        state.mark_running(step)
        store.save(state)

    def after(step: str, _: PipelineContext) -> None:
        state.mark_completed(step)
        store.save(state)

    def error(step: str, _: PipelineContext, exc: BaseException) -> None:
        state.mark_failed(step, str(exc))
        store.save(state)
        LOGGER.debug(
            "Exception captured",
            extra={"event": "pipeline.error", "step": step, "error_type": type(exc).__name__},
        )

    return PipelineHooks(before_step=before, after_step=after, on_error=error)


def _report(context: PipelineContext) -> None:
    if context.result is not None:
        print(json.dumps(context.result.as_dict(), ensure_ascii=False, indent=2))
    elif context.article is not None:
        print(context.article_path)


def _print_state_table(state: PipelineState) -> None:
    width = max((len(name) for name in state.steps), default=8)
    print("Step".ljust(width), "Status", sep="  ")
    for name, status in state.steps.items():
        line = f"{name.ljust(width)}  {status}"
        if name in state.errors:
            line += f"  ({state.errors[name]})"
        print(line)


__all__ = ["main"]
