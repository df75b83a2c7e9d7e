"""Command-line entry points and the research → generate → publish pipeline."""

from .pipeline import (
    DEFAULT_STEPS,
    PipelineContext,
    PipelineHooks,
    PipelineRunner,
    PipelineStep,
    build_default_runner,
)
from .pipeline_state import PipelineState, PipelineStateStore

__all__ = [
    "DEFAULT_STEPS",
    "PipelineContext",
    "PipelineHooks",
    "PipelineRunner",
    "PipelineState",
    "PipelineStateStore",
    "PipelineStep",
    "build_default_runner",
]
