"""Persistence helpers for pipeline execution state."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from ..utils.file_helper import slugify, write_text_atomic


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(slots=True)
class PipelineState:
    """Step progress for one topic."""

    topic: str
    steps: dict[str, str]
    updated_at: str = field(default_factory=_now)
    run_id: str | None = None
    errors: dict[str, str] = field(default_factory=dict)

    STATUS_PENDING = "pending"
    STATUS_RUNNING = "running"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    @classmethod
    def initialize(
        cls, topic: str, step_names: Iterable[str], *, run_id: str | None = None
    ) -> "PipelineState":
        steps = {name: cls.STATUS_PENDING for name in step_names}
        return cls(topic=topic, steps=steps, run_id=run_id or _now())

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "PipelineState":
        topic = str(data.get("topic", "default"))
        raw_steps = data.get("steps", {})
        if not isinstance(raw_steps, dict):
            raise ValueError("Invalid pipeline state: 'steps' must be a mapping")
        raw_errors = data.get("errors") or {}
        if not isinstance(raw_errors, dict):
            raise ValueError("Invalid pipeline state: 'errors' must be a mapping")
        run_id = data.get("run_id")
        return cls(
            topic=topic,
            steps={str(name): str(status) for name, status in raw_steps.items()},
            updated_at=str(data.get("updated_at", _now())),
            run_id=str(run_id) if run_id else None,
            errors={str(name): str(message) for name, message in raw_errors.items()},
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "topic": self.topic,
            "steps": self.steps,
            "updated_at": self.updated_at,
            "run_id": self.run_id,
            "errors": self.errors,
        }

    def mark_running(self, step: str) -> None:
        self.steps[step] = self.STATUS_RUNNING
        self.errors.pop(step, None)
        self.updated_at = _now()

    def mark_completed(self, step: str) -> None:
        self.steps[step] = self.STATUS_COMPLETED
        self.updated_at = _now()

    def mark_failed(self, step: str, error: str | None = None) -> None:
        self.steps[step] = self.STATUS_FAILED
        if error:
            self.errors[step] = error
        self.updated_at = _now()

    def reset_incomplete(self) -> None:
        for name, status in self.steps.items():
            if status != self.STATUS_COMPLETED:
                self.steps[name] = self.STATUS_PENDING
        self.updated_at = _now()

    def completed_steps(self) -> list[str]:
        return [name for name, status in self.steps.items() if status == self.STATUS_COMPLETED]

    def pending_steps(self) -> list[str]:
        return [name for name, status in self.steps.items() if status != self.STATUS_COMPLETED]


class PipelineStateStore:
    """Stores pipeline state on disk, one JSON file per topic."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    def path_for(self, topic: str) -> Path:
        return self._root / f"{slugify(topic)}.json"

    def load(self, topic: str) -> PipelineState | None:
        path = self.path_for(topic)
        if not path.exists():
            return None
        state = PipelineState.from_dict(json.loads(path.read_text(encoding="utf-8")))
        # Keep the caller's spelling; the file name is only a slug.
        state.topic = topic
        return state

    def save(self, state: PipelineState) -> Path:
        path = self.path_for(state.topic)
        return write_text_atomic(path, json.dumps(state.to_dict(), ensure_ascii=False, indent=2))

    def delete(self, topic: str) -> bool:
        path = self.path_for(topic)
        if not path.exists():
            return False
        path.unlink()
        return True

    def topics(self) -> list[str]:
        names: list[str] = []
        for path in sorted(self._root.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                continue
            names.append(str(data.get("topic", path.stem)))
        return names


__all__ = ["PipelineState", "PipelineStateStore"]
