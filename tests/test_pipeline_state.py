"""Tests for pipeline state persistence helpers."""

from __future__ import annotations

from pathlib import Path

from blogpilot.app.pipeline_state import PipelineState, PipelineStateStore


def test_pipeline_state_transitions() -> None:
    state = PipelineState.initialize("demo", ["research", "generate", "publish"], run_id="test")

    assert state.pending_steps() == ["research", "generate", "publish"]

    state.mark_running("research")
    state.mark_completed("research")
    assert state.completed_steps() == ["research"]

    state.mark_failed("publish", "[email_auth] no link")
    assert set(state.pending_steps()) == {"generate", "publish"}
    assert state.errors == {"publish": "[email_auth] no link"}

    state.reset_incomplete()
    assert state.steps["publish"] == PipelineState.STATUS_PENDING

    state.mark_running("publish")
    assert state.errors == {}


def test_pipeline_state_store_roundtrip(tmp_path: Path) -> None:
    store = PipelineStateStore(tmp_path)
    state = PipelineState.initialize("Edge AI / 2024", ["research", "generate"])
    store.save(state)

    saved_path = store.path_for("Edge AI / 2024")
    assert saved_path.exists()
    assert saved_path.name == "edge-ai-2024.json"

    loaded = store.load("Edge AI / 2024")
    assert loaded is not None
    assert loaded.topic == "Edge AI / 2024"
    assert loaded.steps == state.steps
    assert store.topics() == ["Edge AI / 2024"]

    assert store.delete("Edge AI / 2024") is True
    assert store.load("Edge AI / 2024") is None
