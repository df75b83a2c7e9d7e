"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def ensure_parent(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_text_atomic(path: Path, data: str, *, private: bool = False) -> Path:
    """Write ``data`` via a sibling temp file so readers never see a partial file."""
    ensure_parent(path)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", delete=False, dir=str(path.parent)
    ) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    tmp_path.replace(path)
    if private and os.name != "nt":  # set stricter permissions on POSIX systems
        os.chmod(path, 0o600)
    return path


def slugify(value: str, *, default: str = "default") -> str:
    lowered = value.lower()
    safe = [ch if ch.isalnum() or ch in {"-", "_"} else "-" for ch in lowered]
    slug = "".join(safe).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug or default
