"""Artifact writing."""

from __future__ import annotations

from pathlib import Path


def write_artifact(path: Path, text: str) -> Path:
    """Write *text* to *path*, creating parent directories.  Returns the resolved path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    return path.resolve()
