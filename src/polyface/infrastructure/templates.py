"""Jinja2 template loading with per-project override support."""

from __future__ import annotations

from pathlib import Path

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
)

OVERRIDE_DIR = Path(".polyface") / "templates"


def build_template_environment(
    group: str,
    *,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> Environment:
    """Build an environment that prefers user templates over packaged ones.

    Overrides are searched in *template_dir* (``[output] templates``) and in
    ``.polyface/templates/`` under *project_root*.  Each location may hold a
    ``<group>/`` subdirectory or flat files.
    """
    search: list[str] = []
    for base in (template_dir, project_root / OVERRIDE_DIR if project_root else None):
        if base is not None:
            search.extend([str(base / group), str(base)])

    loaders: list[BaseLoader] = []
    if search:
        loaders.append(FileSystemLoader(search))
    loaders.append(PackageLoader("polyface", f"templates/{group}"))
    return Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
        autoescape=False,
    )
