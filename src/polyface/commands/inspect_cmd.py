"""Command: show the convention facts of every operation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from polyface.commands._base import PolyCommand, service_source_options

if TYPE_CHECKING:
    from polyface.commands._context import AppContext


@click.command(
    "inspect",
    cls=PolyCommand,
    examples="""\
  polyface inspect --target app.users:UserService
  polyface --json inspect --file service.toml""",
)
@service_source_options
@click.pass_obj
def inspect_cmd(app: AppContext, target: str | None, service_file: Path | None) -> None:
    """Table of operations: verb, path, placements, query/mutation, return shape."""
    app.emit(app.service.inspect(target=target, file=service_file))
