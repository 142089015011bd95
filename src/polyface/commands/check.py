"""Command: build-time contract checks and artifact drift."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from polyface.commands._base import PolyCommand, service_source_options

if TYPE_CHECKING:
    from polyface.commands._context import AppContext


@click.command(
    cls=PolyCommand,
    examples="""\
  polyface check
  polyface check --target app.users:UserService
  polyface check --against api/users.proto
  polyface check --against schema.txt --format graphql""",
)
@service_source_options
@click.option(
    "--against",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Checked-in artifact to compare with a fresh rendering.",
)
@click.option(
    "--format",
    "format_name",
    default=None,
    help="Format of --against (inferred from its extension otherwise).",
)
@click.pass_obj
def check(
    app: AppContext,
    target: str | None,
    service_file: Path | None,
    against: Path | None,
    format_name: str | None,
) -> None:
    """Check routes, stream support and dispatch bindings; exit 1 on errors."""
    app.emit(
        app.service.check(target=target, file=service_file, against=against, fmt=format_name)
    )
