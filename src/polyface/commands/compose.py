"""Command: merge OpenAPI documents."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from polyface.commands._base import PolyCommand

if TYPE_CHECKING:
    from polyface.commands._context import AppContext


@click.command(
    cls=PolyCommand,
    examples="""\
  polyface compose users.json orders.json --title "Shop API" --version 2.0.0
  polyface compose build/*.openapi.json -o openapi.json""",
)
@click.argument(
    "documents",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--title", default=None, help="Title of the merged document.")
@click.option("--version", "doc_version", default=None, help="Version of the merged document.")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the merged document to a file.",
)
@click.pass_obj
def compose(
    app: AppContext,
    documents: tuple[Path, ...],
    title: str | None,
    doc_version: str | None,
    output: Path | None,
) -> None:
    """Merge DOC... into one OpenAPI document; conflicting schemas fail."""
    app.emit(app.service.compose(list(documents), title=title, version=doc_version, output=output))
