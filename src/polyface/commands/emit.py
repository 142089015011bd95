"""Command: render one artifact."""

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
  polyface emit openapi --target app.users:UserService
  polyface emit proto --file service.toml -o api/users.proto
  polyface emit graphql > schema.graphql
  polyface --json emit mcp-tools""",
)
@click.argument("format_name", metavar="FORMAT")
@service_source_options
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the artifact to a file instead of stdout.",
)
@click.pass_obj
def emit(
    app: AppContext,
    format_name: str,
    target: str | None,
    service_file: Path | None,
    output: Path | None,
) -> None:
    """Render FORMAT for the service.

    Built-in formats: openapi, graphql, openrpc, asyncapi, jsonschema, markdown,
    proto, connect, smithy, thrift, capnp, mcp-tools, cli-shape.  Plugins may
    add more.
    """
    app.emit(app.service.emit(format_name, target=target, file=service_file, output=output))
