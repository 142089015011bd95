"""Command: dispatch one operation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from polyface.commands._base import PolyCommand

if TYPE_CHECKING:
    from polyface.commands._context import AppContext


@click.command(
    cls=PolyCommand,
    examples="""\
  polyface call get_user --params '{"user_id": "42"}'
  polyface call add --params '[1, 2]' --target app.calc:Calculator""",
)
@click.argument("operation")
@click.option("-p", "--params", default=None, help="JSON object or array of arguments.")
@click.option("-t", "--target", default=None, metavar="MODULE:ATTR", help="Python service.")
@click.pass_obj
def call(app: AppContext, operation: str, params: str | None, target: str | None) -> None:
    """Call OPERATION through the JSON-RPC surface and print its result."""
    app.emit(app.service.call(operation, params, target=target))
