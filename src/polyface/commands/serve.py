"""serve — expose the service's tool-call surface over MCP (``polyface[mcp]``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from polyface.commands._base import PolyCommand
from polyface.domain.exceptions import PolyfaceError

if TYPE_CHECKING:
    from polyface.commands._context import AppContext


@click.command(
    cls=PolyCommand,
    examples="""\
  # stdio transport (default)
  polyface serve --target app.users:UserService

  # Streamable HTTP on a custom address, with the emit tools
  polyface serve --transport streamable-http --host 0.0.0.0 --port 9000 --with-emit""",
)
@click.option("-t", "--target", default=None, metavar="MODULE:ATTR", help="Python service.")
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default: [mcp] transport).",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.option("--with-emit", is_flag=True, help="Also expose polyface_emit/inspect/check.")
@click.pass_obj
def serve(
    app: AppContext,
    target: str | None,
    transport: str | None,
    host: str,
    port: int,
    with_emit: bool,
) -> None:
    """Start an MCP server with one tool per operation."""
    from polyface.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install polyface[mcp]", err=True)
        raise SystemExit(1)

    try:
        server = create_server(
            app.settings, target=target, expose_emit=with_emit, host=host, port=port
        )
    except PolyfaceError as exc:
        raise click.ClickException(str(exc)) from exc
    server.run(transport=transport or app.settings.mcp.transport)
