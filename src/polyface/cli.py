"""Root CLI group for polyface with global flags and command registration."""

from __future__ import annotations

import click

from polyface import __version__
from polyface.commands import register_commands
from polyface.commands._base import PolyGroup
from polyface.commands._context import AppContext
from polyface.config.settings import PolyfaceSettings


@click.group(
    cls=PolyGroup,
    invoke_without_command=True,
    examples="""\
  polyface emit openapi --target app.users:UserService
  polyface inspect
  polyface check --against api/users.proto
  polyface --json call get_user --params '{"user_id": "42"}'""",
)
@click.version_option(version=__version__, prog_name="polyface")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """polyface — one service description, many API surfaces."""
    settings = PolyfaceSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
