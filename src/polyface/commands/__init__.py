"""Subcommand modules for polyface.

:func:`register_commands` imports each command lazily so ``polyface
--help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    from polyface.commands.call import call
    from polyface.commands.check import check
    from polyface.commands.compose import compose
    from polyface.commands.emit import emit
    from polyface.commands.inspect_cmd import inspect_cmd
    from polyface.commands.serve import serve

    cli.add_command(emit)
    cli.add_command(inspect_cmd)
    cli.add_command(check)
    cli.add_command(compose)
    cli.add_command(call)
    cli.add_command(serve)
