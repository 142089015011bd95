"""CLI surface — command shapes and a click group built from them.

Each operation becomes a kebab-case subcommand.  Identifier-like
parameters are positional arguments; everything else is a ``--flag``.
Output contract:

    Unit    -> "Done"
    Result  -> pretty JSON, or "Error: <message>" on stderr, exit 1
    Option  -> pretty JSON, or "Not found" on stderr, exit 1
    Plain   -> pretty JSON
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import click

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import PolyfaceError
from polyface.domain.naming import to_kebab, to_snake
from polyface.domain.shapes import (
    Boolean,
    Custom,
    Integer,
    ListOf,
    Number,
    OptionalOf,
    TypeShape,
    describe_shape,
    return_kind,
)
from polyface.domain.types import Surface
from polyface.services.dispatch import AsyncHandling, DispatchTable, Outcome, StreamPolicy


@dataclass(frozen=True)
class ArgumentShape:
    key: str
    required: bool
    shape: TypeShape

    @property
    def dest(self) -> str:
        return to_snake(self.key)


@dataclass(frozen=True)
class OptionShape:
    key: str
    required: bool
    shape: TypeShape

    @property
    def flag(self) -> str:
        return f"--{to_kebab(self.key)}"

    @property
    def dest(self) -> str:
        return to_snake(self.key)

    @property
    def help(self) -> str:
        prefix = "Required" if self.required else "Optional"
        return f"{prefix}: {self.key} ({describe_shape(self.shape)})"


@dataclass(frozen=True)
class CommandShape:
    name: str
    operation: str
    help: str
    arguments: tuple[ArgumentShape, ...]
    options: tuple[OptionShape, ...]
    output: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "operation": self.operation,
            "help": self.help,
            "arguments": [{"name": a.key, "required": a.required} for a in self.arguments],
            "options": [
                {"flag": o.flag, "required": o.required, "help": o.help} for o in self.options
            ],
            "output": self.output,
        }


def command_shape(op: OperationDescriptor) -> CommandShape:
    arguments: list[ArgumentShape] = []
    options: list[OptionShape] = []
    for p in op.wire_params:
        if p.is_identifier_like:
            arguments.append(ArgumentShape(p.key, not p.is_optional, p.type_shape))
        else:
            options.append(OptionShape(p.key, p.is_required, p.type_shape))
    return CommandShape(
        name=to_kebab(op.name),
        operation=op.name,
        help=op.description,
        arguments=tuple(arguments),
        options=tuple(options),
        output=return_kind(op.return_shape),
    )


def cli_shape(service: ServiceDescriptor) -> list[CommandShape]:
    return [command_shape(op) for op in service.for_surface(Surface.CLI)]


# ── click ────────────────────────────────────────────────────────────


def _click_type(shape: TypeShape) -> click.ParamType:
    match shape:
        case OptionalOf(inner=inner) | ListOf(item=inner):
            return _click_type(inner)
        case Integer():
            return click.INT
        case Number():
            return click.FLOAT
        case Boolean():
            return click.BOOL
        case _:
            return click.STRING


def _is_list(shape: TypeShape) -> bool:
    if isinstance(shape, OptionalOf):
        shape = shape.inner
    return isinstance(shape, ListOf)


def _is_document(shape: TypeShape) -> bool:
    if isinstance(shape, OptionalOf):
        shape = shape.inner
    return isinstance(shape, Custom)


def _coerce(value: Any, shape: TypeShape) -> Any:
    """Custom shapes arrive as JSON text on the command line."""
    if _is_document(shape) and isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    if isinstance(value, tuple):
        return list(value)
    return value


def _print_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, default=str))


def render_outcome(outcome: Outcome) -> None:
    """Write *outcome* following the CLI output contract."""
    if outcome.error is not None:
        error = click.ClickException(outcome.error.message)
        error.exit_code = outcome.error.kind.exit_code
        raise error
    if outcome.kind == "unit":
        click.echo("Done")
    elif outcome.absent:
        click.echo("Not found", err=True)
        raise SystemExit(1)
    else:
        _print_json(outcome.value)


def _callback(table: DispatchTable, shape: CommandShape) -> Callable[..., None]:
    params = {a.dest: a for a in shape.arguments} | {o.dest: o for o in shape.options}

    def run(**kwargs: Any) -> None:
        args = {
            params[dest].key: _coerce(value, params[dest].shape)
            for dest, value in kwargs.items()
            if value is not None and value != ()
        }
        try:
            outcome = table.dispatch(shape.operation, args, Context.from_environ(os.environ))
        except PolyfaceError as exc:
            raise click.ClickException(str(exc)) from exc
        render_outcome(outcome)

    return run


def build_click_command(table: DispatchTable, shape: CommandShape) -> click.Command:
    params: list[click.Parameter] = []
    for a in shape.arguments:
        params.append(
            click.Argument(
                [a.dest],
                type=_click_type(a.shape),
                required=a.required,
                nargs=-1 if _is_list(a.shape) else 1,
            )
        )
    for o in shape.options:
        params.append(
            click.Option(
                [o.flag, o.dest],
                type=_click_type(o.shape),
                required=o.required,
                multiple=_is_list(o.shape),
                help=o.help,
            )
        )
    return click.Command(
        shape.name,
        callback=_callback(table, shape),
        params=params,
        help=shape.help,
        short_help=shape.help.splitlines()[0] if shape.help else None,
    )


def build_click_group(
    service: ServiceDescriptor,
    target: Any,
    *,
    name: str | None = None,
    materialize_streams: bool = True,
) -> click.Group:
    """A click group with one subcommand per operation.  Async operations run to completion."""
    table = DispatchTable.build(
        service,
        target,
        surface=Surface.CLI,
        streams=StreamPolicy.MATERIALIZE if materialize_streams else StreamPolicy.REJECT,
        handling=AsyncHandling.BLOCK_ON,
        not_found_label="Unknown command",
    )
    group = click.Group(name or to_kebab(service.name), help=service.doc)
    for shape in cli_shape(service):
        group.add_command(build_click_command(table, shape))
    return group
