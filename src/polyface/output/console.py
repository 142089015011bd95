"""Rich Console factory and theme for polyface output.

Consoles render into a StringIO buffer so every renderer keeps the
``render_result() -> str`` contract.  Outside a terminal (tests, pipes)
Rich drops colour codes by itself.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

POLY_THEME = Theme(
    {
        "poly.ok": "bold green",
        "poly.error": "bold red",
        "poly.warning": "bold yellow",
        "poly.op": "bold cyan",
        "poly.key": "dim",
        "poly.name": "bold blue",
        "poly.path": "dim",
        "poly.method.get": "green",
        "poly.method.post": "yellow",
        "poly.method.put": "blue",
        "poly.method.patch": "cyan",
        "poly.method.delete": "red",
        "poly.kind": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=POLY_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Rendered text of a StringIO-backed console."""
    buffer = console.file
    if not isinstance(buffer, StringIO):
        raise TypeError("Console is not backed by a StringIO buffer")
    return buffer.getvalue()


def style_for_method(method: str) -> str:
    return f"poly.method.{method.lower()}"
