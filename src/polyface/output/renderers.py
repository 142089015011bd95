"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console backed by StringIO; the caller gets
the text back from :func:`render_result`.  Artifacts that were not written
to a file are returned verbatim so ``polyface emit proto > api.proto``
works.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from polyface.output.console import create_console, get_output, style_for_method

if TYPE_CHECKING:
    from rich.console import Console

    from polyface.services.result import ServiceResult

type Renderer = Callable[[ServiceResult, Console], None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to text; plain (no ANSI) outside a terminal."""
    if result.ok and "artifact" in result.data and "path" not in result.data:
        return str(result.data["artifact"]).rstrip("\n")

    console = create_console()
    if result.op == "check" and "issues" in result.data:
        _render_check(result, console)
    elif result.ok:
        _OP_RENDERERS.get(result.op, _render_generic)(result, console)
    if not result.ok:
        _render_error(result, console, verbose=verbose)
    if verbose:
        _render_meta(console, result)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    data = result.data
    if "path" in data:
        return str(data["path"])
    if "artifact" in data:
        return str(data["artifact"]).rstrip("\n")
    if result.op == "inspect":
        return "\n".join(row["name"] for row in data.get("operations", []))
    if result.op == "call":
        return json.dumps(data.get("result"), separators=(",", ":"), default=str)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="poly.ok"), Text(f" {result.op}", style="poly.op"))


def _field(console: Console, key: str, value: Any) -> None:
    style = {"path": "poly.path", "service": "poly.name", "operation": "poly.name"}.get(key, "")
    console.print(Text(f"  {key}:", style="poly.key"), Text(str(value), style=style))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Meta block including the telemetry span tree (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}", markup=False)


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span_data.get('name', '?')}")
    annotations = span_data.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})")
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    line = Text("ERROR", style="poly.error")
    line.append(f"  {result.op}", style="poly.op")
    if err:
        line.append(f" [{err.code}]", style="dim")
    line.append(f" — {msg}")
    console.print(line)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}", markup=False)


# ── Operation renderers ───────────────────────────────────────────────


def _render_written(result: ServiceResult, console: Console) -> None:
    """emit/compose with ``-o``: the artifact went to a file."""
    _status_line(console, result)
    for key in ("format", "service", "path", "paths", "schemas"):
        if key in result.data:
            _field(console, key, result.data[key])


def _render_inspect(result: ServiceResult, console: Console) -> None:
    rows = result.data.get("operations", [])
    service = Text(str(result.data.get("service", "")), style="poly.name")
    console.print(service, f"{len(rows)} operations")

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Operation", style="poly.name", no_wrap=True)
    table.add_column("Method")
    table.add_column("Path", style="poly.path")
    table.add_column("Placements")
    table.add_column("GraphQL", style="poly.kind")
    table.add_column("Returns")
    table.add_column("Flags", style="dim")

    for row in rows:
        method = row.get("method")
        flags = [name for name in ("async", "hidden") if row.get(name)]
        flags += [f"skip:{s}" for s in row.get("skip", [])]
        table.add_row(
            row["name"],
            Text(method, style=style_for_method(method)) if method else Text("-", style="dim"),
            row.get("path") or "-",
            ", ".join(row.get("placements", [])),
            row.get("graphql", ""),
            row.get("returns", ""),
            " ".join(flags),
        )
    console.print(table)


def _render_check(result: ServiceResult, console: Console) -> None:
    issues = result.data.get("issues", [])
    if not issues:
        console.print(Text("OK", style="poly.ok"), " No issues found.")
        return

    severity_styles = {"error": "poly.error", "warning": "poly.warning"}
    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print()
        console.print(Text(cat, style="bold"))
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            line = Text("  ")
            line.append(sev, style=severity_styles.get(sev, ""))
            if issue.get("operation"):
                line.append(f" [{issue['operation']}]")
            line.append(f": {issue.get('message', '')}")
            console.print(line)

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {len(issues) - errors} warnings")


def _render_call(result: ServiceResult, console: Console) -> None:
    text = json.dumps(result.data.get("result"), indent=2, default=str)
    console.print(text, markup=False, soft_wrap=True)


def _render_generic(result: ServiceResult, console: Console) -> None:
    """Fallback: status line plus every data key."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, dict | list):
            _field(console, key, json.dumps(value, separators=(",", ":"), default=str))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    "emit": _render_written,
    "compose": _render_written,
    "inspect": _render_inspect,
    "call": _render_call,
}
