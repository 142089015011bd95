"""MCP tool functions, testable without the ``mcp`` package.

Two families:

* service tools — one per operation of the served service, dispatched
  through :class:`~polyface.surfaces.mcp.McpSurface`;
* emit tools — ``polyface_emit``, ``polyface_inspect`` and
  ``polyface_check`` over :class:`~polyface.services.emit.EmitService`.

Each tool carries a synthesized ``__signature__`` so FastMCP derives its
input schema from the operation's parameters.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from polyface.domain.descriptors import ParamDescriptor
from polyface.domain.shapes import python_type
from polyface.services.emit import EmitService
from polyface.services.result import ServiceResult
from polyface.surfaces.mcp import McpSurface


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    fn: Callable[..., Awaitable[Any]]


def _to_mcp_response(result: ServiceResult) -> dict[str, Any]:
    response: dict[str, Any] = {"ok": result.ok, "op": result.op, "data": result.data}
    if result.warnings:
        response["warnings"] = result.warnings
    if result.error is not None:
        response["error"] = {"code": result.error.code, "message": result.error.message}
    return response


def _argument_name(p: ParamDescriptor) -> str:
    """Wire key when it is a valid identifier, else the Python name."""
    return p.key if p.key.isidentifier() else p.name


def _parameter(p: ParamDescriptor) -> inspect.Parameter:
    name = _argument_name(p)
    annotation = python_type(p.type_shape)
    if p.is_required:
        return inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, annotation=annotation)
    return inspect.Parameter(
        name, inspect.Parameter.KEYWORD_ONLY, default=None, annotation=annotation | None
    )


def _service_tool(surface: McpSurface, tool: str) -> ToolSpec:
    op = surface.operation(tool)
    keys = {_argument_name(p): p.key for p in op.wire_params}

    async def call(**kwargs: Any) -> Any:
        args = {keys.get(k, k): v for k, v in kwargs.items() if v is not None}
        return await surface.call_async(tool, args)

    call.__name__ = tool
    call.__doc__ = op.description
    signature = inspect.Signature([_parameter(p) for p in op.wire_params])
    call.__signature__ = signature  # type: ignore[attr-defined]
    return ToolSpec(tool, op.description, call)


def service_tools(surface: McpSurface) -> list[ToolSpec]:
    return [_service_tool(surface, name) for name in surface.tool_names()]


def emit_impl(svc: EmitService, format: str) -> dict[str, Any]:
    """Render one artifact of the served service."""
    return _to_mcp_response(svc.emit(format))


def inspect_impl(svc: EmitService) -> dict[str, Any]:
    """Convention facts of every operation."""
    return _to_mcp_response(svc.inspect())


def check_impl(svc: EmitService) -> dict[str, Any]:
    """Run the build-time checks."""
    return _to_mcp_response(svc.check())


def emit_tools(svc: EmitService) -> list[ToolSpec]:
    async def polyface_emit(format: str) -> dict[str, Any]:
        return emit_impl(svc, format)

    async def polyface_inspect() -> dict[str, Any]:
        return inspect_impl(svc)

    async def polyface_check() -> dict[str, Any]:
        return check_impl(svc)

    return [
        ToolSpec(
            "polyface_emit",
            f"Render an artifact. Formats: {', '.join(svc.formats())}",
            polyface_emit,
        ),
        ToolSpec(
            "polyface_inspect", "List operations with their inferred routes.", polyface_inspect
        ),
        ToolSpec("polyface_check", "Run build-time contract checks.", polyface_check),
    ]


def register_tools(server: Any, tools: list[ToolSpec]) -> None:
    for spec in tools:
        server.add_tool(spec.fn, name=spec.name, description=spec.description)
