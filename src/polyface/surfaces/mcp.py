"""Tool-call (MCP) surface — tool definitions and dispatch.

Tool names are operation names, optionally behind ``<namespace>_``.  Every
failure reaches the caller as :class:`ToolCallError` carrying the display
message; the FastMCP server in :mod:`polyface.mcp.server` turns that into
an error result.
"""

from __future__ import annotations

from typing import Any

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import DispatchError, PolyfaceError
from polyface.domain.types import Surface
from polyface.services.dispatch import AsyncHandling, DispatchTable, StreamPolicy
from polyface.surfaces._shared import json_schema


class ToolCallError(DispatchError):
    pass


def tool_name(op_name: str, namespace: str | None = None) -> str:
    return f"{namespace}_{op_name}" if namespace else op_name


def tool_definition(op: OperationDescriptor, namespace: str | None = None) -> dict[str, Any]:
    properties = {
        p.key: {**json_schema(p.type_shape), "description": f"Parameter: {p.key}"}
        for p in op.wire_params
    }
    return {
        "name": tool_name(op.name, namespace),
        "description": op.description,
        "inputSchema": {
            "type": "object",
            "properties": properties,
            "required": [p.key for p in op.wire_params if p.is_required],
        },
    }


def mcp_tools(service: ServiceDescriptor, *, namespace: str | None = None) -> list[dict[str, Any]]:
    return [tool_definition(op, namespace) for op in service.for_surface(Surface.MCP)]


class McpSurface:
    def __init__(
        self,
        service: ServiceDescriptor,
        target: Any,
        *,
        namespace: str | None = None,
        materialize_streams: bool = False,
        handling: AsyncHandling = AsyncHandling.ERROR,
    ) -> None:
        self.service = service
        self.namespace = namespace or None
        self.table = DispatchTable.build(
            service,
            target,
            surface=Surface.MCP,
            streams=StreamPolicy.MATERIALIZE if materialize_streams else StreamPolicy.REJECT,
            handling=handling,
            naming=lambda name: tool_name(name, self.namespace),
            not_found_label="Unknown tool",
        )

    def tools(self) -> list[dict[str, Any]]:
        return mcp_tools(self.service, namespace=self.namespace)

    def tool_names(self) -> list[str]:
        return self.table.names()

    def operation(self, name: str) -> OperationDescriptor:
        return self.table.binding(name).descriptor

    def call(
        self, name: str, args: dict[str, Any] | None = None, context: Context | None = None
    ) -> Any:
        try:
            return self.table.dispatch(name, args or {}, context).payload()
        except PolyfaceError as exc:
            raise ToolCallError(str(exc)) from exc

    async def call_async(
        self, name: str, args: dict[str, Any] | None = None, context: Context | None = None
    ) -> Any:
        try:
            outcome = await self.table.dispatch_async(name, args or {}, context)
            return outcome.payload()
        except PolyfaceError as exc:
            raise ToolCallError(str(exc)) from exc
