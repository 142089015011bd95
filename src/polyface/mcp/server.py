"""FastMCP server for a service's tool-call surface.

Optional extra: ``pip install polyface[mcp]``.  Transport is stdio by
default; ``sse`` and ``streamable-http`` bind to *host*/*port*.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

if TYPE_CHECKING:
    from polyface.config.settings import PolyfaceSettings

__all__ = ["create_server", "mcp_available"]


def create_server(
    settings: PolyfaceSettings,
    *,
    target: str | None = None,
    expose_emit: bool = False,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Build a FastMCP server exposing every MCP operation of the service.

    The service comes from *target* or ``[service] target``; tools take the
    ``[mcp] namespace`` prefix.  With *expose_emit* the ``polyface_*`` emit
    tools are registered too.

    Raises RuntimeError if the mcp extra is not installed, and
    :class:`~polyface.domain.exceptions.ContractError` when the service
    cannot be loaded or carries streams the surface refuses.
    """
    if not mcp_available or _FastMCP is None:
        raise RuntimeError("MCP extra not installed. Install with: pip install polyface[mcp]")

    from polyface.domain.exceptions import DescriptorLoadError
    from polyface.mcp.tools import emit_tools, register_tools, service_tools
    from polyface.services.emit import EmitService
    from polyface.surfaces.mcp import McpSurface

    svc = EmitService(settings)
    loaded = svc.load(target=target)
    if loaded.instance is None:
        raise DescriptorLoadError("serve needs a Python target (--target module:attr)")

    surface = McpSurface(
        loaded.descriptor,
        loaded.instance,
        namespace=settings.mcp.namespace,
        materialize_streams=settings.mcp.materialize_streams,
    )
    server = _FastMCP(settings.service.title or loaded.descriptor.name, host=host, port=port)
    register_tools(server, service_tools(surface))
    if expose_emit:
        register_tools(server, emit_tools(svc))
    return server
