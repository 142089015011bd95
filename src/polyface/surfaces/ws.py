"""WebSocket-RPC surface — one JSON message in, one JSON message out.

Request ``{"method", "params"?, "id"?}``; reply ``{"result", "id"?}`` or
``{"error": {"message"}, "id"?}``.  Text that is not JSON, or carries no
method, is rejected with :class:`WsMessageError` before any reply exists;
the connection loop decides whether to report or close.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import DispatchError
from polyface.domain.types import Surface
from polyface.services.composer import OpenApiOperation, OpenApiPath
from polyface.services.dispatch import AsyncHandling, DispatchTable, StreamPolicy
from polyface.surfaces._shared import ensure_no_streams

logger = logging.getLogger(__name__)

DEFAULT_WS_PATH = "/ws"


class WsMessageError(DispatchError):
    """The incoming text is not a usable message."""


def ws_operations(
    service: ServiceDescriptor, *, materialize_streams: bool = False
) -> tuple[OperationDescriptor, ...]:
    """Operations reachable over the socket, each under its own name as ``method``."""
    ensure_no_streams(service, Surface.WS, materialize=materialize_streams)
    return service.for_surface(Surface.WS)


def _parse(text: str | bytes) -> tuple[str, Any, Any, bool]:
    try:
        message = json.loads(text)
    except json.JSONDecodeError as exc:
        raise WsMessageError(f"Invalid JSON: {exc}") from exc
    if not isinstance(message, dict) or not isinstance(message.get("method"), str):
        raise WsMessageError("Missing 'method' field")
    params = message.get("params")
    return message["method"], {} if params is None else params, message.get("id"), "id" in message


def _reply(result: Any, error: str | None, id_: Any, has_id: bool) -> str:
    body: dict[str, Any]
    if error is not None:
        body = {"error": {"message": error}}
    else:
        body = {"result": result}
    if has_id:
        body["id"] = id_
    return json.dumps(body)


class WsSurface:
    def __init__(
        self,
        service: ServiceDescriptor,
        target: Any,
        *,
        materialize_streams: bool = False,
        handling: AsyncHandling = AsyncHandling.ERROR,
    ) -> None:
        self.service = service
        self.table = DispatchTable.build(
            service,
            target,
            surface=Surface.WS,
            streams=StreamPolicy.MATERIALIZE if materialize_streams else StreamPolicy.REJECT,
            handling=handling,
            not_found_label="Unknown method",
        )

    def methods(self) -> list[str]:
        return self.table.names()

    def handle_message(self, text: str | bytes, context: Context | None = None) -> str:
        """Answer one message synchronously; async operations are refused."""
        method, params, id_, has_id = _parse(text)
        try:
            result = self.table.dispatch(method, params, context).payload()
        except Exception as exc:
            logger.debug("WS %s failed: %s", method, exc)
            return _reply(None, str(exc), id_, has_id)
        return _reply(result, None, id_, has_id)

    async def handle_message_async(self, text: str | bytes, context: Context | None = None) -> str:
        method, params, id_, has_id = _parse(text)
        try:
            outcome = await self.table.dispatch_async(method, params, context)
            result = outcome.payload()
        except Exception as exc:
            logger.debug("WS %s failed: %s", method, exc)
            return _reply(None, str(exc), id_, has_id)
        return _reply(result, None, id_, has_id)

    def openapi_paths(self, path: str = DEFAULT_WS_PATH) -> list[OpenApiPath]:
        """The upgrade endpoint, for composition into an OpenAPI document."""
        methods = self.methods()
        return [
            OpenApiPath(
                path=path,
                method="get",
                operation=OpenApiOperation(
                    summary=f"WebSocket endpoint (methods: {', '.join(methods)})",
                    operation_id="websocket",
                    tags=["websocket"],
                    responses={
                        "101": {"description": "Switching Protocols - WebSocket upgrade successful"}
                    },
                    extra={
                        "x-websocket-protocol": {"format": "JSON-RPC style", "methods": methods}
                    },
                ),
            )
        ]
