"""AsyncAPI 2.6 description of the WebSocket-RPC surface.

One channel per operation, keyed by the ``method`` the socket dispatches on.
The client publishes ``<Op>Request`` and receives either ``<Op>Response`` or
the shared ``Error`` message::

    channels:
      get_user:
        publish:   GetUserRequest   {"method": "get_user", "params": {...}, "id"?}
        subscribe: GetUserResponse  {"result": ..., "id"?}  | Error
"""

from __future__ import annotations

import logging
from typing import Any

from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.naming import to_pascal
from polyface.surfaces.jsonschema import request_schema, response_schema
from polyface.surfaces.ws import DEFAULT_WS_PATH, ws_operations

logger = logging.getLogger(__name__)

ASYNCAPI_VERSION = "2.6.0"
DEFAULT_SERVER = "ws://localhost:8080"
ERROR_MESSAGE = "Error"

_ID_SCHEMA: dict[str, Any] = {"description": "Echoed back when the request carries one"}


def _ref(name: str) -> dict[str, str]:
    return {"$ref": f"#/components/messages/{name}"}


def _request_message(op: OperationDescriptor, name: str) -> dict[str, Any]:
    return {
        "name": name,
        "payload": {
            "type": "object",
            "properties": {
                "method": {"type": "string", "const": op.name},
                "params": request_schema(op),
                "id": _ID_SCHEMA,
            },
            "required": ["method"],
        },
    }


def _response_message(op: OperationDescriptor, name: str) -> dict[str, Any]:
    payload = response_schema(op)
    payload["properties"]["id"] = _ID_SCHEMA
    return {"name": name, "payload": payload}


def _error_message() -> dict[str, Any]:
    return {
        "name": ERROR_MESSAGE,
        "payload": {
            "type": "object",
            "properties": {
                "error": {
                    "type": "object",
                    "properties": {"message": {"type": "string"}},
                    "required": ["message"],
                },
                "id": _ID_SCHEMA,
            },
            "required": ["error"],
        },
    }


def asyncapi_document(
    service: ServiceDescriptor,
    *,
    title: str | None = None,
    version: str | None = None,
    description: str | None = None,
    server: str = DEFAULT_SERVER,
    path: str = DEFAULT_WS_PATH,
    materialize_streams: bool = False,
) -> dict[str, Any]:
    """AsyncAPI document for the socket served at ``server`` + ``path``."""
    channels: dict[str, Any] = {}
    messages: dict[str, Any] = {}
    for op in ws_operations(service, materialize_streams=materialize_streams):
        base = to_pascal(op.name)
        request, response = f"{base}Request", f"{base}Response"
        messages[request] = _request_message(op, request)
        messages[response] = _response_message(op, response)
        channels[op.name] = {
            "description": op.summary if op.doc else f"{op.name} operation",
            "publish": {"operationId": op.name, "message": _ref(request)},
            "subscribe": {"message": {"oneOf": [_ref(response), _ref(ERROR_MESSAGE)]}},
        }
    messages[ERROR_MESSAGE] = _error_message()
    logger.debug("AsyncAPI: %d channels for %s", len(channels), service.name)

    info: dict[str, Any] = {"title": title or service.name, "version": version or "1.0.0"}
    summary = description or service.doc
    if summary:
        info["description"] = summary.strip()
    return {
        "asyncapi": ASYNCAPI_VERSION,
        "info": info,
        "servers": {"default": {"url": server.rstrip("/") + path, "protocol": "ws"}},
        "defaultContentType": "application/json",
        "channels": channels,
        "components": {"messages": messages},
    }
