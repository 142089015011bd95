"""JSON-RPC 2.0 surface and its OpenRPC document.

Envelope rules:

* a request without ``id`` is a notification: dispatched, never answered;
* a batch answers its non-notification entries in request order, and an
  all-notification batch answers :data:`NO_CONTENT` (HTTP 204 for the
  transport), never an empty array;
* version and method problems are ``-32600``, unknown methods and every
  dispatch or operation failure are ``-32603``, unparsable text is
  ``-32700``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Final

from polyface.domain.context import Context
from polyface.domain.descriptors import ServiceDescriptor
from polyface.domain.naming import to_camel
from polyface.domain.types import Surface
from polyface.services.dispatch import (
    AsyncHandling,
    DispatchTable,
    StreamPolicy,
    external_names,
)
from polyface.surfaces._shared import ensure_no_streams, json_schema, result_shape

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
OPENRPC_VERSION = "1.0.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603


class _NoContent:
    def __repr__(self) -> str:
        return "NO_CONTENT"

    def __bool__(self) -> bool:
        return False


NO_CONTENT: Final = _NoContent()

type Reply = dict[str, Any] | list[dict[str, Any]] | _NoContent


def error_envelope(code: int, message: str, id_: Any = None) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "error": {"code": code, "message": message}, "id": id_}


def result_envelope(result: Any, id_: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": id_}


class JsonRpcSurface:
    """Usage::

    rpc = JsonRpcSurface(describe_service(Calc), Calc())
    rpc.handle({"jsonrpc": "2.0", "method": "add", "params": {"a": 1, "b": 2}, "id": 1})
    # {"jsonrpc": "2.0", "result": 3, "id": 1}
    """

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
            surface=Surface.JSONRPC,
            streams=StreamPolicy.MATERIALIZE if materialize_streams else StreamPolicy.REJECT,
            handling=handling,
            not_found_label="Method not found",
        )

    def methods(self) -> list[str]:
        return self.table.names()

    # ── Envelope ─────────────────────────────────────────────────────

    @staticmethod
    def _decode(payload: str | bytes | Any) -> tuple[Any, dict[str, Any] | None]:
        if not isinstance(payload, str | bytes):
            return payload, None
        try:
            return json.loads(payload), None
        except json.JSONDecodeError:
            return None, error_envelope(PARSE_ERROR, "Parse error")

    @staticmethod
    def _validate(request: Any) -> tuple[str | None, Any, dict[str, Any] | None, bool]:
        """``(method, params, early error, is_notification)`` for one request."""
        if not isinstance(request, Mapping):
            return None, None, error_envelope(INVALID_REQUEST, "Invalid Request"), False
        notification = "id" not in request
        id_ = request.get("id")
        if request.get("jsonrpc") != JSONRPC_VERSION:
            err = error_envelope(INVALID_REQUEST, "Invalid Request: missing jsonrpc 2.0", id_)
            return None, None, err, notification
        method = request.get("method")
        if not isinstance(method, str):
            err = error_envelope(INVALID_REQUEST, "Invalid Request: missing method", id_)
            return None, None, err, notification
        params = request.get("params")
        return method, {} if params is None else params, None, notification

    def _call(self, method: str, params: Any, context: Context | None) -> tuple[Any, str | None]:
        if not isinstance(params, Mapping | list):
            return None, "Invalid params: expected an object or an array"
        try:
            return self.table.dispatch(method, params, context).payload(), None
        except Exception as exc:
            logger.debug("JSON-RPC %s failed: %s", method, exc)
            return None, str(exc)

    async def _call_async(
        self, method: str, params: Any, context: Context | None
    ) -> tuple[Any, str | None]:
        if not isinstance(params, Mapping | list):
            return None, "Invalid params: expected an object or an array"
        try:
            outcome = await self.table.dispatch_async(method, params, context)
            return outcome.payload(), None
        except Exception as exc:
            logger.debug("JSON-RPC %s failed: %s", method, exc)
            return None, str(exc)

    def handle_single(self, request: Any, context: Context | None = None) -> dict[str, Any] | None:
        """One request; None for a notification."""
        method, params, early, notification = self._validate(request)
        if early is not None or method is None:
            return None if notification else early
        result, error = self._call(method, params, context)
        if notification:
            return None
        id_ = request.get("id")
        if error is not None:
            return error_envelope(INTERNAL_ERROR, error, id_)
        return result_envelope(result, id_)

    async def handle_single_async(
        self, request: Any, context: Context | None = None
    ) -> dict[str, Any] | None:
        method, params, early, notification = self._validate(request)
        if early is not None or method is None:
            return None if notification else early
        result, error = await self._call_async(method, params, context)
        if notification:
            return None
        id_ = request.get("id")
        if error is not None:
            return error_envelope(INTERNAL_ERROR, error, id_)
        return result_envelope(result, id_)

    @staticmethod
    def _collect(replies: list[dict[str, Any] | None]) -> Reply:
        answered = [r for r in replies if r is not None]
        return answered if answered else NO_CONTENT

    def handle(self, payload: Any, context: Context | None = None) -> Reply:
        """Answer a request, a batch, or raw JSON text."""
        request, parse_error = self._decode(payload)
        if parse_error is not None:
            return parse_error
        if isinstance(request, list):
            if not request:
                return error_envelope(INVALID_REQUEST, "Invalid Request: empty batch")
            return self._collect([self.handle_single(r, context) for r in request])
        reply = self.handle_single(request, context)
        return NO_CONTENT if reply is None else reply

    async def handle_async(self, payload: Any, context: Context | None = None) -> Reply:
        """Like :meth:`handle`; batch entries run concurrently, replies keep request order."""
        request, parse_error = self._decode(payload)
        if parse_error is not None:
            return parse_error
        if isinstance(request, list):
            if not request:
                return error_envelope(INVALID_REQUEST, "Invalid Request: empty batch")
            replies = await asyncio.gather(*(self.handle_single_async(r, context) for r in request))
            return self._collect(list(replies))
        reply = await self.handle_single_async(request, context)
        return NO_CONTENT if reply is None else reply


# ── OpenRPC ──────────────────────────────────────────────────────────


def openrpc_document(
    service: ServiceDescriptor,
    *,
    title: str | None = None,
    version: str = "0.1.0",
    materialize_streams: bool = False,
) -> dict[str, Any]:
    """OpenRPC 1.0 description; method and parameter names are camelCase."""
    ensure_no_streams(service, Surface.OPENRPC, materialize=materialize_streams)
    methods: list[dict[str, Any]] = []
    operations = external_names(service.for_surface(Surface.OPENRPC), to_camel)
    for name, op in operations.items():
        payload = result_shape(op)
        methods.append(
            {
                "name": name,
                "description": op.doc.strip() if op.doc else "",
                "params": [
                    {
                        "name": to_camel(p.key),
                        "required": p.is_required,
                        "schema": json_schema(p.type_shape),
                    }
                    for p in op.wire_params
                ],
                "result": {
                    "name": "result",
                    "schema": json_schema(payload) if payload is not None else {"type": "null"},
                },
            }
        )
    return {
        "openrpc": OPENRPC_VERSION,
        "info": {"title": title or service.name, "version": version},
        "methods": methods,
    }
