"""HTTP surface — routes, request handling and OpenAPI paths.

The listener loop is not ours: a server hands :meth:`HttpSurface.handle`
the method, path, query, headers and body it received and writes back the
:class:`HttpResponse`.  Route facts come from the convention engine and are
checked for duplicates and malformed paths when the surface is built.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterator, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import AsyncNotSupportedError, DispatchError
from polyface.domain.shapes import ListOf, OptionalOf, OptionOf, ResultOf, StreamOf, TypeShape, Unit
from polyface.domain.types import HttpMethod, Location, Surface
from polyface.services.composer import OpenApiOperation, OpenApiParameter, OpenApiPath
from polyface.services.conventions import (
    check_duplicate_routes,
    infer_http_method,
    infer_location,
    infer_path,
    path_param_names,
    validate_http_path,
)
from polyface.services.dispatch import (
    AsyncHandling,
    DispatchTable,
    Outcome,
    StreamPolicy,
    to_payload,
)
from polyface.services.errors import ErrorKind, OperationError
from polyface.surfaces._shared import json_schema, result_shape

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
SSE_CONTENT_TYPE = "text/event-stream"


@dataclass(frozen=True)
class Placement:
    """Where one wire parameter is read from."""

    key: str
    location: Location
    required: bool
    shape: TypeShape
    template_var: str | None = None


@dataclass(frozen=True)
class Route:
    operation: OperationDescriptor
    method: HttpMethod
    path: str
    placements: tuple[Placement, ...]
    status: int
    content_type: str
    headers: tuple[tuple[str, str], ...] = ()
    pattern: re.Pattern[str] = field(default=re.compile(""), compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.operation.name

    @property
    def hidden(self) -> bool:
        return self.operation.hidden

    def match(self, path: str) -> dict[str, str] | None:
        m = self.pattern.fullmatch(path)
        if m is None:
            return None
        names = path_param_names(self.path)
        return {names[i]: m.group(f"p{i}") for i in range(len(names))}


def _compile(path: str) -> re.Pattern[str]:
    parts: list[str] = []
    index = 0
    for segment in path.split("/"):
        if segment.startswith("{") and segment.endswith("}"):
            parts.append(f"(?P<p{index}>[^/]+)")
            index += 1
        else:
            parts.append(re.escape(segment))
    return re.compile("/".join(parts))


def _placements(op: OperationDescriptor, method: HttpMethod, path: str) -> tuple[Placement, ...]:
    """Place wire params; path params bind to template variables by name, then in order."""
    template = path_param_names(path)
    located = [(p, infer_location(p, method)) for p in op.wire_params]
    free = [v for v in template if v not in {p.key for p, loc in located if loc is Location.PATH}]

    result: list[Placement] = []
    for p, loc in located:
        var: str | None = None
        if loc is Location.PATH:
            if p.key in template:
                var = p.key
            elif free:
                var = free.pop(0)
            else:
                # No slot left in the template: the value travels in the query.
                loc = Location.QUERY
        required = True if var is not None else p.is_required
        result.append(Placement(p.key, loc, required, p.type_shape, var))
    return tuple(result)


def _success_status(op: OperationDescriptor) -> int:
    if op.response is not None and op.response.status is not None:
        return op.response.status
    return 204 if isinstance(op.return_shape, Unit) else 200


def _content_type(op: OperationDescriptor) -> str:
    if op.response is not None and op.response.content_type is not None:
        return op.response.content_type
    if isinstance(op.return_shape, StreamOf):
        return SSE_CONTENT_TYPE
    return JSON_CONTENT_TYPE


def build_routes(service: ServiceDescriptor, *, prefix: str = "") -> list[Route]:
    """Route facts for every operation not skipped on HTTP.

    Raises :class:`InvalidPathError` or :class:`DuplicateRouteError`.
    """
    routes: list[Route] = []
    for op in service.for_surface(Surface.HTTP):
        method = infer_http_method(op)
        path = infer_path(op, method, prefix=prefix)
        validate_http_path(op.name, path)
        routes.append(
            Route(
                operation=op,
                method=method,
                path=path,
                placements=_placements(op, method, path),
                status=_success_status(op),
                content_type=_content_type(op),
                headers=op.response.headers if op.response else (),
                pattern=_compile(path),
            )
        )
    check_duplicate_routes((r.name, r.method, r.path) for r in routes)
    logger.debug("Built %d HTTP routes for %s", len(routes), service.name)
    return routes


# ── OpenAPI ──────────────────────────────────────────────────────────


def _responses(route: Route) -> dict[str, Any]:
    op = route.operation
    success: dict[str, Any] = {"description": "Successful response"}
    payload = result_shape(op)
    if payload is not None:
        schema = json_schema(payload)
        if isinstance(op.return_shape, StreamOf):
            schema = {"type": "string"}
        success["content"] = {route.content_type: {"schema": schema}}
    if route.headers:
        success["headers"] = {
            name: {"description": value, "schema": {"type": "string"}}
            for name, value in route.headers
        }
    responses: dict[str, Any] = {str(route.status): success}
    if isinstance(op.return_shape, OptionOf):
        responses["404"] = {"description": "Not found"}
    if isinstance(op.return_shape, ResultOf):
        responses["400"] = {"description": "Bad request"}
        responses["500"] = {"description": "Internal server error"}
    return responses


def openapi_operation(route: Route) -> OpenApiPath:
    op = route.operation
    parameters: list[OpenApiParameter] = []
    body: dict[str, Any] = {}
    body_required: list[str] = []
    for pl in route.placements:
        schema = json_schema(pl.shape)
        match pl.location:
            case Location.PATH:
                param = OpenApiParameter.path(pl.template_var or pl.key)
                parameters.append(param.with_schema(schema))
            case Location.QUERY:
                parameters.append(OpenApiParameter.query(pl.key, pl.required).with_schema(schema))
            case Location.HEADER:
                parameters.append(OpenApiParameter.header(pl.key, pl.required).with_schema(schema))
            case Location.BODY:
                body[pl.key] = schema
                if pl.required:
                    body_required.append(pl.key)

    request_body: dict[str, Any] | None = None
    if body:
        schema_obj: dict[str, Any] = {"type": "object", "properties": body}
        if body_required:
            schema_obj["required"] = body_required
        request_body = {"required": True, "content": {JSON_CONTENT_TYPE: {"schema": schema_obj}}}

    return OpenApiPath(
        path=route.path,
        method=route.method,
        operation=OpenApiOperation(
            summary=op.summary,
            description=op.doc.strip() if op.doc else None,
            operation_id=op.name,
            tags=list(op.tags),
            deprecated=op.deprecated,
            parameters=parameters,
            request_body=request_body,
            responses=_responses(route),
        ),
    )


def openapi_paths(routes: Iterable[Route]) -> list[OpenApiPath]:
    """OpenAPI fragments for the documented routes; hidden ones are left out."""
    return [openapi_operation(r) for r in routes if not r.hidden]


# ── Request handling ─────────────────────────────────────────────────


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    stream: Iterator[str] | AsyncIterator[str] | None = None

    def content(self) -> bytes:
        """Encoded JSON body (empty for no-content and streaming responses)."""
        if self.body is None:
            return b""
        return json.dumps(self.body).encode()


def error_response(status: int, error: str, message: str) -> HttpResponse:
    return HttpResponse(
        status, {"error": error, "message": message}, {"content-type": JSON_CONTENT_TYPE}
    )


def _no_route(method: str, path: str) -> HttpResponse:
    return error_response(404, ErrorKind.NOT_FOUND.name, f"No route for {method.upper()} {path}")


def _frame(item: Any) -> str:
    return f"data: {json.dumps(item)}\n\n"


def sse_frames(stream: Iterator[Any] | AsyncIterator[Any]) -> Iterator[str] | AsyncIterator[str]:
    """Server-sent-event frames, one ``data:`` line per item."""
    if isinstance(stream, AsyncIterator):

        async def agen() -> AsyncIterator[str]:
            async for item in stream:
                yield _frame(to_payload(item))

        return agen()
    return (_frame(to_payload(item)) for item in stream)


def _decode_body(body: bytes | str | Mapping[str, Any] | None) -> Mapping[str, Any]:
    if body is None or body == b"" or body == "":
        return {}
    if isinstance(body, Mapping):
        return body
    try:
        decoded = json.loads(body)
    except json.JSONDecodeError as exc:
        raise DispatchError(f"Invalid JSON body: {exc}") from exc
    if not isinstance(decoded, dict):
        raise DispatchError("Request body must be a JSON object")
    return decoded


def _query_value(value: str | list[str], shape: TypeShape) -> Any:
    if isinstance(shape, OptionalOf):
        shape = shape.inner
    wants_list = isinstance(shape, ListOf)
    if wants_list:
        return value if isinstance(value, list) else [value]
    if isinstance(value, list):
        return value[-1] if value else None
    return value


class HttpSurface:
    """Routes plus the dispatch table that serves them.

    Usage::

        surface = HttpSurface(describe_service(Users), Users())
        response = surface.handle("GET", "/users/7")
    """

    def __init__(
        self,
        service: ServiceDescriptor,
        target: Any,
        *,
        prefix: str = "",
        handling: AsyncHandling = AsyncHandling.ERROR,
    ) -> None:
        self.service = service
        self.routes = build_routes(service, prefix=prefix)
        self.table = DispatchTable.build(
            service,
            target,
            surface=Surface.HTTP,
            streams=StreamPolicy.NATIVE,
            handling=handling,
            not_found_label="No route",
        )

    def openapi_paths(self) -> list[OpenApiPath]:
        return openapi_paths(self.routes)

    def resolve(self, method: str, path: str) -> tuple[Route, dict[str, str]] | None:
        wanted = method.upper()
        for route in self.routes:
            if route.method != wanted:
                continue
            bound = route.match(path)
            if bound is not None:
                return route, bound
        return None

    def arguments(
        self,
        route: Route,
        bound: Mapping[str, str],
        query: Mapping[str, str | list[str]],
        headers: Mapping[str, str],
        body: bytes | str | Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        ctx_headers = Context(metadata=dict(headers))
        wants_body = any(p.location is Location.BODY for p in route.placements)
        decoded = _decode_body(body) if wants_body else {}
        args: dict[str, Any] = {}
        for pl in route.placements:
            match pl.location:
                case Location.PATH if pl.template_var is not None:
                    args[pl.key] = bound[pl.template_var]
                case Location.QUERY:
                    if pl.key in query:
                        args[pl.key] = _query_value(query[pl.key], pl.shape)
                case Location.HEADER:
                    value = ctx_headers.header(pl.key)
                    if value is not None:
                        args[pl.key] = value
                case Location.BODY:
                    if pl.key in decoded:
                        args[pl.key] = decoded[pl.key]
        return args

    def _project(self, route: Route, outcome: Outcome) -> HttpResponse:
        headers = {"content-type": route.content_type, **dict(route.headers)}
        if outcome.error is not None:
            return self._operation_error(outcome.error)
        match route.operation.return_shape:
            case Unit():
                return HttpResponse(route.status, None, dict(route.headers))
            case OptionOf() if outcome.absent:
                return error_response(404, ErrorKind.NOT_FOUND.name, "Not found")
            case StreamOf() if outcome.stream is not None:
                return HttpResponse(route.status, None, headers, sse_frames(outcome.stream))
            case _:
                return HttpResponse(route.status, outcome.value, headers)

    @staticmethod
    def _operation_error(err: OperationError) -> HttpResponse:
        return HttpResponse(
            err.kind.http_status,
            {"error": err.debug, "message": err.message},
            {"content-type": JSON_CONTENT_TYPE},
        )

    def handle(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str | list[str]] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | str | Mapping[str, Any] | None = None,
    ) -> HttpResponse:
        found = self.resolve(method, path)
        if found is None:
            return _no_route(method, path)
        route, bound = found
        headers = headers or {}
        try:
            args = self.arguments(route, bound, query or {}, headers, body)
            outcome = self.table.dispatch(route.name, args, Context.from_headers(headers))
        except AsyncNotSupportedError as exc:
            return error_response(500, "Internal", str(exc))
        except DispatchError as exc:
            return error_response(400, "InvalidInput", str(exc))
        except Exception as exc:
            logger.exception("Operation %s failed", route.name)
            return error_response(500, "Internal", str(exc))
        return self._project(route, outcome)

    async def handle_async(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str | list[str]] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | str | Mapping[str, Any] | None = None,
    ) -> HttpResponse:
        found = self.resolve(method, path)
        if found is None:
            return _no_route(method, path)
        route, bound = found
        headers = headers or {}
        try:
            args = self.arguments(route, bound, query or {}, headers, body)
            ctx = Context.from_headers(headers)
            outcome = await self.table.dispatch_async(route.name, args, ctx)
        except DispatchError as exc:
            return error_response(400, "InvalidInput", str(exc))
        except Exception as exc:
            logger.exception("Operation %s failed", route.name)
            return error_response(500, "Internal", str(exc))
        return self._project(route, outcome)
