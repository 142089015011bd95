"""GraphQL surface — SDL, resolvers and field execution.

Operations split into ``Query`` and ``Mutation`` by name prefix (see
:func:`polyface.services.conventions.graphql_kind`).  Field and argument
names are camelCase.  ``Custom`` shapes map to a ``JSON`` scalar, which is
declared only when used.  A service with mutations but no queries gets a
placeholder ``Query`` field so the schema stays valid.  Query execution
itself belongs to whatever GraphQL engine consumes :meth:`GraphQLSurface.resolvers`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, assert_never

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import PolyfaceError
from polyface.domain.naming import to_camel
from polyface.domain.shapes import (
    Boolean,
    BytesLike,
    Custom,
    Integer,
    ListOf,
    Number,
    OptionalOf,
    OptionOf,
    Plain,
    ResultOf,
    StreamOf,
    String,
    TypeShape,
    Unit,
)
from polyface.domain.types import GraphQLKind, Surface
from polyface.services.composer import OpenApiOperation, OpenApiPath
from polyface.services.conventions import graphql_kind
from polyface.services.dispatch import (
    AsyncHandling,
    DispatchTable,
    Outcome,
    StreamPolicy,
    external_names,
)
from polyface.surfaces._shared import ensure_no_streams

logger = logging.getLogger(__name__)

JSON_SCALAR = "JSON"
GRAPHQL_PATH = "/graphql"
# A schema must declare a Query type; mutation-only services get this field.
EMPTY_QUERY_FIELD = "_empty"


class GraphQLFieldError(PolyfaceError):
    """Raised by :meth:`GraphQLSurface.execute_field`; engines report it in ``errors``."""


def graphql_type(shape: TypeShape) -> str:
    """Named type for *shape*, non-null unless optional."""
    match shape:
        case OptionalOf(inner=inner):
            return graphql_type(inner).removesuffix("!")
        case String() | BytesLike():
            return "String!"
        case Integer():
            return "Int!"
        case Number():
            return "Float!"
        case Boolean():
            return "Boolean!"
        case ListOf(item=item):
            return f"[{graphql_type(item)}]!"
        case Custom():
            return f"{JSON_SCALAR}!"
        case _:
            assert_never(shape)


def graphql_return_type(op: OperationDescriptor) -> str:
    shape = op.return_shape
    match shape:
        case Unit():
            return "Boolean!"
        case ResultOf(ok=ok):
            return graphql_type(ok)
        case OptionOf(inner=inner):
            return graphql_type(OptionalOf(inner))
        case StreamOf(item=item):
            return graphql_type(ListOf(item))
        case Plain(shape=inner):
            return graphql_type(inner)
        case _:
            assert_never(shape)


def _arg_names(op: OperationDescriptor) -> dict[str, str]:
    """camelCase argument name -> wire key."""
    return {to_camel(p.key): p.key for p in op.wire_params}


def _has_custom(shape: TypeShape) -> bool:
    match shape:
        case Custom():
            return True
        case ListOf(item=inner) | OptionalOf(inner=inner):
            return _has_custom(inner)
        case _:
            return False


def _uses_custom(op: OperationDescriptor) -> bool:
    return JSON_SCALAR in graphql_return_type(op) or any(
        _has_custom(p.type_shape) for p in op.wire_params
    )


def _field_sdl(op: OperationDescriptor) -> str:
    lines: list[str] = []
    if op.doc:
        lines.append(f'  """{op.summary}"""')
    args = ", ".join(f"{to_camel(p.key)}: {graphql_type(p.type_shape)}" for p in op.wire_params)
    signature = f"({args})" if args else ""
    deprecated = " @deprecated" if op.deprecated else ""
    lines.append(f"  {to_camel(op.name)}{signature}: {graphql_return_type(op)}{deprecated}")
    return "\n".join(lines)


def graphql_sdl(service: ServiceDescriptor, *, materialize_streams: bool = False) -> str:
    """Schema definition language for *service*."""
    ensure_no_streams(service, Surface.GRAPHQL, materialize=materialize_streams)
    ops = list(external_names(service.for_surface(Surface.GRAPHQL), to_camel).values())
    queries = [op for op in ops if graphql_kind(op.name) is GraphQLKind.QUERY]
    mutations = [op for op in ops if graphql_kind(op.name) is GraphQLKind.MUTATION]

    blocks: list[str] = []
    if any(_uses_custom(op) for op in ops):
        blocks.append(f"scalar {JSON_SCALAR}")
    if queries:
        blocks.append("type Query {\n" + "\n".join(_field_sdl(op) for op in queries) + "\n}")
    elif mutations:
        blocks.append(
            f'type Query {{\n  """No queries: this service only has mutations."""\n'
            f"  {EMPTY_QUERY_FIELD}: Boolean\n}}"
        )
    if mutations:
        blocks.append("type Mutation {\n" + "\n".join(_field_sdl(op) for op in mutations) + "\n}")
    return "\n\n".join(blocks) + "\n"


def graphql_openapi_paths() -> list[OpenApiPath]:
    """The query endpoint and playground page, for composition into OpenAPI."""
    query_schema = {
        "type": "object",
        "required": ["query"],
        "properties": {
            "query": {"type": "string", "description": "GraphQL query string"},
            "operationName": {"type": "string", "description": "Optional operation name"},
            "variables": {"type": "object", "description": "Optional query variables"},
        },
    }
    response_schema = {
        "type": "object",
        "properties": {
            "data": {},
            "errors": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "message": {"type": "string"},
                        "locations": {"type": "array"},
                        "path": {"type": "array"},
                    },
                },
            },
        },
    }
    return [
        OpenApiPath(
            path=GRAPHQL_PATH,
            method="post",
            operation=OpenApiOperation(
                summary="GraphQL query endpoint",
                operation_id="graphql_query",
                request_body={
                    "required": True,
                    "content": {"application/json": {"schema": query_schema}},
                },
                responses={
                    "200": {
                        "description": "GraphQL response",
                        "content": {"application/json": {"schema": response_schema}},
                    }
                },
            ),
        ),
        OpenApiPath(
            path=GRAPHQL_PATH,
            method="get",
            operation=OpenApiOperation(
                summary="GraphQL Playground",
                operation_id="graphql_playground",
                responses={
                    "200": {
                        "description": "GraphQL Playground HTML page",
                        "content": {"text/html": {"schema": {"type": "string"}}},
                    }
                },
            ),
        ),
    ]


def _field_value(outcome: Outcome) -> Any:
    """Unit operations resolve to ``true``; everything else to its payload."""
    value = outcome.payload()
    return True if outcome.kind == "unit" else value


type Resolver = Callable[[Mapping[str, Any], Context | None], Any]


class GraphQLSurface:
    def __init__(
        self,
        service: ServiceDescriptor,
        target: Any,
        *,
        materialize_streams: bool = False,
        handling: AsyncHandling = AsyncHandling.ERROR,
    ) -> None:
        self.service = service
        self.materialize_streams = materialize_streams
        self.table = DispatchTable.build(
            service,
            target,
            surface=Surface.GRAPHQL,
            streams=StreamPolicy.MATERIALIZE if materialize_streams else StreamPolicy.REJECT,
            handling=handling,
            naming=to_camel,
        )
        self._kinds = {
            to_camel(op.name): graphql_kind(op.name) for op in service.for_surface(Surface.GRAPHQL)
        }
        self._args = {
            to_camel(op.name): _arg_names(op) for op in service.for_surface(Surface.GRAPHQL)
        }

    def graphql_sdl(self) -> str:
        return graphql_sdl(self.service, materialize_streams=self.materialize_streams)

    def _lookup(self, kind: GraphQLKind, field: str) -> dict[str, str]:
        if self._kinds.get(field) is not kind:
            raise GraphQLFieldError(f"Unknown {kind}: {field}")
        return self._args[field]

    def _wire_args(self, names: Mapping[str, str], args: Mapping[str, Any]) -> dict[str, Any]:
        return {names.get(k, k): v for k, v in args.items()}

    def execute_field(
        self,
        kind: GraphQLKind,
        field: str,
        args: Mapping[str, Any] | None = None,
        context: Context | None = None,
    ) -> Any:
        """Resolve one top-level field.  Errors become :class:`GraphQLFieldError`."""
        names = self._lookup(kind, field)
        try:
            outcome = self.table.dispatch(field, self._wire_args(names, args or {}), context)
            return _field_value(outcome)
        except PolyfaceError as exc:
            raise GraphQLFieldError(str(exc)) from exc

    async def execute_field_async(
        self,
        kind: GraphQLKind,
        field: str,
        args: Mapping[str, Any] | None = None,
        context: Context | None = None,
    ) -> Any:
        names = self._lookup(kind, field)
        try:
            wire = self._wire_args(names, args or {})
            outcome = await self.table.dispatch_async(field, wire, context)
            return _field_value(outcome)
        except PolyfaceError as exc:
            raise GraphQLFieldError(str(exc)) from exc

    def resolvers(self) -> dict[str, dict[str, Resolver]]:
        """``{"Query": {field: fn}, "Mutation": {...}}`` for an executing engine."""
        out: dict[str, dict[str, Resolver]] = {}
        for field, kind in self._kinds.items():
            type_name = "Query" if kind is GraphQLKind.QUERY else "Mutation"
            out.setdefault(type_name, {})[field] = self._resolver(kind, field)
        return out

    def _resolver(self, kind: GraphQLKind, field: str) -> Resolver:
        def resolve(args: Mapping[str, Any], context: Context | None = None) -> Any:
            return self.execute_field(kind, field, args, context)

        return resolve
