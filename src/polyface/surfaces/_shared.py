"""Helpers shared by several surfaces."""

from __future__ import annotations

from typing import Any, assert_never

from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.exceptions import StreamingUnsupportedError
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


def json_type(shape: TypeShape) -> str:
    """JSON Schema ``type`` keyword for *shape* (optional layers unwrapped)."""
    match shape:
        case String() | BytesLike():
            return "string"
        case Integer():
            return "integer"
        case Number():
            return "number"
        case Boolean():
            return "boolean"
        case ListOf():
            return "array"
        case OptionalOf(inner=inner):
            return json_type(inner)
        case Custom():
            return "object"
        case _:
            assert_never(shape)


def json_schema(shape: TypeShape) -> dict[str, Any]:
    """JSON Schema fragment for *shape*.  ``Custom`` stays an opaque object."""
    match shape:
        case ListOf(item=item):
            return {"type": "array", "items": json_schema(item)}
        case OptionalOf(inner=inner):
            return json_schema(inner)
        case BytesLike():
            return {"type": "string", "format": "byte"}
        case Integer(bits=bits) if bits is not None:
            return {"type": "integer", "format": f"int{bits}" if bits >= 32 else "int32"}
        case _:
            return {"type": json_type(shape)}


def result_shape(op: OperationDescriptor) -> TypeShape | None:
    """Payload shape of a return, or None for ``Unit``."""
    shape = op.return_shape
    match shape:
        case Unit():
            return None
        case ResultOf(ok=ok):
            return ok
        case OptionOf(inner=inner):
            return OptionalOf(inner)
        case StreamOf(item=item):
            return ListOf(item)
        case Plain(shape=inner):
            return inner
        case _:
            assert_never(shape)


def ensure_no_streams(
    service: ServiceDescriptor, surface: str, *, materialize: bool = False
) -> None:
    """Reject stream-returning operations on a surface that cannot carry them."""
    if materialize:
        return
    for op in service.for_surface(surface):
        if isinstance(op.return_shape, StreamOf):
            raise StreamingUnsupportedError(op.name, surface)
