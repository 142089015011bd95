"""Interface-definition emitters: proto3, Connect, Smithy 2, Thrift and Cap'n Proto.

Every format gets one request and one response structure per operation,
named with the format's own suffixes::

    proto   GetUserRequest / GetUserResponse   (Connect too)
    smithy  GetUserInput   / GetUserOutput
    thrift  GetUserArgs    / GetUserResult
    capnp   GetUserParams  / GetUserResult

The view models built here are rendered through the ``idl`` template group,
so a project can replace any ``<format>.j2`` under
``.polyface/templates/idl/``.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, assert_never

from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.naming import to_camel, to_pascal, to_snake
from polyface.domain.shapes import (
    Boolean,
    BytesLike,
    Custom,
    Integer,
    ListOf,
    Number,
    OptionalOf,
    String,
    TypeShape,
)
from polyface.domain.types import Surface
from polyface.infrastructure.templates import build_template_environment
from polyface.surfaces._shared import ensure_no_streams, result_shape

logger = logging.getLogger(__name__)

SMITHY_SERVICE_VERSION = "2024-01-01"

# (bits, signed) -> type name.  ``Integer(bits=None)`` is Python's unbounded
# int and takes the widest signed type.
_PROTO_INTS: dict[tuple[int, bool], str] = {
    (8, True): "int32",
    (16, True): "int32",
    (32, True): "int32",
    (64, True): "int64",
    (8, False): "uint32",
    (16, False): "uint32",
    (32, False): "uint32",
    (64, False): "uint64",
}
_SMITHY_INTS: dict[tuple[int, bool], str] = {
    (8, True): "Byte",
    (16, True): "Short",
    (32, True): "Integer",
    (64, True): "Long",
    (8, False): "Short",
    (16, False): "Integer",
    (32, False): "Long",
    (64, False): "Long",
}
_THRIFT_INTS: dict[tuple[int, bool], str] = {
    (8, True): "byte",
    (16, True): "i16",
    (32, True): "i32",
    (64, True): "i64",
    (8, False): "i16",
    (16, False): "i32",
    (32, False): "i64",
    (64, False): "i64",
}
_CAPNP_INTS: dict[tuple[int, bool], str] = {
    (bits, signed): f"{'Int' if signed else 'UInt'}{bits}"
    for bits in (8, 16, 32, 64)
    for signed in (True, False)
}


# ── View models ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class IdlField:
    name: str
    type: str
    index: int
    prefix: str = ""
    required: bool = False


@dataclass(frozen=True)
class IdlMethod:
    name: str
    wire_name: str
    index: int
    doc: str | None
    request: str
    response: str
    request_fields: tuple[IdlField, ...]
    response_fields: tuple[IdlField, ...]


type FieldFactory = Callable[[str, TypeShape, int, bool], IdlField]


def _unwrap(shape: TypeShape) -> tuple[TypeShape, bool]:
    if isinstance(shape, OptionalOf):
        return shape.inner, True
    return shape, False


def _methods(
    service: ServiceDescriptor,
    surface: Surface,
    *,
    suffixes: tuple[str, str],
    wire_name: Callable[[str], str],
    field: FieldFactory,
    result_name: str,
    first_index: int,
    materialize_streams: bool,
) -> list[IdlMethod]:
    ensure_no_streams(service, surface, materialize=materialize_streams)
    methods: list[IdlMethod] = []
    for i, op in enumerate(service.for_surface(surface)):
        base = to_pascal(op.name)
        request_fields = tuple(
            field(p.key, p.type_shape, first_index + n, p.is_required)
            for n, p in enumerate(op.wire_params)
        )
        payload = result_shape(op)
        response_fields: tuple[IdlField, ...] = ()
        if payload is not None:
            response_fields = (field(result_name, payload, first_index, True),)
        methods.append(
            IdlMethod(
                name=base,
                wire_name=wire_name(op.name),
                index=i,
                doc=_doc(op),
                request=base + suffixes[0],
                response=base + suffixes[1],
                request_fields=request_fields,
                response_fields=response_fields,
            )
        )
    logger.debug("%s: %d methods for %s", surface, len(methods), service.name)
    return methods


def _doc(op: OperationDescriptor) -> str | None:
    return op.summary if op.doc else None


def _render(
    template: str,
    *,
    project_root: Path | None,
    template_dir: Path | None,
    **context: Any,
) -> str:
    env = build_template_environment("idl", project_root=project_root, template_dir=template_dir)
    return env.get_template(template).render(**context)


# ── proto3 ───────────────────────────────────────────────────────────


def proto_type(shape: TypeShape) -> str:
    """Scalar proto type; lists are handled by the field label."""
    match shape:
        case String():
            return "string"
        case Integer(bits=None):
            return "int64"
        case Integer(bits=bits, signed=signed):
            return _PROTO_INTS.get((bits, signed), "int64")
        case Number(bits=32):
            return "float"
        case Number():
            return "double"
        case Boolean():
            return "bool"
        case BytesLike() | Custom() | ListOf():
            return "bytes"
        case OptionalOf(inner=inner):
            return proto_type(inner)
        case _:
            assert_never(shape)


def _proto_field(key: str, shape: TypeShape, index: int, required: bool) -> IdlField:
    inner, optional = _unwrap(shape)
    if isinstance(inner, ListOf):
        return IdlField(to_snake(key), proto_type(inner.item), index, "repeated ")
    prefix = "optional " if optional or not required else ""
    return IdlField(to_snake(key), proto_type(inner), index, prefix)


def _proto_methods(service: ServiceDescriptor, *, materialize_streams: bool) -> list[IdlMethod]:
    return _methods(
        service,
        Surface.PROTO,
        suffixes=("Request", "Response"),
        wire_name=to_pascal,
        field=_proto_field,
        result_name="result",
        first_index=1,
        materialize_streams=materialize_streams,
    )


def render_proto(
    service: ServiceDescriptor,
    *,
    package: str | None = None,
    materialize_streams: bool = False,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> str:
    methods = _proto_methods(service, materialize_streams=materialize_streams)
    return _render(
        "proto.j2",
        project_root=project_root,
        template_dir=template_dir,
        package_name=package or to_snake(service.name),
        service=service.name,
        methods=methods,
    )


# ── Connect ──────────────────────────────────────────────────────────


def connect_package(service: ServiceDescriptor, package: str | None = None) -> str:
    """Versioned proto package, as buf lints it (``user_service.v1``)."""
    return package or f"{to_snake(service.name)}.v1"


def connect_procedures(service: ServiceDescriptor, *, package: str | None = None) -> list[str]:
    """``/<package>.<Service>/<Method>`` for every proto-visible operation."""
    pkg = connect_package(service, package)
    operations = service.for_surface(Surface.PROTO)
    return [f"/{pkg}.{service.name}/{to_pascal(op.name)}" for op in operations]


def render_connect(
    service: ServiceDescriptor,
    *,
    package: str | None = None,
    materialize_streams: bool = False,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> str:
    """proto3 schema for buf and Connect clients, listing each procedure path."""
    methods = _proto_methods(service, materialize_streams=materialize_streams)
    return _render(
        "connect.j2",
        project_root=project_root,
        template_dir=template_dir,
        package_name=connect_package(service, package),
        service=service.name,
        methods=methods,
    )


# ── Smithy ───────────────────────────────────────────────────────────


def smithy_type(shape: TypeShape, lists: dict[str, str]) -> str:
    """Smithy target for *shape*.  List shapes are recorded in *lists*."""
    match shape:
        case String():
            return "String"
        case Integer(bits=None):
            return "Long"
        case Integer(bits=bits, signed=signed):
            return _SMITHY_INTS.get((bits, signed), "Long")
        case Number(bits=32):
            return "Float"
        case Number():
            return "Double"
        case Boolean():
            return "Boolean"
        case BytesLike():
            return "Blob"
        case Custom():
            return "Document"
        case ListOf(item=item):
            member = smithy_type(item, lists)
            name = f"{member}List"
            lists.setdefault(name, member)
            return name
        case OptionalOf(inner=inner):
            return smithy_type(inner, lists)
        case _:
            assert_never(shape)


def render_smithy(
    service: ServiceDescriptor,
    *,
    namespace: str | None = None,
    version: str = SMITHY_SERVICE_VERSION,
    materialize_streams: bool = False,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> str:
    lists: dict[str, str] = {}

    def field(key: str, shape: TypeShape, index: int, required: bool) -> IdlField:
        inner, optional = _unwrap(shape)
        required = required and not optional
        return IdlField(to_camel(key), smithy_type(inner, lists), index, required=required)

    methods = _methods(
        service,
        Surface.SMITHY,
        suffixes=("Input", "Output"),
        wire_name=to_pascal,
        field=field,
        result_name="result",
        first_index=0,
        materialize_streams=materialize_streams,
    )
    return _render(
        "smithy.j2",
        project_root=project_root,
        template_dir=template_dir,
        package_name=namespace or f"com.example.{to_snake(service.name)}",
        service=service.name,
        version=version,
        methods=methods,
        lists=sorted(lists.items()),
    )


# ── Thrift ───────────────────────────────────────────────────────────


def thrift_type(shape: TypeShape) -> str:
    match shape:
        case String():
            return "string"
        case Integer(bits=None):
            return "i64"
        case Integer(bits=bits, signed=signed):
            return _THRIFT_INTS.get((bits, signed), "i64")
        case Number():
            return "double"
        case Boolean():
            return "bool"
        case BytesLike() | Custom():
            return "binary"
        case ListOf(item=item):
            return f"list<{thrift_type(item)}>"
        case OptionalOf(inner=inner):
            return thrift_type(inner)
        case _:
            assert_never(shape)


def _thrift_field(key: str, shape: TypeShape, index: int, required: bool) -> IdlField:
    inner, optional = _unwrap(shape)
    prefix = "optional " if optional or not required else ""
    return IdlField(to_snake(key), thrift_type(inner), index, prefix)


def render_thrift(
    service: ServiceDescriptor,
    *,
    namespace: str | None = None,
    materialize_streams: bool = False,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> str:
    methods = _methods(
        service,
        Surface.THRIFT,
        suffixes=("Args", "Result"),
        wire_name=to_snake,
        field=_thrift_field,
        result_name="result",
        first_index=1,
        materialize_streams=materialize_streams,
    )
    return _render(
        "thrift.j2",
        project_root=project_root,
        template_dir=template_dir,
        package_name=namespace or to_snake(service.name),
        service=service.name,
        methods=methods,
    )


# ── Cap'n Proto ──────────────────────────────────────────────────────


def capnp_type(shape: TypeShape) -> str:
    match shape:
        case String():
            return "Text"
        case Integer(bits=None):
            return "Int64"
        case Integer(bits=bits, signed=signed):
            return _CAPNP_INTS.get((bits, signed), "Int64")
        case Number(bits=32):
            return "Float32"
        case Number():
            return "Float64"
        case Boolean():
            return "Bool"
        case BytesLike() | Custom():
            return "Data"
        case ListOf(item=item):
            return f"List({capnp_type(item)})"
        case OptionalOf(inner=inner):
            return capnp_type(inner)
        case _:
            assert_never(shape)


def capnp_file_id(name: str) -> str:
    """Stable 64-bit file id derived from *name*; the top bit is always set."""
    digest = hashlib.sha256(name.encode()).digest()
    value = int.from_bytes(digest[:8], "big") | (1 << 63)
    return f"0x{value:016x}"


def _capnp_field(key: str, shape: TypeShape, index: int, required: bool) -> IdlField:
    inner, _ = _unwrap(shape)
    return IdlField(to_camel(key), capnp_type(inner), index)


def render_capnp(
    service: ServiceDescriptor,
    *,
    schema_id: str | None = None,
    materialize_streams: bool = False,
    project_root: Path | None = None,
    template_dir: Path | None = None,
) -> str:
    methods = _methods(
        service,
        Surface.CAPNP,
        suffixes=("Params", "Result"),
        wire_name=to_camel,
        field=_capnp_field,
        result_name="value",
        first_index=0,
        materialize_streams=materialize_streams,
    )
    return _render(
        "capnp.j2",
        project_root=project_root,
        template_dir=template_dir,
        schema_id=(schema_id or capnp_file_id(service.name)).lstrip("@"),
        service=service.name,
        methods=methods,
    )
