"""Operation descriptor model — the canonical, protocol-neutral operation.

Descriptors are built once per service by :mod:`polyface.services.analysis`
and never mutated; every surface reads the same instances.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from polyface.domain.exceptions import DuplicateParameterError
from polyface.domain.shapes import OptionalOf, ReturnShape, TypeShape
from polyface.domain.types import HttpMethod, Location, Surface


@dataclass(frozen=True)
class RouteOverride:
    method: HttpMethod | None = None
    path: str | None = None


@dataclass(frozen=True)
class ResponseOverride:
    status: int | None = None
    content_type: str | None = None
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ParamDescriptor:
    """One parameter of an operation.

    Attributes:
        name: Python parameter name.
        type_text: Raw annotation text, kept for context disambiguation.
        type_shape: Classified shape of ``type_text``.
        wire_name: Externally visible name, if different from ``name``.
        location_override: Explicit HTTP placement, bypassing conventions.
        default_literal: JSON text of the default value, if any.
        is_context: Set by the context decision pass; injected parameters
            are excluded from every external schema.
    """

    name: str
    type_text: str
    type_shape: TypeShape
    wire_name: str | None = None
    location_override: Location | None = None
    default_literal: str | None = None
    is_context: bool = False

    @property
    def key(self) -> str:
        return self.wire_name or self.name

    @property
    def is_optional(self) -> bool:
        return isinstance(self.type_shape, OptionalOf)

    @property
    def is_identifier_like(self) -> bool:
        return self.name == "id" or self.name.endswith("_id")

    @property
    def has_default(self) -> bool:
        return self.default_literal is not None

    @property
    def is_required(self) -> bool:
        if self.location_override is Location.PATH:
            return True
        return not self.is_optional and not self.has_default

    @property
    def value_shape(self) -> TypeShape:
        """Shape with one ``OptionalOf`` layer removed."""
        if isinstance(self.type_shape, OptionalOf):
            return self.type_shape.inner
        return self.type_shape


@dataclass(frozen=True)
class OperationDescriptor:
    name: str
    params: tuple[ParamDescriptor, ...]
    return_shape: ReturnShape
    doc: str | None = None
    is_async: bool = False
    skip: frozenset[str] = frozenset()
    hidden: bool = False
    route: RouteOverride | None = None
    response: ResponseOverride | None = None
    tags: tuple[str, ...] = ()
    deprecated: bool = False

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for p in self.params:
            if p.name in seen:
                raise DuplicateParameterError(self.name, p.name)
            seen.add(p.name)

    @property
    def summary(self) -> str:
        """First line of the docstring, or the operation name."""
        if self.doc:
            return self.doc.strip().splitlines()[0]
        return self.name

    @property
    def description(self) -> str:
        return self.doc.strip() if self.doc else self.name

    @property
    def wire_params(self) -> tuple[ParamDescriptor, ...]:
        """Parameters that are part of the external contract."""
        return tuple(p for p in self.params if not p.is_context)

    @property
    def context_param(self) -> ParamDescriptor | None:
        for p in self.params:
            if p.is_context:
                return p
        return None

    def skipped_on(self, surface: str) -> bool:
        return Surface.ALL in self.skip or surface in self.skip


@dataclass(frozen=True)
class ServiceDescriptor:
    """All operations of one service, after context disambiguation."""

    name: str
    operations: tuple[OperationDescriptor, ...]
    doc: str | None = None
    has_qualified_context: bool = False
    _index: dict[str, OperationDescriptor] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._index.update({op.name: op for op in self.operations})

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def get(self, name: str) -> OperationDescriptor | None:
        return self._index.get(name)

    def for_surface(self, surface: str) -> tuple[OperationDescriptor, ...]:
        """Operations not skipped on *surface*, in declaration order."""
        return tuple(op for op in self.operations if not op.skipped_on(surface))
