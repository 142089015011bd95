"""Dispatch & response projection — shared by every message-style surface.

A :class:`DispatchTable` maps an external operation name to an
:class:`OperationBinding`: the descriptor, an extraction plan (one
:class:`ParamPlan` per parameter, each with a pydantic ``TypeAdapter``),
the bound callable, and the projection rules of its return shape.  Tables
are built once and only read afterwards, so concurrent calls need no
locking.

Projection by return shape:

    Unit          -> {"success": true}
    Result ok/err -> ok payload / OperationError(kind, message)
    Option        -> payload / absent marker
    Plain         -> payload
    Stream        -> live iterator (HTTP) or a materialized list (opt-in)
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import typing
from collections.abc import AsyncIterator, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import pydantic_core
from pydantic import TypeAdapter, ValidationError

from polyface.domain.context import Context
from polyface.domain.descriptors import OperationDescriptor, ParamDescriptor, ServiceDescriptor
from polyface.domain.exceptions import (
    AsyncNotSupportedError,
    DescriptorLoadError,
    DispatchError,
    DuplicateOperationError,
    MethodNotFoundError,
    StreamingUnsupportedError,
)
from polyface.domain.results import Err, Ok
from polyface.domain.shapes import (
    OptionOf,
    Plain,
    ResultOf,
    StreamOf,
    Unit,
    python_type,
    return_kind,
)
from polyface.domain.types import Location
from polyface.services.errors import OperationError
from polyface.services.telemetry import trace_span

logger = logging.getLogger(__name__)

SUCCESS_MARKER: dict[str, Any] = {"success": True}


class AsyncHandling(StrEnum):
    """What the synchronous path does with an async operation."""

    ERROR = "error"
    BLOCK_ON = "block_on"


class StreamPolicy(StrEnum):
    """How a surface treats ``Stream`` returns."""

    REJECT = "reject"
    MATERIALIZE = "materialize"
    NATIVE = "native"


def to_payload(value: Any) -> Any:
    """JSON-safe form of an operation result."""
    return pydantic_core.to_jsonable_python(value)


# ── Outcome ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Outcome:
    """Projected result of one call, before protocol encoding.

    Attributes:
        kind: Return-shape label (``unit``, ``result``, ``option``, ...).
        value: JSON-safe payload (the success marker for ``unit``).
        error: Set when a Result-shaped operation returned ``Err``.
        absent: True when an Option-shaped operation returned nothing.
        stream: Live iterator for surfaces that stream natively.
    """

    kind: str
    value: Any = None
    error: OperationError | None = None
    absent: bool = False
    stream: Iterator[Any] | AsyncIterator[Any] | None = None

    def payload(self) -> Any:
        """Message-protocol projection; raises :class:`OperationError` on ``Err``."""
        if self.error is not None:
            raise self.error
        return self.value


# ── Extraction ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ParamPlan:
    param: ParamDescriptor
    adapter: TypeAdapter[Any] | None
    default: Any = None

    def extract(self, args: Mapping[str, Any], context: Context | None) -> Any:
        p = self.param
        if p.is_context:
            return context if context is not None else Context()
        if self.adapter is None:
            raise DispatchError(f"No decoder for parameter: {p.key}")

        present = p.key in args
        value = args.get(p.key)

        if p.location_override is Location.PATH and value is None:
            raise DispatchError(f"Missing required parameter: {p.key}")

        if p.is_optional:
            if not present and p.has_default:
                return self.default
            if value is None:
                return None
            try:
                return self.adapter.validate_python(value)
            except ValidationError:
                logger.debug("Optional parameter %s dropped: undecodable value", p.key)
                return None

        if not present:
            if p.has_default:
                return self.default
            raise DispatchError(f"Missing required parameter: {p.key}")
        try:
            return self.adapter.validate_python(value)
        except ValidationError as exc:
            detail = "; ".join(e["msg"] for e in exc.errors()) or str(exc)
            raise DispatchError(f"Invalid parameter {p.key}: {detail}") from exc


def _type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except Exception:
        # Unresolvable forward references fall back to shape-derived types.
        return {}


def _plan(param: ParamDescriptor, hints: Mapping[str, Any]) -> ParamPlan:
    if param.is_context:
        return ParamPlan(param, None)
    hint = hints.get(param.name, python_type(param.type_shape))
    try:
        adapter: TypeAdapter[Any] = TypeAdapter(hint)
    except Exception:
        adapter = TypeAdapter(python_type(param.type_shape))
    default: Any = None
    if param.default_literal is not None:
        try:
            default = adapter.validate_json(param.default_literal)
        except ValidationError:
            default = json.loads(param.default_literal)
    return ParamPlan(param, adapter, default)


# ── Binding ──────────────────────────────────────────────────────────


def _collect_async(stream: AsyncIterator[Any]) -> Any:
    async def collect() -> list[Any]:
        return [item async for item in stream]

    return collect()


@dataclass(frozen=True)
class OperationBinding:
    descriptor: OperationDescriptor
    func: Callable[..., Any]
    plans: tuple[ParamPlan, ...]
    streams: StreamPolicy = StreamPolicy.REJECT

    def arguments(
        self, args: Mapping[str, Any] | Sequence[Any] | None, context: Context | None
    ) -> dict[str, Any]:
        """Extract keyword arguments; positional sequences bind in call-site order."""
        if args is None:
            mapping: Mapping[str, Any] = {}
        elif isinstance(args, Mapping):
            mapping = args
        else:
            keys = [p.key for p in self.descriptor.wire_params]
            mapping = dict(zip(keys, args, strict=False))
        return {plan.param.name: plan.extract(mapping, context) for plan in self.plans}

    def call(
        self,
        args: Mapping[str, Any] | Sequence[Any] | None = None,
        context: Context | None = None,
        *,
        handling: AsyncHandling = AsyncHandling.ERROR,
    ) -> Outcome:
        """Synchronous path.  Async operations are refused before extraction."""
        if self.descriptor.is_async and handling is AsyncHandling.ERROR:
            raise AsyncNotSupportedError()
        kwargs = self.arguments(args, context)
        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = asyncio.run(_await(result))
        if isinstance(result, AsyncIterator) and self.streams is StreamPolicy.MATERIALIZE:
            return self.project(asyncio.run(_collect_async(result)))
        return self.project(result)

    async def call_async(
        self,
        args: Mapping[str, Any] | Sequence[Any] | None = None,
        context: Context | None = None,
    ) -> Outcome:
        kwargs = self.arguments(args, context)
        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, AsyncIterator) and self.streams is StreamPolicy.MATERIALIZE:
            result = await _collect_async(result)
        return self.project(result)

    def project(self, result: Any) -> Outcome:
        """Project a raw return value according to the descriptor's return shape."""
        shape = self.descriptor.return_shape
        kind = return_kind(shape)
        match shape:
            case Unit():
                return Outcome(kind, dict(SUCCESS_MARKER))
            case ResultOf():
                if isinstance(result, Err):
                    return Outcome(kind, error=OperationError.from_error(result.error))
                if isinstance(result, Ok):
                    result = result.value
                return Outcome(kind, to_payload(result))
            case OptionOf():
                if result is None:
                    return Outcome(kind, None, absent=True)
                return Outcome(kind, to_payload(result))
            case StreamOf():
                if self.streams is StreamPolicy.NATIVE:
                    return Outcome(kind, stream=result)
                return Outcome(kind, [to_payload(item) for item in result])
            case Plain():
                return Outcome(kind, to_payload(result))


async def _await(awaitable: Any) -> Any:
    return await awaitable


# ── Table ────────────────────────────────────────────────────────────


def external_names(
    operations: Sequence[OperationDescriptor], naming: Callable[[str], str] | None = None
) -> dict[str, OperationDescriptor]:
    """External name -> operation.  Raises :class:`DuplicateOperationError` on a collision."""
    names: dict[str, OperationDescriptor] = {}
    for op in operations:
        external = naming(op.name) if naming else op.name
        if external in names:
            raise DuplicateOperationError(op.name, other=names[external].name, external=external)
        names[external] = op
    return names


@dataclass(frozen=True)
class DispatchTable:
    """Name -> binding mapping for one surface, built once per service.

    Usage::

        table = DispatchTable.build(service, Calculator(), surface="jsonrpc")
        table.dispatch("add", {"a": 1, "b": 2}).payload()   # 3
    """

    service: ServiceDescriptor
    surface: str
    bindings: dict[str, OperationBinding] = field(default_factory=dict)
    not_found_label: str = "Unknown method"
    handling: AsyncHandling = AsyncHandling.ERROR

    @classmethod
    def build(
        cls,
        service: ServiceDescriptor,
        target: Any,
        *,
        surface: str,
        streams: StreamPolicy = StreamPolicy.REJECT,
        handling: AsyncHandling = AsyncHandling.ERROR,
        naming: Callable[[str], str] | None = None,
        not_found_label: str = "Unknown method",
    ) -> DispatchTable:
        """Bind every operation of *service* not skipped on *surface* to *target*.

        Raises :class:`StreamingUnsupportedError` when a stream-returning
        operation meets ``StreamPolicy.REJECT``.  Raises :class:`DuplicateOperationError`
        when *naming* maps two operations to the same external name.
        """
        bindings: dict[str, OperationBinding] = {}
        for external, op in external_names(service.for_surface(surface), naming).items():
            if isinstance(op.return_shape, StreamOf) and streams is StreamPolicy.REJECT:
                raise StreamingUnsupportedError(op.name, surface)
            func = getattr(target, op.name, None)
            if func is None or not callable(func):
                raise DescriptorLoadError(f"Target has no callable for operation '{op.name}'")
            hints = _type_hints(func)
            plans = tuple(_plan(p, hints) for p in op.params)
            bindings[external] = OperationBinding(op, func, plans, streams)
        logger.debug("Dispatch table for %s/%s: %s", service.name, surface, sorted(bindings))
        return cls(service, surface, bindings, not_found_label, handling)

    def names(self) -> list[str]:
        return list(self.bindings)

    def __contains__(self, name: object) -> bool:
        return name in self.bindings

    def binding(self, name: str) -> OperationBinding:
        found = self.bindings.get(name)
        if found is None:
            logger.debug("Dispatch miss on %s: %s", self.surface, name)
            raise MethodNotFoundError(self.not_found_label, name)
        return found

    def dispatch(
        self,
        name: str,
        args: Mapping[str, Any] | Sequence[Any] | None = None,
        context: Context | None = None,
    ) -> Outcome:
        binding = self.binding(name)
        with trace_span(f"{self.surface}.{name}") as span:
            outcome = binding.call(args, context, handling=self.handling)
            if span is not None:
                span.annotate("kind", outcome.kind)
        return outcome

    async def dispatch_async(
        self,
        name: str,
        args: Mapping[str, Any] | Sequence[Any] | None = None,
        context: Context | None = None,
    ) -> Outcome:
        binding = self.binding(name)
        with trace_span(f"{self.surface}.{name}") as span:
            outcome = await binding.call_async(args, context)
            if span is not None:
                span.annotate("kind", outcome.kind)
        return outcome
