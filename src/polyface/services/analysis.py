"""Descriptor analysis — Python services and service files to descriptors.

Two sources produce the same canonical :class:`ServiceDescriptor`:

* a Python class (or instance): public methods in definition order, read
  through :func:`inspect.signature` plus any :mod:`polyface.domain.markers`
  overrides;
* a declarative TOML or JSON service file validated with pydantic.

Either way the context decision pass runs over the whole operation set
before the service descriptor is returned.
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import pydantic_core
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from polyface.domain.context import Context
from polyface.domain.descriptors import (
    OperationDescriptor,
    ParamDescriptor,
    ResponseOverride,
    RouteOverride,
    ServiceDescriptor,
)
from polyface.domain.exceptions import DescriptorLoadError, DuplicateOperationError
from polyface.domain.markers import Markers, markers_of
from polyface.domain.shapes import classify_return, classify_type
from polyface.domain.types import HttpMethod, Location, Surface
from polyface.services.context import resolve_context

logger = logging.getLogger(__name__)


def build_service(
    name: str,
    operations: list[OperationDescriptor],
    *,
    doc: str | None = None,
) -> ServiceDescriptor:
    """Run context disambiguation over *operations* and freeze the service.

    Raises :class:`DuplicateOperationError` when two operations share a name.
    """
    seen: set[str] = set()
    for op in operations:
        if op.name in seen:
            raise DuplicateOperationError(op.name)
        seen.add(op.name)
    resolved, has_qualified = resolve_context(operations)
    logger.debug("Analysed service %s: %d operations", name, len(resolved))
    return ServiceDescriptor(
        name=name,
        operations=resolved,
        doc=doc,
        has_qualified_context=has_qualified,
    )


# ── Python callables ─────────────────────────────────────────────────


def annotation_text(annotation: Any) -> str | None:
    """Render an annotation (string or object) as text for the classifier."""
    if annotation is inspect.Parameter.empty:
        return None
    if isinstance(annotation, str):
        return annotation
    if annotation is None or annotation is type(None):
        return "None"
    if annotation is Context:
        return "polyface.Context"
    if isinstance(annotation, type):
        if annotation.__module__ == "builtins":
            return annotation.__qualname__
        return f"{annotation.__module__}.{annotation.__qualname__}"
    return repr(annotation)


def _default_literal(value: Any) -> str:
    return pydantic_core.to_json(value).decode()


def describe_operation(
    func: Any, *, name: str | None = None, bound: bool = True
) -> OperationDescriptor:
    """Build one descriptor from a function.

    *bound* drops the leading ``self``/``cls`` parameter of a method taken
    from a class body.
    """
    sig = inspect.signature(func)
    markers = markers_of(func) or Markers()
    op_name = name or func.__name__

    sig_params = list(sig.parameters.values())
    if bound and sig_params and sig_params[0].name in ("self", "cls"):
        sig_params = sig_params[1:]

    params: list[ParamDescriptor] = []
    for p in sig_params:
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        type_text = annotation_text(p.annotation) or "Any"
        pm = markers.params.get(p.name)
        default: str | None = None
        if pm is not None and pm.has_default:
            default = _default_literal(pm.default)
        elif p.default is not inspect.Parameter.empty:
            default = _default_literal(p.default)
        params.append(
            ParamDescriptor(
                name=p.name,
                type_text=type_text,
                type_shape=classify_type(type_text),
                wire_name=pm.wire_name if pm else None,
                location_override=pm.location if pm else None,
                default_literal=default,
            )
        )

    return OperationDescriptor(
        name=op_name,
        params=tuple(params),
        return_shape=classify_return(annotation_text(sig.return_annotation)),
        doc=inspect.getdoc(func),
        is_async=inspect.iscoroutinefunction(func) or inspect.isasyncgenfunction(func),
        skip=frozenset(markers.skip),
        hidden=markers.hidden,
        route=_route_override(markers.method, markers.path),
        response=_response_override(markers.status, markers.content_type, markers.headers),
        tags=tuple(markers.tags),
        deprecated=markers.deprecated,
    )


def _route_override(method: HttpMethod | None, path: str | None) -> RouteOverride | None:
    if method is None and path is None:
        return None
    return RouteOverride(method=method, path=path)


def _response_override(
    status: int | None, content_type: str | None, headers: dict[str, str]
) -> ResponseOverride | None:
    if status is None and content_type is None and not headers:
        return None
    return ResponseOverride(
        status=status, content_type=content_type, headers=tuple(headers.items())
    )


def public_methods(cls: type) -> list[tuple[str, Any, bool]]:
    """``(name, function, bound)`` for public methods, base classes first.

    Names starting with ``_`` are never operations.
    """
    found: dict[str, tuple[Any, bool]] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for attr, value in vars(klass).items():
            if attr.startswith("_"):
                continue
            if isinstance(value, staticmethod):
                found[attr] = (value.__func__, False)
            elif isinstance(value, classmethod):
                found[attr] = (value.__func__, True)
            elif inspect.isfunction(value):
                found[attr] = (value, True)
    return [(attr, func, bound) for attr, (func, bound) in found.items()]


def describe_service(target: Any, *, name: str | None = None) -> ServiceDescriptor:
    """Describe a service class or instance."""
    cls = target if isinstance(target, type) else type(target)
    operations = [
        describe_operation(func, name=attr, bound=bound)
        for attr, func, bound in public_methods(cls)
    ]
    return build_service(name or cls.__name__, operations, doc=inspect.getdoc(cls))


def resolve_target(spec: str) -> Any:
    """Import ``module:attr`` and return an instance (classes are instantiated).

    Raises :class:`DescriptorLoadError` on any import or lookup failure.
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise DescriptorLoadError(f"Target must look like 'module:attr', got '{spec}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise DescriptorLoadError(f"Cannot import '{module_name}': {exc}") from exc
    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise DescriptorLoadError(f"'{module_name}' has no attribute '{attr}'") from exc
    if isinstance(obj, type):
        try:
            obj = obj()
        except TypeError as exc:
            raise DescriptorLoadError(f"Cannot instantiate '{spec}': {exc}") from exc
    return obj


# ── Service files ────────────────────────────────────────────────────


class ParamEntry(BaseModel):
    """One ``params`` entry of a service file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    type: str = "Any"
    wire_name: str | None = None
    location: Location | None = None
    default: Any = None


class OperationEntry(BaseModel):
    """One ``[[operations]]`` entry of a service file."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    doc: str | None = None
    params: list[ParamEntry] = Field(default_factory=list)
    returns: str | None = None
    is_async: bool = Field(default=False, alias="async")
    skip: list[Surface] = Field(default_factory=list)
    hidden: bool = False
    method: HttpMethod | None = None
    path: str | None = None
    status: int | None = None
    content_type: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False


class ServiceFile(BaseModel):
    """Top level of a TOML/JSON service description."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    doc: str | None = None
    operations: list[OperationEntry] = Field(default_factory=list)


def _operation_from_entry(entry: OperationEntry) -> OperationDescriptor:
    params = tuple(
        ParamDescriptor(
            name=p.name,
            type_text=p.type,
            type_shape=classify_type(p.type),
            wire_name=p.wire_name,
            location_override=p.location,
            default_literal=(
                _default_literal(p.default) if "default" in p.model_fields_set else None
            ),
        )
        for p in entry.params
    )
    return OperationDescriptor(
        name=entry.name,
        params=params,
        return_shape=classify_return(entry.returns),
        doc=entry.doc,
        is_async=entry.is_async,
        skip=frozenset(entry.skip),
        hidden=entry.hidden,
        route=_route_override(entry.method, entry.path),
        response=_response_override(entry.status, entry.content_type, entry.headers),
        tags=tuple(entry.tags),
        deprecated=entry.deprecated,
    )


def service_from_mapping(data: dict[str, Any]) -> ServiceDescriptor:
    """Validate a decoded service file and build its descriptor."""
    try:
        parsed = ServiceFile.model_validate(data)
    except ValidationError as exc:
        raise DescriptorLoadError(f"Invalid service description: {exc}") from exc
    operations = [_operation_from_entry(e) for e in parsed.operations]
    return build_service(parsed.name, operations, doc=parsed.doc)


def load_service_file(path: Path) -> ServiceDescriptor:
    """Load a ``.toml`` or ``.json`` service description."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptorLoadError(f"Cannot read {path}: {exc}") from exc

    try:
        if path.suffix == ".toml":
            data: dict[str, Any] = tomllib.loads(raw)
        elif path.suffix == ".json":
            data = json.loads(raw)
        else:
            raise DescriptorLoadError(f"Unsupported service file type: {path.suffix or path.name}")
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise DescriptorLoadError(f"Cannot parse {path}: {exc}") from exc
    return service_from_mapping(data)
