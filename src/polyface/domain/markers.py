"""Decorators that attach per-operation overrides to service methods.

Overrides accumulate on a :class:`Markers` record stored under
``__polyface__`` on the function, so decorators stack in any order::

    class Users:
        @route(path="/me")
        @param("user_id", location="header", wire_name="x-user")
        def get_profile(self, user_id: str) -> Profile: ...

        @skip("graphql", "cli")
        def rebuild_index(self) -> None: ...
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from polyface.domain.types import HttpMethod, Location, Surface

MARKER_ATTR = "__polyface__"


@dataclass
class ParamMarker:
    wire_name: str | None = None
    location: Location | None = None
    default: Any = None
    has_default: bool = False


@dataclass
class Markers:
    method: HttpMethod | None = None
    path: str | None = None
    skip: set[str] = field(default_factory=set)
    hidden: bool = False
    status: int | None = None
    content_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    deprecated: bool = False
    params: dict[str, ParamMarker] = field(default_factory=dict)


def markers_of(func: Any) -> Markers | None:
    return getattr(func, MARKER_ATTR, None)


def _ensure(func: Any) -> Markers:
    existing = markers_of(func)
    if existing is None:
        existing = Markers()
        setattr(func, MARKER_ATTR, existing)
    return existing


def route(
    *,
    method: str | None = None,
    path: str | None = None,
    skip: bool = False,
    hidden: bool = False,
    tags: list[str] | None = None,
    deprecated: bool = False,
) -> Callable[[Any], Any]:
    """Override HTTP routing for one operation.

    ``skip`` removes the operation from the HTTP surface; ``hidden`` keeps the
    live route but leaves it out of documentation.
    """

    def decorate(func: Any) -> Any:
        m = _ensure(func)
        if method is not None:
            m.method = HttpMethod(method.upper())
        if path is not None:
            m.path = path
        if skip:
            m.skip.add(Surface.HTTP)
        m.hidden = m.hidden or hidden
        m.tags.extend(tags or [])
        m.deprecated = m.deprecated or deprecated
        return func

    return decorate


def response(
    *,
    status: int | None = None,
    content_type: str | None = None,
    headers: dict[str, str] | None = None,
) -> Callable[[Any], Any]:
    """Override the success response of one HTTP operation."""

    def decorate(func: Any) -> Any:
        m = _ensure(func)
        if status is not None:
            m.status = status
        if content_type is not None:
            m.content_type = content_type
        m.headers.update(headers or {})
        return func

    return decorate


_NO_DEFAULT = object()


def param(
    name: str,
    *,
    wire_name: str | None = None,
    location: str | None = None,
    default: Any = _NO_DEFAULT,
) -> Callable[[Any], Any]:
    """Override the wire name, placement or default of one parameter."""

    def decorate(func: Any) -> Any:
        m = _ensure(func)
        pm = m.params.setdefault(name, ParamMarker())
        if wire_name is not None:
            pm.wire_name = wire_name
        if location is not None:
            pm.location = Location(location)
        if default is not _NO_DEFAULT:
            pm.default = default
            pm.has_default = True
        return func

    return decorate


def skip(*surfaces: str) -> Callable[[Any], Any]:
    """Exclude an operation from the named surfaces (all of them if none given)."""

    def decorate(func: Any) -> Any:
        m = _ensure(func)
        m.skip.update(Surface(s) for s in surfaces or (Surface.ALL,))
        return func

    return decorate
