"""Convention engine — routing, placement and classification facts.

Every convention is a table of ``(prefixes, result)`` pairs checked in
order, so priority and fallback are visible data rather than nested
conditionals.  The HTTP verb table and the GraphQL query table share a
naming philosophy but are evaluated independently: "mutation" has no
verb or path, and the two must never be unified.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from polyface.domain.descriptors import OperationDescriptor, ParamDescriptor
from polyface.domain.exceptions import DuplicateRouteError, InvalidPathError
from polyface.domain.naming import pluralize, to_kebab
from polyface.domain.types import GraphQLKind, HttpMethod, Location

logger = logging.getLogger(__name__)

# ── Tables ───────────────────────────────────────────────────────────

HTTP_VERB_RULES: tuple[tuple[tuple[str, ...], HttpMethod], ...] = (
    (("get_", "fetch_", "read_", "list_", "find_", "search_"), HttpMethod.GET),
    (("create_", "add_", "new_"), HttpMethod.POST),
    (("update_", "set_"), HttpMethod.PUT),
    (("patch_", "modify_"), HttpMethod.PATCH),
    (("delete_", "remove_"), HttpMethod.DELETE),
)
HTTP_VERB_FALLBACK = HttpMethod.POST

# GET operations with these prefixes address a collection, never one item.
COLLECTION_PREFIXES: tuple[str, ...] = ("list_", "search_", "find_")

BODY_METHODS: frozenset[HttpMethod] = frozenset(
    {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}
)

QUERY_RULES: tuple[tuple[tuple[str, ...], GraphQLKind], ...] = (
    (
        (
            "get_",
            "fetch_",
            "read_",
            "list_",
            "find_",
            "search_",
            "count_",
            "exists_",
            "is_",
            "has_",
        ),
        GraphQLKind.QUERY,
    ),
)
QUERY_FALLBACK = GraphQLKind.MUTATION

PATH_PARAM_RE = re.compile(r"\{[^}]*\}")
PATH_PLACEHOLDER = "{*}"


# ── HTTP ─────────────────────────────────────────────────────────────


def _match_prefix[T](
    name: str, rules: tuple[tuple[tuple[str, ...], T], ...]
) -> tuple[str, T] | None:
    for prefixes, result in rules:
        for prefix in prefixes:
            if name.startswith(prefix):
                return prefix, result
    return None


def infer_http_method(op: OperationDescriptor) -> HttpMethod:
    """Route override first, then the verb table, then POST."""
    if op.route is not None and op.route.method is not None:
        return op.route.method
    hit = _match_prefix(op.name, HTTP_VERB_RULES)
    return hit[1] if hit else HTTP_VERB_FALLBACK


def resource_stem(name: str) -> str:
    """Strip a recognised verb prefix, kebab-case and pluralise what is left."""
    hit = _match_prefix(name, HTTP_VERB_RULES)
    stem = name[len(hit[0]) :] if hit else name
    return pluralize(to_kebab(stem))


def infer_path(op: OperationDescriptor, method: HttpMethod, *, prefix: str = "") -> str:
    """Derive the HTTP path of *op*.

    ``create_user`` -> ``/users``; ``get_user(user_id)`` -> ``/users/{id}``;
    ``list_users(user_id)`` -> ``/users``.
    """
    if op.route is not None and op.route.path is not None:
        return join_prefix(prefix, op.route.path)

    collection = f"/{resource_stem(op.name)}"
    if method is HttpMethod.POST:
        path = collection
    elif method is HttpMethod.GET and op.name.startswith(COLLECTION_PREFIXES):
        path = collection
    elif any(p.is_identifier_like for p in op.wire_params):
        path = f"{collection}/{{id}}"
    else:
        path = collection
    return join_prefix(prefix, path)


def join_prefix(prefix: str, path: str) -> str:
    if not prefix:
        return path
    return prefix.rstrip("/") + path


_INVALID_PATH_CHARS = '<>"` \t\n?#'
_PATH_PARAM_NAME_RE = re.compile(r"^[\w-]+$")


def validate_http_path(op_name: str, path: str) -> None:
    """Reject paths a router would mis-handle.  Raises :class:`InvalidPathError`."""
    if not path.startswith("/"):
        raise InvalidPathError(op_name, path, f"must start with '/' (try '/{path}')")
    if "//" in path:
        raise InvalidPathError(op_name, path, "contains consecutive slashes")
    if len(path) > 1 and path.endswith("/"):
        raise InvalidPathError(op_name, path, f"has a trailing slash (try '{path.rstrip('/')}')")
    for ch in _INVALID_PATH_CHARS:
        if ch in path:
            raise InvalidPathError(op_name, path, f"contains invalid character {ch!r}")
    if path.count("{") != path.count("}"):
        raise InvalidPathError(op_name, path, "has mismatched braces")
    for segment in path.split("/"):
        if segment.startswith("{") and segment.endswith("}"):
            if not _PATH_PARAM_NAME_RE.match(segment[1:-1]):
                raise InvalidPathError(op_name, path, f"has a malformed parameter {segment!r}")


def infer_location(param: ParamDescriptor, method: HttpMethod) -> Location:
    """Override, else identifier -> path, else write verbs -> body, else query."""
    if param.location_override is not None:
        return param.location_override
    if param.is_identifier_like:
        return Location.PATH
    if method in BODY_METHODS:
        return Location.BODY
    return Location.QUERY


def path_param_names(path: str) -> list[str]:
    return [m.group(0)[1:-1] for m in PATH_PARAM_RE.finditer(path)]


def normalize_path(path: str) -> str:
    """Replace every ``{param}`` segment with a fixed placeholder."""
    return PATH_PARAM_RE.sub(PATH_PLACEHOLDER, path)


def check_duplicate_routes(routes: Iterable[tuple[str, HttpMethod, str]]) -> None:
    """Raise :class:`DuplicateRouteError` if two operations share an endpoint.

    *routes* yields ``(operation name, method, path)``.  Paths are compared
    after :func:`normalize_path`, since differently named parameters in the
    same slot are indistinguishable to callers.
    """
    seen: dict[tuple[str, str], tuple[str, str]] = {}
    for name, method, path in routes:
        key = (str(method), normalize_path(path))
        if key in seen:
            first_name, first_path = seen[key]
            logger.debug("Duplicate route %s %s (%s, %s)", method, path, first_name, name)
            raise DuplicateRouteError(
                first_name, (str(method), first_path), name, (str(method), path)
            )
        seen[key] = (name, path)


# ── Message-object protocols ─────────────────────────────────────────


def graphql_kind(name: str) -> GraphQLKind:
    hit = _match_prefix(name, QUERY_RULES)
    return hit[1] if hit else QUERY_FALLBACK


def is_query_operation(name: str) -> bool:
    return graphql_kind(name) is GraphQLKind.QUERY


@dataclass(frozen=True)
class HttpFacts:
    """Convention facts of one operation, for inspection and docs."""

    method: HttpMethod
    path: str
    placements: tuple[tuple[str, Location], ...]
    graphql: GraphQLKind


def http_facts(op: OperationDescriptor, *, prefix: str = "") -> HttpFacts:
    method = infer_http_method(op)
    path = infer_path(op, method, prefix=prefix)
    placements = tuple((p.key, infer_location(p, method)) for p in op.wire_params)
    return HttpFacts(method, path, placements, graphql_kind(op.name))
