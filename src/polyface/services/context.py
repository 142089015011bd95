"""Context disambiguation — which parameters the transport fills in.

A service may want a framework-supplied request context, but a user type
may also be called ``Context``.  The decision is service-scoped and runs
in two explicit phases before any surface is built:

1. Scan: does any operation spell the context type fully qualified?
2. Decide, per parameter: a qualified spelling is always injected; a bare
   ``Context`` is injected only when the scan found no qualified spelling.

Known ambiguity: if a service uses the bare name for two unrelated types
across operations, both are treated alike.  Nothing guards against it.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from polyface.domain.descriptors import OperationDescriptor
from polyface.domain.exceptions import ContextInjectionError

logger = logging.getLogger(__name__)

QUALIFIED_CONTEXT_NAMES: frozenset[str] = frozenset(
    {
        "polyface.Context",
        "polyface.domain.context.Context",
    }
)
BARE_CONTEXT_NAME = "Context"


def _raw(type_text: str) -> str:
    return "".join(type_text.split()).strip("'\"")


def is_qualified_context(type_text: str) -> bool:
    return _raw(type_text) in QUALIFIED_CONTEXT_NAMES


def is_bare_context(type_text: str) -> bool:
    return _raw(type_text) == BARE_CONTEXT_NAME


def has_qualified_context(operations: Iterable[OperationDescriptor]) -> bool:
    """Scan pass: any parameter spelled with the qualified context type."""
    return any(is_qualified_context(p.type_text) for op in operations for p in op.params)


def should_inject_context(type_text: str, has_qualified: bool) -> bool:
    """Decision pass for a single parameter."""
    if is_qualified_context(type_text):
        return True
    if is_bare_context(type_text):
        return not has_qualified
    return False


def resolve_context(
    operations: Iterable[OperationDescriptor],
) -> tuple[tuple[OperationDescriptor, ...], bool]:
    """Run both phases and return descriptors with ``is_context`` set.

    Raises :class:`ContextInjectionError` if one operation would receive
    more than one injected context.
    """
    ops = tuple(operations)
    has_qualified = has_qualified_context(ops)

    resolved: list[OperationDescriptor] = []
    for op in ops:
        params = tuple(
            dataclasses.replace(p, is_context=should_inject_context(p.type_text, has_qualified))
            for p in op.params
        )
        injected = [p.name for p in params if p.is_context]
        if len(injected) > 1:
            raise ContextInjectionError(op.name, injected)
        if injected:
            logger.debug("Context injected into %s.%s", op.name, injected[0])
        resolved.append(dataclasses.replace(op, params=params))
    return tuple(resolved), has_qualified
