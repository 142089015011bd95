"""Result and stream markers for operation signatures.

``Result[T, E]`` is the return annotation of an operation that can fail in
a way callers should see.  The operation returns :class:`Ok` or
:class:`Err`; a bare value is accepted as success.  ``Stream[T]`` marks an
operation that yields items incrementally.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Ok[T]:
    value: T


@dataclass(frozen=True)
class Err[E]:
    error: E


type Result[T, E] = Ok[T] | Err[E]

type Stream[T] = Iterator[T] | AsyncIterator[T]
