"""Type-shape classification — the closed vocabulary every surface maps from.

Classification is structural and shallow: annotation *text* is scanned for
the outermost container keyword (optional or list), the first generic
argument is classified independently and wrapped, and anything that is not
a known primitive token falls back to :class:`Custom`.  Arguments of custom
generics (``dict[str, int]``, ``Page[User]``) are never resolved, so every
surface treats ``Custom`` as an opaque object/document/bytes type.

The classifier never raises.  Unknown input degrades to ``Custom``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

# ── TypeShape ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class String:
    pass


@dataclass(frozen=True)
class Integer:
    bits: int | None = None
    signed: bool = True


@dataclass(frozen=True)
class Number:
    bits: int | None = None


@dataclass(frozen=True)
class Boolean:
    pass


@dataclass(frozen=True)
class ListOf:
    item: TypeShape


@dataclass(frozen=True)
class OptionalOf:
    inner: TypeShape


@dataclass(frozen=True)
class BytesLike:
    pass


@dataclass(frozen=True)
class Custom:
    name: str


type TypeShape = String | Integer | Number | Boolean | ListOf | OptionalOf | BytesLike | Custom


# ── ReturnShape ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Unit:
    pass


@dataclass(frozen=True)
class ResultOf:
    ok: TypeShape
    err: TypeShape


@dataclass(frozen=True)
class OptionOf:
    inner: TypeShape


@dataclass(frozen=True)
class StreamOf:
    item: TypeShape


@dataclass(frozen=True)
class Plain:
    shape: TypeShape


type ReturnShape = Unit | ResultOf | OptionOf | StreamOf | Plain


# ── Token tables ─────────────────────────────────────────────────────

OPTIONAL_CONTAINERS: frozenset[str] = frozenset({"Optional", "Option"})

LIST_CONTAINERS: frozenset[str] = frozenset(
    {
        "list",
        "List",
        "Sequence",
        "MutableSequence",
        "set",
        "Set",
        "frozenset",
        "FrozenSet",
        "tuple",
        "Tuple",
        "Vec",
    }
)

RESULT_CONTAINERS: frozenset[str] = frozenset({"Result"})

STREAM_CONTAINERS: frozenset[str] = frozenset(
    {
        "Stream",
        "Iterator",
        "Generator",
        "AsyncIterator",
        "AsyncIterable",
        "AsyncGenerator",
    }
)

# Ordered (tokens, shape) pairs; first match wins.
PRIMITIVE_RULES: tuple[tuple[frozenset[str], TypeShape], ...] = (
    (frozenset({"str", "String", "&str"}), String()),
    (frozenset({"bool"}), Boolean()),
    (frozenset({"int"}), Integer()),
    (frozenset({"int8", "i8"}), Integer(8)),
    (frozenset({"int16", "i16"}), Integer(16)),
    (frozenset({"int32", "i32"}), Integer(32)),
    (frozenset({"int64", "i64", "isize"}), Integer(64)),
    (frozenset({"uint8", "u8"}), Integer(8, signed=False)),
    (frozenset({"uint16", "u16"}), Integer(16, signed=False)),
    (frozenset({"uint32", "u32"}), Integer(32, signed=False)),
    (frozenset({"uint64", "u64", "usize"}), Integer(64, signed=False)),
    (frozenset({"float", "Decimal"}), Number()),
    (frozenset({"float32", "f32"}), Number(32)),
    (frozenset({"float64", "f64"}), Number(64)),
    (frozenset({"bytes", "bytearray", "memoryview"}), BytesLike()),
)

_QUALIFIER_RE = re.compile(r"\b(?:[A-Za-z_]\w*\.)+(?=[A-Za-z_])")
_OPEN = "[<("
_CLOSE = "]>)"


# ── Text helpers ─────────────────────────────────────────────────────


def normalize_type_text(text: str | None) -> str:
    """Strip whitespace, quotes and module qualifiers from annotation text."""
    if not text:
        return ""
    cleaned = text.strip().strip("'\"")
    cleaned = _QUALIFIER_RE.sub("", cleaned)
    cleaned = re.sub(r"\s*&\s*", "&", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def split_top_level(text: str, sep: str) -> list[str]:
    """Split *text* on *sep* occurrences that are not nested in brackets."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in _OPEN:
            depth += 1
        elif ch in _CLOSE:
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


def split_generic(text: str) -> tuple[str, list[str]]:
    """``list[int]`` -> ``("list", ["int"])``; ``User`` -> ``("User", [])``."""
    for i, ch in enumerate(text):
        if ch in "[<":
            closing = "]" if ch == "[" else ">"
            if not text.endswith(closing):
                break
            return text[:i].strip(), split_top_level(text[i + 1 : -1], ",")
    return text, []


# ── Classifiers ──────────────────────────────────────────────────────


def _optional_from_union(members: list[str]) -> TypeShape:
    non_none = [m for m in members if m != "None"]
    if len(non_none) == len(members) or not non_none:
        return Custom("Union")
    inner = non_none[0] if len(non_none) == 1 else " | ".join(non_none)
    return OptionalOf(classify_type(inner))


def classify_type(text: str | None) -> TypeShape:
    """Classify annotation text into a :data:`TypeShape`."""
    normalized = normalize_type_text(text)
    if not normalized:
        return Custom("Any")

    members = split_top_level(normalized, "|")
    if len(members) > 1:
        return _optional_from_union(members)

    outer, args = split_generic(normalized)
    if outer in OPTIONAL_CONTAINERS:
        return OptionalOf(classify_type(args[0] if args else None))
    if outer == "Union":
        return _optional_from_union(args)
    if outer in LIST_CONTAINERS:
        return ListOf(classify_type(args[0]) if args else Custom("Any"))

    for tokens, shape in PRIMITIVE_RULES:
        if outer in tokens:
            return shape
    return Custom(outer or normalized)


def classify_return(text: str | None) -> ReturnShape:
    """Classify a return annotation: Result > Option > Stream > Unit > Plain."""
    normalized = normalize_type_text(text)
    outer, args = split_generic(normalized)

    if outer in RESULT_CONTAINERS:
        ok = classify_type(args[0]) if args else Custom("Any")
        err = classify_type(args[1]) if len(args) > 1 else Custom("Exception")
        return ResultOf(ok, err)

    if not normalized:
        return Unit()
    shape = classify_type(normalized)
    if isinstance(shape, OptionalOf):
        return OptionOf(shape.inner)
    if outer in STREAM_CONTAINERS:
        return StreamOf(classify_type(args[0]) if args else Custom("Any"))
    if normalized == "None":
        return Unit()
    return Plain(shape)


# ── Display ──────────────────────────────────────────────────────────


def describe_shape(shape: TypeShape) -> str:
    """Render a shape back to a compact Python-style spelling."""
    match shape:
        case String():
            return "str"
        case Integer(bits=None):
            return "int"
        case Integer(bits=bits, signed=signed):
            return f"{'int' if signed else 'uint'}{bits}"
        case Number(bits=None):
            return "float"
        case Number(bits=bits):
            return f"float{bits}"
        case Boolean():
            return "bool"
        case ListOf(item=item):
            return f"list[{describe_shape(item)}]"
        case OptionalOf(inner=inner):
            return f"{describe_shape(inner)} | None"
        case BytesLike():
            return "bytes"
        case Custom(name=name):
            return name


def describe_return(shape: ReturnShape) -> str:
    match shape:
        case Unit():
            return "None"
        case ResultOf(ok=ok, err=err):
            return f"Result[{describe_shape(ok)}, {describe_shape(err)}]"
        case OptionOf(inner=inner):
            return f"{describe_shape(inner)} | None"
        case StreamOf(item=item):
            return f"Stream[{describe_shape(item)}]"
        case Plain(shape=inner):
            return describe_shape(inner)


def return_kind(shape: ReturnShape) -> str:
    """Short variant label (``unit``, ``result``, ``option``, ``stream``, ``plain``)."""
    match shape:
        case Unit():
            return "unit"
        case ResultOf():
            return "result"
        case OptionOf():
            return "option"
        case StreamOf():
            return "stream"
        case Plain():
            return "plain"


def python_type(shape: TypeShape) -> Any:
    """Python type used to decode values of *shape* when no real hint exists."""
    match shape:
        case String():
            return str
        case Integer():
            return int
        case Number():
            return float
        case Boolean():
            return bool
        case ListOf(item=item):
            return list[python_type(item)]  # type: ignore[misc]
        case OptionalOf(inner=inner):
            return python_type(inner) | None
        case BytesLike():
            return bytes
        case Custom():
            return Any
