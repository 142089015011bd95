"""Error taxonomy — one closed set of error kinds, encoded per protocol.

Each :class:`ErrorKind` maps to a fixed HTTP status, gRPC status name and
process exit code.  Explicit mappings come first (``@error_kind`` on the
exception class, an ``error_kind`` attribute, or the builtin table).  When
none applies, :func:`infer_from_name` guesses from the error's type or
variant name.  The guess is best-effort: an unconventionally named error
lands in ``INTERNAL``.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum, StrEnum
from typing import Any

from pydantic import BaseModel

from polyface.domain.exceptions import PolyfaceError


class ErrorKind(StrEnum):
    INVALID_INPUT = "invalid_input"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED_PRECONDITION = "failed_precondition"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"
    NOT_IMPLEMENTED = "not_implemented"
    UNAVAILABLE = "unavailable"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def grpc_code(self) -> str:
        return _GRPC_CODE[self]

    @property
    def exit_code(self) -> int:
        return _EXIT_CODE.get(self, 1)

    @classmethod
    def from_http_status(cls, status: int) -> ErrorKind:
        for kind, code in _HTTP_STATUS.items():
            if code == status:
                return kind
        if 400 <= status < 500:
            return cls.INVALID_INPUT
        return cls.INTERNAL


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.FAILED_PRECONDITION: 422,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
    ErrorKind.NOT_IMPLEMENTED: 501,
    ErrorKind.UNAVAILABLE: 503,
}

_GRPC_CODE: dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT: "INVALID_ARGUMENT",
    ErrorKind.UNAUTHENTICATED: "UNAUTHENTICATED",
    ErrorKind.FORBIDDEN: "PERMISSION_DENIED",
    ErrorKind.NOT_FOUND: "NOT_FOUND",
    ErrorKind.CONFLICT: "ALREADY_EXISTS",
    ErrorKind.FAILED_PRECONDITION: "FAILED_PRECONDITION",
    ErrorKind.RATE_LIMITED: "RESOURCE_EXHAUSTED",
    ErrorKind.INTERNAL: "INTERNAL",
    ErrorKind.NOT_IMPLEMENTED: "UNIMPLEMENTED",
    ErrorKind.UNAVAILABLE: "UNAVAILABLE",
}

_EXIT_CODE: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 1,
    ErrorKind.INVALID_INPUT: 2,
    ErrorKind.UNAUTHENTICATED: 3,
    ErrorKind.FORBIDDEN: 3,
    ErrorKind.CONFLICT: 4,
    ErrorKind.FAILED_PRECONDITION: 4,
    ErrorKind.RATE_LIMITED: 5,
}

# Checked in order; first hit wins.
NAME_RULES: tuple[tuple[tuple[str, ...], ErrorKind], ...] = (
    (("notfound", "not_found", "missing"), ErrorKind.NOT_FOUND),
    (("invalid", "validation", "parse"), ErrorKind.INVALID_INPUT),
    (("unauthorized", "unauthenticated"), ErrorKind.UNAUTHENTICATED),
    (("forbidden", "permission", "denied"), ErrorKind.FORBIDDEN),
    (("conflict", "exists", "duplicate"), ErrorKind.CONFLICT),
    (("ratelimit", "rate_limit", "throttle"), ErrorKind.RATE_LIMITED),
    (("unavailable", "temporarily"), ErrorKind.UNAVAILABLE),
    (("unimplemented", "not_implemented"), ErrorKind.NOT_IMPLEMENTED),
)

# Explicit mappings for builtin exceptions, most specific first.
BUILTIN_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (FileNotFoundError, ErrorKind.NOT_FOUND),
    (PermissionError, ErrorKind.FORBIDDEN),
    (TimeoutError, ErrorKind.UNAVAILABLE),
    (ConnectionError, ErrorKind.UNAVAILABLE),
    (NotImplementedError, ErrorKind.NOT_IMPLEMENTED),
    (LookupError, ErrorKind.NOT_FOUND),
    (ValueError, ErrorKind.INVALID_INPUT),
    (TypeError, ErrorKind.INVALID_INPUT),
)

ERROR_KIND_ATTR = "error_kind"
ERROR_MESSAGE_ATTR = "error_message"


def infer_from_name(name: str) -> ErrorKind:
    """Best-effort kind from a type or variant name (``UserNotFound`` -> NOT_FOUND)."""
    lowered = name.lower()
    for needles, kind in NAME_RULES:
        if any(n in lowered for n in needles):
            return kind
    return ErrorKind.INTERNAL


def error_kind[E: type](
    kind: ErrorKind | str | int, *, message: str | None = None
) -> Callable[[E], E]:
    """Class decorator declaring the kind (or HTTP status) of an exception type.

    Usage::

        @error_kind(ErrorKind.NOT_FOUND, message="User not found")
        class UserMissing(Exception): ...

        @error_kind(409)
        class EmailTaken(Exception): ...
    """
    if isinstance(kind, int) and not isinstance(kind, ErrorKind):
        resolved = ErrorKind.from_http_status(kind)
    else:
        resolved = ErrorKind(kind)

    def decorate(cls: E) -> E:
        setattr(cls, ERROR_KIND_ATTR, resolved)
        if message is not None:
            setattr(cls, ERROR_MESSAGE_ATTR, message)
        return cls

    return decorate


def error_name(err: Any) -> str:
    """Name used for inference: enum member name, string value, or type name."""
    if isinstance(err, Enum):
        return err.name
    if isinstance(err, str):
        return err
    return type(err).__name__


def classify_error(err: Any) -> ErrorKind:
    """Explicit mapping first, then name inference."""
    declared = getattr(err, ERROR_KIND_ATTR, None)
    if declared is not None:
        return ErrorKind(declared)
    if isinstance(err, BaseException):
        for exc_type, kind in BUILTIN_KINDS:
            if isinstance(err, exc_type):
                return kind
    return infer_from_name(error_name(err))


def error_message(err: Any) -> str:
    """Display form of an operation error."""
    declared = getattr(err, ERROR_MESSAGE_ATTR, None)
    if declared is not None:
        return str(declared)
    if isinstance(err, Enum):
        return str(err.value) if isinstance(err.value, str) else err.name
    text = str(err)
    return text or type(err).__name__


def debug_form(err: Any) -> str:
    """Debug form of an operation error (``repr``, or the member name for enums)."""
    if isinstance(err, Enum):
        return err.name
    return repr(err)


class ErrorResponse(BaseModel):
    """Serializable error envelope: ``{code, message, details?}``."""

    model_config = {"frozen": True}

    code: str
    message: str
    details: Any = None

    @classmethod
    def new(cls, kind: ErrorKind, message: str, details: Any = None) -> ErrorResponse:
        return cls(code=kind.name, message=message, details=details)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class OperationError(PolyfaceError):
    """An operation returned ``Err``; carries the classified kind and both forms."""

    def __init__(self, kind: ErrorKind, message: str, debug: str, error: Any = None) -> None:
        self.kind = kind
        self.message = message
        self.debug = debug
        self.error = error
        super().__init__(message)

    @classmethod
    def from_error(cls, err: Any) -> OperationError:
        return cls(classify_error(err), error_message(err), debug_form(err), err)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse.new(self.kind, self.message)
