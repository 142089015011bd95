"""Exception hierarchy.

Build-time problems (:class:`ContractError`) abort artifact generation with
a named diagnosis.  Dispatch-time problems (:class:`DispatchError`) become
protocol error responses and never escape a surface as process failures.
"""

from __future__ import annotations


class PolyfaceError(Exception):
    """Root of every polyface exception."""


# ── Build time ───────────────────────────────────────────────────────


class ContractError(PolyfaceError):
    """A service cannot be turned into a consistent contract."""

    code = "CONTRACT_ERROR"


class DuplicateParameterError(ContractError):
    code = "DUPLICATE_PARAMETER"

    def __init__(self, operation: str, param: str) -> None:
        self.operation = operation
        self.param = param
        super().__init__(f"Operation '{operation}' declares parameter '{param}' more than once")


class DuplicateOperationError(ContractError):
    code = "DUPLICATE_OPERATION"

    def __init__(
        self, operation: str, *, other: str | None = None, external: str | None = None
    ) -> None:
        self.operation = operation
        self.other = other
        self.external = external
        if other is None:
            message = f"Operation '{operation}' is declared more than once"
        else:
            message = (
                f"Operations '{other}' and '{operation}' both map to the external "
                f"name '{external}'"
            )
        super().__init__(message)


class DuplicateRouteError(ContractError):
    code = "DUPLICATE_ROUTE"

    def __init__(
        self,
        first: str,
        first_route: tuple[str, str],
        second: str,
        second_route: tuple[str, str],
    ) -> None:
        self.first = first
        self.second = second
        self.first_route = first_route
        self.second_route = second_route
        super().__init__(
            f"Duplicate route: '{first}' ({first_route[0]} {first_route[1]}) and "
            f"'{second}' ({second_route[0]} {second_route[1]}) resolve to the same endpoint.\n"
            f"Hint: skip one of them on http, give one an explicit path, "
            f"or give one an explicit method."
        )


class ContextInjectionError(ContractError):
    code = "CONTEXT_INJECTION"

    def __init__(self, operation: str, params: list[str]) -> None:
        self.operation = operation
        self.params = params
        super().__init__(
            f"Operation '{operation}': only one Context parameter allowed per method "
            f"(found {', '.join(params)})"
        )


class SchemaConflictError(ContractError):
    code = "SCHEMA_CONFLICT"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Schema conflict for '{name}': defined differently in multiple specs")


class StreamingUnsupportedError(ContractError):
    code = "STREAMING_UNSUPPORTED"

    def __init__(self, operation: str, surface: str) -> None:
        self.operation = operation
        self.surface = surface
        super().__init__(
            f"Operation '{operation}' returns a stream, which the {surface} surface "
            f"cannot carry (enable stream materialization to collect it into a list)"
        )


class InvalidPathError(ContractError):
    code = "INVALID_PATH"

    def __init__(self, operation: str, path: str, reason: str) -> None:
        self.operation = operation
        self.path = path
        super().__init__(f"Operation '{operation}': invalid HTTP path '{path}': {reason}")


class DescriptorLoadError(ContractError):
    code = "LOAD_FAILED"


# ── Dispatch time ────────────────────────────────────────────────────


class DispatchError(PolyfaceError):
    """A call could not be dispatched (bad arguments, unknown method)."""


class MethodNotFoundError(DispatchError):
    def __init__(self, label: str, name: str) -> None:
        self.name = name
        super().__init__(f"{label}: {name}")


class AsyncNotSupportedError(DispatchError):
    def __init__(self) -> None:
        super().__init__("Async methods not supported in sync context")
