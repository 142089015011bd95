"""Services exercised across the test suite.

Importable as ``sample_services`` (``pythonpath = ["tests"]``), so CLI tests
can pass ``--target sample_services:UserService``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass

from polyface import Context, Err, Ok, error_kind, param, response, route, skip
from polyface.domain.results import Result
from polyface.services.errors import ErrorKind


@dataclass
class User:
    id: str
    name: str
    email: str


@error_kind(ErrorKind.CONFLICT, message="Email already registered")
class EmailTaken(Exception):
    pass


class UserNotFound(Exception):
    pass


class UserService:
    """User accounts."""

    def __init__(self) -> None:
        self._users = {"42": User("42", "Ada", "ada@example.com")}

    def get_user(self, user_id: str) -> User | None:
        """Fetch one user.

        Returns nothing when the id is unknown.
        """
        return self._users.get(user_id)

    def create_user(self, name: str, email: str) -> Result[User, EmailTaken]:
        """Register a user."""
        if any(u.email == email for u in self._users.values()):
            return Err(EmailTaken())
        user = User(str(100 + len(self._users)), name, email)
        self._users[user.id] = user
        return Ok(user)

    def list_users(self, limit: int = 10, domain: str | None = None) -> list[User]:
        users = list(self._users.values())
        if domain is not None:
            users = [u for u in users if u.email.endswith("@" + domain)]
        return users[:limit]

    def delete_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    def rename_user(self, user_id: str, name: str) -> Result[User, UserNotFound]:
        user = self._users.get(user_id)
        if user is None:
            return Err(UserNotFound(user_id))
        user.name = name
        return Ok(user)

    @route(method="GET", path="/me")
    @param("caller", wire_name="x-caller", location="header")
    def whoami(self, ctx: Context, caller: str | None = None) -> str:
        return caller or ctx.header("x-request-id") or "anonymous"

    @route(hidden=True)
    @response(status=202, headers={"x-queued": "true"})
    def reindex(self) -> int:
        return len(self._users)

    @skip("cli", "graphql")
    def purge(self) -> None:
        self._users.clear()

    def _internal(self) -> None:
        raise AssertionError("private methods are never operations")


class Calculator:
    """Arithmetic."""

    def add(self, a: int, b: int) -> int:
        return a + b

    async def multiply(self, a: int, b: int) -> int:
        return a * b

    def divide(self, a: float, b: float) -> Result[float, ZeroDivisionError]:
        if b == 0:
            return Err(ZeroDivisionError("division by zero"))
        return Ok(a / b)


class Feed:
    """Event feed with streaming operations."""

    def stream_events(self, count: int = 3) -> Iterator[int]:
        yield from range(count)

    async def follow_events(self, count: int = 2) -> AsyncIterator[str]:
        for i in range(count):
            yield f"event-{i}"

    def count_events(self) -> int:
        return 3


class Clashing:
    """Two operations resolving to the same endpoint."""

    def get_item(self, item_id: str) -> str:
        return item_id

    def fetch_item(self, item_id: str) -> str:
        return item_id


class Folding:
    """Two operations that share one camelCase name."""

    def get_user(self, user_id: str) -> str:
        return user_id

    def getUser(self, user_id: str) -> str:  # noqa: N802
        return user_id
