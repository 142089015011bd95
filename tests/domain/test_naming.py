"""Tests for identifier case conversion."""

from __future__ import annotations

import pytest

from polyface.domain.naming import pluralize, to_camel, to_kebab, to_pascal, to_snake, to_title


class TestToSnake:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("get_user", "get_user"),
            ("getUser", "get_user"),
            ("GetUser", "get_user"),
            ("UserService", "user_service"),
            ("HTTPServer", "http_server"),
            ("x-caller", "x_caller"),
        ],
    )
    def test_conversions(self, name: str, expected: str) -> None:
        assert to_snake(name) == expected


class TestDerivedCases:
    def test_kebab(self) -> None:
        assert to_kebab("get_user") == "get-user"
        assert to_kebab("listAllUsers") == "list-all-users"

    def test_pascal(self) -> None:
        assert to_pascal("get_user") == "GetUser"
        assert to_pascal("x-caller") == "XCaller"

    def test_camel(self) -> None:
        assert to_camel("get_user") == "getUser"
        assert to_camel("user_id") == "userId"
        assert to_camel("add") == "add"

    def test_title(self) -> None:
        assert to_title("get_user") == "Get User"

    def test_round_trip_through_snake(self) -> None:
        assert to_snake(to_camel("create_user")) == "create_user"
        assert to_snake(to_pascal("create_user")) == "create_user"


class TestPluralize:
    def test_appends_s(self) -> None:
        assert pluralize("user") == "users"

    def test_keeps_trailing_s(self) -> None:
        assert pluralize("users") == "users"
        assert pluralize("status") == "status"

    def test_empty(self) -> None:
        assert pluralize("") == ""
