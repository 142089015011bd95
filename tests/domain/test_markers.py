"""Tests for per-operation override decorators."""

from __future__ import annotations

import pytest

from polyface.domain.markers import markers_of, param, response, route, skip
from polyface.domain.types import HttpMethod, Location, Surface


class TestRoute:
    def test_method_is_normalized(self) -> None:
        @route(method="get", path="/me")
        def whoami() -> None: ...

        m = markers_of(whoami)
        assert m is not None
        assert m.method is HttpMethod.GET
        assert m.path == "/me"

    def test_skip_removes_http_only(self) -> None:
        @route(skip=True)
        def rebuild() -> None: ...

        m = markers_of(rebuild)
        assert m is not None
        assert m.skip == {Surface.HTTP}

    def test_unknown_method_rejected(self) -> None:
        with pytest.raises(ValueError):
            route(method="TRACE")(lambda: None)


class TestStacking:
    def test_decorators_accumulate(self) -> None:
        @route(tags=["admin"], deprecated=True)
        @response(status=202, headers={"x-queued": "true"})
        @param("user_id", location="header", wire_name="x-user")
        def touch(user_id: str) -> None: ...

        m = markers_of(touch)
        assert m is not None
        assert m.tags == ["admin"]
        assert m.deprecated
        assert m.status == 202
        assert m.headers == {"x-queued": "true"}
        assert m.params["user_id"].location is Location.HEADER
        assert m.params["user_id"].wire_name == "x-user"
        assert not m.params["user_id"].has_default

    def test_param_default_none_is_a_default(self) -> None:
        @param("tag", default=None)
        def f(tag: str) -> None: ...

        m = markers_of(f)
        assert m is not None
        assert m.params["tag"].has_default
        assert m.params["tag"].default is None


class TestSkip:
    def test_no_surfaces_means_everywhere(self) -> None:
        @skip()
        def hidden_everywhere() -> None: ...

        m = markers_of(hidden_everywhere)
        assert m is not None
        assert m.skip == {Surface.ALL}

    def test_named_surfaces(self) -> None:
        @skip("cli", "graphql")
        def f() -> None: ...

        m = markers_of(f)
        assert m is not None
        assert m.skip == {Surface.CLI, Surface.GRAPHQL}

    def test_unmarked_function(self) -> None:
        def plain() -> None: ...

        assert markers_of(plain) is None
