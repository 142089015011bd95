"""Tests for the request context."""

from __future__ import annotations

from polyface.domain.context import Context


class TestContext:
    def test_from_headers_picks_request_id(self) -> None:
        ctx = Context.from_headers({"X-Request-ID": "abc", "Authorization": "Bearer t"})
        assert ctx.request_id == "abc"
        assert ctx.authorization() == "Bearer t"

    def test_header_lookup_is_case_insensitive(self) -> None:
        ctx = Context(metadata={"Content-Type": "application/json"})
        assert ctx.header("content-type") == "application/json"
        assert ctx.content_type() == "application/json"
        assert ctx.header("accept") is None

    def test_from_environ(self) -> None:
        ctx = Context.from_environ({"HOME": "/root"})
        assert ctx.env("HOME") == "/root"
        assert ctx.get("HOME") is None

    def test_set_and_get(self) -> None:
        ctx = Context()
        ctx.set("tenant", "acme")
        assert ctx.get("tenant") == "acme"
        assert ctx.user_id is None
