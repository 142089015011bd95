"""Tests for output mode selection and the console helpers."""

import json

from polyface.output.console import create_console, get_output, style_for_method
from polyface.output.formatters import OutputSettings, format_result
from polyface.services.result import ServiceError, ServiceResult


class TestFormatResult:
    def test_json_dumps_whole_result(self) -> None:
        result = ServiceResult(ok=True, op="emit", data={"artifact": "x"}, warnings=["w"])
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["ok"] is True
        assert parsed["op"] == "emit"
        assert parsed["data"] == {"artifact": "x"}
        assert parsed["warnings"] == ["w"]
        assert parsed["error"] is None

    def test_json_error(self) -> None:
        result = ServiceResult(
            ok=False, op="emit", error=ServiceError(code="NO_SERVICE", message="none")
        )
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["error"]["code"] == "NO_SERVICE"

    def test_json_wins_over_quiet(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"issues": []})
        output = format_result(result, settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["op"] == "check"

    def test_quiet(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"issues": []})
        assert format_result(result, settings=OutputSettings(quiet=True)) == "OK: check"

    def test_default_is_rich(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"issues": []})
        assert "No issues found" in format_result(result)


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True)
        console.print("hello")
        assert get_output(console) == "hello\n"

    def test_default_width(self) -> None:
        assert create_console().width == 120

    def test_theme_styles(self) -> None:
        console = create_console()
        console.print("[poly.ok]OK[/poly.ok]")
        assert get_output(console) == "OK\n"

    def test_style_for_method(self) -> None:
        assert style_for_method("GET") == "poly.method.get"
        assert style_for_method("delete") == "poly.method.delete"
