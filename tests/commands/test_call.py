"""Tests for the call command."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from polyface.cli import cli
from tests.conftest import CALC_TARGET, FEED_TARGET, USERS_TARGET


class TestCallCommand:
    def test_named_params(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            cli, ["call", "get_user", "--params", '{"user_id": "42"}', "-t", USERS_TARGET]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["name"] == "Ada"

    def test_positional_params_quiet(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            cli, ["-q", "call", "multiply", "-p", "[6, 7]", "-t", CALC_TARGET]
        )
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "42"

    def test_stream_materialized(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            cli, ["-q", "call", "stream_events", "-p", '{"count": 2}', "-t", FEED_TARGET]
        )
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "[0,1]"

    def test_json_envelope(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "call", "add", "-p", '{"a": 1, "b": 2}', "-t", CALC_TARGET]
        )
        parsed = json.loads(result.output)
        assert parsed["data"] == {"operation": "add", "result": 3}

    def test_operation_error(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            cli, ["call", "divide", "-p", '{"a": 1, "b": 0}', "-t", CALC_TARGET]
        )
        assert result.exit_code == 1
        assert "OPERATION_FAILED" in result.output
        assert "division by zero" in result.output

    def test_bad_params(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["call", "add", "-p", "{nope", "-t", CALC_TARGET])
        assert result.exit_code == 1
        assert "INVALID_PARAMS" in result.output

    def test_unknown_operation(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["call", "nope", "-t", CALC_TARGET])
        assert result.exit_code == 1
        assert "Method not found: nope" in result.output
