"""Tests for the inspect command."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from polyface.cli import cli
from tests.conftest import USERS_TARGET


class TestInspectCommand:
    def test_table(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["inspect", "-t", USERS_TARGET])
        assert result.exit_code == 0, result.output
        assert "UserService" in result.output
        assert "get_user" in result.output
        assert "/users/{id}" in result.output

    def test_json(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "inspect", "-t", USERS_TARGET])
        assert result.exit_code == 0, result.output
        rows = {r["name"]: r for r in json.loads(result.output)["data"]["operations"]}
        assert rows["create_user"]["method"] == "POST"
        assert rows["whoami"]["path"] == "/me"

    def test_quiet_lists_names(
        self, cli_runner: CliRunner, project: Path, service_file: Path
    ) -> None:
        result = cli_runner.invoke(cli, ["-q", "inspect", "--file", str(service_file)])
        assert result.exit_code == 0, result.output
        assert result.output.split() == ["get_item", "add_item", "list_items"]

    def test_missing_file(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["inspect", "--file", "missing.toml"])
        assert result.exit_code == 2
