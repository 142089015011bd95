"""Tests for the serve command with a stand-in FastMCP class."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

import polyface.mcp.server as server_module
from polyface.cli import cli
from tests.conftest import CALC_TARGET, FEED_TARGET


class _FakeFastMCP:
    instances: list[_FakeFastMCP] = []

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        self.kwargs = kwargs
        self.tools: list[str] = []
        self.transport: str | None = None
        _FakeFastMCP.instances.append(self)

    def add_tool(self, fn: Any, *, name: str, description: str) -> None:
        self.tools.append(name)

    def run(self, transport: str = "stdio") -> None:
        self.transport = transport


@pytest.fixture
def fake_mcp(monkeypatch: pytest.MonkeyPatch) -> type[_FakeFastMCP]:
    _FakeFastMCP.instances = []
    monkeypatch.setattr(server_module, "mcp_available", True)
    monkeypatch.setattr(server_module, "_FastMCP", _FakeFastMCP)
    return _FakeFastMCP


class TestServeCommand:
    def test_mcp_not_installed(
        self, cli_runner: CliRunner, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(server_module, "mcp_available", False)
        result = cli_runner.invoke(cli, ["serve", "-t", CALC_TARGET])
        assert result.exit_code == 1
        assert "pip install polyface[mcp]" in result.output

    def test_runs_stdio_by_default(
        self, cli_runner: CliRunner, project: Path, fake_mcp: type[_FakeFastMCP]
    ) -> None:
        result = cli_runner.invoke(cli, ["serve", "-t", CALC_TARGET])
        assert result.exit_code == 0, result.output
        server = fake_mcp.instances[0]
        assert server.transport == "stdio"
        assert server.tools == ["add", "multiply", "divide"]

    def test_http_transport_with_emit(
        self, cli_runner: CliRunner, project: Path, fake_mcp: type[_FakeFastMCP]
    ) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "serve",
                "-t",
                CALC_TARGET,
                "--transport",
                "streamable-http",
                "--port",
                "9000",
                "--with-emit",
            ],
        )
        assert result.exit_code == 0, result.output
        server = fake_mcp.instances[0]
        assert server.transport == "streamable-http"
        assert server.kwargs["port"] == 9000
        assert "polyface_emit" in server.tools

    def test_contract_error(
        self, cli_runner: CliRunner, project: Path, fake_mcp: type[_FakeFastMCP]
    ) -> None:
        result = cli_runner.invoke(cli, ["serve", "-t", FEED_TARGET])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert fake_mcp.instances == []

    def test_bad_transport(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(cli, ["serve", "--transport", "carrier-pigeon"])
        assert result.exit_code == 2
