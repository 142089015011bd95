"""Tests for the root polyface CLI."""

from click.testing import CliRunner

from polyface import __version__
from polyface.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "polyface" in result.output
    for name in ("emit", "inspect", "check", "compose", "call", "serve"):
        assert name in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_root_examples(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--examples"])
    assert result.exit_code == 0
    assert "Examples for" in result.output
    assert "polyface inspect" in result.output


def test_missing_config_file(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["-c", "/nonexistent/polyface.toml", "inspect"])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_unknown_command(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["publish"])
    assert result.exit_code == 2


# --- Global flags ---


def test_json_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["--json", "--version"]).exit_code == 0


def test_quiet_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["-q", "--version"]).exit_code == 0


def test_verbose_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["-v", "--version"]).exit_code == 0
