"""Tests for the root dynaplug CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from dynaplug import __version__
from dynaplug.cli import cli

pytestmark = pytest.mark.usefixtures("_isolated_cwd")


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "dynaplug" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


# --- Global flags ---


@pytest.mark.parametrize("flag", ["--json", "-v", "--verbose", "--log-json"])
def test_global_flag_accepted(cli_runner: CliRunner, flag: str) -> None:
    result = cli_runner.invoke(cli, [flag, "--version"])
    assert result.exit_code == 0


def test_config_option_accepted(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["-c", "/tmp/does-not-exist.toml", "--version"])
    assert result.exit_code == 0


def test_invalid_config_reports_error(cli_runner: CliRunner, tmp_path: Path) -> None:
    config = tmp_path / "broken.toml"
    config.write_text("[registry\n")
    result = cli_runner.invoke(cli, ["-c", str(config), "list"])
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output
