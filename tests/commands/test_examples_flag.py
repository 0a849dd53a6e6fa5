"""Tests for the --examples flag on groups and commands."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.conftest import run_cli


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["item"], "snackpool item add"),
        (["order", "batch"], "snackpool order batch changes.json"),
        (["deliver", "confirm"], "--totals"),
        (["balance", "correct"], "-1.50"),
        (["init"], "--no-seed"),
        (["user", "remove"], "snackpool user remove 4"),
    ],
)
def test_prints_examples(cli_runner: CliRunner, args: list[str], expected: str) -> None:
    result = run_cli(cli_runner, *args, "--examples")
    assert result.exit_code == 0
    assert "Examples for" in result.output
    assert expected in result.output


@pytest.mark.usefixtures("_isolated_pool")
def test_does_not_touch_database(cli_runner: CliRunner, pool_root: Path) -> None:
    run_cli(cli_runner, "item", "list", "--examples")
    assert not (pool_root / ".snackpool").exists()


def test_help_is_short(cli_runner: CliRunner) -> None:
    result = run_cli(cli_runner, "order", "--help")
    assert "--examples" in result.output
    assert "changes.json" not in result.output
