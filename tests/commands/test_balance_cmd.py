"""Tests for `snackpool balance`."""

import json

from click.testing import CliRunner

from tests.conftest import run_cli, run_json


class TestBalanceCommands:
    def test_correct_negative_amount(self, cli_pool: CliRunner) -> None:
        out = run_json(cli_pool, "balance", "correct", "2", "-1.50", "Cookie refund")
        assert out["op"] == "correct_balance"
        assert out["data"]["amount"] == "-1.50"
        assert out["data"]["current_balance"] == "-1.50"

        show = run_json(cli_pool, "balance", "show", "2")
        assert show["data"] == {"id": 2, "username": "ana", "current_balance": "-1.50"}

    def test_correct_needs_admin(self, cli_pool: CliRunner) -> None:
        result = run_cli(cli_pool, "--as", "ana", "balance", "correct", "2", "5.00", "Gift")
        assert result.exit_code == 1
        assert "UNAUTHORIZED" in result.output

    def test_show_unknown_user(self, cli_pool: CliRunner) -> None:
        result = run_cli(cli_pool, "--json", "balance", "show", "42")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"]["code"] == "NOT_FOUND"

    def test_history_newest_first(self, cli_pool: CliRunner) -> None:
        run_cli(cli_pool, "balance", "correct", "2", "1.00", "first")
        run_cli(cli_pool, "balance", "correct", "3", "2.00", "second")
        items = run_json(cli_pool, "balance", "history")["data"]["items"]
        assert [e["description"] for e in items] == ["second", "first"]
        limited = run_json(cli_pool, "balance", "history", "--limit", "1")["data"]["items"]
        assert [e["description"] for e in limited] == ["second"]

    def test_history_bad_limit(self, cli_pool: CliRunner) -> None:
        result = run_cli(cli_pool, "balance", "history", "--limit", "0")
        assert result.exit_code == 1
        assert "VALIDATION_FAILED" in result.output

    def test_list_human(self, cli_pool: CliRunner) -> None:
        result = run_cli(cli_pool, "balance", "list")
        assert result.exit_code == 0
        assert "Balances" in result.output
        assert "ben" in result.output
