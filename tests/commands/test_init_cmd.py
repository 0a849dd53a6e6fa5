"""Tests for `snackpool init`."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.conftest import run_cli, run_json


@pytest.mark.usefixtures("_isolated_pool")
class TestInitCommand:
    def test_creates_pool(self, cli_runner: CliRunner, pool_root: Path) -> None:
        out = run_json(cli_runner, "init")
        assert out["ok"] is True
        assert out["op"] == "init_pool"
        assert out["data"]["admin"] == {"id": 1, "username": "admin", "created": True}
        assert out["data"]["items_seeded"] == 10
        assert (pool_root / ".snackpool" / "snackpool.db").is_file()

    def test_rerun_is_idempotent(self, cli_runner: CliRunner) -> None:
        run_cli(cli_runner, "init")
        out = run_json(cli_runner, "init")
        assert out["data"]["admin"]["created"] is False
        assert out["data"]["items_seeded"] == 0

    def test_no_seed(self, cli_runner: CliRunner) -> None:
        out = run_json(cli_runner, "init", "--no-seed")
        assert out["data"]["items_seeded"] == 0
        assert run_json(cli_runner, "item", "list")["data"]["count"] == 0

    def test_admin_name_from_toml(self, cli_runner: CliRunner, pool_root: Path) -> None:
        (pool_root / "snackpool.toml").write_text('[admin]\nusername = "office"\n')
        out = run_json(cli_runner, "init")
        assert out["data"]["admin"]["username"] == "office"

    def test_human_output(self, cli_runner: CliRunner) -> None:
        result = run_cli(cli_runner, "init")
        assert result.exit_code == 0
        assert "init_pool" in result.output
        assert "admin (id 1, created)" in result.output
