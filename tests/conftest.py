"""Shared pytest fixtures and test helpers for snackpool tests."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result
from sqlalchemy.engine import Engine
from structlog.stdlib import ProcessorFormatter

from snackpool.config.settings import PoolSettings
from snackpool.domain.requests import Identity
from snackpool.infrastructure.database.engine import init_database
from snackpool.infrastructure.pool import Pool


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's SNACKPOOL_* environment out of the tests."""
    for name in list(os.environ):
        if name.startswith("SNACKPOOL_"):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def _restore_root_handlers() -> Iterator[None]:
    """CLI invocations install a stderr handler bound to CliRunner's stream."""
    root = logging.getLogger()
    before = set(root.handlers)
    yield
    for handler in root.handlers[:]:
        if handler not in before and isinstance(handler.formatter, ProcessorFormatter):
            root.removeHandler(handler)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def pool_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def pool(pool_root: Path) -> Iterator[Pool]:
    """Empty pool (schema only, no users or items) on a temp directory."""
    p = Pool(PoolSettings.from_cli(pool_root=pool_root))
    try:
        yield p
    finally:
        p.close()


def make_pool(pool_root: Path, **overrides: Any) -> Pool:
    """Pool with settings overrides, e.g. ``delivery={"strict_usernames": False}``."""
    return Pool(PoolSettings.from_cli(pool_root=pool_root, **overrides))


@pytest.fixture
def _isolated_pool(pool_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp pool root so the CLI creates an isolated pool.

    Use via ``@pytest.mark.usefixtures("_isolated_pool")`` on command test
    classes.
    """
    monkeypatch.chdir(pool_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------

ADMIN = Identity(user_id=0, is_privileged=True)


def add_user(pool: Pool, username: str, *, is_admin: bool = False) -> int:
    """Insert a user directly through the repository and return its id."""
    with pool.transaction() as txn:
        return txn.catalog.add_user(username, is_admin=is_admin, now="2024-01-01T00:00:00")


def add_item(pool: Pool, name: str, price: str | Decimal) -> int:
    """Insert an item directly through the repository and return its id."""
    from snackpool.domain.money import to_cents

    with pool.transaction() as txn:
        return txn.catalog.add_item(name, to_cents(price), now="2024-01-01T00:00:00")


def as_user(user_id: int) -> Identity:
    return Identity(user_id=user_id)


def set_orders(pool: Pool, *rows: tuple[int, int, int]) -> None:
    """Apply ``(user_id, item_id, quantity)`` rows as an admin batch, asserting success."""
    from snackpool.services.reconcile import ReconciliationService

    batch = [{"user_id": u, "item_id": i, "quantity": q} for u, i, q in rows]
    result = ReconciliationService(pool).apply_batch(ADMIN, batch)
    assert result.ok, result.error


def balance_of(pool: Pool, user_id: int) -> Decimal:
    from snackpool.domain.money import from_cents

    with pool.snapshot() as snap:
        return from_cents(snap.ledger.current_balance(user_id))


def ledger_sum(pool: Pool) -> int:
    """Sum of every ledger entry in cents."""
    with pool.snapshot() as snap:
        return sum(e.amount_cents for e in snap.ledger.history())


def order_rows(pool: Pool) -> set[tuple[int, int, int]]:
    with pool.snapshot() as snap:
        return {(o.user_id, o.item_id, o.quantity) for o in snap.orders.list_all()}


def run_cli(runner: CliRunner, *args: str, input: str | None = None) -> Result:
    """Invoke the root group with *args* and return the Click result."""
    from snackpool.cli import cli

    return runner.invoke(cli, list(args), input=input)


def run_json(runner: CliRunner, *args: str, input: str | None = None) -> dict[str, Any]:
    """Invoke with ``--json`` and parse the emitted ServiceResult."""
    result = run_cli(runner, "--json", *args, input=input)
    return json.loads(result.output)


@pytest.fixture
def cli_pool(cli_runner: CliRunner, _isolated_pool: None) -> CliRunner:
    """Initialized pool in CWD.

    admin is user 1, ana 2, ben 3; the default menu holds items 1-10
    (Coffee 2.50 is item 1, Tea 2.00 is item 2).
    """
    assert run_cli(cli_runner, "init").exit_code == 0
    assert run_cli(cli_runner, "user", "add", "ana").exit_code == 0
    assert run_cli(cli_runner, "user", "add", "ben").exit_code == 0
    return cli_runner
