"""Command group: balances, ledger history, and corrections."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from snackpool.commands._base import PoolGroup
from snackpool.services.ledger import LedgerService

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_BALANCE_EXAMPLES = """\
  snackpool balance list
  snackpool balance show 2
  snackpool balance history --limit 20
  snackpool balance correct 2 -1.50 "Refund: cookie was out of stock\""""


@click.group(cls=PoolGroup, examples=_BALANCE_EXAMPLES)
def balance() -> None:
    """Read balances and the ledger."""


@balance.command("list", examples="  snackpool balance list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Every user's balance (sum of their ledger entries)."""
    app.emit(LedgerService(app.pool).balances())


@balance.command(examples="  snackpool balance show 2")
@click.argument("user_id", type=int)
@click.pass_obj
def show(app: AppContext, user_id: int) -> None:
    """One user's current balance."""
    app.emit(LedgerService(app.pool).balance(user_id))


@balance.command(examples="  snackpool balance history\n  snackpool balance history --limit 5")
@click.option("--limit", type=int, default=None, help="Newest N entries only.")
@click.pass_obj
def history(app: AppContext, limit: int | None) -> None:
    """Ledger entries, newest first."""
    app.emit(LedgerService(app.pool).history(limit=limit))


@balance.command(
    context_settings={"ignore_unknown_options": True},
    examples='  snackpool balance correct 2 -1.50 "Refund: cookie was out of stock"',
)
@click.argument("user_id", type=int)
@click.argument("amount")
@click.argument("description")
@click.pass_obj
def correct(app: AppContext, user_id: int, amount: str, description: str) -> None:
    """Append a correcting entry of AMOUNT to a user (admin only)."""
    identity = app.identity("correct_balance")
    app.emit(LedgerService(app.pool).correct(identity, user_id, amount, description))
