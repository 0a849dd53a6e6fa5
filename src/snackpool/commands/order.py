"""Command group: open orders and reconciliation batches."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from snackpool.commands._base import PoolGroup
from snackpool.services.orders import OrderQueryService
from snackpool.services.reconcile import ReconciliationService

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_ORDER_EXAMPLES = """\
  snackpool order list
  snackpool --as alice order set 3 2
  snackpool order set 3 0 --for 2
  snackpool order batch changes.json
  echo '[{"userId": 2, "itemId": 1, "quantity": 1}]' | snackpool order batch -"""


@click.group(cls=PoolGroup, examples=_ORDER_EXAMPLES)
def order() -> None:
    """Inspect and reconcile open orders."""


@order.command("list", examples="  snackpool order list\n  snackpool order list --user 2")
@click.option("--user", "user_id", type=int, default=None, help="Only this user's orders.")
@click.pass_obj
def list_cmd(app: AppContext, user_id: int | None) -> None:
    """List open orders, newest first."""
    app.emit(OrderQueryService(app.pool).list_orders(user_id=user_id))


@order.command(
    "set",
    examples="""\
  snackpool --as alice order set 3 2
  snackpool --as alice order set 3 0
  snackpool order set 3 1 --for 2""",
)
@click.argument("item_id", type=int)
@click.argument("quantity", type=int)
@click.option("--for", "user_id", type=int, default=None, help="Target user (admin only).")
@click.pass_obj
def set_cmd(app: AppContext, item_id: int, quantity: int, user_id: int | None) -> None:
    """Set one reservation to QUANTITY (0 removes it)."""
    identity = app.identity("set_order")
    app.emit(
        ReconciliationService(app.pool).set_order(identity, item_id, quantity, user_id=user_id)
    )


@order.command(
    examples="""\
  snackpool order batch changes.json
  cat changes.json | snackpool --json order batch -"""
)
@click.argument("source", type=click.File("r"))
@click.pass_obj
def batch(app: AppContext, source: IO[str]) -> None:
    """Apply a JSON array of {userId, itemId, quantity} all-or-nothing."""
    identity = app.identity("apply_batch")
    payload = app.read_json(source, "apply_batch")
    app.emit(ReconciliationService(app.pool).apply_batch(identity, payload))
