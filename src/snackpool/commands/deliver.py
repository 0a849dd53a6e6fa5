"""Command group: delivery preview and confirmation."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from snackpool.commands._base import PoolGroup
from snackpool.services.delivery import DeliveryService

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_DELIVER_EXAMPLES = """\
  snackpool deliver preview
  snackpool --as carol deliver confirm --by 3
  snackpool deliver confirm --by 3 --totals totals.json"""


@click.group(cls=PoolGroup, examples=_DELIVER_EXAMPLES)
def deliver() -> None:
    """Settle open orders into the ledger."""


@deliver.command(examples="  snackpool deliver preview\n  snackpool --json deliver preview")
@click.pass_obj
def preview(app: AppContext) -> None:
    """Show what a confirmation would post right now."""
    app.emit(DeliveryService(app.pool).preview())


@deliver.command(
    examples="""\
  snackpool --as carol deliver confirm --by 3
  snackpool deliver confirm --by 3 --totals totals.json
  echo '{"alice": "5.00"}' | snackpool deliver confirm --by 3 --totals -"""
)
@click.option("--by", "delivering_user_id", type=int, required=True, help="User who paid.")
@click.option(
    "--totals",
    type=click.File("r"),
    default=None,
    help="JSON object of username -> amount (hint, or posted verbatim in trust mode).",
)
@click.pass_obj
def confirm(app: AppContext, delivering_user_id: int, totals: IO[str] | None) -> None:
    """Debit every participant, credit the deliverer, and clear open orders."""
    identity = app.identity("confirm_delivery")
    user_totals = app.read_json(totals, "confirm_delivery") if totals is not None else {}
    request = {"delivering_user_id": delivering_user_id, "user_totals": user_totals}
    app.emit(DeliveryService(app.pool).confirm(identity, request))
