"""Command group: the item catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from snackpool.commands._base import PoolGroup
from snackpool.services.catalog import CatalogService

if TYPE_CHECKING:
    from snackpool.commands._context import AppContext

_ITEM_EXAMPLES = """\
  snackpool item list
  snackpool item add "Flat White" 3.10
  snackpool item update 4 "Cappuccino (large)" 3.40
  snackpool item remove 4"""


@click.group(cls=PoolGroup, examples=_ITEM_EXAMPLES)
def item() -> None:
    """List and manage orderable items."""


@item.command("list", examples="  snackpool item list\n  snackpool --json item list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List all items by name."""
    app.emit(CatalogService(app.pool).list_items())


@item.command(examples='  snackpool item add "Flat White" 3.10')
@click.argument("name")
@click.argument("price")
@click.pass_obj
def add(app: AppContext, name: str, price: str) -> None:
    """Add an item (admin only)."""
    app.emit(CatalogService(app.pool).add_item(app.identity("add_item"), name, price))


@item.command(examples='  snackpool item update 4 "Cappuccino (large)" 3.40')
@click.argument("item_id", type=int)
@click.argument("name")
@click.argument("price")
@click.pass_obj
def update(app: AppContext, item_id: int, name: str, price: str) -> None:
    """Rename or reprice an item (admin only)."""
    identity = app.identity("update_item")
    app.emit(CatalogService(app.pool).update_item(identity, item_id, name, price))


@item.command(examples="  snackpool item remove 4")
@click.argument("item_id", type=int)
@click.pass_obj
def remove(app: AppContext, item_id: int) -> None:
    """Delete an item and every open order for it (admin only)."""
    app.emit(CatalogService(app.pool).delete_item(app.identity("delete_item"), item_id))
