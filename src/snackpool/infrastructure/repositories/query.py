"""Read-side projections joining orders and ledger rows with display names."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from snackpool.infrastructure.database.schema import items, orders, users

if TYPE_CHECKING:
    from sqlalchemy import Connection


class ReadRepository:
    """Encapsulates SQL for read-only order projections."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def open_orders(self) -> list[dict[str, Any]]:
        """Open orders newest first, joined with item name/price and username."""
        stmt = (
            select(
                orders.c.id,
                orders.c.user_id,
                users.c.username,
                orders.c.item_id,
                items.c.name.label("item_name"),
                items.c.price_cents,
                orders.c.quantity,
                orders.c.created_at,
            )
            .join(users, users.c.id == orders.c.user_id)
            .join(items, items.c.id == orders.c.item_id)
            .order_by(orders.c.created_at.desc(), orders.c.id.desc())
        )
        return [dict(r) for r in self._conn.execute(stmt).mappings()]
