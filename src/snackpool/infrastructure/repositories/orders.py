"""OrderStore: the authoritative table of open reservations.

One row per (user, item) with a strictly positive quantity. There is no
such thing as a zero-quantity order: callers that want to drop a
reservation call :meth:`OrderStore.remove`.

The caller owns the transaction: construct the store with a
``Connection`` obtained from ``Pool.transaction()`` so every mutation
participates in the surrounding atomic unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update

from snackpool.infrastructure.database.schema import orders

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Row


class InvalidQuantityError(ValueError):
    """Raised when an upsert would store a quantity below one."""


@dataclass(frozen=True)
class OpenOrder:
    """An unsettled reservation of *quantity* for one (user, item) pair."""

    id: int
    user_id: int
    item_id: int
    quantity: int
    created_at: str


class OrderStore:
    """Repository over the ``orders`` table bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def upsert(self, user_id: int, item_id: int, quantity: int, *, now: str) -> bool:
        """Set the reservation for (user, item) to exactly *quantity*.

        Replaces the quantity of an existing row (keeping its original
        ``created_at``) or inserts a new one.

        Returns:
            True if a new row was inserted, False if an existing row was replaced.

        Raises:
            InvalidQuantityError: If *quantity* is below one.
        """
        if quantity < 1:
            msg = f"Quantity must be at least 1, got {quantity}; use remove() instead"
            raise InvalidQuantityError(msg)

        result = self._conn.execute(
            update(orders)
            .where(orders.c.user_id == user_id, orders.c.item_id == item_id)
            .values(quantity=quantity)
        )
        if result.rowcount:
            return False

        self._conn.execute(
            insert(orders).values(
                user_id=user_id,
                item_id=item_id,
                quantity=quantity,
                created_at=now,
            )
        )
        return True

    def remove(self, user_id: int, item_id: int) -> bool:
        """Delete the row for (user, item). Absent rows are not an error.

        Returns True if a row was deleted.
        """
        result = self._conn.execute(
            delete(orders).where(orders.c.user_id == user_id, orders.c.item_id == item_id)
        )
        return bool(result.rowcount)

    def get(self, user_id: int, item_id: int) -> OpenOrder | None:
        row = self._conn.execute(
            select(orders).where(orders.c.user_id == user_id, orders.c.item_id == item_id)
        ).first()
        return _to_order(row) if row is not None else None

    def list_all(self) -> Iterator[OpenOrder]:
        """Yield every open order, newest first.

        Each call issues a fresh query, so the sequence can be restarted
        by calling again. Aggregating callers must not rely on the order.
        """
        stmt = select(orders).order_by(orders.c.created_at.desc(), orders.c.id.desc())
        for row in self._conn.execute(stmt):
            yield _to_order(row)

    def count(self) -> int:
        return int(self._conn.execute(select(func.count(orders.c.id))).scalar_one())

    def remove_for_item(self, item_id: int) -> int:
        """Delete every reservation of *item_id*. Returns rows removed."""
        result = self._conn.execute(delete(orders).where(orders.c.item_id == item_id))
        return int(result.rowcount or 0)

    def remove_for_user(self, user_id: int) -> int:
        """Delete every reservation held by *user_id*. Returns rows removed."""
        result = self._conn.execute(delete(orders).where(orders.c.user_id == user_id))
        return int(result.rowcount or 0)

    def clear_all(self) -> int:
        """Remove every row. Reserved for delivery settlement.

        Returns the number of rows removed.
        """
        result = self._conn.execute(delete(orders))
        return int(result.rowcount or 0)


def _to_order(row: Row[Any]) -> OpenOrder:
    return OpenOrder(
        id=row.id,
        user_id=row.user_id,
        item_id=row.item_id,
        quantity=row.quantity,
        created_at=row.created_at,
    )
