"""CatalogService: minimal CRUD over the item catalog.

Items carry no invariants beyond existence and a non-negative price.
Deleting an item removes every open order that references it in the
same transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from snackpool.domain.money import to_cents
from snackpool.services._helpers import money, now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import OperationAborted, ServiceResult
from snackpool.services.telemetry import traced

if TYPE_CHECKING:
    from decimal import Decimal

    from snackpool.domain.requests import Identity

logger = logging.getLogger(__name__)


def _item_payload(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "price": money(row["price_cents"]),
        "created_at": row["created_at"],
    }


def _validate_item(name: str, price: Decimal | int | str | float) -> tuple[str, int]:
    name = name.strip()
    if not name:
        raise OperationAborted("VALIDATION_FAILED", "Item name is required")
    try:
        cents = to_cents(price)
    except ValueError as exc:
        raise OperationAborted("VALIDATION_FAILED", str(exc)) from exc
    if cents < 0:
        raise OperationAborted("VALIDATION_FAILED", "Price must not be negative")
    return name, cents


class CatalogService(BaseService):
    """Items and their prices."""

    @traced
    def list_items(self) -> ServiceResult:
        with self._pool.snapshot() as snap:
            items = [_item_payload(r) for r in snap.catalog.list_items()]
        return ServiceResult(ok=True, op="list_items", data={"count": len(items), "items": items})

    @traced
    def add_item(
        self, identity: Identity, name: str, price: Decimal | int | str | float
    ) -> ServiceResult:
        op = "add_item"
        try:
            self._require_privileged(identity, "manage items")
            name, cents = _validate_item(name, price)
            with self._pool.transaction() as txn:
                item_id = txn.catalog.add_item(name, cents, now=now_iso())
                row = txn.catalog.get_item(item_id)
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("Item insert rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)
        assert row is not None
        return ServiceResult(ok=True, op=op, data=_item_payload(row))

    @traced
    def update_item(
        self,
        identity: Identity,
        item_id: int,
        name: str,
        price: Decimal | int | str | float,
    ) -> ServiceResult:
        """Rename/reprice an item. Open orders settle at the price in effect at delivery."""
        op = "update_item"
        try:
            self._require_privileged(identity, "manage items")
            name, cents = _validate_item(name, price)
            with self._pool.transaction() as txn:
                if not txn.catalog.update_item(item_id, name, cents):
                    raise OperationAborted(
                        "NOT_FOUND", f"No item with id {item_id}", item_id=item_id
                    )
                row = txn.catalog.get_item(item_id)
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("Item update rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)
        assert row is not None
        return ServiceResult(ok=True, op=op, data=_item_payload(row))

    @traced
    def delete_item(self, identity: Identity, item_id: int) -> ServiceResult:
        op = "delete_item"
        try:
            self._require_privileged(identity, "manage items")
            with self._pool.transaction() as txn:
                orders_removed = txn.orders.remove_for_item(item_id)
                if not txn.catalog.delete_item(item_id):
                    raise OperationAborted(
                        "NOT_FOUND", f"No item with id {item_id}", item_id=item_id
                    )
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("Item delete rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)

        warnings: list[str] = []
        self._dispatch_event(
            "post_item_delete",
            {"item_id": item_id, "orders_removed": orders_removed},
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": item_id, "orders_removed": orders_removed},
            warnings=warnings,
        )
