"""OrderQueryService: the outward projection of open orders."""

from __future__ import annotations

from snackpool.services._helpers import money
from snackpool.services.base import BaseService
from snackpool.services.result import ServiceResult
from snackpool.services.telemetry import traced


class OrderQueryService(BaseService):
    """Read-only views over the open-order table."""

    @traced
    def list_orders(self, *, user_id: int | None = None) -> ServiceResult:
        """Open orders newest first, joined with item name/price and username."""
        with self._pool.snapshot() as snap:
            rows = snap.reads.open_orders()
        if user_id is not None:
            rows = [r for r in rows if r["user_id"] == user_id]
        items = [
            {
                "id": r["id"],
                "user_id": r["user_id"],
                "username": r["username"],
                "item_id": r["item_id"],
                "item_name": r["item_name"],
                "quantity": r["quantity"],
                "price": money(r["price_cents"]),
                "line_total": money(r["price_cents"] * r["quantity"]),
                "created_at": r["created_at"],
            }
            for r in rows
        ]
        return ServiceResult(ok=True, op="list_orders", data={"count": len(items), "items": items})
