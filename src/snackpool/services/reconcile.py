"""ReconciliationService: atomic batch edits of the open-order table.

Pipeline: VALIDATE → AUTHORIZE → RESOLVE → APPLY → EVENT → RESPOND

The whole batch is validated and authorized before any storage is
touched; reference resolution and application then run inside a single
``BEGIN IMMEDIATE`` transaction so a failure at any row leaves the
OrderStore exactly as it was.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from snackpool.domain.requests import OrderMutation, parse_batch
from snackpool.services._helpers import describe_validation_error, now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import OperationAborted, ServiceResult
from snackpool.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from snackpool.domain.requests import Identity
    from snackpool.infrastructure.pool import PoolTransaction

logger = logging.getLogger(__name__)


class ReconciliationService(BaseService):
    """Applies batches of ``{user_id, item_id, quantity}`` mutations."""

    @traced
    def apply_batch(self, identity: Identity, raw_batch: Any) -> ServiceResult:
        """Apply *raw_batch* all-or-nothing.

        ``quantity == 0`` removes the reservation, ``quantity > 0`` sets it to
        exactly that value. Rows apply in order, so when a key repeats the
        later request wins.
        """
        op = "apply_batch"

        # ── VALIDATE ─────────────────────────────────────────────
        with trace_span("validate"):
            try:
                batch = parse_batch(raw_batch)
            except ValidationError as exc:
                message, index = describe_validation_error(exc)
                return ServiceResult.failure(op, "VALIDATION_FAILED", message, index=index)

        # ── AUTHORIZE ────────────────────────────────────────────
        for index, request in enumerate(batch):
            if not identity.may_act_for(request.user_id):
                logger.warning(
                    "Rejected batch: actor %s targeted user %s",
                    identity.user_id,
                    request.user_id,
                )
                return ServiceResult.failure(
                    op,
                    "UNAUTHORIZED",
                    f"request {index}: not allowed to update orders of user {request.user_id}",
                    index=index,
                    actor_id=identity.user_id,
                )

        if not batch:
            return ServiceResult(
                ok=True,
                op=op,
                data={"requested": 0, "upserted": 0, "removed": 0},
            )

        # ── RESOLVE → APPLY (inside transaction) ─────────────────
        upserted = 0
        removed = 0
        now = now_iso()
        try:
            with self._pool.transaction() as txn:
                with trace_span("resolve"):
                    _resolve_references(txn, batch)

                with trace_span("apply") as span:
                    for request in batch:
                        if request.quantity == 0:
                            if txn.orders.remove(request.user_id, request.item_id):
                                removed += 1
                        else:
                            txn.orders.upsert(
                                request.user_id,
                                request.item_id,
                                request.quantity,
                                now=now,
                            )
                            upserted += 1
                    if span is not None:
                        span.annotate("upserted", upserted)
                        span.annotate("removed", removed)
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("Batch reconciliation rolled back")
            return ServiceResult.failure(
                op, "STORAGE_ERROR", f"Orders were not updated: {exc.__class__.__name__}"
            )

        logger.debug(
            "Applied batch of %d (upserted=%d removed=%d)", len(batch), upserted, removed
        )

        # ── EVENT ────────────────────────────────────────────────
        warnings: list[str] = []
        self._dispatch_event(
            "post_reconcile",
            {"actor_id": identity.user_id, "upserted": upserted, "removed": removed},
            warnings,
        )

        # ── RESPOND ──────────────────────────────────────────────
        return ServiceResult(
            ok=True,
            op=op,
            data={"requested": len(batch), "upserted": upserted, "removed": removed},
            warnings=warnings,
        )

    @traced
    def set_order(
        self,
        identity: Identity,
        item_id: int,
        quantity: int,
        *,
        user_id: int | None = None,
    ) -> ServiceResult:
        """Set one reservation (defaults to the actor's own order)."""
        request = {
            "user_id": identity.user_id if user_id is None else user_id,
            "item_id": item_id,
            "quantity": quantity,
        }
        result = self.apply_batch(identity, [request])
        return result.model_copy(update={"op": "set_order"})


def _resolve_references(txn: PoolTransaction, batch: list[OrderMutation]) -> None:
    """Abort with NOT_FOUND at the first request naming an unknown user or item."""
    known_users = txn.catalog.existing_user_ids(r.user_id for r in batch)
    known_items = txn.catalog.existing_item_ids(r.item_id for r in batch)
    for index, request in enumerate(batch):
        if request.user_id not in known_users:
            raise OperationAborted(
                "NOT_FOUND",
                f"request {index}: no user with id {request.user_id}",
                index=index,
            )
        if request.item_id not in known_items:
            raise OperationAborted(
                "NOT_FOUND",
                f"request {index}: no item with id {request.item_id}",
                index=index,
            )
