"""DeliveryService: settle open orders into the balance ledger.

Pipeline: VALIDATE → AUTHORIZE → SNAPSHOT → PRICE → RESOLVE → POST → CLEAR → EVENT → RESPOND

SNAPSHOT through CLEAR run in one ``BEGIN IMMEDIATE`` transaction: no
reconciliation batch can slip in between reading the open orders and
clearing them, and either every ledger entry of the confirmation exists
and the order table is empty, or nothing changed at all.

By default the amounts posted are recomputed here from the order
snapshot and catalog prices. The caller's ``user_totals`` are treated as
a hint and mismatches surface as warnings; ``[delivery]
trust_client_totals`` switches to posting the caller's map verbatim.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from snackpool.domain.money import MAX_CENTS, to_cents
from snackpool.domain.requests import ConfirmationRequest
from snackpool.services._helpers import describe_validation_error, money, now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import OperationAborted, ServiceResult
from snackpool.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from snackpool.domain.requests import Identity
    from snackpool.infrastructure.pool import PoolTransaction
    from snackpool.infrastructure.repositories import OpenOrder

logger = logging.getLogger(__name__)


class DeliveryService(BaseService):
    """Delivery confirmation and its read-only preview."""

    # ------------------------------------------------------------------
    # confirm: the settlement transaction
    # ------------------------------------------------------------------

    @traced
    def confirm(
        self,
        identity: Identity,
        request: ConfirmationRequest | dict[str, Any],
    ) -> ServiceResult:
        """Post one debit per participant, one credit to the deliverer, clear orders."""
        op = "confirm_delivery"
        cfg = self._pool.settings.delivery
        warnings: list[str] = []

        # ── VALIDATE ─────────────────────────────────────────────
        if not isinstance(request, ConfirmationRequest):
            try:
                request = ConfirmationRequest.model_validate(request)
            except ValidationError as exc:
                message, _ = describe_validation_error(exc)
                return ServiceResult.failure(op, "VALIDATION_FAILED", message)

        deliverer_id = request.delivering_user_id

        # ── AUTHORIZE ────────────────────────────────────────────
        if not identity.may_act_for(deliverer_id):
            return ServiceResult.failure(
                op,
                "UNAUTHORIZED",
                "Only an admin may confirm a delivery fronted by another user",
                actor_id=identity.user_id,
                delivering_user_id=deliverer_id,
            )

        now = now_iso()
        try:
            with self._pool.transaction() as txn:
                if txn.catalog.get_user(deliverer_id) is None:
                    raise OperationAborted(
                        "NOT_FOUND", f"No user with id {deliverer_id}", user_id=deliverer_id
                    )

                # ── SNAPSHOT → PRICE ─────────────────────────────
                with trace_span("snapshot") as span:
                    snapshot = list(txn.orders.list_all())
                    consumer_totals = _consumer_totals(txn, snapshot)
                    if span is not None:
                        span.annotate("orders", len(snapshot))

                # ── RESOLVE ──────────────────────────────────────
                with trace_span("resolve"):
                    id_by_name = txn.catalog.user_ids_by_name(request.user_totals)
                    unknown = sorted(n for n in request.user_totals if n not in id_by_name)
                    if unknown:
                        if cfg.strict_usernames:
                            raise OperationAborted(
                                "NOT_FOUND",
                                f"Unknown username(s) in totals: {', '.join(unknown)}",
                                usernames=unknown,
                            )
                        warnings.append(f"Skipped unknown username(s): {', '.join(unknown)}")

                    hinted = {
                        id_by_name[name]: to_cents(amount)
                        for name, amount in request.user_totals.items()
                        if name in id_by_name
                    }

                if cfg.trust_client_totals:
                    source = "client"
                    postings = hinted
                else:
                    source = "server"
                    postings = consumer_totals
                    if request.user_totals and _differs(hinted, consumer_totals):
                        warnings.append(
                            "Submitted totals differ from the open orders "
                            f"({request.hinted_total} submitted, "
                            f"{money(sum(consumer_totals.values()))} computed); "
                            "posted the totals computed from current prices"
                        )

                if not postings:
                    raise OperationAborted("NOTHING_TO_SETTLE", "There are no open orders to settle")

                # ── POST ─────────────────────────────────────────
                with trace_span("post") as span:
                    total_cents = sum(postings.values())
                    if total_cents > MAX_CENTS:
                        raise OperationAborted(
                            "VALIDATION_FAILED", "Delivery total exceeds the storable range"
                        )
                    entries: list[tuple[int, int, int]] = []
                    for user_id in sorted(postings):
                        cents = postings[user_id]
                        entry_id = txn.ledger.append(
                            user_id, -cents, cfg.payment_description, now=now
                        )
                        entries.append((entry_id, user_id, -cents))
                    credit_id = txn.ledger.append(
                        deliverer_id, total_cents, cfg.receipt_description, now=now
                    )
                    entries.append((credit_id, deliverer_id, total_cents))
                    if span is not None:
                        span.annotate("entries", len(entries))

                # ── CLEAR ────────────────────────────────────────
                with trace_span("clear"):
                    cleared = txn.orders.clear_all()

                names = txn.catalog.usernames_by_id(uid for _, uid, _ in entries)
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("Delivery confirmation rolled back")
            return ServiceResult.failure(
                op, "STORAGE_ERROR", f"Delivery was not confirmed: {exc.__class__.__name__}"
            )

        logger.info(
            "Delivery confirmed by user %s: %d entries, total %s cents, %d orders cleared",
            deliverer_id,
            len(entries),
            total_cents,
            cleared,
        )

        # ── EVENT ────────────────────────────────────────────────
        self._dispatch_event(
            "post_delivery",
            {
                "delivering_user_id": deliverer_id,
                "total": str(money(total_cents)),
                "entry_ids": [entry_id for entry_id, _, _ in entries],
            },
            warnings,
        )

        # ── RESPOND ──────────────────────────────────────────────
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "delivering_user_id": deliverer_id,
                "total": money(total_cents),
                "source": source,
                "orders_cleared": cleared,
                "entries": [
                    {
                        "id": entry_id,
                        "user_id": user_id,
                        "username": names.get(user_id),
                        "amount": money(cents),
                    }
                    for entry_id, user_id, cents in entries
                ],
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # preview: what a confirmation would post right now
    # ------------------------------------------------------------------

    @traced
    def preview(self) -> ServiceResult:
        """Per-user consumer totals and per-item aggregates of the open orders."""
        op = "preview_delivery"
        with self._pool.snapshot() as snap:
            rows = snap.reads.open_orders()

        by_user: dict[int, dict[str, Any]] = {}
        by_item: dict[int, dict[str, Any]] = {}
        for row in rows:
            line_cents = row["quantity"] * row["price_cents"]

            user = by_user.setdefault(
                row["user_id"],
                {"user_id": row["user_id"], "username": row["username"], "cents": 0},
            )
            user["cents"] += line_cents

            item = by_item.setdefault(
                row["item_id"],
                {
                    "item_id": row["item_id"],
                    "item_name": row["item_name"],
                    "price": money(row["price_cents"]),
                    "total_quantity": 0,
                    "cents": 0,
                    "by_user": {},
                },
            )
            item["total_quantity"] += row["quantity"]
            item["cents"] += line_cents
            item["by_user"][row["username"]] = row["quantity"]

        users = [
            {"user_id": u["user_id"], "username": u["username"], "total": money(u["cents"])}
            for u in sorted(by_user.values(), key=lambda u: u["username"])
        ]
        items = [
            {
                **{k: v for k, v in i.items() if k != "cents"},
                "line_total": money(i["cents"]),
            }
            for i in sorted(by_item.values(), key=lambda i: i["item_name"])
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "order_count": len(rows),
                "total": money(sum(u["cents"] for u in by_user.values())),
                "users": users,
                "items": items,
                "user_totals": {u["username"]: u["total"] for u in users},
            },
        )


def _consumer_totals(txn: PoolTransaction, snapshot: list[OpenOrder]) -> dict[int, int]:
    """Group ``quantity * price`` by ordering user, in cents."""
    prices = txn.catalog.prices_of(o.item_id for o in snapshot)
    totals: dict[int, int] = defaultdict(int)
    for order in snapshot:
        price = prices.get(order.item_id)
        if price is None:
            raise OperationAborted(
                "NOT_FOUND", f"No item with id {order.item_id}", item_id=order.item_id
            )
        totals[order.user_id] += order.quantity * price
    return dict(totals)


def _differs(hinted: dict[int, int], computed: dict[int, int]) -> bool:
    return any(hinted.get(uid, 0) != computed.get(uid, 0) for uid in hinted.keys() | computed)
