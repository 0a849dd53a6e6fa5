"""LedgerService: balances, history, and correction entries.

Balances are always derived from the append-only ledger; nothing here
stores or updates a balance. Corrections are new offsetting entries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from snackpool.domain.money import to_cents
from snackpool.infrastructure.repositories import UnknownUserError
from snackpool.services._helpers import money, now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import OperationAborted, ServiceResult
from snackpool.services.telemetry import traced

if TYPE_CHECKING:
    from decimal import Decimal

    from snackpool.domain.requests import Identity

logger = logging.getLogger(__name__)


class LedgerService(BaseService):
    """Read projections over the ledger plus privileged corrections."""

    @traced
    def balances(self) -> ServiceResult:
        """Every user with ``current_balance``, sorted by username."""
        with self._pool.snapshot() as snap:
            rows = snap.ledger.balances()
        items = [
            {"id": r["id"], "username": r["username"], "current_balance": money(r["balance_cents"])}
            for r in rows
        ]
        return ServiceResult(ok=True, op="balances", data={"count": len(items), "items": items})

    @traced
    def balance(self, user_id: int) -> ServiceResult:
        """One user's derived balance."""
        op = "balance"
        with self._pool.snapshot() as snap:
            user = snap.catalog.get_user(user_id)
            if user is None:
                return ServiceResult.failure(
                    op, "NOT_FOUND", f"No user with id {user_id}", user_id=user_id
                )
            cents = snap.ledger.current_balance(user_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": user_id, "username": user["username"], "current_balance": money(cents)},
        )

    @traced
    def history(self, *, limit: int | None = None) -> ServiceResult:
        """All ledger entries newest first, joined with username."""
        op = "history"
        if limit is not None and limit < 1:
            return ServiceResult.failure(op, "VALIDATION_FAILED", "limit must be at least 1")
        with self._pool.snapshot() as snap:
            items = [
                {
                    "id": e.id,
                    "user_id": e.user_id,
                    "username": e.username,
                    "amount": money(e.amount_cents),
                    "description": e.description,
                    "created_at": e.created_at,
                }
                for e in snap.ledger.history(limit=limit)
            ]
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    @traced
    def correct(
        self,
        identity: Identity,
        user_id: int,
        amount: Decimal | int | str | float,
        description: str,
    ) -> ServiceResult:
        """Append an offsetting correction entry (admin only)."""
        op = "correct_balance"
        description = description.strip()
        if not description:
            return ServiceResult.failure(op, "VALIDATION_FAILED", "A description is required")
        try:
            cents = to_cents(amount)
        except ValueError as exc:
            return ServiceResult.failure(op, "VALIDATION_FAILED", str(exc))

        try:
            self._require_privileged(identity, "correct balances")
            with self._pool.transaction() as txn:
                entry_id = txn.ledger.append(user_id, cents, description, now=now_iso())
                balance_cents = txn.ledger.current_balance(user_id)
        except OperationAborted as exc:
            return exc.to_result(op)
        except UnknownUserError as exc:
            return ServiceResult.failure(op, "NOT_FOUND", str(exc), user_id=exc.user_id)
        except SQLAlchemyError as exc:
            logger.exception("Balance correction rolled back")
            return ServiceResult.failure(
                op, "STORAGE_ERROR", f"Correction was not recorded: {exc.__class__.__name__}"
            )

        warnings: list[str] = []
        self._dispatch_event(
            "post_correction",
            {"entry_id": entry_id, "user_id": user_id, "amount": str(money(cents))},
            warnings,
        )
        data: dict[str, Any] = {
            "id": entry_id,
            "user_id": user_id,
            "amount": money(cents),
            "description": description,
            "current_balance": money(balance_cents),
        }
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
