"""UserService: the identity collaborator, kept to what the core needs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from snackpool.domain.requests import Identity
from snackpool.services._helpers import money, now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import OperationAborted, ServiceResult
from snackpool.services.telemetry import traced

if TYPE_CHECKING:
    from snackpool.infrastructure.pool import Pool

logger = logging.getLogger(__name__)


def resolve_identity(pool: Pool, username: str) -> Identity | None:
    """Look up *username* and return its resolved Identity, or None."""
    with pool.snapshot() as snap:
        row = snap.catalog.find_user(username)
    if row is None:
        return None
    return Identity(user_id=row["id"], is_privileged=bool(row["is_admin"]))


class UserService(BaseService):
    """User listing plus admin-only registration and removal."""

    def resolve(self, username: str) -> Identity | None:
        """Identity for *username*, as the CLI host acts with it."""
        return resolve_identity(self._pool, username)

    @traced
    def list_users(self) -> ServiceResult:
        with self._pool.snapshot() as snap:
            rows = snap.catalog.list_users()
            balances = {r["id"]: r["balance_cents"] for r in snap.ledger.balances()}
        items = [
            {
                "id": r["id"],
                "username": r["username"],
                "is_admin": bool(r["is_admin"]),
                "created_at": r["created_at"],
                "current_balance": money(balances.get(r["id"], 0)),
            }
            for r in rows
        ]
        return ServiceResult(ok=True, op="list_users", data={"count": len(items), "items": items})

    @traced
    def add_user(
        self,
        identity: Identity,
        username: str,
        *,
        is_admin: bool = False,
    ) -> ServiceResult:
        op = "add_user"
        username = username.strip()
        if not username:
            return ServiceResult.failure(op, "VALIDATION_FAILED", "Username is required")
        try:
            self._require_privileged(identity, "register users")
            with self._pool.transaction() as txn:
                if txn.catalog.find_user(username) is not None:
                    raise OperationAborted(
                        "CONFLICT", f"Username already exists: {username}", username=username
                    )
                user_id = txn.catalog.add_user(username, is_admin=is_admin, now=now_iso())
        except OperationAborted as exc:
            return exc.to_result(op)
        except IntegrityError:
            return ServiceResult.failure(
                op, "CONFLICT", f"Username already exists: {username}", username=username
            )
        except SQLAlchemyError as exc:
            logger.exception("User insert rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": user_id, "username": username, "is_admin": is_admin},
        )

    @traced
    def remove_user(self, identity: Identity, user_id: int) -> ServiceResult:
        """Delete a user and their open orders (admin only).

        The configured admin account cannot be removed, and neither can a
        user with ledger history: their entries keep the ledger summing
        to zero.
        """
        op = "remove_user"
        try:
            self._require_privileged(identity, "remove users")
            with self._pool.transaction() as txn:
                row = txn.catalog.get_user(user_id)
                if row is None:
                    raise OperationAborted(
                        "NOT_FOUND", f"No user with id {user_id}", user_id=user_id
                    )
                username = row["username"]
                if username == self._pool.settings.admin.username:
                    raise OperationAborted(
                        "UNAUTHORIZED", "The pool admin cannot be removed", user_id=user_id
                    )
                if txn.ledger.has_entries(user_id):
                    raise OperationAborted(
                        "CONFLICT",
                        f"User {username} has ledger entries and cannot be removed",
                        user_id=user_id,
                    )
                orders_removed = txn.orders.remove_for_user(user_id)
                txn.catalog.delete_user(user_id)
        except OperationAborted as exc:
            return exc.to_result(op)
        except SQLAlchemyError as exc:
            logger.exception("User removal rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)
        logger.info("Removed user %s (%d open order(s))", username, orders_removed)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": user_id, "username": username, "orders_removed": orders_removed},
        )
