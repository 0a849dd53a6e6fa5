"""BalanceLedger: append-only record of signed monetary events.

A user's balance is never stored: it is always ``SUM(amount_cents)`` over
that user's entries. There is no update or delete operation; corrections
are new offsetting entries.

The caller owns the transaction (pass a ``Connection`` from
``Pool.transaction()``), so a delivery confirmation's set of appends
commits or rolls back together with the order-store clear.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select

from snackpool.infrastructure.database.schema import ledger_entries, users

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Row


class UnknownUserError(LookupError):
    """Raised when a ledger operation references a user that does not exist."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"No user with id {user_id}")
        self.user_id = user_id


@dataclass(frozen=True)
class LedgerEntry:
    """One immutable signed monetary record attributed to a user."""

    id: int
    user_id: int
    amount_cents: int
    description: str
    created_at: str
    username: str | None = None


class BalanceLedger:
    """Append-only repository over ``ledger_entries`` bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def append(self, user_id: int, amount_cents: int, description: str, *, now: str) -> int:
        """Post a new entry and return its server-assigned id.

        Zero amounts are legal.

        Raises:
            UnknownUserError: If *user_id* does not exist.
        """
        exists = self._conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
        if exists is None:
            raise UnknownUserError(user_id)

        result = self._conn.execute(
            insert(ledger_entries).values(
                user_id=user_id,
                amount_cents=int(amount_cents),
                description=description,
                created_at=now,
            )
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    def current_balance(self, user_id: int) -> int:
        """Sum of all entries for *user_id* in cents; 0 when none exist."""
        total = self._conn.execute(
            select(func.coalesce(func.sum(ledger_entries.c.amount_cents), 0)).where(
                ledger_entries.c.user_id == user_id
            )
        ).scalar_one()
        return int(total)

    def balances(self) -> list[dict[str, Any]]:
        """Every user with their derived balance in cents, sorted by username."""
        stmt = (
            select(
                users.c.id,
                users.c.username,
                func.coalesce(func.sum(ledger_entries.c.amount_cents), 0).label("balance_cents"),
            )
            .select_from(users.outerjoin(ledger_entries, users.c.id == ledger_entries.c.user_id))
            .group_by(users.c.id, users.c.username)
            .order_by(users.c.username)
        )
        return [
            {"id": r.id, "username": r.username, "balance_cents": int(r.balance_cents)}
            for r in self._conn.execute(stmt)
        ]

    def history(self, *, limit: int | None = None) -> Iterator[LedgerEntry]:
        """Yield every entry across all users, newest first, with username.

        Each call issues a fresh query; call again to restart.
        """
        stmt = (
            select(ledger_entries, users.c.username)
            .join(users, users.c.id == ledger_entries.c.user_id)
            .order_by(ledger_entries.c.created_at.desc(), ledger_entries.c.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        for row in self._conn.execute(stmt):
            yield _to_entry(row)

    def entries_for(self, user_id: int) -> list[LedgerEntry]:
        stmt = (
            select(ledger_entries)
            .where(ledger_entries.c.user_id == user_id)
            .order_by(ledger_entries.c.id)
        )
        return [_to_entry(row) for row in self._conn.execute(stmt)]

    def has_entries(self, user_id: int) -> bool:
        row = self._conn.execute(
            select(ledger_entries.c.id).where(ledger_entries.c.user_id == user_id).limit(1)
        ).first()
        return row is not None

    def count(self) -> int:
        return int(self._conn.execute(select(func.count(ledger_entries.c.id))).scalar_one())


def _to_entry(row: Row[Any]) -> LedgerEntry:
    mapping = row._mapping
    return LedgerEntry(
        id=mapping["id"],
        user_id=mapping["user_id"],
        amount_cents=mapping["amount_cents"],
        description=mapping["description"],
        created_at=mapping["created_at"],
        username=mapping.get("username"),
    )
