"""Catalog: item and user records consulted by the order core.

Items and users are simple keyed records. The core only needs existence
checks, price lookups (``price_of``), and username resolution; the CRUD
helpers here back the minimal catalog and user services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update

from snackpool.infrastructure.database.schema import items, users

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import Connection


class Catalog:
    """Repository over ``items`` and ``users`` bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def price_of(self, item_id: int) -> int | None:
        """Price of *item_id* in cents, or None if the item does not exist."""
        row = self._conn.execute(
            select(items.c.price_cents).where(items.c.id == item_id)
        ).first()
        return int(row.price_cents) if row is not None else None

    def prices_of(self, item_ids: Iterable[int]) -> dict[int, int]:
        """Bulk price lookup. Unknown ids are absent from the result."""
        ids = sorted(set(item_ids))
        if not ids:
            return {}
        rows = self._conn.execute(
            select(items.c.id, items.c.price_cents).where(items.c.id.in_(ids))
        )
        return {int(r.id): int(r.price_cents) for r in rows}

    def get_item(self, item_id: int) -> dict[str, Any] | None:
        row = self._conn.execute(select(items).where(items.c.id == item_id)).mappings().first()
        return dict(row) if row is not None else None

    def existing_item_ids(self, item_ids: Iterable[int]) -> set[int]:
        ids = sorted(set(item_ids))
        if not ids:
            return set()
        rows = self._conn.execute(select(items.c.id).where(items.c.id.in_(ids)))
        return {int(r.id) for r in rows}

    def list_items(self) -> list[dict[str, Any]]:
        rows = self._conn.execute(select(items).order_by(items.c.name, items.c.id)).mappings()
        return [dict(r) for r in rows]

    def count_items(self) -> int:
        return int(self._conn.execute(select(func.count(items.c.id))).scalar_one())

    def add_item(self, name: str, price_cents: int, *, now: str) -> int:
        result = self._conn.execute(
            insert(items).values(name=name, price_cents=price_cents, created_at=now)
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    def update_item(self, item_id: int, name: str, price_cents: int) -> bool:
        result = self._conn.execute(
            update(items).where(items.c.id == item_id).values(name=name, price_cents=price_cents)
        )
        return bool(result.rowcount)

    def delete_item(self, item_id: int) -> bool:
        result = self._conn.execute(delete(items).where(items.c.id == item_id))
        return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> dict[str, Any] | None:
        row = self._conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        return dict(row) if row is not None else None

    def find_user(self, username: str) -> dict[str, Any] | None:
        row = (
            self._conn.execute(select(users).where(users.c.username == username))
            .mappings()
            .first()
        )
        return dict(row) if row is not None else None

    def existing_user_ids(self, user_ids: Iterable[int]) -> set[int]:
        ids = sorted(set(user_ids))
        if not ids:
            return set()
        rows = self._conn.execute(select(users.c.id).where(users.c.id.in_(ids)))
        return {int(r.id) for r in rows}

    def user_ids_by_name(self, usernames: Iterable[str]) -> dict[str, int]:
        """Map usernames to ids. Unknown usernames are absent from the result."""
        names = sorted(set(usernames))
        if not names:
            return {}
        rows = self._conn.execute(
            select(users.c.id, users.c.username).where(users.c.username.in_(names))
        )
        return {str(r.username): int(r.id) for r in rows}

    def usernames_by_id(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = self._conn.execute(
            select(users.c.id, users.c.username).where(users.c.id.in_(ids))
        )
        return {int(r.id): str(r.username) for r in rows}

    def list_users(self) -> list[dict[str, Any]]:
        rows = self._conn.execute(select(users).order_by(users.c.username)).mappings()
        return [dict(r) for r in rows]

    def add_user(self, username: str, *, is_admin: bool = False, now: str) -> int:
        result = self._conn.execute(
            insert(users).values(username=username, is_admin=int(is_admin), created_at=now)
        )
        assert result.inserted_primary_key is not None
        return int(result.inserted_primary_key[0])

    def delete_user(self, user_id: int) -> bool:
        result = self._conn.execute(delete(users).where(users.c.id == user_id))
        return bool(result.rowcount)
