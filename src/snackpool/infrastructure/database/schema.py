"""SQLAlchemy Core table definitions for the snackpool database.

Money columns hold signed integer cents. Open orders carry the
(user, item) uniqueness constraint and a positive-quantity check so
the invariants hold even against writes that bypass the OrderStore.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", Text, nullable=False, unique=True),
    Column("is_admin", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
)

items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("price_cents", Integer, nullable=False),
    Column("created_at", Text, nullable=False),
    CheckConstraint("price_cents >= 0", name="ck_items_price_non_negative"),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("item_id", Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("user_id", "item_id"),
    CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
)

# Append-only: no code path issues UPDATE or DELETE against this table.
ledger_entries = Table(
    "ledger_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("description", Text, nullable=False),
    Column("created_at", Text, nullable=False),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_orders_item", orders.c.item_id)
Index("ix_orders_created", orders.c.created_at)
Index("ix_ledger_user", ledger_entries.c.user_id)
Index("ix_ledger_created", ledger_entries.c.created_at)
Index("ix_event_wal_status", event_wal.c.status)
