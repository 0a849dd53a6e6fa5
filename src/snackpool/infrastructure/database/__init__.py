"""SQLite database engine and schema via SQLAlchemy Core."""

from snackpool.infrastructure.database.engine import create_db_engine, init_database
from snackpool.infrastructure.database.schema import (
    event_wal,
    items,
    ledger_entries,
    metadata,
    orders,
    users,
)

__all__ = [
    "create_db_engine",
    "event_wal",
    "init_database",
    "items",
    "ledger_entries",
    "metadata",
    "orders",
    "users",
]
