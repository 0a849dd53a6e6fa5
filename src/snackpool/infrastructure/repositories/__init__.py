"""Repositories bound to a caller-owned connection."""

from snackpool.infrastructure.repositories.catalog import Catalog
from snackpool.infrastructure.repositories.ledger import (
    BalanceLedger,
    LedgerEntry,
    UnknownUserError,
)
from snackpool.infrastructure.repositories.orders import (
    InvalidQuantityError,
    OpenOrder,
    OrderStore,
)
from snackpool.infrastructure.repositories.query import ReadRepository

__all__ = [
    "BalanceLedger",
    "Catalog",
    "InvalidQuantityError",
    "LedgerEntry",
    "OpenOrder",
    "OrderStore",
    "ReadRepository",
    "UnknownUserError",
]
