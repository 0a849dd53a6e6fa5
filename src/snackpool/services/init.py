"""InitService: create a pool's database, admin account, and default menu.

Idempotent: running it against an existing pool creates nothing twice.
The admin user is only added when missing, and default items are only
seeded into an empty catalog.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from snackpool.domain.money import to_cents
from snackpool.services._helpers import now_iso
from snackpool.services.base import BaseService
from snackpool.services.result import ServiceResult
from snackpool.services.telemetry import traced

if TYPE_CHECKING:
    from snackpool.config.settings import PoolSettings

logger = logging.getLogger(__name__)

DEFAULT_ITEMS: tuple[tuple[str, Decimal], ...] = (
    ("Coffee", Decimal("2.50")),
    ("Tea", Decimal("2.00")),
    ("Espresso", Decimal("2.20")),
    ("Cappuccino", Decimal("3.00")),
    ("Latte", Decimal("3.20")),
    ("Hot Chocolate", Decimal("3.00")),
    ("Croissant", Decimal("2.50")),
    ("Muffin", Decimal("2.00")),
    ("Bagel", Decimal("2.50")),
    ("Cookie", Decimal("1.50")),
)


class InitService(BaseService):
    """Pool bootstrap."""

    @classmethod
    @traced
    def init_pool(cls, settings: PoolSettings, *, seed_items: bool = True) -> ServiceResult:
        """Create the database under ``settings.pool_root`` and seed it."""
        from snackpool.infrastructure.pool import Pool

        op = "init_pool"
        pool = Pool(settings)
        try:
            pool.init_event_bus(sync=settings.sync)
            return cls(pool)._seed(op, seed_items=seed_items)
        finally:
            pool.close()

    def _seed(self, op: str, *, seed_items: bool) -> ServiceResult:
        settings = self._pool.settings
        admin_name = settings.admin.username
        now = now_iso()
        admin_created = False
        items_seeded = 0
        try:
            with self._pool.transaction() as txn:
                admin = txn.catalog.find_user(admin_name)
                if admin is None:
                    admin_id = txn.catalog.add_user(admin_name, is_admin=True, now=now)
                    admin_created = True
                else:
                    admin_id = admin["id"]

                if seed_items and txn.catalog.count_items() == 0:
                    for name, price in DEFAULT_ITEMS:
                        txn.catalog.add_item(name, to_cents(price), now=now)
                    items_seeded = len(DEFAULT_ITEMS)
        except SQLAlchemyError as exc:
            logger.exception("Pool initialization rolled back")
            return ServiceResult.failure(op, "STORAGE_ERROR", exc.__class__.__name__)

        logger.info(
            "Initialized pool %s at %s (admin_created=%s items_seeded=%d)",
            settings.pool.name,
            settings.pool_root,
            admin_created,
            items_seeded,
        )

        warnings: list[str] = []
        self._dispatch_event("post_init", {"pool_name": settings.pool.name}, warnings)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "name": settings.pool.name,
                "path": str(settings.pool_root),
                "db_path": str(settings.db_path),
                "admin": {"id": admin_id, "username": admin_name, "created": admin_created},
                "items_seeded": items_seeded,
            },
            warnings=warnings,
        )
