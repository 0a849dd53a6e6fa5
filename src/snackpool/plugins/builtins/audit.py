"""Built-in audit plugin: one structured log line per committed event.

Lines go to the ``snackpool.audit`` logger at INFO, so they appear with
``--verbose`` and as JSON with ``--log-json``.
"""

from __future__ import annotations

import pluggy
import structlog

hookimpl = pluggy.HookimplMarker("snackpool")

_log = structlog.get_logger("snackpool.audit")


class AuditPlugin:
    """Mirrors lifecycle events into the structured log."""

    def __init__(self, pool_name: str = "") -> None:
        self._log = _log.bind(pool=pool_name) if pool_name else _log

    @hookimpl
    def post_reconcile(self, actor_id: int, upserted: int, removed: int) -> None:
        self._log.info("orders_reconciled", actor_id=actor_id, upserted=upserted, removed=removed)

    @hookimpl
    def post_delivery(self, delivering_user_id: int, total: str, entry_ids: list[int]) -> None:
        self._log.info(
            "delivery_confirmed",
            delivering_user_id=delivering_user_id,
            total=total,
            entries=len(entry_ids),
        )

    @hookimpl
    def post_correction(self, entry_id: int, user_id: int, amount: str) -> None:
        self._log.info("balance_corrected", entry_id=entry_id, user_id=user_id, amount=amount)

    @hookimpl
    def post_item_delete(self, item_id: int, orders_removed: int) -> None:
        self._log.info("item_deleted", item_id=item_id, orders_removed=orders_removed)

    @hookimpl
    def post_init(self, pool_name: str) -> None:
        self._log.info("pool_initialized", pool_name=pool_name)
