"""Pluggy hook specifications for snackpool lifecycle events.

Every hook fires after the owning transaction has committed, so a
plugin always observes durable state. Amounts travel as decimal strings.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("snackpool")


class SnackpoolHookSpec:
    """Hook specifications for the snackpool plugin system."""

    @hookspec
    def post_reconcile(self, actor_id: int, upserted: int, removed: int) -> None:
        """Called after a reconciliation batch commits."""

    @hookspec
    def post_delivery(
        self,
        delivering_user_id: int,
        total: str,
        entry_ids: list[int],
    ) -> None:
        """Called after a delivery confirmation posts its ledger entries."""

    @hookspec
    def post_correction(self, entry_id: int, user_id: int, amount: str) -> None:
        """Called after an admin balance correction."""

    @hookspec
    def post_item_delete(self, item_id: int, orders_removed: int) -> None:
        """Called after an item and its open orders are removed."""

    @hookspec
    def post_init(self, pool_name: str) -> None:
        """Called after pool initialization."""
