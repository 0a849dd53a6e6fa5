"""BaseService: foundation for all snackpool services.

Every service receives a :class:`Pool` at construction time. The Pool
provides transactional access to the database; services own their
transaction boundaries via ``self._pool.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from snackpool.services.result import OperationAborted

if TYPE_CHECKING:
    from snackpool.domain.requests import Identity
    from snackpool.infrastructure.pool import Pool

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class ReconciliationService(BaseService):
            def apply_batch(self, identity, raw) -> ServiceResult:
                with self._pool.transaction() as txn:
                    ...
    """

    def __init__(self, pool: Pool) -> None:
        self._pool = pool

    @staticmethod
    def _require_privileged(identity: Identity, action: str) -> None:
        """Abort unless *identity* is privileged."""
        if not identity.is_privileged:
            raise OperationAborted(
                "UNAUTHORIZED",
                f"Admin access required to {action}",
                actor_id=identity.user_id,
            )

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op if event bus not initialized.

        Must be called after the owning transaction has committed.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._pool.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
