"""Durable post-commit event dispatch via pluggy and a thread pool.

Each event is recorded in ``event_wal`` before its hook runs, so an
event whose plugin crashed (or whose process exited mid-flight) is still
on disk with ``status='pending'`` or ``'failed'``. :meth:`EventBus.drain`
replays those synchronously; after ``max_retries`` failed attempts an
event is parked as ``dead_letter``.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update

from snackpool.infrastructure.database.schema import event_wal
from snackpool.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from snackpool.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

RETRYABLE = ("pending", "failed")


class EventBus:
    """Record-then-dispatch event bus.

    Parameters:
        engine: Engine whose database holds the ``event_wal`` table.
        plugin_manager: Loaded manager whose hook relay receives events.
        sync: Run hooks inline instead of on the executor (``--sync``).
        max_retries: Failed attempts before an event becomes ``dead_letter``.
        max_workers: Executor size for asynchronous dispatch.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._sync = sync
        self._max_retries = max_retries
        self._executor = None if sync else ThreadPoolExecutor(max_workers=max_workers)
        self._futures: list[Future[None]] = []

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Record *payload* for *hook_name* and run the hook.

        Returns the ``event_wal`` row id.
        """
        event_id = self._record(hook_name, payload)
        if self._executor is None:
            self._run_hook(event_id, hook_name, payload)
        else:
            self._futures.append(
                self._executor.submit(self._run_hook, event_id, hook_name, payload)
            )
        return event_id

    def drain(self) -> list[dict[str, Any]]:
        """Replay every pending or failed event synchronously.

        Returns ``{id, hook_name, status}`` for each replayed event.
        """
        self._wait_futures()

        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal.c.id, event_wal.c.hook_name, event_wal.c.payload)
                .where(event_wal.c.status.in_(RETRYABLE))
                .order_by(event_wal.c.id)
            ).all()

        replayed: list[dict[str, Any]] = []
        for row in rows:
            status = self._run_hook(row.id, row.hook_name, json.loads(row.payload))
            replayed.append({"id": row.id, "hook_name": row.hook_name, "status": status})
        return replayed

    def status_counts(self) -> dict[str, int]:
        """Number of recorded events per status."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal.c.status, func.count(event_wal.c.id)).group_by(
                    event_wal.c.status
                )
            ).all()
        return {str(status): int(count) for status, count in rows}

    def shutdown(self) -> None:
        """Wait for in-flight hooks and stop the executor."""
        self._wait_futures()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _record(self, hook_name: str, payload: dict[str, Any]) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(event_wal).values(
                    hook_name=hook_name,
                    payload=json.dumps(payload),
                    status="pending",
                    retries=0,
                    created=now_iso(),
                )
            )
            assert result.inserted_primary_key is not None
            return int(result.inserted_primary_key[0])

    def _run_hook(self, event_id: int, hook_name: str, payload: dict[str, Any]) -> str:
        """Call the hook and persist the outcome. Returns the new status."""
        hook = getattr(self._pm.hook, hook_name, None)
        if hook is None:
            return self._complete(event_id)
        try:
            hook(**payload)
        except Exception as exc:
            logger.warning("Plugin hook %s failed: %s", hook_name, exc)
            return self._fail(event_id, str(exc))
        return self._complete(event_id)

    def _complete(self, event_id: int) -> str:
        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(status="completed", error=None, completed=now_iso())
            )
        return "completed"

    def _fail(self, event_id: int, error: str) -> str:
        with self._engine.begin() as conn:
            retries = (
                conn.execute(
                    select(event_wal.c.retries).where(event_wal.c.id == event_id)
                ).scalar_one()
                + 1
            )
            status = "dead_letter" if retries >= self._max_retries else "failed"
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(
                    status=status,
                    error=error,
                    retries=retries,
                    completed=now_iso() if status == "dead_letter" else None,
                )
            )
        return status

    def _wait_futures(self) -> None:
        for future in self._futures:
            exc = future.exception(timeout=30)
            if exc is not None:
                logger.warning("Event dispatch task crashed: %s", exc)
        self._futures.clear()
