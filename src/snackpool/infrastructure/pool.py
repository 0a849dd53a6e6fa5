"""Pool: the single storage handle injected into every service.

The Pool owns the database engine and the optional event bus. There is
no process-wide implicit connection: each service call scopes its own
unit of work through one of two context managers.

- :meth:`Pool.transaction`: write unit. Opens ``BEGIN IMMEDIATE`` so
  concurrent writers queue behind it; commits on normal exit and rolls
  back on any exception.
- :meth:`Pool.snapshot`: read unit. Opens a deferred transaction so a
  multi-row read observes one consistent WAL snapshot; always rolled back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

from snackpool.infrastructure.database.engine import BEGIN_MODE_OPTION, init_database
from snackpool.infrastructure.repositories import (
    BalanceLedger,
    Catalog,
    OrderStore,
    ReadRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from snackpool.config.settings import PoolSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# PoolTransaction: yielded to callers within transaction() / snapshot()
# ---------------------------------------------------------------------------


@dataclass
class PoolTransaction:
    """Active unit of work exposing repositories bound to one connection.

    All repositories share ``conn``, so everything done through them
    commits or rolls back together.
    """

    conn: Connection

    @cached_property
    def orders(self) -> OrderStore:
        return OrderStore(self.conn)

    @cached_property
    def ledger(self) -> BalanceLedger:
        return BalanceLedger(self.conn)

    @cached_property
    def catalog(self) -> Catalog:
        return Catalog(self.conn)

    @cached_property
    def reads(self) -> ReadRepository:
        return ReadRepository(self.conn)


# ---------------------------------------------------------------------------
# Pool: the repository root
# ---------------------------------------------------------------------------


class Pool:
    """Storage handle encapsulating the database and event dispatch.

    Constructed once per CLI invocation from :class:`PoolSettings` and
    stored on the click context. Services receive the Pool via their
    :class:`BaseService` constructor.
    """

    def __init__(self, settings: PoolSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            self.root,
            filename=settings.database.filename,
            busy_timeout=settings.database.busy_timeout,
        )
        self._event_bus: Any | None = None

    @property
    def root(self) -> Path:
        """The pool root directory."""
        return self._settings.pool_root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> PoolSettings:
        """The resolved settings for this pool."""
        return self._settings

    @property
    def event_bus(self) -> Any | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool = False) -> None:
        """Initialize the plugin event bus.

        Registers the built-in audit plugin, discovers entry-point plugins
        and local plugins from ``.snackpool/plugins/``, and wires up the
        EventBus.
        """
        from snackpool.plugins.builtins.audit import AuditPlugin
        from snackpool.plugins.event_bus import EventBus
        from snackpool.plugins.manager import PluginManager

        pm = PluginManager()
        pm.register_plugin(AuditPlugin(self._settings.pool.name), name="snackpool-audit")
        pm.discover_and_load(local_dir=self._settings.plugins_dir)
        self._event_bus = EventBus(self._engine, pm, sync=sync)

    @contextmanager
    def transaction(self) -> Iterator[PoolTransaction]:
        """Serialised write transaction across the order store and ledger.

        Usage::

            with pool.transaction() as txn:
                txn.orders.upsert(user_id, item_id, 2, now=now)
                txn.ledger.append(user_id, -500, "Order payment", now=now)
                # Both commit on success, both roll back on failure.
        """
        with self._engine.begin() as conn:
            yield PoolTransaction(conn=conn)

    @contextmanager
    def snapshot(self) -> Iterator[PoolTransaction]:
        """Consistent read-only view. Writes made here are discarded."""
        with self._engine.connect() as conn:
            conn.execution_options(**{BEGIN_MODE_OPTION: "DEFERRED"})
            try:
                yield PoolTransaction(conn=conn)
            finally:
                conn.rollback()

    def close(self) -> None:
        """Replay pending or failed events, then release database connections.

        Events that exhaust their retries are left as ``dead_letter``.
        """
        if self._event_bus is not None:
            replayed = self._event_bus.drain()
            if replayed:
                logger.debug("Replayed %d event(s) at close", len(replayed))
            self._event_bus.shutdown()
            self._event_bus = None
        self._engine.dispose()
        logger.debug("Pool closed: %s", self.root)
