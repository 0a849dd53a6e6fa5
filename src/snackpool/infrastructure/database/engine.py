"""Database engine setup for SQLite with WAL mode.

SQLite is the persistence layer: WAL mode lets readers keep a consistent
snapshot while a writer is active, and every write transaction opens with
``BEGIN IMMEDIATE`` so reconciliation batches and delivery confirmations
serialise against each other instead of interleaving.

The DB is stored at {pool_root}/.snackpool/{filename}.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

from snackpool.config.discovery import DATA_DIRNAME
from snackpool.infrastructure.database.schema import metadata

DEFAULT_FILENAME = "snackpool.db"

# Execution option consulted by the ``begin`` listener.
BEGIN_MODE_OPTION = "sqlite_begin"
_BEGIN_MODES = frozenset({"DEFERRED", "IMMEDIATE"})


def create_db_engine(db_path: Path, *, busy_timeout: float = 5.0) -> Engine:
    """Create a SQLite engine with WAL mode, foreign keys, and explicit BEGIN.

    pysqlite's implicit transaction handling is disabled so that the
    ``begin`` event controls the locking mode. Connections begin
    ``IMMEDIATE`` unless the ``sqlite_begin`` execution option says
    ``DEFERRED`` (used for read snapshots).
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION, "IMMEDIATE")
        if mode not in _BEGIN_MODES:
            msg = f"Unknown SQLite begin mode: {mode!r}"
            raise ValueError(msg)
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def init_database(
    pool_root: Path,
    *,
    filename: str = DEFAULT_FILENAME,
    busy_timeout: float = 5.0,
) -> Engine:
    """Initialize the snackpool database at ``{pool_root}/.snackpool/{filename}``.

    Creates the data directory and all tables from :data:`schema.metadata`.
    Idempotent: safe to call on an existing pool.

    Returns the engine ready for use.
    """
    data_dir = pool_root / DATA_DIRNAME
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "plugins").mkdir(exist_ok=True)

    engine = create_db_engine(data_dir / filename, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    return engine
