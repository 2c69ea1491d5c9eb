"""
SQLite connection management.

``get_connection()`` is a context manager yielding a connection that:
  - enforces foreign keys,
  - optionally runs in WAL journal mode,
  - waits ``busy_timeout_ms`` on lock contention,
  - returns ``sqlite3.Row`` rows (dict-like access by column name),
  - commits on clean exit and rolls back on exception.

Usage::

    from admission_advisor.db.connection import get_connection

    with get_connection("data/db/admission_advisor.db") as conn:
        rows = InventoryRepository(conn).fetch_scope(2025, "Jiangsu", "physics")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured SQLite connection.

    Parent directories of a file-backed database are created on demand.

    Args:
        db_path: Database file path, or ``":memory:"``.
        wal_mode: Enable WAL journal mode (ignored for in-memory databases).
        busy_timeout_ms: How long to wait on a locked database before
            ``sqlite3.OperationalError`` is raised.

    Yields:
        An open ``sqlite3.Connection``.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    logger.debug("Opened SQLite connection to %s", db_path)

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and db_path != MEMORY_DB:
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
