"""
Base repository with the SQL helpers every repository shares.

Repositories receive an open ``sqlite3.Connection`` (usually from
``get_connection()``); opening, committing and closing stay with the caller.
SQL is explicit, and repositories accept and return pydantic models.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from typing import Any, Optional, TypeVar

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]
T = TypeVar("T")


class BaseRepository:
    """Shared execution helpers.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, params_list: Sequence[Params]) -> sqlite3.Cursor:
        logger.debug("SQL (many): %s | count: %d", sql.strip(), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        """Run a query and return its first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def count(self, table: str) -> int:
        """Row count of ``table`` (trusted table names only)."""
        row = self.fetchone(f"SELECT COUNT(*) AS n FROM {table};")
        return int(row["n"]) if row is not None else 0


def chunked(values: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` values."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}.")
    for start in range(0, len(values), size):
        yield values[start:start + size]


def placeholders(n: int) -> str:
    """``"?, ?, ?"`` for an ``IN (...)`` list of ``n`` parameters."""
    return ", ".join("?" * n)
