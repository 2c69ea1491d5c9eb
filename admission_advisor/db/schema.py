"""
SQLite reference schema for the three external stores the engine reads.

Every statement uses ``IF NOT EXISTS``, so ``apply_schema()`` is idempotent.
The schema is a reference implementation for local runs and tests; loading
and cleaning the data is out of scope.

Tables
------
  1. enrollment_plans   current-year inventory, one row per offered major
                        (institution tags denormalised onto each row)
  2. admission_history  historical outcomes per (institution, group, year)
  3. score_rankings     provincial score -> rank tables

The composite indexes mirror the lookups the repositories run: inventory by
(year, province, subject category) and history by scope plus institution
code or name.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_ENROLLMENT_PLANS = """
CREATE TABLE IF NOT EXISTS enrollment_plans (
    plan_id               INTEGER PRIMARY KEY AUTOINCREMENT,
    year                  INTEGER NOT NULL,
    province              TEXT    NOT NULL,
    subject_category      TEXT    NOT NULL,
    institution_code      TEXT    NOT NULL,
    institution_name      TEXT    NOT NULL,
    institution_province  TEXT,
    institution_city      TEXT,
    is_985                INTEGER NOT NULL DEFAULT 0,
    is_211                INTEGER NOT NULL DEFAULT 0,
    is_double_first_class INTEGER NOT NULL DEFAULT 0,
    group_code            TEXT    NOT NULL DEFAULT '',
    group_name            TEXT,
    subject_requirements  TEXT,
    major_code            TEXT    NOT NULL,
    major_name            TEXT    NOT NULL,
    plan_count            INTEGER NOT NULL DEFAULT 0 CHECK (plan_count >= 0),
    tuition               REAL,
    duration_years        INTEGER,
    UNIQUE (year, province, subject_category, institution_code, group_code, major_code)
);
"""

_DDL_ENROLLMENT_PLANS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_plans_scope
    ON enrollment_plans (year, province, subject_category);
CREATE INDEX IF NOT EXISTS idx_plans_group
    ON enrollment_plans (institution_code, group_code);
"""

_DDL_ADMISSION_HISTORY = """
CREATE TABLE IF NOT EXISTS admission_history (
    history_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    year              INTEGER NOT NULL,
    province          TEXT    NOT NULL,
    subject_category  TEXT    NOT NULL,
    institution_code  TEXT    NOT NULL,
    institution_name  TEXT    NOT NULL,
    group_code        TEXT    NOT NULL DEFAULT '',
    group_name        TEXT,
    min_score         INTEGER NOT NULL,
    avg_score         REAL,
    max_score         INTEGER,
    min_rank          INTEGER,
    max_rank          INTEGER,
    accepted_count    INTEGER,
    score_volatility  REAL,
    popularity_index  REAL
);
"""

_DDL_ADMISSION_HISTORY_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_history_scope_code
    ON admission_history (province, subject_category, institution_code, group_code, year);
CREATE INDEX IF NOT EXISTS idx_history_scope_name
    ON admission_history (province, subject_category, institution_name, year);
"""

_DDL_SCORE_RANKINGS = """
CREATE TABLE IF NOT EXISTS score_rankings (
    ranking_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    year              INTEGER NOT NULL,
    province          TEXT    NOT NULL,
    subject_category  TEXT    NOT NULL,
    score             INTEGER NOT NULL,
    count             INTEGER NOT NULL DEFAULT 0,
    cumulative_count  INTEGER NOT NULL,
    rank              INTEGER,
    UNIQUE (year, province, subject_category, score)
);
"""

_DDL_SCORE_RANKINGS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_rankings_scope
    ON score_rankings (province, subject_category, year, score);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_ENROLLMENT_PLANS,
    _DDL_ENROLLMENT_PLANS_INDEXES,
    _DDL_ADMISSION_HISTORY,
    _DDL_ADMISSION_HISTORY_INDEXES,
    _DDL_SCORE_RANKINGS,
    _DDL_SCORE_RANKINGS_INDEXES,
]

ALL_TABLE_NAMES = [
    "enrollment_plans",
    "admission_history",
    "score_rankings",
]

ALL_INDEX_NAMES = [
    "idx_plans_scope",
    "idx_plans_group",
    "idx_history_scope_code",
    "idx_history_scope_name",
    "idx_rankings_scope",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that does not exist yet.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info(
        "Schema applied: %d tables, %d indexes verified.",
        len(ALL_TABLE_NAMES), len(ALL_INDEX_NAMES),
    )


def _split_ddl(ddl: str) -> list[str]:
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Explicitly created index names, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' "
        "AND name NOT LIKE 'sqlite_autoindex_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
