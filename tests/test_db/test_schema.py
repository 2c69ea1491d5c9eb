"""Tests for the SQLite schema: idempotency, tables, indexes, constraints."""

from __future__ import annotations

import sqlite3

import pytest

from admission_advisor.db.connection import get_connection
from admission_advisor.db.schema import (
    ALL_INDEX_NAMES,
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        assert get_existing_tables(in_memory_db) == sorted(ALL_TABLE_NAMES)

    def test_all_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in ALL_INDEX_NAMES:
            assert idx in indexes, f"Expected index '{idx}' not found. Found: {indexes}"

    def test_idempotent_double_apply(self, in_memory_db):
        apply_schema(in_memory_db)
        assert get_existing_tables(in_memory_db) == sorted(ALL_TABLE_NAMES)


class TestConstraints:
    def test_negative_plan_count_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO enrollment_plans (year, province, subject_category, "
                "institution_code, institution_name, major_code, major_name, plan_count) "
                "VALUES (2025, 'Jiangsu', 'physics', '1', 'U', 'M', 'Major', -1);"
            )

    def test_duplicate_ranking_band_rejected(self, in_memory_db):
        sql = (
            "INSERT INTO score_rankings (year, province, subject_category, score, cumulative_count) "
            "VALUES (2025, 'Jiangsu', 'physics', 600, 100);"
        )
        in_memory_db.execute(sql)
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(sql)


class TestConnection:
    def test_file_db_created_with_parents(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "test.db"
        with get_connection(str(db_path)) as conn:
            apply_schema(conn)
            mode = conn.execute("PRAGMA journal_mode;").fetchone()[0]
        assert db_path.exists()
        assert mode == "wal"

    def test_foreign_keys_enabled(self):
        with get_connection(":memory:") as conn:
            assert conn.execute("PRAGMA foreign_keys;").fetchone()[0] == 1

    def test_rollback_on_exception(self, tmp_path):
        db_path = str(tmp_path / "rollback.db")
        with get_connection(db_path) as conn:
            apply_schema(conn)

        with pytest.raises(RuntimeError):
            with get_connection(db_path) as conn:
                conn.execute(
                    "INSERT INTO score_rankings (year, province, subject_category, score, "
                    "cumulative_count) VALUES (2025, 'Jiangsu', 'physics', 600, 100);"
                )
                raise RuntimeError("boom")

        with get_connection(db_path) as conn:
            n = conn.execute("SELECT COUNT(*) FROM score_rankings;").fetchone()[0]
        assert n == 0
