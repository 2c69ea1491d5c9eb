"""
Tests for the repositories, using in-memory SQLite.

What we test
------------
InventoryRepository:
  - fetch_scope returns only the scope's rows, ordered by code.
  - Institution tags survive the round trip as booleans.
  - fetch_group narrows to one (institution, group).
  - insert_batch replaces rows sharing the unique key.

HistoryRepository.fetch_for_candidates:
  - Only the scope and years before the target year.
  - min_year bound is inclusive.
  - Rows found by both code and name are returned once.
  - Chunking gives the same rows as a single query.

ScoreRankingRepository:
  - fetch_table is ordered by score descending.
  - available_years is descending and honours before_year.

chunked() / placeholders():
  - Slicing and validation.
"""

from __future__ import annotations

import pytest

from admission_advisor.db.repositories.base import BaseRepository, chunked, placeholders
from admission_advisor.db.repositories.history_repo import HistoryRepository
from admission_advisor.db.repositories.inventory_repo import InventoryRepository
from admission_advisor.db.repositories.ranking_repo import ScoreRankingRepository
from admission_advisor.models.ranking import ScoreRankingRow

PROVINCE = "Jiangsu"
SUBJECT = "physics"


def _band(
    year:       int,
    score:      int,
    cumulative: int,
    count:      int = 0,
    rank:       int | None = None,
) -> ScoreRankingRow:
    return ScoreRankingRow(
        year=year, province=PROVINCE, subject_category=SUBJECT,
        score=score, count=count, cumulative_count=cumulative, rank=rank,
    )


# ── InventoryRepository ───────────────────────────────────────────────────────

class TestInventoryRepository:
    def test_fetch_scope(self, in_memory_db, make_inventory_row):
        repo = InventoryRepository(in_memory_db)
        repo.insert_batch([
            make_inventory_row("20002", major_code="B"),
            make_inventory_row("10001", major_code="A", is_985=True, is_211=True),
            make_inventory_row("30003", province="Beijing"),
            make_inventory_row("40004", year=2024),
        ])
        rows = repo.fetch_scope(2025, PROVINCE, SUBJECT)
        assert [r.institution_code for r in rows] == ["10001", "20002"]
        assert rows[0].is_985 is True
        assert rows[0].is_double_first_class is False
        assert rows[0].tuition == 5000.0

    def test_fetch_group(self, in_memory_db, make_inventory_row):
        repo = InventoryRepository(in_memory_db)
        repo.insert_batch([
            make_inventory_row("1", "01", "M2"),
            make_inventory_row("1", "01", "M1"),
            make_inventory_row("1", "02", "M3"),
        ])
        rows = repo.fetch_group(2025, PROVINCE, SUBJECT, "1", "01")
        assert [r.major_code for r in rows] == ["M1", "M2"]

    def test_insert_replaces_duplicates(self, in_memory_db, make_inventory_row):
        repo = InventoryRepository(in_memory_db)
        repo.insert_batch([make_inventory_row(plan_count=10)])
        repo.insert_batch([make_inventory_row(plan_count=25)])
        assert repo.count("enrollment_plans") == 1
        assert repo.fetch_scope(2025, PROVINCE, SUBJECT)[0].plan_count == 25

    def test_insert_empty(self, in_memory_db):
        assert InventoryRepository(in_memory_db).insert_batch([]) == 0


# ── HistoryRepository ─────────────────────────────────────────────────────────

class TestHistoryRepository:
    @pytest.fixture
    def repo(self, in_memory_db, make_history_row):
        repo = HistoryRepository(in_memory_db)
        repo.insert_batch([
            make_history_row(2024, 600, institution_code="A"),
            make_history_row(2023, 598, institution_code="A"),
            make_history_row(2020, 590, institution_code="A"),
            make_history_row(2025, 610, institution_code="A"),
            make_history_row(2024, 580, institution_code="A", province="Beijing"),
            make_history_row(2024, 570, institution_code="B"),
            make_history_row(2024, 560, institution_code="OLD", institution_name="University C"),
        ])
        return repo

    def test_scope_and_year_bound(self, repo):
        rows = repo.fetch_for_candidates(PROVINCE, SUBJECT, 2025, ["A"])
        assert [r.record.year for r in rows] == [2024, 2023, 2020]
        assert all(r.province == PROVINCE for r in rows)

    def test_min_year_inclusive(self, repo):
        rows = repo.fetch_for_candidates(PROVINCE, SUBJECT, 2025, ["A"], min_year=2023)
        assert [r.record.year for r in rows] == [2024, 2023]

    def test_name_lookup_and_dedupe(self, repo):
        rows = repo.fetch_for_candidates(
            PROVINCE, SUBJECT, 2025,
            institution_codes=["B", "C"],
            institution_names=["University B", "University C"],
        )
        assert [(r.institution_code, r.record.min_score) for r in rows] == [
            ("B", 570), ("OLD", 560),
        ]

    def test_chunking_matches_single_query(self, repo):
        codes = ["A", "B", "X", "Y", "Z"]
        single = repo.fetch_for_candidates(PROVINCE, SUBJECT, 2025, codes, chunk_size=500)
        chunked_rows = repo.fetch_for_candidates(PROVINCE, SUBJECT, 2025, codes, chunk_size=2)
        assert chunked_rows == single
        assert len(single) == 4

    def test_no_keys(self, repo):
        assert repo.fetch_for_candidates(PROVINCE, SUBJECT, 2025, []) == []


# ── ScoreRankingRepository ────────────────────────────────────────────────────

class TestScoreRankingRepository:
    def test_fetch_table_desc(self, in_memory_db):
        repo = ScoreRankingRepository(in_memory_db)
        repo.insert_batch([_band(2025, 599, 120), _band(2025, 601, 80), _band(2025, 600, 100)])
        assert [b.score for b in repo.fetch_table(2025, PROVINCE, SUBJECT)] == [601, 600, 599]

    def test_available_years(self, in_memory_db):
        repo = ScoreRankingRepository(in_memory_db)
        repo.insert_batch([_band(y, 600, 100) for y in (2022, 2025, 2024, 2023)])
        assert repo.available_years(PROVINCE, SUBJECT) == [2025, 2024, 2023, 2022]
        assert repo.available_years(PROVINCE, SUBJECT, before_year=2024) == [2023, 2022]
        assert repo.available_years("Beijing", SUBJECT) == []

    def test_published_rank_round_trip(self, in_memory_db):
        repo = ScoreRankingRepository(in_memory_db)
        repo.insert_batch([_band(2025, 600, 100, count=5, rank=96)])
        (band,) = repo.fetch_table(2025, PROVINCE, SUBJECT)
        assert band.rank == 96
        assert band.effective_rank == 96


# ── Helpers ───────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []

    def test_chunked_rejects_zero(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))

    def test_placeholders(self):
        assert placeholders(3) == "?, ?, ?"

    def test_count(self, in_memory_db):
        assert BaseRepository(in_memory_db).count("admission_history") == 0
