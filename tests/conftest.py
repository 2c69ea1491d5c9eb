"""
Shared pytest fixtures for the admission advisor test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema
    applied, created anew for each test that requests it.
  - Factories for the domain objects most tests need: historical series,
    inventory rows, candidate groups, history rows, profiles.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from admission_advisor.config import AppConfig
from admission_advisor.db.schema import apply_schema
from admission_advisor.models.candidate import (
    AdmissionHistoryRow,
    CandidateGroup,
    HistoricalYearRecord,
    InventoryRow,
    MajorOffering,
)
from admission_advisor.models.request import Preferences, StudentProfile

PROVINCE = "Jiangsu"
SUBJECT = "physics"
TARGET_YEAR = 2025


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration, independent of any TOML file."""
    return AppConfig()


# ── Domain object factories ───────────────────────────────────────────────────

@pytest.fixture
def profile() -> StudentProfile:
    return StudentProfile(
        score=600, rank=None, province=PROVINCE, subject_category=SUBJECT,
        target_year=TARGET_YEAR,
    )


@pytest.fixture
def no_prefs() -> Preferences:
    return Preferences()


@pytest.fixture
def make_series():
    """Build a year-descending series from cutoff scores (latest first)."""

    def _make(
        min_scores: list[int],
        min_ranks:  list[int] | None = None,
        accepted:   list[int] | None = None,
        latest_year: int = TARGET_YEAR - 1,
    ) -> tuple[HistoricalYearRecord, ...]:
        return tuple(
            HistoricalYearRecord(
                year=latest_year - i,
                min_score=score,
                min_rank=min_ranks[i] if min_ranks else None,
                accepted_count=accepted[i] if accepted else None,
            )
            for i, score in enumerate(min_scores)
        )

    return _make


@pytest.fixture
def make_inventory_row():
    def _make(
        institution_code: str = "10001",
        group_code:       str = "01",
        major_code:       str = "080901",
        major_name:       str = "Computer Science",
        **overrides,
    ) -> InventoryRow:
        fields = dict(
            year=TARGET_YEAR,
            province=PROVINCE,
            subject_category=SUBJECT,
            institution_code=institution_code,
            institution_name=f"University {institution_code}",
            institution_province="Jiangsu",
            institution_city="Nanjing",
            group_code=group_code,
            group_name=f"Group {group_code}",
            major_code=major_code,
            major_name=major_name,
            plan_count=10,
            tuition=5000.0,
        )
        fields.update(overrides)
        return InventoryRow(**fields)

    return _make


@pytest.fixture
def make_group():
    def _make(
        institution_code: str = "10001",
        group_code:       str = "01",
        majors:           tuple[str, ...] = ("Computer Science", "Software Engineering", "Mathematics"),
        plan_count:       int = 10,
        **overrides,
    ) -> CandidateGroup:
        fields = dict(
            institution_code=institution_code,
            institution_name=f"University {institution_code}",
            institution_province="Jiangsu",
            institution_city="Nanjing",
            group_code=group_code,
            group_name=f"Group {group_code}",
            majors=tuple(
                MajorOffering(code=f"M{i:02d}", name=name, plan_count=plan_count)
                for i, name in enumerate(majors)
            ),
        )
        fields.update(overrides)
        return CandidateGroup(**fields)

    return _make


@pytest.fixture
def make_history_row():
    def _make(
        year:             int,
        min_score:        int,
        institution_code: str = "10001",
        group_code:       str = "01",
        min_rank:         int | None = None,
        accepted_count:   int | None = None,
        **overrides,
    ) -> AdmissionHistoryRow:
        fields = dict(
            institution_code=institution_code,
            institution_name=f"University {institution_code}",
            group_code=group_code,
            group_name=f"Group {group_code}",
            province=PROVINCE,
            subject_category=SUBJECT,
            record=HistoricalYearRecord(
                year=year, min_score=min_score, min_rank=min_rank,
                accepted_count=accepted_count,
            ),
        )
        fields.update(overrides)
        return AdmissionHistoryRow(**fields)

    return _make
