"""
Repository for provincial score-ranking tables (``score_rankings``).
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from admission_advisor.db.repositories.base import BaseRepository
from admission_advisor.models.ranking import ScoreRankingRow

logger = logging.getLogger(__name__)

_COLUMNS = "year, province, subject_category, score, count, cumulative_count, rank"


class ScoreRankingRepository(BaseRepository):
    """Read/write access to ``score_rankings``."""

    def fetch_table(self, year: int, province: str, subject_category: str) -> list[ScoreRankingRow]:
        """Full table for one scope, highest score first."""
        rows = self.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM score_rankings
            WHERE year = ? AND province = ? AND subject_category = ?
            ORDER BY score DESC;
            """,
            (year, province, subject_category),
        )
        return [_row_to_ranking(r) for r in rows]

    def available_years(
        self,
        province:         str,
        subject_category: str,
        before_year:      Optional[int] = None,
    ) -> list[int]:
        """Years with a table for this scope, most recent first."""
        sql = """
            SELECT DISTINCT year FROM score_rankings
            WHERE province = ? AND subject_category = ?
        """
        params: list = [province, subject_category]
        if before_year is not None:
            sql += " AND year < ?"
            params.append(before_year)
        rows = self.fetchall(sql + " ORDER BY year DESC;", tuple(params))
        return [int(r["year"]) for r in rows]

    def insert_batch(self, rows: list[ScoreRankingRow]) -> int:
        """Insert bands, replacing existing (year, province, category, score) rows."""
        if not rows:
            return 0
        params = [
            (r.year, r.province, r.subject_category, r.score, r.count, r.cumulative_count, r.rank)
            for r in rows
        ]
        self.executemany(
            f"INSERT OR REPLACE INTO score_rankings ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?);",
            params,
        )
        return len(params)


def _row_to_ranking(row: sqlite3.Row) -> ScoreRankingRow:
    return ScoreRankingRow(
        year=row["year"],
        province=row["province"],
        subject_category=row["subject_category"],
        score=row["score"],
        count=row["count"],
        cumulative_count=row["cumulative_count"],
        rank=row["rank"],
    )
