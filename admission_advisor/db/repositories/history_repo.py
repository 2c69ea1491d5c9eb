"""
Repository for historical admission outcomes (``admission_history``).

``fetch_for_candidates`` is the only read path the engine uses: one bulk
lookup per chunk of institution codes plus one per chunk of institution
names (the proxy key), never a query per candidate group.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from typing import Optional

from admission_advisor.db.repositories.base import BaseRepository, chunked, placeholders
from admission_advisor.models.candidate import AdmissionHistoryRow, HistoricalYearRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500

_COLUMNS = (
    "history_id, year, province, subject_category, institution_code, "
    "institution_name, group_code, group_name, min_score, avg_score, max_score, "
    "min_rank, max_rank, accepted_count, score_volatility, popularity_index"
)


class HistoryRepository(BaseRepository):
    """Read/write access to ``admission_history``."""

    def fetch_for_candidates(
        self,
        province:          str,
        subject_category:  str,
        before_year:       int,
        institution_codes: Iterable[str],
        institution_names: Iterable[str] = (),
        min_year:          Optional[int] = None,
        chunk_size:        int = DEFAULT_CHUNK_SIZE,
    ) -> list[AdmissionHistoryRow]:
        """Bulk-fetch history for a set of candidate institutions.

        Args:
            province:          Source province (scope).
            subject_category:  Subject category (scope).
            before_year:       Only rows with ``year < before_year``.
            institution_codes: Codes of every candidate institution.
            institution_names: Names of every candidate institution; rows
                               matched only by name feed the proxy strategy.
            min_year:          Optional lower bound (inclusive) on ``year``.
            chunk_size:        Maximum keys per ``IN (...)`` list.

        Returns:
            De-duplicated rows ordered by institution code, group code and
            year descending.
        """
        codes = sorted(set(institution_codes))
        names = sorted(set(institution_names))

        seen: dict[int, AdmissionHistoryRow] = {}
        queries = 0
        for column, keys in (("institution_code", codes), ("institution_name", names)):
            for chunk in chunked(keys, chunk_size):
                for row in self._fetch_chunk(
                    column, chunk, province, subject_category, before_year, min_year
                ):
                    seen.setdefault(row["history_id"], _row_to_history(row))
                queries += 1

        result = sorted(
            seen.values(),
            key=lambda r: (r.institution_code, r.group_code, -r.record.year),
        )
        logger.debug(
            "History lookup: %d codes, %d names, %d queries, %d rows",
            len(codes), len(names), queries, len(result),
        )
        return result

    def _fetch_chunk(
        self,
        column:           str,
        keys:             list[str],
        province:         str,
        subject_category: str,
        before_year:      int,
        min_year:         Optional[int],
    ) -> list[sqlite3.Row]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM admission_history
            WHERE province = ? AND subject_category = ? AND year < ?
              AND {column} IN ({placeholders(len(keys))})
        """
        params: list = [province, subject_category, before_year, *keys]
        if min_year is not None:
            sql += " AND year >= ?"
            params.append(min_year)
        return self.fetchall(sql + ";", tuple(params))

    def insert_batch(self, rows: list[AdmissionHistoryRow]) -> int:
        """Insert history rows.

        Returns:
            Number of rows written.
        """
        if not rows:
            return 0
        params = [
            (
                r.record.year, r.province, r.subject_category, r.institution_code,
                r.institution_name, r.group_code, r.group_name,
                r.record.min_score, r.record.avg_score, r.record.max_score,
                r.record.min_rank, r.record.max_rank, r.record.accepted_count,
                r.score_volatility, r.popularity_index,
            )
            for r in rows
        ]
        self.executemany(
            """
            INSERT INTO admission_history (
                year, province, subject_category, institution_code,
                institution_name, group_code, group_name,
                min_score, avg_score, max_score, min_rank, max_rank,
                accepted_count, score_volatility, popularity_index
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            params,
        )
        return len(params)


def _row_to_history(row: sqlite3.Row) -> AdmissionHistoryRow:
    return AdmissionHistoryRow(
        institution_code=row["institution_code"],
        institution_name=row["institution_name"],
        group_code=row["group_code"] or "",
        group_name=row["group_name"],
        province=row["province"],
        subject_category=row["subject_category"],
        record=HistoricalYearRecord(
            year=row["year"],
            min_score=row["min_score"],
            avg_score=row["avg_score"],
            max_score=row["max_score"],
            min_rank=row["min_rank"],
            max_rank=row["max_rank"],
            accepted_count=row["accepted_count"],
        ),
        score_volatility=row["score_volatility"],
        popularity_index=row["popularity_index"],
    )
