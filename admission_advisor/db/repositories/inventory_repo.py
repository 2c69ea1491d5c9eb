"""
Repository for the current-year inventory (``enrollment_plans``).
"""

from __future__ import annotations

import logging
import sqlite3

from admission_advisor.db.repositories.base import BaseRepository
from admission_advisor.models.candidate import InventoryRow

logger = logging.getLogger(__name__)

_COLUMNS = (
    "year, province, subject_category, institution_code, institution_name, "
    "institution_province, institution_city, is_985, is_211, is_double_first_class, "
    "group_code, group_name, subject_requirements, major_code, major_name, "
    "plan_count, tuition, duration_years"
)


class InventoryRepository(BaseRepository):
    """Read/write access to ``enrollment_plans``."""

    def fetch_scope(self, year: int, province: str, subject_category: str) -> list[InventoryRow]:
        """Every offered major for one (year, province, subject category).

        One query.  Rows come back ordered by institution code, group code
        and major code so grouping is deterministic.
        """
        rows = self.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM enrollment_plans
            WHERE year = ? AND province = ? AND subject_category = ?
            ORDER BY institution_code, group_code, major_code;
            """,
            (year, province, subject_category),
        )
        logger.debug(
            "Inventory scope %d/%s/%s: %d rows", year, province, subject_category, len(rows)
        )
        return [_row_to_inventory(r) for r in rows]

    def fetch_group(
        self,
        year:             int,
        province:         str,
        subject_category: str,
        institution_code: str,
        group_code:       str = "",
    ) -> list[InventoryRow]:
        """Inventory rows of a single (institution, group) in one scope."""
        rows = self.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM enrollment_plans
            WHERE year = ? AND province = ? AND subject_category = ?
              AND institution_code = ? AND group_code = ?
            ORDER BY major_code;
            """,
            (year, province, subject_category, institution_code, group_code),
        )
        return [_row_to_inventory(r) for r in rows]

    def insert_batch(self, rows: list[InventoryRow]) -> int:
        """Insert inventory rows, replacing duplicates of the unique key.

        Returns:
            Number of rows written.
        """
        if not rows:
            return 0
        params = [
            (
                r.year, r.province, r.subject_category, r.institution_code,
                r.institution_name, r.institution_province, r.institution_city,
                int(r.is_985), int(r.is_211), int(r.is_double_first_class),
                r.group_code, r.group_name, r.subject_requirements,
                r.major_code, r.major_name, r.plan_count, r.tuition, r.duration_years,
            )
            for r in rows
        ]
        self.executemany(
            f"""
            INSERT OR REPLACE INTO enrollment_plans ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            params,
        )
        return len(params)


def _row_to_inventory(row: sqlite3.Row) -> InventoryRow:
    return InventoryRow(
        year=row["year"],
        province=row["province"],
        subject_category=row["subject_category"],
        institution_code=row["institution_code"],
        institution_name=row["institution_name"],
        institution_province=row["institution_province"],
        institution_city=row["institution_city"],
        is_985=bool(row["is_985"]),
        is_211=bool(row["is_211"]),
        is_double_first_class=bool(row["is_double_first_class"]),
        group_code=row["group_code"] or "",
        group_name=row["group_name"],
        subject_requirements=row["subject_requirements"],
        major_code=row["major_code"],
        major_name=row["major_name"],
        plan_count=row["plan_count"],
        tuition=row["tuition"],
        duration_years=row["duration_years"],
    )
