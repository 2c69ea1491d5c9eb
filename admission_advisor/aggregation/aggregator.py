"""
Candidate aggregation: inventory rows -> filtered -> candidate groups.

Each inventory row is one offered major.  Rows are filtered by the student's
preferences first, then grouped by (institution code, group code) so each
``CandidateGroup`` carries all its surviving majors plus the institution tags
denormalized on its rows.

All functions here are pure; the inventory fetch lives in
``db/repositories/inventory_repo.py`` and is driven by ``service.py``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from admission_advisor.errors import ConfigurationError
from admission_advisor.models.candidate import (
    DEFAULT_GROUP_CODE,
    CandidateGroup,
    InventoryRow,
    MajorOffering,
)
from admission_advisor.models.request import Preferences, StudentProfile

logger = logging.getLogger(__name__)

# Group-name markers of joint-venture (cooperative) programmes.
COOPERATION_KEYWORDS: tuple[str, ...] = ("中外合作", "合作办学", "Sino-foreign")


def require_scope(profile: StudentProfile) -> None:
    """Reject a profile whose scope fields are missing.

    ``StudentProfile`` validation already rejects blanks; this guards objects
    built with ``model_construct`` or mutated copies before any I/O happens.

    Raises:
        ConfigurationError: If year, province or subject category is missing.
    """
    if not profile.target_year:
        raise ConfigurationError("target_year is required.", field="target_year")
    if not profile.province or not str(profile.province).strip():
        raise ConfigurationError("province is required.", field="province")
    if not profile.subject_category or not str(profile.subject_category).strip():
        raise ConfigurationError(
            "subject_category is required.", field="subject_category"
        )


def filter_inventory(
    rows:        Iterable[InventoryRow],
    preferences: Preferences,
) -> list[InventoryRow]:
    """Apply preference filters to inventory rows.

    Filters (all must pass):
      - majors:               major name contains any requested name.
      - major_categories:     major name contains any requested category.
      - locations:            institution province in the allow list.
      - exclude_locations:    institution province not in the deny list.
      - exclude_institutions: institution code and name not in the list.
      - college_types:        institution carries any requested tag.
      - max_tuition:          tuition unknown or within the ceiling.
      - accept_cooperation:   when ``False``, no cooperative-programme groups.

    Args:
        rows:        Current-year inventory rows for the student's scope.
        preferences: The student's preferences.

    Returns:
        Rows that pass every filter, in input order.
    """
    return [row for row in rows if _row_passes(row, preferences)]


def group_inventory(rows: Iterable[InventoryRow]) -> list[CandidateGroup]:
    """Group rows into candidate groups keyed by (institution, group).

    Groups appear in the order their first row appears; majors keep row order.
    Institution tags and group metadata come from the first row of the group.

    Args:
        rows: Inventory rows (typically already filtered).

    Returns:
        One ``CandidateGroup`` per distinct (institution code, group code).
    """
    heads:  dict[tuple[str, str], InventoryRow] = {}
    majors: dict[tuple[str, str], list[MajorOffering]] = {}

    for row in rows:
        key = (row.institution_code, row.group_code or DEFAULT_GROUP_CODE)
        if key not in heads:
            heads[key] = row
            majors[key] = []
        majors[key].append(
            MajorOffering(
                code=row.major_code,
                name=row.major_name,
                plan_count=row.plan_count,
                tuition=row.tuition,
                duration_years=row.duration_years,
            )
        )

    groups = [
        CandidateGroup(
            institution_code=head.institution_code,
            institution_name=head.institution_name,
            institution_province=head.institution_province,
            institution_city=head.institution_city,
            is_985=head.is_985,
            is_211=head.is_211,
            is_double_first_class=head.is_double_first_class,
            group_code=head.group_code,
            group_name=head.group_name,
            subject_requirements=head.subject_requirements,
            majors=tuple(majors[key]),
        )
        for key, head in heads.items()
    ]
    logger.debug("Grouped inventory into %d candidate groups.", len(groups))
    return groups


def build_candidate_groups(
    rows:        Iterable[InventoryRow],
    preferences: Preferences,
) -> list[CandidateGroup]:
    """Filter then group inventory rows."""
    rows = list(rows)
    kept = filter_inventory(rows, preferences)
    logger.info(
        "Inventory: %d rows, %d after preference filters.", len(rows), len(kept)
    )
    return group_inventory(kept)


def is_cooperative(group_name: str | None) -> bool:
    if not group_name:
        return False
    return any(kw in group_name for kw in COOPERATION_KEYWORDS)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _row_passes(row: InventoryRow, prefs: Preferences) -> bool:
    if prefs.majors and not any(m in row.major_name for m in prefs.majors):
        return False
    if prefs.major_categories and not any(
        c in row.major_name for c in prefs.major_categories
    ):
        return False
    if prefs.locations and row.institution_province not in prefs.locations:
        return False
    if prefs.exclude_locations and row.institution_province in prefs.exclude_locations:
        return False
    if prefs.exclude_institutions and (
        row.institution_code in prefs.exclude_institutions
        or row.institution_name in prefs.exclude_institutions
    ):
        return False
    if prefs.college_types and not _matches_college_type(row, prefs.college_types):
        return False
    if prefs.max_tuition is not None and row.tuition is not None:
        if row.tuition > prefs.max_tuition:
            return False
    if not prefs.accept_cooperation and is_cooperative(row.group_name):
        return False
    return True


def _matches_college_type(row: InventoryRow, college_types: list[str]) -> bool:
    return (
        ("985" in college_types and row.is_985)
        or ("211" in college_types and row.is_211)
        or ("double_first_class" in college_types and row.is_double_first_class)
    )
