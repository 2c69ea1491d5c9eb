"""
Exception types raised by the recommendation engine.

Only structurally invalid requests raise.  Sparse history, degenerate
candidates and under-filled tiers are ordinary outcomes and are reported
through result fields and diagnostics instead.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a request is missing required scope or carries malformed
    preferences.

    Attributes:
        field: Name of the offending field, when known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ScoreRankingNotFoundError(LookupError):
    """Raised when no score-ranking table exists for a (year, province,
    subject category) scope.

    Attributes:
        year:             Requested exam year.
        province:         Source province.
        subject_category: Normalised subject category code.
    """

    def __init__(self, year: int, province: str, subject_category: str) -> None:
        self.year             = year
        self.province         = province
        self.subject_category = subject_category
        super().__init__(
            f"No score-ranking data for year={year} province='{province}' "
            f"subject_category='{subject_category}'."
        )


class CandidateNotFoundError(LookupError):
    """Raised when single-candidate evaluation names an (institution, group)
    absent from the current-year inventory."""

    def __init__(self, institution_code: str, group_code: str) -> None:
        self.institution_code = institution_code
        self.group_code       = group_code
        super().__init__(
            f"No inventory for institution '{institution_code}' group '{group_code}'."
        )
