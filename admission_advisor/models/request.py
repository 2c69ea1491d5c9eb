"""
Request models: who is asking and what they prefer.

``StudentProfile`` carries the scope fields every evaluation needs (exam
year, source province, subject category) plus the student's score and
optional rank.  ``Preferences`` narrows the candidate inventory and steers
within-tier ranking.

Both models are frozen: a request is immutable once validated.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_COLLEGE_TYPES = frozenset({"985", "211", "double_first_class"})


class StudentProfile(BaseModel):
    """The student being advised.

    Attributes:
        score: Total exam score.
        rank: Province-wide percentile rank (1 = best), or ``None`` if unknown.
        province: Source province the student sits the exam in.
        subject_category: Normalised subject category code (e.g. ``"physics"``).
        target_year: Admission year the recommendations are for.  Only
            history strictly before this year is used.
    """

    model_config = ConfigDict(frozen=True)

    score: int
    rank: Optional[int] = None
    province: str
    subject_category: str
    target_year: int

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"score must be non-negative, got {v}.")
        return v

    @field_validator("rank")
    @classmethod
    def validate_rank(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError(f"rank must be >= 1 when given, got {v}.")
        return v

    @field_validator("province", "subject_category")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("scope fields must not be blank.")
        return v.strip()

    @field_validator("target_year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"target_year must be positive, got {v}.")
        return v


class Preferences(BaseModel):
    """Optional filters and ranking hints supplied by the student.

    Empty lists mean "no preference".

    Attributes:
        majors: Specific major names; a major matches if its name
            contains one of these names.
        major_categories: Broad major categories, matched by substring.
        locations: Institution provinces to keep.
        exclude_locations: Institution provinces to drop.
        exclude_institutions: Institution codes or names to drop.
        college_types: Keep only institutions carrying any of these tags.
        max_tuition: Annual tuition ceiling; majors without tuition data pass.
        accept_cooperation: ``False`` drops joint-venture (cooperative) groups.
        rush_count: Override for the Rush tier size.
        stable_count: Override for the Stable tier size.
        safe_count: Override for the Safe tier size.
    """

    model_config = ConfigDict(frozen=True)

    majors: list[str] = []
    major_categories: list[str] = []
    locations: list[str] = []
    exclude_locations: list[str] = []
    exclude_institutions: list[str] = []
    college_types: list[str] = []
    max_tuition: Optional[float] = None
    accept_cooperation: bool = True
    rush_count: Optional[int] = None
    stable_count: Optional[int] = None
    safe_count: Optional[int] = None

    @field_validator(
        "majors", "major_categories", "locations",
        "exclude_locations", "exclude_institutions",
    )
    @classmethod
    def strip_blank_entries(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s and s.strip()]

    @field_validator("college_types")
    @classmethod
    def validate_college_types(cls, v: list[str]) -> list[str]:
        unknown = [t for t in v if t not in VALID_COLLEGE_TYPES]
        if unknown:
            raise ValueError(
                f"Unknown college_types {unknown}. "
                f"Must be a subset of {sorted(VALID_COLLEGE_TYPES)}."
            )
        return v

    @field_validator("max_tuition")
    @classmethod
    def validate_max_tuition(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"max_tuition must be positive, got {v}.")
        return v

    @field_validator("rush_count", "stable_count", "safe_count")
    @classmethod
    def validate_counts(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"tier counts must be non-negative, got {v}.")
        return v
