"""
Candidate and history models.

``InventoryRow`` is one offered major in the current-year enrollment plan,
with institution identity and tags denormalized onto every row so grouping
never needs a join back to an institution table.

``CandidateGroup`` bundles the majors of one (institution, admission group)
pair: the unit a student actually applies to.

``HistoricalYearRecord`` is one year of admission outcomes for a group.  A
historical series is a year-descending tuple of these.

``AdmissionHistoryRow`` is a record as returned by the history store, still
carrying the key fields used by the fallback join.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from admission_advisor.taxonomy.tiers import InstitutionTier

DEFAULT_GROUP_CODE = "default"


class HistoricalYearRecord(BaseModel):
    """One year of admission outcomes for a candidate group.

    Attributes:
        year: Admission year.
        min_score: Lowest admitted score (the cutoff).
        avg_score: Mean admitted score, if published.
        max_score: Highest admitted score, if published.
        min_rank: Rank of the lowest admitted student (largest rank number).
        max_rank: Rank of the best admitted student.
        accepted_count: Number admitted (or planned) that year.
    """

    model_config = ConfigDict(frozen=True)

    year: int
    min_score: int
    avg_score: Optional[float] = None
    max_score: Optional[int] = None
    min_rank: Optional[int] = None
    max_rank: Optional[int] = None
    accepted_count: Optional[int] = None


HistoricalSeries = tuple[HistoricalYearRecord, ...]


class AdmissionHistoryRow(BaseModel):
    """A historical outcome row with the keys the fallback join matches on.

    Attributes:
        institution_code: Institution code as used by the admissions office.
        institution_name: Institution display name (institution-level proxy key).
        group_code: Admission-group code within the institution.
        group_name: Admission-group name (matched by substring).
        province: Source province of the outcome.
        subject_category: Subject category of the outcome.
        record: The outcome figures.
        score_volatility: Pre-computed cutoff std-dev, if the store keeps one.
        popularity_index: 0–100 popularity of the group, if the store keeps one.
    """

    model_config = ConfigDict(frozen=True)

    institution_code: str
    institution_name: str
    group_code: str = ""
    group_name: Optional[str] = None
    province: str
    subject_category: str
    record: HistoricalYearRecord
    score_volatility: Optional[float] = None
    popularity_index: Optional[float] = None


class InventoryRow(BaseModel):
    """One current-year offered major, as supplied by the inventory store."""

    model_config = ConfigDict(frozen=True)

    year: int
    province: str
    subject_category: str

    institution_code: str
    institution_name: str
    institution_province: Optional[str] = None
    institution_city: Optional[str] = None
    is_985: bool = False
    is_211: bool = False
    is_double_first_class: bool = False

    group_code: str = ""
    group_name: Optional[str] = None
    subject_requirements: Optional[str] = None

    major_code: str
    major_name: str
    plan_count: int = 0
    tuition: Optional[float] = None
    duration_years: Optional[int] = None

    @field_validator("plan_count")
    @classmethod
    def validate_plan_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"plan_count must be non-negative, got {v}.")
        return v


class MajorOffering(BaseModel):
    """A major offered inside a candidate group."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    plan_count: int = 0
    tuition: Optional[float] = None
    duration_years: Optional[int] = None


class CandidateGroup(BaseModel):
    """An (institution, admission group) pair with its offered majors.

    Built fresh per request from inventory rows; never persisted.
    """

    model_config = ConfigDict(frozen=True)

    institution_code: str
    institution_name: str
    institution_province: Optional[str] = None
    institution_city: Optional[str] = None
    is_985: bool = False
    is_211: bool = False
    is_double_first_class: bool = False

    group_code: str = ""
    group_name: Optional[str] = None
    subject_requirements: Optional[str] = None

    majors: tuple[MajorOffering, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        """Grouping key: (institution code, group code or ``"default"``)."""
        return (self.institution_code, self.group_code or DEFAULT_GROUP_CODE)

    @property
    def total_majors(self) -> int:
        return len(self.majors)

    @property
    def total_plan_count(self) -> int:
        return sum(m.plan_count for m in self.majors)

    @property
    def institution_tier(self) -> InstitutionTier:
        if self.is_985:
            return InstitutionTier.TOP
        if self.is_211:
            return InstitutionTier.NEXT
        if self.is_double_first_class:
            return InstitutionTier.RECOGNIZED
        return InstitutionTier.OTHER
