"""
Score-ranking table model (the per-province "one point, one band" table).

Each row states how many candidates scored exactly ``score`` and how many
scored ``score`` or above (``cumulative_count``) in a given exam year,
province and subject category.  The cumulative count is the rank of the
last candidate at that score.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class ScoreRankingRow(BaseModel):
    """One score band of a provincial score-ranking table.

    Attributes:
        year: Exam year.
        province: Province the table belongs to.
        subject_category: Normalised subject category code.
        score: Exam score of this band.
        count: Candidates with exactly this score.
        cumulative_count: Candidates with this score or higher.
        rank: Published rank for the band, when it differs from
            ``cumulative_count`` (some provinces publish the best rank).
    """

    model_config = ConfigDict(frozen=True)

    year: int
    province: str
    subject_category: str
    score: int
    count: int = 0
    cumulative_count: int
    rank: Optional[int] = None

    @model_validator(mode="after")
    def validate_counts(self) -> "ScoreRankingRow":
        if self.count < 0:
            raise ValueError("count must be non-negative.")
        if self.cumulative_count < self.count:
            raise ValueError(
                f"cumulative_count ({self.cumulative_count}) must be >= "
                f"count ({self.count})."
            )
        return self

    @property
    def effective_rank(self) -> int:
        """Rank used for lookups: the published rank, else the cumulative count."""
        return self.rank or self.cumulative_count
