"""
Score-ranking lookups: score -> rank, rank -> score, and equivalent scores.

A provincial score-ranking table lists, per score, how many candidates
scored at least that much.  Two lookups follow from it:

    rank_for_score(table, score)  band with the highest score <= ``score``
    score_for_rank(table, rank)   band with the smallest rank >= ``rank``

Equivalent scores
-----------------
Raw scores are not comparable across years (paper difficulty varies), but
ranks are.  ``find_equivalent_scores`` looks up the student's rank in the
current year and, for each earlier year, the score that reached the same
rank.  The difference tells the student how to read older cutoffs.

Usage::

    with get_connection(db_path) as conn:
        repo = ScoreRankingRepository(conn)
        result = find_equivalent_scores(repo, 2025, "Jiangsu", "physics", 600)
        [(e.year, e.score, e.score_diff) for e in result.equivalents]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from admission_advisor.db.repositories.ranking_repo import ScoreRankingRepository
from admission_advisor.errors import ScoreRankingNotFoundError
from admission_advisor.models.ranking import ScoreRankingRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EquivalentScore:
    """Score reaching the student's rank in an earlier year.

    Attributes:
        year:       Earlier exam year.
        score:      Score of the matching band.
        rank:       Effective rank of the matching band.
        score_diff: ``score`` minus the student's current-year score.
    """

    year:       int
    score:      int
    rank:       int
    score_diff: int


@dataclass(frozen=True)
class EquivalentScoreResult:
    year:             int
    province:         str
    subject_category: str
    score:            int
    rank:             int
    equivalents:      list[EquivalentScore] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedRank:
    """A rank looked up from a score-ranking table.

    Attributes:
        rank: Effective rank of the matched band.
        year: Year of the table used (may precede the requested year).
    """

    rank: int
    year: int


def rank_for_score(table: Iterable[ScoreRankingRow], score: int) -> Optional[ScoreRankingRow]:
    """Band with the highest score not above ``score``, or ``None``."""
    eligible = [r for r in table if r.score <= score]
    if not eligible:
        return None
    return max(eligible, key=lambda r: r.score)


def score_for_rank(table: Iterable[ScoreRankingRow], rank: int) -> Optional[ScoreRankingRow]:
    """First band (from the top) whose rank reaches ``rank``, or ``None``."""
    eligible = [r for r in table if r.effective_rank >= rank]
    if not eligible:
        return None
    return min(eligible, key=lambda r: (r.effective_rank, -r.score))


def equivalent_scores(
    current_table: Sequence[ScoreRankingRow],
    earlier:       dict[int, Sequence[ScoreRankingRow]],
    score:         int,
) -> tuple[Optional[ScoreRankingRow], list[EquivalentScore]]:
    """Pure core of ``find_equivalent_scores``.

    Args:
        current_table: Current-year table.
        earlier:       Year -> table for every year to compare.
        score:         Student's current-year score.

    Returns:
        The matched current-year band (``None`` if the score is below the
        table) and one ``EquivalentScore`` per year with a match, most
        recent year first.
    """
    band = rank_for_score(current_table, score)
    if band is None:
        return None, []

    found: list[EquivalentScore] = []
    for year in sorted(earlier, reverse=True):
        match = score_for_rank(earlier[year], band.effective_rank)
        if match is None:
            continue
        found.append(
            EquivalentScore(
                year=year,
                score=match.score,
                rank=match.effective_rank,
                score_diff=match.score - score,
            )
        )
    return band, found


# ── Repository-backed lookups ─────────────────────────────────────────────────

def find_equivalent_scores(
    repo:             ScoreRankingRepository,
    year:             int,
    province:         str,
    subject_category: str,
    score:            int,
    compare_years:    Optional[Sequence[int]] = None,
) -> EquivalentScoreResult:
    """Equivalent scores of ``score`` in earlier years.

    Args:
        repo:             Score-ranking repository.
        year:             Year the score was obtained in.
        province:         Source province.
        subject_category: Subject category.
        score:            The score to translate.
        compare_years:    Years to compare; defaults to every earlier year
                          with a table.

    Raises:
        ScoreRankingNotFoundError: If ``year`` has no table, or the score is
            below every band in it.
    """
    current = repo.fetch_table(year, province, subject_category)
    if not current:
        raise ScoreRankingNotFoundError(year, province, subject_category)

    years = list(compare_years) if compare_years else repo.available_years(
        province, subject_category, before_year=year
    )
    earlier = {y: repo.fetch_table(y, province, subject_category) for y in years}

    band, found = equivalent_scores(current, earlier, score)
    if band is None:
        raise ScoreRankingNotFoundError(year, province, subject_category)

    logger.info(
        "Equivalent scores for %d (%d %s/%s): %d year(s) matched",
        score, year, province, subject_category, len(found),
    )
    return EquivalentScoreResult(
        year=year,
        province=province,
        subject_category=subject_category,
        score=score,
        rank=band.effective_rank,
        equivalents=found,
    )


def resolve_rank(
    repo:             ScoreRankingRepository,
    year:             int,
    province:         str,
    subject_category: str,
    score:            int,
) -> Optional[ResolvedRank]:
    """Look up the rank of ``score``.

    Uses the ``year`` table when it exists, else the most recent earlier
    year's table.  Returns ``None`` when no table matches.
    """
    candidates = [year] + repo.available_years(province, subject_category, before_year=year)
    for y in candidates:
        table = repo.fetch_table(y, province, subject_category)
        if not table:
            continue
        band = rank_for_score(table, score)
        if band is not None:
            logger.info("Resolved rank %d for score %d from the %d table.", band.effective_rank, score, y)
            return ResolvedRank(rank=band.effective_rank, year=y)
        return None
    return None
