"""
Historical join: attach a historical series to each candidate group.

History is fetched once per request in bulk (see
``HistoryRepository.fetch_for_candidates``) and indexed in memory by
``HistoryIndex``.  Each group is then resolved through an ordered chain of
pure strategies; the first strategy returning a non-empty series wins:

    1. exact_group_match       (institution code, group code)
    2. group_name_match        (institution code, history group name contains
                                the group's name); skipped if the group has
                                no name
    3. institution_name_match  (institution name), the institution-level proxy

If every strategy comes back empty the group gets an empty series and the
estimator's neutral no-data branch handles it.

Series normalisation
--------------------
One record per year, most recent first, at most ``max_years`` long.  When a
strategy returns several rows for the same year (group-name or proxy
matches), the lowest cutoff represents that year: minimum ``min_score``,
maximum ``min_rank`` and summed ``accepted_count``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from admission_advisor.models.candidate import (
    AdmissionHistoryRow,
    CandidateGroup,
    HistoricalSeries,
    HistoricalYearRecord,
)
from admission_advisor.probability.estimator import EstimatorHints
from admission_advisor.taxonomy.tiers import HistorySource

logger = logging.getLogger(__name__)


@dataclass
class HistoryIndex:
    """In-memory index over one bulk history fetch.

    Attributes:
        by_group:            (institution code, group code) -> rows.
        by_institution_code: institution code -> rows.
        by_institution_name: institution name -> rows.
    """

    by_group:            dict[tuple[str, str], list[AdmissionHistoryRow]] = field(default_factory=dict)
    by_institution_code: dict[str, list[AdmissionHistoryRow]] = field(default_factory=dict)
    by_institution_name: dict[str, list[AdmissionHistoryRow]] = field(default_factory=dict)

    @classmethod
    def build(cls, rows: Iterable[AdmissionHistoryRow]) -> "HistoryIndex":
        by_group: dict[tuple[str, str], list[AdmissionHistoryRow]] = defaultdict(list)
        by_code:  dict[str, list[AdmissionHistoryRow]] = defaultdict(list)
        by_name:  dict[str, list[AdmissionHistoryRow]] = defaultdict(list)
        for row in rows:
            by_group[(row.institution_code, row.group_code)].append(row)
            by_code[row.institution_code].append(row)
            by_name[row.institution_name].append(row)
        return cls(
            by_group=dict(by_group),
            by_institution_code=dict(by_code),
            by_institution_name=dict(by_name),
        )

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_group.values())


@dataclass(frozen=True)
class HistoryMatch:
    """Result of joining one candidate group to its history.

    Attributes:
        series: Normalised historical series (may be empty).
        source: Strategy that produced the series, or ``HistorySource.NONE``.
        hints:  Estimator hints derived from the matched rows and the group.
    """

    series: HistoricalSeries
    source: HistorySource
    hints:  EstimatorHints


JoinStrategy = Callable[[CandidateGroup, HistoryIndex], list[AdmissionHistoryRow]]


def exact_group_match(group: CandidateGroup, index: HistoryIndex) -> list[AdmissionHistoryRow]:
    return index.by_group.get((group.institution_code, group.group_code), [])


def group_name_match(group: CandidateGroup, index: HistoryIndex) -> list[AdmissionHistoryRow]:
    if not group.group_name:
        return []
    return [
        row
        for row in index.by_institution_code.get(group.institution_code, [])
        if row.group_name and group.group_name in row.group_name
    ]


def institution_name_match(group: CandidateGroup, index: HistoryIndex) -> list[AdmissionHistoryRow]:
    return index.by_institution_name.get(group.institution_name, [])


JOIN_STRATEGIES: tuple[tuple[HistorySource, JoinStrategy], ...] = (
    (HistorySource.EXACT_GROUP,       exact_group_match),
    (HistorySource.GROUP_NAME,        group_name_match),
    (HistorySource.INSTITUTION_PROXY, institution_name_match),
)


def join_history(
    group:     CandidateGroup,
    index:     HistoryIndex,
    max_years: int = 3,
) -> HistoryMatch:
    """Resolve a group's historical series through the fallback chain.

    Args:
        group:     Candidate group to resolve.
        index:     Index over the request's bulk history fetch.
        max_years: Maximum number of years to keep.

    Returns:
        ``HistoryMatch`` from the first strategy with data, else an empty
        match with ``source=HistorySource.NONE``.
    """
    for source, strategy in JOIN_STRATEGIES:
        rows = strategy(group, index)
        if rows:
            return HistoryMatch(
                series=normalize_series(rows, max_years),
                source=source,
                hints=_hints_for(group, rows, source),
            )
    return HistoryMatch(
        series=(),
        source=HistorySource.NONE,
        hints=EstimatorHints(current_plan_count=group.total_plan_count or None),
    )


def join_all(
    groups:    Iterable[CandidateGroup],
    index:     HistoryIndex,
    max_years: int = 3,
) -> list[tuple[CandidateGroup, HistoryMatch]]:
    """Join every group; logs how many groups each strategy resolved."""
    joined = [(g, join_history(g, index, max_years)) for g in groups]

    counts: dict[str, int] = defaultdict(int)
    for _, match in joined:
        counts[match.source.value] += 1
    logger.info("History join: %d groups resolved %s", len(joined), dict(counts))
    return joined


def normalize_series(
    rows:      Iterable[AdmissionHistoryRow],
    max_years: int = 3,
) -> HistoricalSeries:
    """Collapse rows into one record per year, most recent first."""
    by_year: dict[int, list[HistoricalYearRecord]] = defaultdict(list)
    for row in rows:
        by_year[row.record.year].append(row.record)

    series = [
        records[0] if len(records) == 1 else _collapse_year(year, records)
        for year, records in sorted(by_year.items(), reverse=True)
    ]
    return tuple(series[:max_years])


# ── Helpers ───────────────────────────────────────────────────────────────────

def _collapse_year(year: int, records: list[HistoricalYearRecord]) -> HistoricalYearRecord:
    avg_scores = [r.avg_score for r in records if r.avg_score is not None]
    max_scores = [r.max_score for r in records if r.max_score is not None]
    min_ranks  = [r.min_rank for r in records if r.min_rank is not None]
    max_ranks  = [r.max_rank for r in records if r.max_rank is not None]
    accepted   = [r.accepted_count for r in records if r.accepted_count is not None]

    return HistoricalYearRecord(
        year=year,
        min_score=min(r.min_score for r in records),
        avg_score=sum(avg_scores) / len(avg_scores) if avg_scores else None,
        max_score=max(max_scores) if max_scores else None,
        min_rank=max(min_ranks) if min_ranks else None,
        max_rank=min(max_ranks) if max_ranks else None,
        accepted_count=sum(accepted) if accepted else None,
    )


def _hints_for(
    group:  CandidateGroup,
    rows:   list[AdmissionHistoryRow],
    source: HistorySource,
) -> EstimatorHints:
    latest = max(rows, key=lambda r: r.record.year)
    # Merged rows describe more than this group, so its plan count is not comparable.
    current = group.total_plan_count or None
    if source is not HistorySource.EXACT_GROUP:
        current = None
    return EstimatorHints(
        score_volatility=latest.score_volatility,
        popularity_index=latest.popularity_index,
        current_plan_count=current,
    )
