"""
Recommendation engine: the pure pipeline from inventory + history rows to
three ranked tier lists.

    parse_request(payload)                      -> (StudentProfile, Preferences)
    recommend(profile, prefs, inventory, history) -> TieredRecommendations
        1. require_scope(profile)
        2. build_candidate_groups(inventory, prefs)   filter + group
        3. HistoryIndex.build(history); join_all(...) fallback join chain
        4. build_recommendations(...)                 estimate, partition, rank

No function here performs I/O.  ``service.RecommendationService`` is the
impure shell that fetches rows from SQLite and calls ``recommend``.

Usage::

    from admission_advisor.recommendations.engine import parse_request, recommend

    profile, prefs = parse_request({"profile": {...}, "preferences": {...}})
    result = recommend(profile, prefs, inventory_rows, history_rows)
    result.stable[0].group.institution_name
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from admission_advisor.aggregation.aggregator import build_candidate_groups, require_scope
from admission_advisor.aggregation.history_join import HistoryIndex, HistoryMatch, join_all
from admission_advisor.errors import ConfigurationError
from admission_advisor.models.candidate import (
    AdmissionHistoryRow,
    CandidateGroup,
    InventoryRow,
)
from admission_advisor.models.request import Preferences, StudentProfile
from admission_advisor.probability.estimator import evaluate, evaluate_batch
from admission_advisor.probability.tables import DEFAULT_POLICY, ProbabilityPolicy
from admission_advisor.recommendations.ranker import (
    DEFAULT_WEIGHTS,
    EvaluatedCandidate,
    RankedRecommendation,
    RankingWeights,
    compute_rank_score,
    partition_by_tier,
    rank_tier,
)
from admission_advisor.recommendations.reasons import (
    build_highlights,
    build_reasons,
    build_warnings,
    render_messages,
)
from admission_advisor.taxonomy.tiers import TIER_ORDER, HistorySource, InstitutionTier, Tier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierCounts:
    """Target size of each tier list."""

    rush:   int = 12
    stable: int = 20
    safe:   int = 8

    def for_tier(self, tier: Tier) -> int:
        return {Tier.RUSH: self.rush, Tier.STABLE: self.stable, Tier.SAFE: self.safe}[tier]

    def with_overrides(self, preferences: Preferences) -> "TierCounts":
        """Apply per-request overrides; ``None`` keeps the default."""
        return TierCounts(
            rush=self.rush if preferences.rush_count is None else preferences.rush_count,
            stable=self.stable if preferences.stable_count is None else preferences.stable_count,
            safe=self.safe if preferences.safe_count is None else preferences.safe_count,
        )


DEFAULT_COUNTS = TierCounts()


@dataclass(frozen=True)
class RecommendationSummary:
    """Aggregate view of the three tier lists.

    Attributes:
        totals:              Entries per tier, keyed by tier value.
        average_probability: Mean probability per tier (1 decimal, 0.0 if empty).
        institution_tiers:   Entries per institution tier label, all tiers combined.
    """

    totals:              dict[str, int]
    average_probability: dict[str, float]
    institution_tiers:   dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.totals.values())


@dataclass(frozen=True)
class RecommendationDiagnostics:
    """Counts describing how the candidate pool was narrowed.

    Attributes:
        inventory_rows:     Inventory rows fetched for the scope.
        candidate_groups:   Groups left after preference filters.
        evaluated:          Groups run through the estimator.
        filtered:           Groups removed by the pre-filter.
        filtered_by_reason: Pre-filter removals per reason.
        history_sources:    Groups per join strategy that resolved them.
        no_history:         Groups with no historical series.
        rank_resolved:      ``True`` if the student's rank was looked up.
    """

    inventory_rows:     int = 0
    candidate_groups:   int = 0
    evaluated:          int = 0
    filtered:           int = 0
    filtered_by_reason: dict[str, int] = field(default_factory=dict)
    history_sources:    dict[str, int] = field(default_factory=dict)
    no_history:         int = 0
    rank_resolved:      bool = False


@dataclass(frozen=True)
class TieredRecommendations:
    """Final engine output: three ordered lists plus summary and diagnostics."""

    profile:     StudentProfile
    preferences: Preferences
    rush:        list[RankedRecommendation]
    stable:      list[RankedRecommendation]
    safe:        list[RankedRecommendation]
    summary:     RecommendationSummary
    diagnostics: RecommendationDiagnostics

    def tier(self, tier: Tier) -> list[RankedRecommendation]:
        return {Tier.RUSH: self.rush, Tier.STABLE: self.stable, Tier.SAFE: self.safe}[tier]

    def all(self) -> list[RankedRecommendation]:
        """Every entry, Rush first then Stable then Safe."""
        return [*self.rush, *self.stable, *self.safe]

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation."""
        return {
            "profile":     self.profile.model_dump(),
            "preferences": self.preferences.model_dump(),
            **{t.value: [recommendation_to_dict(r) for r in self.tier(t)] for t in TIER_ORDER},
            "summary": {
                "total":               self.summary.total,
                "totals":              dict(self.summary.totals),
                "average_probability": dict(self.summary.average_probability),
                "institution_tiers":   dict(self.summary.institution_tiers),
            },
            "diagnostics": {
                "inventory_rows":     self.diagnostics.inventory_rows,
                "candidate_groups":   self.diagnostics.candidate_groups,
                "evaluated":          self.diagnostics.evaluated,
                "filtered":           self.diagnostics.filtered,
                "filtered_by_reason": dict(self.diagnostics.filtered_by_reason),
                "history_sources":    dict(self.diagnostics.history_sources),
                "no_history":         self.diagnostics.no_history,
                "rank_resolved":      self.diagnostics.rank_resolved,
            },
        }


# ── Request parsing ───────────────────────────────────────────────────────────

def parse_request(payload: Mapping[str, Any]) -> tuple[StudentProfile, Preferences]:
    """Validate a raw request dict.

    Expects ``{"profile": {...}, "preferences": {...}}``; preferences are
    optional.

    Raises:
        ConfigurationError: If the profile is missing or any field is invalid.
    """
    raw_profile = payload.get("profile")
    if not isinstance(raw_profile, Mapping):
        raise ConfigurationError("Request has no 'profile' object.", field="profile")
    raw_prefs = payload.get("preferences") or {}

    try:
        profile = StudentProfile.model_validate(dict(raw_profile))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid profile: {exc}", field=_first_field(exc)) from exc
    try:
        preferences = Preferences.model_validate(dict(raw_prefs))
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid preferences: {exc}", field=_first_field(exc)
        ) from exc
    return profile, preferences


# ── Pipeline ──────────────────────────────────────────────────────────────────

def recommend(
    profile:        StudentProfile,
    preferences:    Preferences,
    inventory_rows: Iterable[InventoryRow],
    history_rows:   Iterable[AdmissionHistoryRow],
    policy:         ProbabilityPolicy = DEFAULT_POLICY,
    weights:        RankingWeights = DEFAULT_WEIGHTS,
    counts:         TierCounts = DEFAULT_COUNTS,
    max_years:      int = 3,
    max_workers:    int = 1,
    rank_resolved:  bool = False,
) -> TieredRecommendations:
    """Run the full pure pipeline for one request.

    History rows outside the profile's scope (other province or subject
    category, or ``year >= target_year``) are ignored.

    Args:
        profile:        Validated student profile.
        preferences:    Validated preferences.
        inventory_rows: Current-year inventory for the profile's scope.
        history_rows:   Bulk historical rows for the candidate institutions.
        policy:         Estimator filter and tier cut points.
        weights:        Rank-score weights.
        counts:         Default tier sizes (preference overrides win).
        max_years:      Historical years per series.
        max_workers:    Estimator process-pool size; 1 runs inline.
        rank_resolved:  Recorded in diagnostics when the caller looked up the rank.

    Raises:
        ConfigurationError: If the profile lacks scope fields.
    """
    require_scope(profile)

    inventory_rows = list(inventory_rows)
    groups = build_candidate_groups(inventory_rows, preferences)

    index  = HistoryIndex.build(r for r in history_rows if _in_scope(r, profile))
    joined = join_all(groups, index, max_years)

    return build_recommendations(
        profile, preferences, joined,
        policy=policy, weights=weights, counts=counts,
        max_workers=max_workers,
        inventory_count=len(inventory_rows),
        rank_resolved=rank_resolved,
    )


def build_recommendations(
    profile:         StudentProfile,
    preferences:     Preferences,
    joined:          list[tuple[CandidateGroup, HistoryMatch]],
    policy:          ProbabilityPolicy = DEFAULT_POLICY,
    weights:         RankingWeights = DEFAULT_WEIGHTS,
    counts:          TierCounts = DEFAULT_COUNTS,
    max_workers:     int = 1,
    inventory_count: int = 0,
    rank_resolved:   bool = False,
) -> TieredRecommendations:
    """Estimate every joined group, partition by tier and rank each tier.

    Args:
        profile:         Student profile (score and rank are used).
        preferences:     Preferences (ranking terms and count overrides).
        joined:          Output of ``join_all``.
        policy:          Estimator filter and tier cut points.
        weights:         Rank-score weights.
        counts:          Default tier sizes.
        max_workers:     Estimator process-pool size.
        inventory_count: Inventory rows seen, for diagnostics.
        rank_resolved:   Recorded in diagnostics.

    Returns:
        TieredRecommendations.
    """
    results = evaluate_batch(
        profile.score,
        profile.rank,
        [(match.series, match.hints) for _, match in joined],
        policy=policy,
        max_workers=max_workers,
    )
    evaluated = [
        EvaluatedCandidate(group=group, result=result, source=match.source)
        for (group, match), result in zip(joined, results)
    ]

    buckets = partition_by_tier(evaluated)
    limits  = counts.with_overrides(preferences)
    tiers   = {
        tier: rank_tier(buckets[tier], tier, preferences, weights, limits.for_tier(tier))
        for tier in TIER_ORDER
    }

    diagnostics = _diagnostics(evaluated, inventory_count, rank_resolved)
    summary     = summarize(tiers)

    logger.info(
        "Recommendations: %d evaluated, %d filtered, rush=%d stable=%d safe=%d",
        diagnostics.evaluated, diagnostics.filtered,
        summary.totals[Tier.RUSH.value],
        summary.totals[Tier.STABLE.value],
        summary.totals[Tier.SAFE.value],
    )
    if diagnostics.filtered_by_reason:
        logger.info("Filtered candidates by reason: %s", diagnostics.filtered_by_reason)

    return TieredRecommendations(
        profile=profile,
        preferences=preferences,
        rush=tiers[Tier.RUSH],
        stable=tiers[Tier.STABLE],
        safe=tiers[Tier.SAFE],
        summary=summary,
        diagnostics=diagnostics,
    )


def evaluate_candidate(
    profile:     StudentProfile,
    preferences: Preferences,
    group:       CandidateGroup,
    match:       HistoryMatch,
    policy:      ProbabilityPolicy = DEFAULT_POLICY,
    weights:     RankingWeights = DEFAULT_WEIGHTS,
) -> RankedRecommendation:
    """Evaluate a single group, including ones the pre-filter would drop.

    The rank score is computed against the tier the estimator assigned.
    """
    result = evaluate(profile.score, profile.rank, match.series, match.hints, policy)
    components = compute_rank_score(group, result, result.tier, preferences, weights)
    return RankedRecommendation(
        group=group,
        result=result,
        rank_score=round(components.total, 2),
        components=components,
        history_source=match.source,
        reasons=tuple(build_reasons(group, result)),
        warnings=tuple(build_warnings(group, result, match.source)),
        highlights=tuple(build_highlights(group)),
    )


def summarize(tiers: Mapping[Tier, list[RankedRecommendation]]) -> RecommendationSummary:
    totals: dict[str, int] = {}
    averages: dict[str, float] = {}
    by_institution: Counter[str] = Counter({t.label: 0 for t in reversed(InstitutionTier)})

    for tier in TIER_ORDER:
        entries = tiers.get(tier, [])
        totals[tier.value] = len(entries)
        averages[tier.value] = (
            round(sum(e.result.probability for e in entries) / len(entries), 1)
            if entries else 0.0
        )
        for entry in entries:
            by_institution[entry.group.institution_tier.label] += 1

    return RecommendationSummary(
        totals=totals,
        average_probability=averages,
        institution_tiers=dict(by_institution),
    )


def recommendation_to_dict(rec: RankedRecommendation) -> dict[str, Any]:
    g, r = rec.group, rec.result
    return {
        "institution_code":     g.institution_code,
        "institution_name":     g.institution_name,
        "institution_province": g.institution_province,
        "institution_city":     g.institution_city,
        "institution_tier":     g.institution_tier.label,
        "group_code":           g.group_code,
        "group_name":           g.group_name,
        "subject_requirements": g.subject_requirements,
        "total_majors":         g.total_majors,
        "total_plan_count":     g.total_plan_count,
        "majors":               [m.model_dump() for m in g.majors],
        "tier":                 r.tier.value,
        "probability":          r.probability,
        "adjustment_risk":      r.adjustment_risk.value,
        "confidence":           r.confidence,
        "score_gap":            r.score_gap,
        "rank_gap":             r.rank_gap,
        "score_volatility":     r.score_volatility,
        "score_trend":          r.score_trend,
        "plan_change_rate":     r.plan_change_rate,
        "years_of_history":     r.years_of_history,
        "filtered":             r.filtered,
        "filter_reason":        r.filter_reason,
        "history_source":       rec.history_source.value,
        "rank_score":           rec.rank_score,
        "reasons":              [c.value for c in rec.reasons],
        "warnings":             [c.value for c in rec.warnings],
        "highlights":           [c.value for c in rec.highlights],
        "messages":             render_messages([*rec.reasons, *rec.warnings], g, r),
    }


# ── Helpers ───────────────────────────────────────────────────────────────────

def _in_scope(row: AdmissionHistoryRow, profile: StudentProfile) -> bool:
    return (
        row.province == profile.province
        and row.subject_category == profile.subject_category
        and row.record.year < profile.target_year
    )


def _diagnostics(
    evaluated:       list[EvaluatedCandidate],
    inventory_count: int,
    rank_resolved:   bool,
) -> RecommendationDiagnostics:
    filtered = [e for e in evaluated if e.result.filtered]
    sources  = Counter(e.source.value for e in evaluated)
    return RecommendationDiagnostics(
        inventory_rows=inventory_count,
        candidate_groups=len(evaluated),
        evaluated=len(evaluated),
        filtered=len(filtered),
        filtered_by_reason=dict(Counter(e.result.filter_reason or "" for e in filtered)),
        history_sources=dict(sources),
        no_history=sum(1 for e in evaluated if e.source is HistorySource.NONE),
        rank_resolved=rank_resolved,
    )


def _first_field(exc: ValidationError) -> Optional[str]:
    errors = exc.errors()
    if errors and errors[0].get("loc"):
        return str(errors[0]["loc"][0])
    return None
