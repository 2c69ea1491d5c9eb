"""
Tier ranker: buckets evaluated candidates by tier and orders each bucket.

Usage flow
----------
1. partition_by_tier(evaluated)
   -> dict[Tier, list[EvaluatedCandidate]]  (filtered results dropped)

2. rank_tier(items, tier, preferences, weights, limit)
   -> list[RankedRecommendation]  (sorted, truncated, with reasons attached)

Rank score (weighted sum, range 0–100 with default weights)
------------------------------------------------------------
    total = (
        institution_score       # 985 = w, 211 = 0.7w, double-first-class = 0.5w
        + major_score           # full match w, category 0.7w, miss 0.3w, no pref 0.5w
        + location_score        # match w, miss 0.3w, no pref 0.5w
        + employability_score   # placeholder, 0.5w
        + probability_fit       # w * max(0, 1 - |p - ideal| / span), per tier
        + confidence_bonus      # w * confidence / 100
    )

Ordering within a tier
----------------------
    1. rank score descending
    2. institution tier, higher first
    3. |score_gap| ascending (closer to the cutoff first)
    4. institution code, then group code (deterministic)
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from admission_advisor.models.candidate import CandidateGroup
from admission_advisor.models.request import Preferences
from admission_advisor.probability.estimator import ProbabilityResult
from admission_advisor.recommendations.reasons import (
    HighlightCode,
    ReasonCode,
    WarningCode,
    build_highlights,
    build_reasons,
    build_warnings,
)
from admission_advisor.taxonomy.tiers import TIER_ORDER, HistorySource, InstitutionTier, Tier


@dataclass(frozen=True)
class RankingWeights:
    """Maximum contribution of each rank-score component.

    ``RankingConfig.to_weights()`` builds an instance from TOML.
    """

    college_level:   float = 30.0
    major_match:     float = 25.0
    location:        float = 20.0
    employability:   float = 15.0
    probability_fit: float = 10.0
    confidence:      float = 5.0


DEFAULT_WEIGHTS = RankingWeights()

# Fraction of the institution weight earned per prestige level.
_INSTITUTION_FACTORS: dict[InstitutionTier, float] = {
    InstitutionTier.TOP:        1.0,
    InstitutionTier.NEXT:       0.7,
    InstitutionTier.RECOGNIZED: 0.5,
    InstitutionTier.OTHER:      0.0,
}

MAJOR_CATEGORY_FACTOR = 0.7
MAJOR_MISS_FACTOR = 0.3
LOCATION_MISS_FACTOR = 0.3
NO_PREFERENCE_FACTOR = 0.5
EMPLOYABILITY_FACTOR = 0.5

# (ideal probability, tolerance span) per tier.
PROBABILITY_TARGETS: dict[Tier, tuple[float, float]] = {
    Tier.RUSH:   (25.0, 25.0),
    Tier.STABLE: (55.0, 30.0),
    Tier.SAFE:   (85.0, 15.0),
}


@dataclass(frozen=True)
class EvaluatedCandidate:
    """A candidate group paired with its estimate and history provenance."""

    group:  CandidateGroup
    result: ProbabilityResult
    source: HistorySource = HistorySource.EXACT_GROUP


@dataclass(frozen=True)
class RankScoreComponents:
    """All components of a rank score.

    Attributes:
        institution_score:   Prestige contribution.
        major_score:         Preferred-major contribution.
        location_score:      Preferred-location contribution.
        employability_score: Constant placeholder contribution.
        probability_fit:     Closeness of the probability to the tier's ideal.
        confidence_bonus:    Proportional to estimate confidence.
    """

    institution_score:   float
    major_score:         float
    location_score:      float
    employability_score: float
    probability_fit:     float
    confidence_bonus:    float

    @property
    def total(self) -> float:
        return (
            self.institution_score
            + self.major_score
            + self.location_score
            + self.employability_score
            + self.probability_fit
            + self.confidence_bonus
        )


@dataclass(frozen=True)
class RankedRecommendation:
    """One entry of a tier list.

    Attributes:
        group:          The candidate group.
        result:         Its probability estimate.
        rank_score:     Weighted ordering score (2 decimals).
        components:     Rank-score breakdown.
        history_source: Join strategy that produced the history.
        reasons:        Reason codes, in rule order.
        warnings:       Warning codes.
        highlights:     Highlight codes.
    """

    group:          CandidateGroup
    result:         ProbabilityResult
    rank_score:     float
    components:     RankScoreComponents
    history_source: HistorySource = HistorySource.EXACT_GROUP
    reasons:        tuple[ReasonCode, ...] = field(default_factory=tuple)
    warnings:       tuple[WarningCode, ...] = field(default_factory=tuple)
    highlights:     tuple[HighlightCode, ...] = field(default_factory=tuple)

    @property
    def tier(self) -> Tier:
        return self.result.tier


def partition_by_tier(
    evaluated: Iterable[EvaluatedCandidate],
) -> dict[Tier, list[EvaluatedCandidate]]:
    """Drop filtered candidates and bucket the rest by tier.

    Every tier key is present, possibly with an empty list; input order is
    kept within each bucket.
    """
    buckets: dict[Tier, list[EvaluatedCandidate]] = defaultdict(list)
    for item in evaluated:
        if item.result.filtered:
            continue
        buckets[item.result.tier].append(item)
    return {tier: buckets.get(tier, []) for tier in TIER_ORDER}


def compute_rank_score(
    group:       CandidateGroup,
    result:      ProbabilityResult,
    tier:        Tier,
    preferences: Preferences,
    weights:     RankingWeights = DEFAULT_WEIGHTS,
) -> RankScoreComponents:
    """Compute the rank-score breakdown of one candidate within its tier.

    Args:
        group:       Candidate group.
        result:      Its probability estimate.
        tier:        Tier whose ideal probability is used for the fit term.
        preferences: Student preferences (majors, locations).
        weights:     Component weights.

    Returns:
        RankScoreComponents with all fields rounded to 2 decimals.
    """
    institution = weights.college_level * _INSTITUTION_FACTORS[group.institution_tier]
    major       = weights.major_match * _major_factor(group, preferences)
    location    = weights.location * _location_factor(group, preferences)
    employ      = weights.employability * EMPLOYABILITY_FACTOR

    ideal, span = PROBABILITY_TARGETS[tier]
    fit = weights.probability_fit * max(0.0, 1.0 - abs(result.probability - ideal) / span)

    confidence = weights.confidence * result.confidence / 100.0

    return RankScoreComponents(
        institution_score=round(institution, 2),
        major_score=round(major,             2),
        location_score=round(location,       2),
        employability_score=round(employ,    2),
        probability_fit=round(fit,           2),
        confidence_bonus=round(confidence,   2),
    )


def rank_tier(
    items:       Iterable[EvaluatedCandidate],
    tier:        Tier,
    preferences: Preferences,
    weights:     RankingWeights = DEFAULT_WEIGHTS,
    limit:       int | None = None,
) -> list[RankedRecommendation]:
    """Score, order and truncate one tier's candidates.

    Reasons, warnings and highlights are generated for the kept entries only.

    Args:
        items:       Candidates already assigned to ``tier``.
        tier:        The tier being ranked.
        preferences: Student preferences.
        weights:     Component weights.
        limit:       Maximum entries to keep; ``None`` keeps all.

    Returns:
        Ordered list of at most ``limit`` RankedRecommendation objects.
    """
    scored = []
    for item in items:
        components = compute_rank_score(item.group, item.result, tier, preferences, weights)
        scored.append((round(components.total, 2), components, item))

    scored.sort(key=lambda s: _sort_key(s[0], s[2]))
    if limit is not None:
        scored = scored[:max(0, limit)]

    return [
        RankedRecommendation(
            group=item.group,
            result=item.result,
            rank_score=score,
            components=components,
            history_source=item.source,
            reasons=tuple(build_reasons(item.group, item.result)),
            warnings=tuple(build_warnings(item.group, item.result, item.source)),
            highlights=tuple(build_highlights(item.group)),
        )
        for score, components, item in scored
    ]


# ── Helpers ───────────────────────────────────────────────────────────────────

def _sort_key(score: float, item: EvaluatedCandidate) -> tuple:
    group = item.group
    return (
        -score,
        -int(group.institution_tier),
        abs(item.result.score_gap),
        group.institution_code,
        group.key[1],
    )


def _major_factor(group: CandidateGroup, prefs: Preferences) -> float:
    if not prefs.majors and not prefs.major_categories:
        return NO_PREFERENCE_FACTOR
    names = [m.name for m in group.majors]
    if prefs.majors and any(want in name for want in prefs.majors for name in names):
        return 1.0
    if prefs.major_categories and any(
        cat in name for cat in prefs.major_categories for name in names
    ):
        return MAJOR_CATEGORY_FACTOR
    return MAJOR_MISS_FACTOR


def _location_factor(group: CandidateGroup, prefs: Preferences) -> float:
    if not prefs.locations:
        return NO_PREFERENCE_FACTOR
    if group.institution_province in prefs.locations:
        return 1.0
    return LOCATION_MISS_FACTOR
