"""
Admission-probability estimator: maps a student's score/rank and a group's
historical series to a probability, tier, sub-risk and confidence.

Pipeline (all steps pure, no I/O)
---------------------------------
    1. score_gap        = score - mean(min_score)
    2. score_volatility = population std-dev of min_score (or hint)
    3. score_trend      = min_score[latest] - min_score[previous]
    4. rank_gap         = mean(min_rank) - rank      (positive = ahead of cutoff)
    5. plan_change_rate = (current_plan - prior_plan) / prior_plan
    6. base             = SCORE_GAP_TABLE(score_gap)
    7. adjustments      = RANK_GAP_TABLE(rank_gap) + trend + plan + popularity
    8. probability      = clamp((base + adjustments) * VOLATILITY_TABLE(volatility), 0, 100)
    9. confidence       = 100 - data-quality deductions
   10. pre-filter degenerate candidates, else assign a tier

Empty history is not an error: it returns the neutral default
(probability 50, Stable, Medium, confidence 0).

Usage::

    from admission_advisor.probability.estimator import evaluate

    result = evaluate(score=612, rank=8450, series=series)
    result.tier          # Tier.STABLE
    result.probability   # 71
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Optional

from admission_advisor.models.candidate import HistoricalSeries
from admission_advisor.probability import tables as t
from admission_advisor.probability.tables import DEFAULT_POLICY, ProbabilityPolicy
from admission_advisor.taxonomy.tiers import AdjustmentRisk, Tier


@dataclass(frozen=True)
class EstimatorHints:
    """Optional side information for one candidate.

    Attributes:
        score_volatility:   Pre-computed cutoff std-dev; replaces the computed one.
                            Zero counts as absent.
        popularity_index:   0–100 popularity of the group. Zero counts as absent.
        current_plan_count: Current-year total plan count of the group.
    """

    score_volatility:   Optional[float] = None
    popularity_index:   Optional[float] = None
    current_plan_count: Optional[int] = None


@dataclass(frozen=True)
class ProbabilityResult:
    """Outcome of evaluating one candidate group for one student.

    Attributes:
        probability:      Admission probability, integer 0–100.
        tier:             Rush / Stable / Safe.
        adjustment_risk:  Sub-risk within the tier.
        score_gap:        score - mean historical cutoff (1 decimal).
        rank_gap:         mean historical cutoff rank - rank, or ``None``.
        confidence:       Trust in the estimate, integer 0–100.
        filtered:         ``True`` if the candidate is a poor use of a slot.
        filter_reason:    Why it was filtered, else ``None``.
        score_volatility: Cutoff std-dev used for dampening.
        score_trend:      Latest year-on-year cutoff change.
        plan_change_rate: Fractional plan-count change used for adjustment.
        years_of_history: Length of the series evaluated.
    """

    probability:      int
    tier:             Tier
    adjustment_risk:  AdjustmentRisk
    score_gap:        float
    rank_gap:         Optional[int]
    confidence:       int
    filtered:         bool = False
    filter_reason:    Optional[str] = None
    score_volatility: float = 0.0
    score_trend:      float = 0.0
    plan_change_rate: float = 0.0
    years_of_history: int = 0


def evaluate(
    score:  int,
    rank:   Optional[int],
    series: HistoricalSeries,
    hints:  Optional[EstimatorHints] = None,
    policy: ProbabilityPolicy = DEFAULT_POLICY,
) -> ProbabilityResult:
    """Estimate admission probability for one candidate group.

    Args:
        score:  Student's exam score.
        rank:   Student's rank, or ``None`` if unknown (rank terms are skipped).
        series: Historical records, most recent year first.
        hints:  Optional volatility / popularity / plan-count side information.
        policy: Filter and tier cut points.

    Returns:
        A ``ProbabilityResult``.  Identical inputs give identical results.
    """
    if not series:
        return ProbabilityResult(
            probability=t.NO_DATA_PROBABILITY,
            tier=Tier.STABLE,
            adjustment_risk=AdjustmentRisk.MEDIUM,
            score_gap=0.0,
            rank_gap=None,
            confidence=t.NO_DATA_CONFIDENCE,
        )

    hints = hints or EstimatorHints()

    # ── Score dimension ───────────────────────────────────────────────────────
    min_scores    = [r.min_score for r in series]
    avg_min_score = sum(min_scores) / len(min_scores)
    score_gap     = score - avg_min_score

    if hints.score_volatility:
        volatility = hints.score_volatility
    else:
        volatility = _population_std(min_scores, avg_min_score)

    trend = float(series[0].min_score - series[1].min_score) if len(series) >= 2 else 0.0

    # ── Rank dimension ────────────────────────────────────────────────────────
    rank_gap = _rank_gap(rank, series)

    # ── Plan-count change ─────────────────────────────────────────────────────
    plan_change = plan_change_rate(series, hints.current_plan_count)

    # ── Probability ───────────────────────────────────────────────────────────
    base = t.SCORE_GAP_TABLE.lookup(score_gap)

    adjustment = 0.0
    if rank_gap is not None:
        adjustment += t.RANK_GAP_TABLE.lookup(rank_gap)
    adjustment += trend_adjustment(trend)
    adjustment += plan_adjustment(plan_change)
    adjustment += popularity_adjustment(hints.popularity_index)

    factor = t.VOLATILITY_TABLE.lookup(volatility)
    raw    = _clamp((base + adjustment) * factor, 0.0, 100.0)
    probability = _round_half_up(raw)

    confidence = compute_confidence(
        years=len(series),
        volatility=volatility,
        score_gap=score_gap,
        rank_gap=rank_gap,
        plan_change=plan_change,
    )

    common = dict(
        probability=probability,
        score_gap=_round_half_up(score_gap * 10) / 10,
        rank_gap=_round_half_up(rank_gap) if rank_gap is not None else None,
        confidence=confidence,
        score_volatility=round(volatility, 4),
        score_trend=trend,
        plan_change_rate=round(plan_change, 4),
        years_of_history=len(series),
    )

    # ── Pre-filter degenerate candidates ──────────────────────────────────────
    if score_gap < policy.rush_filter_gap:
        return ProbabilityResult(
            tier=Tier.RUSH, adjustment_risk=AdjustmentRisk.HIGH,
            filtered=True, filter_reason=t.FILTER_REASON_RUSH_GAP, **common,
        )
    if score_gap > policy.safe_filter_gap:
        return ProbabilityResult(
            tier=Tier.SAFE, adjustment_risk=AdjustmentRisk.LOW,
            filtered=True, filter_reason=t.FILTER_REASON_SAFE_GAP, **common,
        )
    if raw < policy.negligible_probability and score_gap < policy.negligible_gap:
        return ProbabilityResult(
            tier=Tier.RUSH, adjustment_risk=AdjustmentRisk.HIGH,
            filtered=True, filter_reason=t.FILTER_REASON_NEGLIGIBLE, **common,
        )

    # Classify on the unrounded value; the integer is for reporting only.
    tier, risk = assign_tier(raw, policy)
    return ProbabilityResult(tier=tier, adjustment_risk=risk, **common)


def assign_tier(
    probability: float,
    policy:      ProbabilityPolicy = DEFAULT_POLICY,
) -> tuple[Tier, AdjustmentRisk]:
    """Classify a probability into a tier and sub-risk.

    Rules:
        probability <  35          -> Rush   (High <15, Medium <25, else Low)
        35 <= probability <= 90    -> Stable (Medium <50, else Low)
        probability >  90          -> Safe   (Low)

    Every probability maps to exactly one tier.
    """
    if probability < policy.rush_below:
        if probability < policy.rush_high_risk_below:
            return Tier.RUSH, AdjustmentRisk.HIGH
        if probability < policy.rush_medium_risk_below:
            return Tier.RUSH, AdjustmentRisk.MEDIUM
        return Tier.RUSH, AdjustmentRisk.LOW
    if probability <= policy.safe_above:
        if probability < policy.stable_medium_risk_below:
            return Tier.STABLE, AdjustmentRisk.MEDIUM
        return Tier.STABLE, AdjustmentRisk.LOW
    return Tier.SAFE, AdjustmentRisk.LOW


def plan_change_rate(series: HistoricalSeries, current_plan_count: Optional[int]) -> float:
    """Fractional plan-count change.

    Compares the current-year plan count (when known) to the most recent
    year's accepted count; otherwise compares the two most recent years.
    Returns 0.0 when the prior count is missing or non-positive.
    """
    if current_plan_count is not None and series:
        current, prior = current_plan_count, series[0].accepted_count
    elif len(series) >= 2:
        current, prior = series[0].accepted_count, series[1].accepted_count
    else:
        return 0.0

    if current is None or prior is None or prior <= 0:
        return 0.0
    return (current - prior) / prior


def trend_adjustment(trend: float) -> float:
    if trend > t.TREND_THRESHOLD:
        return t.TREND_RISE_BONUS
    if trend < -t.TREND_THRESHOLD:
        return t.TREND_FALL_PENALTY
    return 0.0


def plan_adjustment(change: float) -> float:
    if change > t.PLAN_EXPANSION_MAJOR:
        return t.PLAN_EXPANSION_MAJOR_BONUS
    if change > t.PLAN_EXPANSION_MODERATE:
        return t.PLAN_EXPANSION_MODERATE_BONUS
    if change > t.PLAN_EXPANSION_MINOR:
        return t.PLAN_EXPANSION_MINOR_BONUS
    if change < t.PLAN_CUT_MAJOR:
        return t.PLAN_CUT_MAJOR_PENALTY
    if change < t.PLAN_CUT_MINOR:
        return t.PLAN_CUT_MINOR_PENALTY
    return 0.0


def popularity_adjustment(popularity: Optional[float]) -> float:
    if not popularity:
        return 0.0
    if popularity > t.POPULARITY_EXTREME:
        return t.POPULARITY_EXTREME_PENALTY
    if popularity > t.POPULARITY_HIGH:
        return t.POPULARITY_HIGH_PENALTY
    if popularity < t.POPULARITY_LOW:
        return t.POPULARITY_LOW_BONUS
    return 0.0


def compute_confidence(
    years:       int,
    volatility:  float,
    score_gap:   float,
    rank_gap:    Optional[float],
    plan_change: float,
) -> int:
    """Data-quality confidence in [0, 100], independent of the probability."""
    confidence = t.CONFIDENCE_START

    if years < t.CONFIDENCE_MINIMAL_HISTORY_YEARS:
        confidence -= t.CONFIDENCE_MINIMAL_HISTORY_PENALTY
    elif years < t.CONFIDENCE_FULL_HISTORY_YEARS:
        confidence -= t.CONFIDENCE_SHORT_HISTORY_PENALTY

    if volatility > t.CONFIDENCE_HIGH_VOLATILITY:
        confidence -= t.CONFIDENCE_HIGH_VOLATILITY_PENALTY
    elif volatility > t.CONFIDENCE_MODERATE_VOLATILITY:
        confidence -= t.CONFIDENCE_MODERATE_VOLATILITY_PENALTY

    # Score and rank must agree strictly on the side of the cutoff; a zero gap
    # counts as disagreement.
    if rank_gap is not None:
        consistent = (score_gap > 0 and rank_gap > 0) or (score_gap < 0 and rank_gap < 0)
        if not consistent:
            confidence -= t.CONFIDENCE_INCONSISTENCY_PENALTY

    if abs(plan_change) > t.CONFIDENCE_PLAN_CHANGE_THRESHOLD:
        confidence -= t.CONFIDENCE_PLAN_CHANGE_PENALTY

    return int(_clamp(confidence, 0, 100))


# ── Batch evaluation ──────────────────────────────────────────────────────────

def evaluate_batch(
    score:       int,
    rank:        Optional[int],
    items:       Sequence[tuple[HistoricalSeries, Optional[EstimatorHints]]],
    policy:      ProbabilityPolicy = DEFAULT_POLICY,
    max_workers: int = 1,
) -> list[ProbabilityResult]:
    """Evaluate many candidates for one student, preserving input order.

    With ``max_workers > 1`` the work is spread over a process pool; results
    are identical to the sequential path.
    """
    args = [(score, rank, series, hints, policy) for series, hints in items]
    if max_workers <= 1 or len(args) < 2:
        return [_evaluate_args(a) for a in args]

    chunksize = max(1, len(args) // (max_workers * 4))
    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(_evaluate_args, args, chunksize=chunksize))


def _evaluate_args(
    args: tuple[int, Optional[int], HistoricalSeries, Optional[EstimatorHints], ProbabilityPolicy],
) -> ProbabilityResult:
    score, rank, series, hints, policy = args
    return evaluate(score, rank, series, hints, policy)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _rank_gap(rank: Optional[int], series: HistoricalSeries) -> Optional[float]:
    if rank is None:
        return None
    ranks = [r.min_rank for r in series if r.min_rank]
    if not ranks:
        return None
    return sum(ranks) / len(ranks) - rank


def _population_std(values: list[int], mean: float) -> float:
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
