"""
Reason, warning and highlight generation for evaluated candidates.

Every rule is a pure mapping from (group, result, history source) to a list
of string codes.  Codes are stable identifiers for programmatic consumers;
``render_messages`` / ``explain`` turn them into human-readable text.

Reasons (emitted in this order)
-------------------------------
    score gap:    > 10 well above | > 0 above | > -5 near | else below
    rank gap:     > 500 ahead     | < -500 behind          (skipped if unknown)
    institution:  985 | 211 | double-first-class           (highest tag only)
    probability:  >= 80 very high | >= 65 high | >= 45 moderate
                  | >= 25 low     | else very low

Warnings
--------
    confidence < 60, adjustment risk High, volatility > 10, <= 2 majors,
    Rush with probability < 20, history borrowed from an institution-level
    proxy, no history at all.

Highlights
----------
    each institution tag, >= 10 majors, total plan count >= 50.
"""

from __future__ import annotations

from enum import StrEnum

from admission_advisor.models.candidate import CandidateGroup
from admission_advisor.probability.estimator import ProbabilityResult
from admission_advisor.taxonomy.tiers import AdjustmentRisk, HistorySource, Tier


class ReasonCode(StrEnum):
    SCORE_WELL_ABOVE = "score_well_above_cutoff"
    SCORE_ABOVE = "score_above_cutoff"
    SCORE_NEAR = "score_near_cutoff"
    SCORE_BELOW = "score_below_cutoff"
    RANK_AHEAD = "rank_ahead_of_cutoff"
    RANK_BEHIND = "rank_behind_cutoff"
    INSTITUTION_985 = "institution_985"
    INSTITUTION_211 = "institution_211"
    INSTITUTION_DOUBLE_FIRST_CLASS = "institution_double_first_class"
    PROBABILITY_VERY_HIGH = "probability_very_high"
    PROBABILITY_HIGH = "probability_high"
    PROBABILITY_MODERATE = "probability_moderate"
    PROBABILITY_LOW = "probability_low"
    PROBABILITY_VERY_LOW = "probability_very_low"


class WarningCode(StrEnum):
    LOW_CONFIDENCE = "low_confidence"
    HIGH_ADJUSTMENT_RISK = "high_adjustment_risk"
    HIGH_VOLATILITY = "high_volatility"
    FEW_MAJORS = "few_majors"
    LONG_SHOT = "long_shot"
    PROXY_HISTORY = "proxy_history"
    NO_HISTORY = "no_history"


class HighlightCode(StrEnum):
    TAG_985 = "985"
    TAG_211 = "211"
    TAG_DOUBLE_FIRST_CLASS = "double_first_class"
    MANY_MAJORS = "many_majors"
    LARGE_INTAKE = "large_intake"


# ── Thresholds ────────────────────────────────────────────────────────────────
SCORE_WELL_ABOVE_GAP = 10
SCORE_NEAR_GAP = -5
RANK_GAP_NOTABLE = 500
PROBABILITY_BANDS: tuple[tuple[int, ReasonCode], ...] = (
    (80, ReasonCode.PROBABILITY_VERY_HIGH),
    (65, ReasonCode.PROBABILITY_HIGH),
    (45, ReasonCode.PROBABILITY_MODERATE),
    (25, ReasonCode.PROBABILITY_LOW),
)
LOW_CONFIDENCE_BELOW = 60
HIGH_VOLATILITY_ABOVE = 10
FEW_MAJORS_AT_MOST = 2
LONG_SHOT_BELOW = 20
MANY_MAJORS_AT_LEAST = 10
LARGE_INTAKE_AT_LEAST = 50


def build_reasons(group: CandidateGroup, result: ProbabilityResult) -> list[ReasonCode]:
    """Explain why a candidate landed where it did."""
    reasons: list[ReasonCode] = []

    if result.years_of_history:
        gap = result.score_gap
        if gap > SCORE_WELL_ABOVE_GAP:
            reasons.append(ReasonCode.SCORE_WELL_ABOVE)
        elif gap > 0:
            reasons.append(ReasonCode.SCORE_ABOVE)
        elif gap > SCORE_NEAR_GAP:
            reasons.append(ReasonCode.SCORE_NEAR)
        else:
            reasons.append(ReasonCode.SCORE_BELOW)

    if result.rank_gap is not None:
        if result.rank_gap > RANK_GAP_NOTABLE:
            reasons.append(ReasonCode.RANK_AHEAD)
        elif result.rank_gap < -RANK_GAP_NOTABLE:
            reasons.append(ReasonCode.RANK_BEHIND)

    if group.is_985:
        reasons.append(ReasonCode.INSTITUTION_985)
    elif group.is_211:
        reasons.append(ReasonCode.INSTITUTION_211)
    elif group.is_double_first_class:
        reasons.append(ReasonCode.INSTITUTION_DOUBLE_FIRST_CLASS)

    for floor, code in PROBABILITY_BANDS:
        if result.probability >= floor:
            reasons.append(code)
            break
    else:
        reasons.append(ReasonCode.PROBABILITY_VERY_LOW)

    return reasons


def build_warnings(
    group:  CandidateGroup,
    result: ProbabilityResult,
    source: HistorySource = HistorySource.EXACT_GROUP,
) -> list[WarningCode]:
    """Flag data-quality and risk concerns for a candidate."""
    warnings: list[WarningCode] = []

    if result.confidence < LOW_CONFIDENCE_BELOW:
        warnings.append(WarningCode.LOW_CONFIDENCE)
    if result.adjustment_risk is AdjustmentRisk.HIGH:
        warnings.append(WarningCode.HIGH_ADJUSTMENT_RISK)
    if result.score_volatility > HIGH_VOLATILITY_ABOVE:
        warnings.append(WarningCode.HIGH_VOLATILITY)
    if group.total_majors <= FEW_MAJORS_AT_MOST:
        warnings.append(WarningCode.FEW_MAJORS)
    if result.tier is Tier.RUSH and result.probability < LONG_SHOT_BELOW:
        warnings.append(WarningCode.LONG_SHOT)

    if source is HistorySource.INSTITUTION_PROXY:
        warnings.append(WarningCode.PROXY_HISTORY)
    elif source is HistorySource.NONE:
        warnings.append(WarningCode.NO_HISTORY)

    return warnings


def build_highlights(group: CandidateGroup) -> list[HighlightCode]:
    highlights: list[HighlightCode] = []
    if group.is_985:
        highlights.append(HighlightCode.TAG_985)
    if group.is_211:
        highlights.append(HighlightCode.TAG_211)
    if group.is_double_first_class:
        highlights.append(HighlightCode.TAG_DOUBLE_FIRST_CLASS)
    if group.total_majors >= MANY_MAJORS_AT_LEAST:
        highlights.append(HighlightCode.MANY_MAJORS)
    if group.total_plan_count >= LARGE_INTAKE_AT_LEAST:
        highlights.append(HighlightCode.LARGE_INTAKE)
    return highlights


# ── Rendering ─────────────────────────────────────────────────────────────────

_TEMPLATES: dict[str, str] = {
    ReasonCode.SCORE_WELL_ABOVE: "Score is {gap:.1f} points above the average historical cutoff",
    ReasonCode.SCORE_ABOVE: "Score is slightly above the average historical cutoff (+{gap:.1f})",
    ReasonCode.SCORE_NEAR: "Score is close to the average historical cutoff ({abs_gap:.1f} below)",
    ReasonCode.SCORE_BELOW: "Score is {abs_gap:.1f} points below the average historical cutoff",
    ReasonCode.RANK_AHEAD: "Rank is about {rank_gap} places ahead of the historical cutoff rank",
    ReasonCode.RANK_BEHIND: "Rank is about {abs_rank_gap} places behind the historical cutoff rank",
    ReasonCode.INSTITUTION_985: "Project 985 institution",
    ReasonCode.INSTITUTION_211: "Project 211 institution",
    ReasonCode.INSTITUTION_DOUBLE_FIRST_CLASS: "Double-first-class institution",
    ReasonCode.PROBABILITY_VERY_HIGH: "Very high admission probability ({probability}%)",
    ReasonCode.PROBABILITY_HIGH: "High admission probability ({probability}%)",
    ReasonCode.PROBABILITY_MODERATE: "Moderate admission probability ({probability}%)",
    ReasonCode.PROBABILITY_LOW: "Low admission probability ({probability}%), a reasonable stretch",
    ReasonCode.PROBABILITY_VERY_LOW: "Admission is difficult ({probability}%), a high-risk stretch",
    WarningCode.LOW_CONFIDENCE: "Low confidence in this estimate ({confidence}%): sparse or volatile history",
    WarningCode.HIGH_ADJUSTMENT_RISK: "High risk of major re-assignment or rejection",
    WarningCode.HIGH_VOLATILITY: "Cutoff scores swing widely between years (±{volatility:.0f} points)",
    WarningCode.FEW_MAJORS: "Only {majors} major(s) in this group, little room for re-assignment",
    WarningCode.LONG_SHOT: "Probability is low; treat this as a long-shot application",
    WarningCode.PROXY_HISTORY: "No group-level history; estimate uses institution-wide cutoffs",
    WarningCode.NO_HISTORY: "No admission history found; probability is a neutral default",
    HighlightCode.TAG_985: "Project 985",
    HighlightCode.TAG_211: "Project 211",
    HighlightCode.TAG_DOUBLE_FIRST_CLASS: "Double first-class",
    HighlightCode.MANY_MAJORS: "Wide choice of majors ({majors})",
    HighlightCode.LARGE_INTAKE: "Large intake ({plan_count} places)",
}


def render_messages(
    codes:  list[str],
    group:  CandidateGroup,
    result: ProbabilityResult,
) -> list[str]:
    """Render codes as human-readable sentences, in the given order.

    Unknown codes are rendered as the code itself.
    """
    params = {
        "gap":          result.score_gap,
        "abs_gap":      abs(result.score_gap),
        "rank_gap":     result.rank_gap,
        "abs_rank_gap": abs(result.rank_gap) if result.rank_gap is not None else None,
        "probability":  result.probability,
        "confidence":   result.confidence,
        "volatility":   result.score_volatility,
        "majors":       group.total_majors,
        "plan_count":   group.total_plan_count,
    }
    return [_TEMPLATES.get(code, str(code)).format(**params) for code in codes]


def explain(
    group:  CandidateGroup,
    result: ProbabilityResult,
    source: HistorySource = HistorySource.EXACT_GROUP,
) -> str:
    """One-line explanation: reasons then warnings, semicolon-separated."""
    codes: list[str] = [
        *build_reasons(group, result),
        *build_warnings(group, result, source),
    ]
    return "; ".join(render_messages(codes, group, result)) or "No notable signals"
