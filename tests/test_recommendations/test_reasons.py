"""
Tests for admission_advisor/recommendations/reasons.py.

What we test
------------
build_reasons():
  - Score-gap reason bands, skipped when there is no history.
  - Rank reason only past +/-500, skipped when rank is unknown.
  - Only the highest institution tag yields a reason.
  - Exactly one probability band reason.

build_warnings():
  - Each warning rule fires on its own condition.
  - Proxy and missing history are flagged.

build_highlights():
  - Every tag, many majors, large intake.

render_messages() / explain():
  - Codes render to English in order; explain joins reasons and warnings.
"""

from __future__ import annotations

import pytest

from admission_advisor.probability.estimator import ProbabilityResult
from admission_advisor.recommendations.reasons import (
    HighlightCode,
    ReasonCode,
    WarningCode,
    build_highlights,
    build_reasons,
    build_warnings,
    explain,
    render_messages,
)
from admission_advisor.taxonomy.tiers import AdjustmentRisk, HistorySource, Tier


def _result(
    probability: int = 70,
    tier: Tier = Tier.STABLE,
    score_gap: float = 5.0,
    rank_gap: int | None = None,
    confidence: int = 90,
    risk: AdjustmentRisk = AdjustmentRisk.LOW,
    volatility: float = 2.0,
    years: int = 3,
) -> ProbabilityResult:
    return ProbabilityResult(
        probability=probability,
        tier=tier,
        adjustment_risk=risk,
        score_gap=score_gap,
        rank_gap=rank_gap,
        confidence=confidence,
        score_volatility=volatility,
        years_of_history=years,
    )


# ── build_reasons ─────────────────────────────────────────────────────────────

class TestBuildReasons:
    @pytest.mark.parametrize("gap, expected", [
        (12.0, ReasonCode.SCORE_WELL_ABOVE),
        (10.0, ReasonCode.SCORE_ABOVE),
        (0.5,  ReasonCode.SCORE_ABOVE),
        (0.0,  ReasonCode.SCORE_NEAR),
        (-4.9, ReasonCode.SCORE_NEAR),
        (-5.0, ReasonCode.SCORE_BELOW),
    ])
    def test_score_gap_band(self, make_group, gap, expected):
        reasons = build_reasons(make_group(), _result(score_gap=gap))
        assert reasons[0] is expected

    def test_no_history_skips_score_reason(self, make_group):
        reasons = build_reasons(make_group(), _result(probability=50, score_gap=0.0, years=0))
        assert reasons == [ReasonCode.PROBABILITY_MODERATE]

    def test_rank_reasons(self, make_group):
        assert ReasonCode.RANK_AHEAD in build_reasons(make_group(), _result(rank_gap=501))
        assert ReasonCode.RANK_BEHIND in build_reasons(make_group(), _result(rank_gap=-501))
        quiet = build_reasons(make_group(), _result(rank_gap=500))
        assert ReasonCode.RANK_AHEAD not in quiet
        assert ReasonCode.RANK_BEHIND not in quiet

    def test_highest_institution_tag_only(self, make_group):
        group = make_group(is_985=True, is_211=True, is_double_first_class=True)
        reasons = build_reasons(group, _result())
        assert ReasonCode.INSTITUTION_985 in reasons
        assert ReasonCode.INSTITUTION_211 not in reasons
        assert ReasonCode.INSTITUTION_DOUBLE_FIRST_CLASS not in reasons

    @pytest.mark.parametrize("probability, expected", [
        (80, ReasonCode.PROBABILITY_VERY_HIGH),
        (79, ReasonCode.PROBABILITY_HIGH),
        (65, ReasonCode.PROBABILITY_HIGH),
        (45, ReasonCode.PROBABILITY_MODERATE),
        (25, ReasonCode.PROBABILITY_LOW),
        (24, ReasonCode.PROBABILITY_VERY_LOW),
    ])
    def test_probability_band(self, make_group, probability, expected):
        reasons = build_reasons(make_group(), _result(probability=probability))
        assert reasons[-1] is expected


# ── build_warnings ────────────────────────────────────────────────────────────

class TestBuildWarnings:
    def test_clean_candidate_has_no_warnings(self, make_group):
        assert build_warnings(make_group(), _result()) == []

    def test_each_rule(self, make_group):
        result = _result(
            probability=15, tier=Tier.RUSH, confidence=40,
            risk=AdjustmentRisk.HIGH, volatility=12.0,
        )
        warnings = build_warnings(make_group(majors=("Physics",)), result)
        assert warnings == [
            WarningCode.LOW_CONFIDENCE,
            WarningCode.HIGH_ADJUSTMENT_RISK,
            WarningCode.HIGH_VOLATILITY,
            WarningCode.FEW_MAJORS,
            WarningCode.LONG_SHOT,
        ]

    def test_long_shot_only_in_rush(self, make_group):
        warnings = build_warnings(make_group(), _result(probability=15, tier=Tier.STABLE))
        assert WarningCode.LONG_SHOT not in warnings

    def test_history_source_flags(self, make_group):
        proxy = build_warnings(make_group(), _result(), HistorySource.INSTITUTION_PROXY)
        none = build_warnings(make_group(), _result(), HistorySource.NONE)
        name = build_warnings(make_group(), _result(), HistorySource.GROUP_NAME)
        assert proxy == [WarningCode.PROXY_HISTORY]
        assert none == [WarningCode.NO_HISTORY]
        assert name == []


# ── build_highlights ──────────────────────────────────────────────────────────

class TestBuildHighlights:
    def test_all_highlights(self, make_group):
        group = make_group(
            majors=tuple(f"Major {i}" for i in range(10)),
            plan_count=5,
            is_985=True, is_211=True, is_double_first_class=True,
        )
        assert build_highlights(group) == [
            HighlightCode.TAG_985,
            HighlightCode.TAG_211,
            HighlightCode.TAG_DOUBLE_FIRST_CLASS,
            HighlightCode.MANY_MAJORS,
            HighlightCode.LARGE_INTAKE,
        ]

    def test_plain_group_has_none(self, make_group):
        assert build_highlights(make_group()) == []


# ── Rendering ─────────────────────────────────────────────────────────────────

class TestRendering:
    def test_render_in_order(self, make_group):
        result = _result(score_gap=12.0, probability=85)
        messages = render_messages(
            [ReasonCode.SCORE_WELL_ABOVE, ReasonCode.PROBABILITY_VERY_HIGH], make_group(), result,
        )
        assert messages == [
            "Score is 12.0 points above the average historical cutoff",
            "Very high admission probability (85%)",
        ]

    def test_unknown_code_rendered_verbatim(self, make_group):
        assert render_messages(["mystery"], make_group(), _result()) == ["mystery"]

    def test_explain_joins_reasons_and_warnings(self, make_group):
        text = explain(make_group(majors=("Physics",)), _result(score_gap=-6.0, probability=30))
        assert text.startswith("Score is 6.0 points below")
        assert "Low admission probability (30%)" in text
        assert text.endswith("little room for re-assignment")
        assert text.count("; ") == 2
