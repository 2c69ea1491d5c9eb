"""Tests for admission_advisor.reporting.formatters."""

from __future__ import annotations

from admission_advisor.aggregation.history_join import HistoryIndex, join_history
from admission_advisor.recommendations.engine import evaluate_candidate, recommend
from admission_advisor.reporting.formatters import (
    format_candidate,
    format_equivalent_scores,
    format_tier_tables,
)
from admission_advisor.score_ranking import EquivalentScore, EquivalentScoreResult


def test_tier_tables_list_every_tier(profile, no_prefs, make_inventory_row, make_history_row):
    history = [make_history_row(y, 590, institution_code="A") for y in (2024, 2023, 2022)]
    text = format_tier_tables(
        recommend(profile, no_prefs, [make_inventory_row("A")], history)
    )
    assert "Score 600 | rank unknown | Jiangsu / physics | 2025" in text
    assert "RUSH (0)" in text
    assert "STABLE (1)" in text
    assert "SAFE (0)" in text
    assert text.count("(none)") == 2
    assert "University A" in text
    assert "Summary: rush 0, stable 1, safe 0 | filtered 0 | no history 0" in text


def test_long_names_truncated(profile, no_prefs, make_inventory_row):
    row = make_inventory_row("A", institution_name="X" * 40)
    text = format_tier_tables(recommend(profile, no_prefs, [row], []))
    assert "X" * 28 + ".." in text
    assert "X" * 29 not in text


def test_candidate_detail(profile, no_prefs, make_group, make_history_row):
    group = make_group("X")
    history = [make_history_row(y, 640, institution_code="X") for y in (2024, 2023, 2022)]
    rec = evaluate_candidate(profile, no_prefs, group, join_history(group, HistoryIndex.build(history)))
    text = format_candidate(rec)
    assert text.splitlines()[0].startswith("  University X (X) group 01 Group 01")
    assert "Tier:         rush (high risk)" in text
    assert "Score gap:    -40.0" in text
    assert "Rank gap:     n/a" in text
    assert "Filtered:" in text
    assert "  + Score is 40.0 points below the average historical cutoff" in text


def test_equivalent_scores_table():
    result = EquivalentScoreResult(
        year=2025, province="Jiangsu", subject_category="physics", score=600, rank=8000,
        equivalents=[EquivalentScore(year=2024, score=598, rank=8100, score_diff=-2)],
    )
    text = format_equivalent_scores(result)
    assert "score 600 -> rank 8000" in text
    assert text.splitlines()[-1].split() == ["2024", "598", "8100", "-2"]


def test_equivalent_scores_empty():
    result = EquivalentScoreResult(
        year=2025, province="Jiangsu", subject_category="physics", score=600, rank=8000,
    )
    assert "(no earlier tables)" in format_equivalent_scores(result)
