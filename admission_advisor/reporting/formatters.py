"""
Plain-text formatters for CLI output.

Every formatter returns a multi-line string for ``typer.echo()``.
"""

from __future__ import annotations

from admission_advisor.recommendations.engine import TieredRecommendations
from admission_advisor.recommendations.ranker import RankedRecommendation
from admission_advisor.recommendations.reasons import render_messages
from admission_advisor.score_ranking import EquivalentScoreResult
from admission_advisor.taxonomy.tiers import TIER_ORDER

_RULE = "-" * 96


def format_tier_tables(result: TieredRecommendations) -> str:
    """One table per tier plus a summary line."""
    p = result.profile
    rank = p.rank if p.rank is not None else "unknown"
    lines = [
        f"  Score {p.score} | rank {rank} | {p.province} / {p.subject_category} | {p.target_year}",
    ]
    for tier in TIER_ORDER:
        entries = result.tier(tier)
        lines.append("")
        lines.append(f"  {tier.value.upper()} ({len(entries)})")
        lines.append(_RULE)
        lines.append(
            f"  {'#':>3}  {'Institution':<30} {'Group':<12} {'Tier':<18} "
            f"{'Prob':>5} {'Conf':>5} {'Gap':>6} {'Score':>6}"
        )
        lines.append(_RULE)
        if not entries:
            lines.append("  (none)")
        for i, rec in enumerate(entries, start=1):
            lines.append(_row(i, rec))

    s = result.summary
    lines.append("")
    lines.append(
        "  Summary: "
        + ", ".join(f"{t} {n}" for t, n in s.totals.items())
        + f" | filtered {result.diagnostics.filtered}"
        + f" | no history {result.diagnostics.no_history}"
    )
    return "\n".join(lines)


def format_candidate(rec: RankedRecommendation) -> str:
    """Detailed view of one evaluated candidate."""
    g, r = rec.group, rec.result
    lines = [
        f"  {g.institution_name} ({g.institution_code}) group {g.group_code or '-'}"
        + (f" {g.group_name}" if g.group_name else ""),
        _RULE,
        f"  Tier:         {r.tier.value} ({r.adjustment_risk.value} risk)",
        f"  Probability:  {r.probability}%",
        f"  Confidence:   {r.confidence}%",
        f"  Score gap:    {r.score_gap:+.1f}",
        f"  Rank gap:     {'n/a' if r.rank_gap is None else f'{r.rank_gap:+d}'}",
        f"  History:      {r.years_of_history} year(s), {rec.history_source.value}",
        f"  Rank score:   {rec.rank_score:.2f}",
    ]
    if r.filtered:
        lines.append(f"  Filtered:     {r.filter_reason}")
    for msg in render_messages(list(rec.reasons), g, r):
        lines.append(f"  + {msg}")
    for msg in render_messages(list(rec.warnings), g, r):
        lines.append(f"  ! {msg}")
    return "\n".join(lines)


def format_equivalent_scores(result: EquivalentScoreResult) -> str:
    lines = [
        f"  {result.year} {result.province} / {result.subject_category}: "
        f"score {result.score} -> rank {result.rank}",
        _RULE,
        f"  {'Year':>6} {'Score':>7} {'Rank':>9} {'Diff':>6}",
    ]
    if not result.equivalents:
        lines.append("  (no earlier tables)")
    for e in result.equivalents:
        lines.append(f"  {e.year:>6} {e.score:>7} {e.rank:>9} {e.score_diff:>+6d}")
    return "\n".join(lines)


def _row(i: int, rec: RankedRecommendation) -> str:
    g, r = rec.group, rec.result
    return (
        f"  {i:>3}  {_fit(g.institution_name, 30):<30} {_fit(g.group_code or '-', 12):<12} "
        f"{g.institution_tier.label:<18} {r.probability:>4}% {r.confidence:>4}% "
        f"{r.score_gap:>+6.1f} {rec.rank_score:>6.2f}"
    )


def _fit(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 2] + ".."
