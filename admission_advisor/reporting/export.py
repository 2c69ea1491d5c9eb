"""
Recommendation report writer: CSV and JSON output for one request.

Pure file I/O, no DB access.  Files are named after the request scope::

    recommendations_{province}_{subject_category}_{score}_{date}.csv
    recommendations_{province}_{subject_category}_{score}_{date}.json

The CSV holds one row per tier entry (Rush, then Stable, then Safe); the
JSON holds ``TieredRecommendations.to_dict()`` plus provenance fields.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from datetime import date
from pathlib import Path

from admission_advisor.recommendations.engine import TieredRecommendations
from admission_advisor.recommendations.reasons import render_messages
from admission_advisor.taxonomy.tiers import TIER_ORDER

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"

CSV_FIELDS = [
    "tier", "position", "institution_code", "institution_name", "group_code",
    "group_name", "institution_tier", "institution_province", "probability",
    "adjustment_risk", "confidence", "score_gap", "rank_gap", "rank_score",
    "history_source", "total_majors", "total_plan_count", "reasons", "warnings",
]


def report_stem(result: TieredRecommendations, run_date: date) -> str:
    p = result.profile
    return f"recommendations_{_slug(p.province)}_{_slug(p.subject_category)}_{p.score}_{run_date}"


def write_recommendation_csv(
    result:     TieredRecommendations,
    output_dir: Path,
    run_date:   date | None = None,
) -> Path:
    """Write every tier entry to a CSV file.

    Args:
        result:     Engine output.
        output_dir: Target directory (created if missing).
        run_date:   Date label for the filename.  Defaults to today.

    Returns:
        Path to the written CSV file.
    """
    if run_date is None:
        run_date = date.today()

    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"{report_stem(result, run_date)}.csv"

    rows = 0
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for tier in TIER_ORDER:
            for position, rec in enumerate(result.tier(tier), start=1):
                g, r = rec.group, rec.result
                writer.writerow(
                    {
                        "tier":                 tier.value,
                        "position":             position,
                        "institution_code":     g.institution_code,
                        "institution_name":     g.institution_name,
                        "group_code":           g.group_code,
                        "group_name":           g.group_name or "",
                        "institution_tier":     g.institution_tier.label,
                        "institution_province": g.institution_province or "",
                        "probability":          r.probability,
                        "adjustment_risk":      r.adjustment_risk.value,
                        "confidence":           r.confidence,
                        "score_gap":            r.score_gap,
                        "rank_gap":             "" if r.rank_gap is None else r.rank_gap,
                        "rank_score":           rec.rank_score,
                        "history_source":       rec.history_source.value,
                        "total_majors":         g.total_majors,
                        "total_plan_count":     g.total_plan_count,
                        "reasons":              "; ".join(render_messages(list(rec.reasons), g, r)),
                        "warnings":             "; ".join(render_messages(list(rec.warnings), g, r)),
                    }
                )
                rows += 1

    logger.info("Recommendation CSV written: %s (%d rows)", csv_path, rows)
    return csv_path


def write_recommendation_json(
    result:     TieredRecommendations,
    output_dir: Path,
    run_date:   date | None = None,
) -> Path:
    """Write the full result as structured JSON.

    Returns:
        Path to the written JSON file.
    """
    if run_date is None:
        run_date = date.today()

    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"{report_stem(result, run_date)}.json"

    payload = {
        "schema_version": SCHEMA_VERSION,
        "generated_at":   run_date.isoformat(),
        **result.to_dict(),
    }
    json_path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8"
    )
    logger.info("Recommendation JSON written: %s", json_path)
    return json_path


def _slug(value: str) -> str:
    return re.sub(r"[^\w-]+", "-", value.strip()).strip("-") or "unknown"
