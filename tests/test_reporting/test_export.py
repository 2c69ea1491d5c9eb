"""Tests for admission_advisor.reporting.export."""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path

import pytest

from admission_advisor.recommendations.engine import recommend
from admission_advisor.reporting.export import (
    CSV_FIELDS,
    SCHEMA_VERSION,
    report_stem,
    write_recommendation_csv,
    write_recommendation_json,
)

RUN_DATE = date(2025, 6, 25)


@pytest.fixture
def result(profile, no_prefs, make_inventory_row, make_history_row):
    inventory = [make_inventory_row("A"), make_inventory_row("B"), make_inventory_row("C")]
    history = [
        make_history_row(year, cutoff, institution_code=code)
        for code, cutoff in (("A", 590), ("B", 615), ("C", 580))
        for year in (2024, 2023, 2022)
    ]
    return recommend(profile, no_prefs, inventory, history)


def test_report_stem(result) -> None:
    assert report_stem(result, RUN_DATE) == "recommendations_Jiangsu_physics_600_2025-06-25"


def test_csv_rows_in_tier_order(result, tmp_path: Path) -> None:
    """One row per entry, Rush first, with rendered reasons."""
    out = write_recommendation_csv(result, tmp_path / "reports", RUN_DATE)

    assert out.exists()
    with out.open(encoding="utf-8") as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == CSV_FIELDS
        rows = list(reader)

    assert [(r["tier"], r["institution_code"]) for r in rows] == [
        ("rush", "B"), ("stable", "A"), ("safe", "C"),
    ]
    assert rows[0]["position"] == "1"
    assert rows[0]["rank_gap"] == ""
    assert rows[1]["reasons"].startswith("Score is slightly above the average historical cutoff (+10.0)")


def test_empty_result_writes_header_only(profile, no_prefs, tmp_path: Path) -> None:
    out = write_recommendation_csv(recommend(profile, no_prefs, [], []), tmp_path, RUN_DATE)
    with out.open(encoding="utf-8") as f:
        assert f.read().strip() == ",".join(CSV_FIELDS)


def test_json_payload(result, tmp_path: Path) -> None:
    out = write_recommendation_json(result, tmp_path, RUN_DATE)
    payload = json.loads(out.read_text(encoding="utf-8"))

    assert out.name.endswith(".json")
    assert payload["schema_version"] == SCHEMA_VERSION
    assert payload["generated_at"] == "2025-06-25"
    assert payload["profile"]["score"] == 600
    assert payload["summary"]["totals"] == {"rush": 1, "stable": 1, "safe": 1}
    assert payload["stable"][0]["institution_code"] == "A"
