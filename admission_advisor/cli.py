"""
Admission Advisor CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs (``[ERROR] ...`` and exit code 1 on failure).
  4. Run the action against the SQLite stores.
  5. Report the result to stdout.

Install and run::

    pip install -e .
    admission-advisor --help
    admission-advisor init-db
    admission-advisor validate-config
    admission-advisor recommend --score 612 --province Jiangsu --subject physics --year 2025
    admission-advisor recommend --request request.json --json
    admission-advisor evaluate --score 612 --province Jiangsu --subject physics \\
        --year 2025 --institution 10284 --group 01
    admission-advisor equivalent-score --score 612 --province Jiangsu --subject physics --year 2025
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="admission-advisor",
    help="Admission probability and Rush / Stable / Safe recommendation CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from admission_advisor.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from admission_advisor.utils.logging import configure_logging
    configure_logging(config.logging)


def _build_request_or_exit(
    request_file: Optional[str],
    score:        Optional[int],
    rank:         Optional[int],
    province:     Optional[str],
    subject:      Optional[str],
    year:         Optional[int],
    preferences:  dict,
):
    """Parse a request from a JSON file, or from options, exiting on error."""
    from admission_advisor.errors import ConfigurationError
    from admission_advisor.recommendations.engine import parse_request

    if request_file:
        try:
            payload = json.loads(Path(request_file).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            typer.echo(f"[ERROR] Cannot read request file: {exc}", err=True)
            raise typer.Exit(code=1)
    else:
        payload = {
            "profile": {
                "score": score,
                "rank": rank,
                "province": province,
                "subject_category": subject,
                "target_year": year,
            },
            "preferences": {k: v for k, v in preferences.items() if v not in (None, [])},
        }

    try:
        return parse_request(payload)
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file.",
    ),
) -> None:
    """Create the SQLite database and apply the reference schema.

    Safe to run repeatedly: all DDL uses IF NOT EXISTS.
    """
    from admission_advisor.db.connection import get_connection
    from admission_advisor.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False, "--full", help="Print the full config as JSON.",
    ),
) -> None:
    """Validate the configuration file and print the key values."""
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:   {config.database.db_path}")
    typer.echo(f"  History years:   {config.history.max_years}")
    typer.echo(
        f"  Tier sizes:      rush={config.ranking.rush_count} "
        f"stable={config.ranking.stable_count} safe={config.ranking.safe_count}"
    )
    typer.echo(
        f"  Tier cut points: rush < {config.probability.rush_below:g} "
        f"| safe > {config.probability.safe_above:g}"
    )
    typer.echo(f"  Workers:         {config.engine.max_workers}")
    typer.echo(f"  Log level:       {config.logging.level}")
    typer.echo(f"  Debug mode:      {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("recommend")
def recommend(
    score: Optional[int] = typer.Option(None, "--score", help="Exam score."),
    rank: Optional[int] = typer.Option(None, "--rank", help="Province rank (optional)."),
    province: Optional[str] = typer.Option(None, "--province", help="Source province."),
    subject: Optional[str] = typer.Option(None, "--subject", help="Subject category."),
    year: Optional[int] = typer.Option(None, "--year", help="Target admission year."),
    majors: Optional[list[str]] = typer.Option(None, "--major", help="Preferred major (repeatable)."),
    locations: Optional[list[str]] = typer.Option(None, "--location", help="Preferred province (repeatable)."),
    exclude_locations: Optional[list[str]] = typer.Option(
        None, "--exclude-location", help="Province to exclude (repeatable).",
    ),
    college_types: Optional[list[str]] = typer.Option(
        None, "--college-type", help="985, 211 or double_first_class (repeatable).",
    ),
    max_tuition: Optional[float] = typer.Option(None, "--max-tuition", help="Annual tuition ceiling."),
    no_cooperation: bool = typer.Option(False, "--no-cooperation", help="Exclude cooperative programmes."),
    request_file: Optional[str] = typer.Option(
        None, "--request", help="JSON file with 'profile' and 'preferences' (overrides options).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Also write CSV + JSON reports to this directory.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Build Rush / Stable / Safe recommendation lists for one student."""
    from admission_advisor.errors import ConfigurationError
    from admission_advisor.reporting.export import (
        write_recommendation_csv,
        write_recommendation_json,
    )
    from admission_advisor.reporting.formatters import format_tier_tables
    from admission_advisor.service import RecommendationService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    profile, preferences = _build_request_or_exit(
        request_file, score, rank, province, subject, year,
        {
            "majors": majors,
            "locations": locations,
            "exclude_locations": exclude_locations,
            "college_types": college_types,
            "max_tuition": max_tuition,
            "accept_cooperation": False if no_cooperation else None,
        },
    )

    service = RecommendationService(config, db_path=db_path)
    try:
        result = service.recommend(profile, preferences)
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        typer.echo(format_tier_tables(result))

    if output_dir:
        out = Path(output_dir)
        csv_path  = write_recommendation_csv(result, out)
        json_path = write_recommendation_json(result, out)
        typer.echo(f"[OK] Reports written: {csv_path}, {json_path}", err=as_json)


@app.command("evaluate")
def evaluate(
    score: int = typer.Option(..., "--score", help="Exam score."),
    province: str = typer.Option(..., "--province", help="Source province."),
    subject: str = typer.Option(..., "--subject", help="Subject category."),
    year: int = typer.Option(..., "--year", help="Target admission year."),
    institution: str = typer.Option(..., "--institution", help="Institution code."),
    group: str = typer.Option("", "--group", help="Admission-group code."),
    rank: Optional[int] = typer.Option(None, "--rank", help="Province rank (optional)."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Evaluate a single (institution, group), including filtered outcomes."""
    from admission_advisor.errors import CandidateNotFoundError, ConfigurationError
    from admission_advisor.recommendations.engine import recommendation_to_dict
    from admission_advisor.reporting.formatters import format_candidate
    from admission_advisor.service import RecommendationService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    profile, preferences = _build_request_or_exit(
        None, score, rank, province, subject, year, {},
    )

    service = RecommendationService(config, db_path=db_path)
    try:
        rec = service.evaluate_group(profile, institution, group, preferences)
    except (CandidateNotFoundError, ConfigurationError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(recommendation_to_dict(rec), indent=2, ensure_ascii=False))
    else:
        typer.echo(format_candidate(rec))


@app.command("equivalent-score")
def equivalent_score(
    score: int = typer.Option(..., "--score", help="Score in the given year."),
    province: str = typer.Option(..., "--province", help="Source province."),
    subject: str = typer.Option(..., "--subject", help="Subject category."),
    year: int = typer.Option(..., "--year", help="Year the score was obtained."),
    compare_years: Optional[list[int]] = typer.Option(
        None, "--compare-year", help="Earlier year to compare (repeatable; default all).",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Translate a score into the scores that reached the same rank in earlier years."""
    from admission_advisor.errors import ScoreRankingNotFoundError
    from admission_advisor.reporting.formatters import format_equivalent_scores
    from admission_advisor.service import RecommendationService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    service = RecommendationService(config, db_path=db_path)
    try:
        result = service.equivalent_scores(year, province, subject, score, compare_years or None)
    except ScoreRankingNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_equivalent_scores(result))


if __name__ == "__main__":
    app()
