"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      committed defaults
  2. ``config/local.toml``        optional local overrides (gitignored)
  3. ``.env``                     local environment overrides (gitignored)
  4. Environment variables        ``ADMISSION_ADVISOR_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The engine core never reads configuration directly.  ``ProbabilityConfig``
and ``RankingConfig`` convert to the frozen ``ProbabilityPolicy`` and
``RankingWeights`` the pure functions take.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from admission_advisor.probability.tables import ProbabilityPolicy
from admission_advisor.recommendations.engine import TierCounts
from admission_advisor.recommendations.ranker import RankingWeights

ENV_PREFIX = "ADMISSION_ADVISOR_"

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/admission_advisor.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @field_validator("busy_timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"busy_timeout_ms must be non-negative, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class HistoryConfig(BaseModel):
    """Historical join settings."""

    model_config = ConfigDict(frozen=True)

    max_years: int = 3
    lookup_chunk_size: int = 500

    @field_validator("max_years", "lookup_chunk_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"history settings must be >= 1, got {v}.")
        return v


class ProbabilityConfig(BaseModel):
    """Estimator pre-filter and tier cut points."""

    model_config = ConfigDict(frozen=True)

    rush_filter_gap: float = -30
    safe_filter_gap: float = 25
    negligible_probability: float = 5
    negligible_gap: float = -15
    rush_below: float = 35
    safe_above: float = 90

    @model_validator(mode="after")
    def validate_cut_points(self) -> "ProbabilityConfig":
        if not 0 <= self.rush_below <= self.safe_above <= 100:
            raise ValueError(
                "Require 0 <= rush_below <= safe_above <= 100, got "
                f"rush_below={self.rush_below}, safe_above={self.safe_above}."
            )
        if self.rush_filter_gap >= self.safe_filter_gap:
            raise ValueError("rush_filter_gap must be below safe_filter_gap.")
        return self

    def to_policy(self) -> ProbabilityPolicy:
        return ProbabilityPolicy(
            rush_filter_gap=self.rush_filter_gap,
            safe_filter_gap=self.safe_filter_gap,
            negligible_probability=self.negligible_probability,
            negligible_gap=self.negligible_gap,
            rush_below=self.rush_below,
            safe_above=self.safe_above,
        )


class RankingConfig(BaseModel):
    """Tier sizes and rank-score weights."""

    model_config = ConfigDict(frozen=True)

    rush_count: int = 12
    stable_count: int = 20
    safe_count: int = 8

    college_level_weight: float = 30.0
    major_match_weight: float = 25.0
    location_weight: float = 20.0
    employability_weight: float = 15.0
    probability_fit_weight: float = 10.0
    confidence_weight: float = 5.0

    @field_validator("rush_count", "stable_count", "safe_count")
    @classmethod
    def validate_counts(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"tier counts must be non-negative, got {v}.")
        return v

    @field_validator(
        "college_level_weight", "major_match_weight", "location_weight",
        "employability_weight", "probability_fit_weight", "confidence_weight",
    )
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"weights must be non-negative, got {v}.")
        return v

    def to_weights(self) -> RankingWeights:
        return RankingWeights(
            college_level=self.college_level_weight,
            major_match=self.major_match_weight,
            location=self.location_weight,
            employability=self.employability_weight,
            probability_fit=self.probability_fit_weight,
            confidence=self.confidence_weight,
        )

    def to_counts(self) -> TierCounts:
        return TierCounts(rush=self.rush_count, stable=self.stable_count, safe=self.safe_count)


class EngineConfig(BaseModel):
    """Execution settings for the recommendation service."""

    model_config = ConfigDict(frozen=True)

    max_workers: int = 1
    resolve_missing_rank: bool = True

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}.")
        return v


class AppConfig(BaseModel):
    """Complete application configuration.

    Built by ``load_config()``; the CLI and ``RecommendationService`` take an
    ``AppConfig`` instead of reading files or environment variables.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    history: HistoryConfig = HistoryConfig()
    probability: ProbabilityConfig = ProbabilityConfig()
    ranking: RankingConfig = RankingConfig()
    engine: EngineConfig = EngineConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to the directory holding pyproject.toml."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit TOML file.  Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Validated ``AppConfig``.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If a merged value fails validation.
    """
    root = _find_project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists() and local_config_path != config_path:
        with open(local_config_path, "rb") as f:
            raw = _deep_merge(raw, tomllib.load(f))

    raw = _apply_env_overrides(raw)
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply ADMISSION_ADVISOR_* environment variables.

    Supported overrides:
      ADMISSION_ADVISOR_DB_PATH    -> raw["database"]["db_path"]
      ADMISSION_ADVISOR_LOG_LEVEL  -> raw["logging"]["level"]
      ADMISSION_ADVISOR_DEBUG      -> raw["debug"]
    """
    if db_path := os.environ.get(f"{ENV_PREFIX}DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get(f"{ENV_PREFIX}DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    project = raw.get("project", {})
    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        history=HistoryConfig(**raw.get("history", {})),
        probability=ProbabilityConfig(**raw.get("probability", {})),
        ranking=RankingConfig(**raw.get("ranking", {})),
        engine=EngineConfig(**raw.get("engine", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
