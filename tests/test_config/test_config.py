"""
Tests for admission_advisor/config.py.

What we test
------------
  - The committed default.toml loads and matches the model defaults.
  - An explicit TOML file overrides defaults section by section.
  - local.toml beside the config file is deep-merged on top.
  - ADMISSION_ADVISOR_* environment variables win over files.
  - Validators reject bad cut points, counts, weights and log levels.
  - to_policy() / to_weights() / to_counts() carry the configured values.
  - A missing config file raises FileNotFoundError.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from admission_advisor.config import (
    ENV_PREFIX,
    AppConfig,
    LoggingConfig,
    ProbabilityConfig,
    RankingConfig,
    load_config,
)
from admission_advisor.probability.tables import DEFAULT_POLICY


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for suffix in ("DB_PATH", "LOG_LEVEL", "DEBUG"):
        monkeypatch.delenv(f"{ENV_PREFIX}{suffix}", raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_default_toml_matches_model_defaults(self):
        config = load_config()
        defaults = AppConfig()
        assert config.probability == defaults.probability
        assert config.ranking == defaults.ranking
        assert config.history == defaults.history
        assert config.engine == defaults.engine

    def test_explicit_file_overrides(self, tmp_path):
        path = _write(tmp_path / "custom.toml", """
[ranking]
stable_count = 5

[probability]
rush_below = 30
""")
        config = load_config(path)
        assert config.ranking.stable_count == 5
        assert config.ranking.rush_count == 12
        assert config.probability.rush_below == 30
        assert config.database.db_path == "data/db/admission_advisor.db"

    def test_local_toml_deep_merged(self, tmp_path):
        path = _write(tmp_path / "default.toml", """
[ranking]
rush_count = 10
safe_count = 4
""")
        _write(tmp_path / "local.toml", """
[ranking]
safe_count = 6
""")
        config = load_config(path)
        assert config.ranking.rush_count == 10
        assert config.ranking.safe_count == 6

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "c.toml", '[database]\ndb_path = "from_file.db"\n')
        monkeypatch.setenv(f"{ENV_PREFIX}DB_PATH", "from_env.db")
        monkeypatch.setenv(f"{ENV_PREFIX}LOG_LEVEL", "debug")
        monkeypatch.setenv(f"{ENV_PREFIX}DEBUG", "true")
        config = load_config(path)
        assert config.database.db_path == "from_env.db"
        assert config.logging.level == "DEBUG"
        assert config.debug is True

    def test_project_debug_flag(self, tmp_path):
        path = _write(tmp_path / "c.toml", "[project]\ndebug = true\n")
        assert load_config(path).debug is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_invalid_value_in_file(self, tmp_path):
        path = _write(tmp_path / "bad.toml", "[engine]\nmax_workers = 0\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestValidators:
    def test_cut_points_must_be_ordered(self):
        with pytest.raises(ValidationError):
            ProbabilityConfig(rush_below=95, safe_above=90)

    def test_filter_gaps_must_be_ordered(self):
        with pytest.raises(ValidationError):
            ProbabilityConfig(rush_filter_gap=30, safe_filter_gap=25)

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            RankingConfig(stable_count=-1)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            RankingConfig(location_weight=-5)

    def test_log_level_normalised(self):
        assert LoggingConfig(level="warning").level == "WARNING"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


class TestBridges:
    def test_default_policy(self):
        assert ProbabilityConfig().to_policy() == DEFAULT_POLICY

    def test_policy_overrides(self):
        policy = ProbabilityConfig(rush_below=30, safe_above=85).to_policy()
        assert policy.rush_below == 30
        assert policy.safe_above == 85

    def test_weights_and_counts(self):
        ranking = RankingConfig(confidence_weight=8, rush_count=3)
        assert ranking.to_weights().confidence == 8
        assert ranking.to_counts().rush == 3
        assert ranking.to_counts().stable == 20
