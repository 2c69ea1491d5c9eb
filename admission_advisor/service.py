"""
DB-backed recommendation service: the impure shell around the pure engine.

Per request:
  1. Resolve a missing rank from ``score_rankings`` (when enabled).
  2. Fetch the scope's inventory in one query.
  3. Filter and group it, then bulk-fetch history for the surviving
     institutions (one query per chunk of codes and of names).
  4. Hand everything to ``engine.build_recommendations``.

Usage::

    config  = load_config()
    service = RecommendationService(config)
    result  = service.recommend(profile, preferences)
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from admission_advisor.aggregation.aggregator import (
    build_candidate_groups,
    group_inventory,
    require_scope,
)
from admission_advisor.aggregation.history_join import HistoryIndex, join_all, join_history
from admission_advisor.config import AppConfig
from admission_advisor.db.connection import get_connection
from admission_advisor.db.repositories.history_repo import HistoryRepository
from admission_advisor.db.repositories.inventory_repo import InventoryRepository
from admission_advisor.db.repositories.ranking_repo import ScoreRankingRepository
from admission_advisor.errors import CandidateNotFoundError
from admission_advisor.models.candidate import AdmissionHistoryRow, CandidateGroup
from admission_advisor.models.request import Preferences, StudentProfile
from admission_advisor.recommendations.engine import (
    TieredRecommendations,
    build_recommendations,
    evaluate_candidate,
)
from admission_advisor.recommendations.ranker import RankedRecommendation
from admission_advisor.score_ranking import (
    EquivalentScoreResult,
    find_equivalent_scores,
    resolve_rank,
)

logger = logging.getLogger(__name__)


class RecommendationService:
    """Runs recommendation requests against the SQLite stores.

    Attributes:
        config:  Application configuration.
        db_path: SQLite database path (defaults to ``config.database.db_path``).
    """

    def __init__(self, config: AppConfig, db_path: str | None = None) -> None:
        self.config  = config
        self.db_path = db_path or config.database.db_path

    def recommend(
        self,
        profile:     StudentProfile,
        preferences: Optional[Preferences] = None,
        conn:        Optional[sqlite3.Connection] = None,
    ) -> TieredRecommendations:
        """Build tiered recommendations for one student.

        Args:
            profile:     Validated student profile.
            preferences: Preferences; ``None`` means no preferences.
            conn:        Optional open connection (tests pass an in-memory one).

        Raises:
            ConfigurationError: If the profile lacks scope fields.
        """
        require_scope(profile)
        preferences = preferences or Preferences()

        if conn is not None:
            return self._recommend(conn, profile, preferences)
        with self._connect() as own:
            return self._recommend(own, profile, preferences)

    def evaluate_group(
        self,
        profile:          StudentProfile,
        institution_code: str,
        group_code:       str = "",
        preferences:      Optional[Preferences] = None,
        conn:             Optional[sqlite3.Connection] = None,
    ) -> RankedRecommendation:
        """Evaluate one (institution, group), including filtered outcomes.

        Preference filters are not applied; preferences only shape the rank
        score.

        Raises:
            ConfigurationError:     If the profile lacks scope fields.
            CandidateNotFoundError: If the group has no current-year inventory.
        """
        require_scope(profile)
        preferences = preferences or Preferences()

        if conn is not None:
            return self._evaluate_group(conn, profile, institution_code, group_code, preferences)
        with self._connect() as own:
            return self._evaluate_group(own, profile, institution_code, group_code, preferences)

    def equivalent_scores(
        self,
        year:             int,
        province:         str,
        subject_category: str,
        score:            int,
        compare_years:    Optional[list[int]] = None,
        conn:             Optional[sqlite3.Connection] = None,
    ) -> EquivalentScoreResult:
        """See ``score_ranking.find_equivalent_scores``."""
        if conn is not None:
            return find_equivalent_scores(
                ScoreRankingRepository(conn), year, province, subject_category, score, compare_years
            )
        with self._connect() as own:
            return find_equivalent_scores(
                ScoreRankingRepository(own), year, province, subject_category, score, compare_years
            )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _connect(self):
        return get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        )

    def _recommend(
        self,
        conn:        sqlite3.Connection,
        profile:     StudentProfile,
        preferences: Preferences,
    ) -> TieredRecommendations:
        profile, rank_resolved = self._with_rank(conn, profile)

        inventory = InventoryRepository(conn).fetch_scope(
            profile.target_year, profile.province, profile.subject_category
        )
        groups  = build_candidate_groups(inventory, preferences)
        history = self._fetch_history(conn, profile, groups)
        joined  = join_all(groups, HistoryIndex.build(history), self.config.history.max_years)

        return build_recommendations(
            profile,
            preferences,
            joined,
            policy=self.config.probability.to_policy(),
            weights=self.config.ranking.to_weights(),
            counts=self.config.ranking.to_counts(),
            max_workers=self.config.engine.max_workers,
            inventory_count=len(inventory),
            rank_resolved=rank_resolved,
        )

    def _evaluate_group(
        self,
        conn:             sqlite3.Connection,
        profile:          StudentProfile,
        institution_code: str,
        group_code:       str,
        preferences:      Preferences,
    ) -> RankedRecommendation:
        profile, _ = self._with_rank(conn, profile)

        rows = InventoryRepository(conn).fetch_group(
            profile.target_year, profile.province, profile.subject_category,
            institution_code, group_code,
        )
        if not rows:
            raise CandidateNotFoundError(institution_code, group_code)

        group   = group_inventory(rows)[0]
        history = self._fetch_history(conn, profile, [group])
        match   = join_history(group, HistoryIndex.build(history), self.config.history.max_years)

        return evaluate_candidate(
            profile, preferences, group, match,
            policy=self.config.probability.to_policy(),
            weights=self.config.ranking.to_weights(),
        )

    def _with_rank(
        self,
        conn:    sqlite3.Connection,
        profile: StudentProfile,
    ) -> tuple[StudentProfile, bool]:
        if profile.rank is not None or not self.config.engine.resolve_missing_rank:
            return profile, False

        resolved = resolve_rank(
            ScoreRankingRepository(conn),
            profile.target_year, profile.province, profile.subject_category, profile.score,
        )
        if resolved is None:
            logger.info("No score-ranking table for this scope; rank terms are skipped.")
            return profile, False
        return profile.model_copy(update={"rank": resolved.rank}), True

    def _fetch_history(
        self,
        conn:    sqlite3.Connection,
        profile: StudentProfile,
        groups:  list[CandidateGroup],
    ) -> list[AdmissionHistoryRow]:
        if not groups:
            return []
        max_years = self.config.history.max_years
        # Extra years cover gaps in a group's record.
        min_year = profile.target_year - max_years * 2
        return HistoryRepository(conn).fetch_for_candidates(
            province=profile.province,
            subject_category=profile.subject_category,
            before_year=profile.target_year,
            institution_codes=[g.institution_code for g in groups],
            institution_names=[g.institution_name for g in groups],
            min_year=min_year,
            chunk_size=self.config.history.lookup_chunk_size,
        )
