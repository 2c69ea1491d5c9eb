"""Tests for admission_advisor/taxonomy/tiers.py."""

from __future__ import annotations

from admission_advisor.taxonomy.tiers import (
    TIER_ORDER,
    AdjustmentRisk,
    HistorySource,
    InstitutionTier,
    Tier,
)


class TestTier:
    def test_values(self):
        assert [t.value for t in TIER_ORDER] == ["rush", "stable", "safe"]

    def test_string_comparison(self):
        assert Tier.RUSH == "rush"
        assert AdjustmentRisk.HIGH == "high"
        assert HistorySource.INSTITUTION_PROXY == "institution_proxy"


class TestInstitutionTier:
    def test_ordering(self):
        assert InstitutionTier.TOP > InstitutionTier.NEXT > InstitutionTier.RECOGNIZED > InstitutionTier.OTHER

    def test_labels_unique(self):
        labels = [t.label for t in InstitutionTier]
        assert sorted(labels) == sorted({"985", "211", "double_first_class", "other"})
