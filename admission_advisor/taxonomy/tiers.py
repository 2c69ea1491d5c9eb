"""
Tier taxonomy for admission recommendations.

Three orthogonal vocabularies describe every evaluated candidate:
  - ``Tier``            the *risk bucket* (rush, stable or safe).
  - ``AdjustmentRisk``  the *sub-risk* inside a bucket (chance of being
                          admitted only through major re-assignment, or not at all).
  - ``InstitutionTier`` the *prestige level* of the institution, derived
                          from its 985 / 211 / double-first-class tags.

``HistorySource`` records which fallback join strategy produced a
candidate's historical series.

This module has NO imports from any other ``admission_advisor`` package.
"""

from enum import IntEnum, StrEnum


class Tier(StrEnum):
    """Risk classification of a candidate relative to the student."""

    RUSH = "rush"
    """Admission probability below 35%: a stretch application."""

    STABLE = "stable"
    """35–90% inclusive: where most of a well-built list should land."""

    SAFE = "safe"
    """Above 90%: a fallback slot."""


class AdjustmentRisk(StrEnum):
    """Sub-risk level within a tier."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InstitutionTier(IntEnum):
    """Institution prestige level.  Higher value = higher tier.

    The integer ordering is used as a ranking tie-breaker.
    """

    OTHER = 0
    RECOGNIZED = 1
    """Double-first-class institution without 211/985 status."""

    NEXT = 2
    """Project 211 institution."""

    TOP = 3
    """Project 985 institution."""

    @property
    def label(self) -> str:
        return _INSTITUTION_TIER_LABELS[self]


_INSTITUTION_TIER_LABELS: dict[InstitutionTier, str] = {
    InstitutionTier.OTHER:      "other",
    InstitutionTier.RECOGNIZED: "double_first_class",
    InstitutionTier.NEXT:       "211",
    InstitutionTier.TOP:        "985",
}


class HistorySource(StrEnum):
    """Which join strategy supplied a candidate's historical series."""

    EXACT_GROUP = "exact_group"
    GROUP_NAME = "group_name"
    INSTITUTION_PROXY = "institution_proxy"
    NONE = "none"


TIER_ORDER: tuple[Tier, ...] = (Tier.RUSH, Tier.STABLE, Tier.SAFE)
