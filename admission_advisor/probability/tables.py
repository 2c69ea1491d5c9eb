"""
Heuristic lookup tables and named constants for the probability estimator.

Every piecewise function the estimator uses is data, not branching:

SCORE_GAP_TABLE (base probability, 11 buckets)
-----------------------------------------------
    score_gap >= 25   -> 99
    score_gap >= 20   -> 98
    score_gap >= 15   -> 95
    score_gap >= 10   -> 88
    score_gap >= 5    -> 78
    score_gap >= 0    -> 65
    score_gap >= -5   -> 48
    score_gap >= -10  -> 32
    score_gap >= -15  -> 18
    score_gap >  -20  -> 8
    otherwise         -> 3       (score_gap <= -20)

RANK_GAP_TABLE (additive adjustment, 8 buckets)
-----------------------------------------------
    rank_gap >  2000  -> +12
    rank_gap >  1000  -> +8
    rank_gap >  500   -> +5
    rank_gap >  0     -> +2
    rank_gap > -500   -> -2
    rank_gap > -1000  -> -5
    rank_gap > -2000  -> -8
    otherwise         -> -12

VOLATILITY_TABLE (multiplicative dampening)
-------------------------------------------
    volatility > 10   -> 0.80
    volatility > 8    -> 0.85
    volatility > 5    -> 0.92
    volatility > 3    -> 0.97
    otherwise         -> 1.00

The tables are frozen: changing a value changes recommendation behaviour.
Filter and tier cut points live on ``ProbabilityPolicy`` so they can be
overridden from config without touching the tables.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Step:
    """One bucket of a step function.

    Attributes:
        bound:     Lower boundary of the bucket.
        value:     Output for inputs inside the bucket.
        inclusive: ``True`` matches ``x >= bound``; ``False`` matches ``x > bound``.
    """

    bound:     float
    value:     float
    inclusive: bool = True

    def matches(self, x: float) -> bool:
        return x >= self.bound if self.inclusive else x > self.bound


@dataclass(frozen=True)
class StepTable:
    """Ordered step function: buckets sorted by ``bound`` descending.

    ``lookup(x)`` returns the value of the first bucket ``x`` falls into, or
    ``default`` when ``x`` lies below every bound.
    """

    steps:   tuple[Step, ...]
    default: float

    def __post_init__(self) -> None:
        bounds = [s.bound for s in self.steps]
        if bounds != sorted(bounds, reverse=True):
            raise ValueError("StepTable steps must be sorted by bound, descending.")

    def lookup(self, x: float) -> float:
        for step in self.steps:
            if step.matches(x):
                return step.value
        return self.default

    @property
    def values(self) -> tuple[float, ...]:
        """All outputs from highest bucket to the default."""
        return tuple(s.value for s in self.steps) + (self.default,)


SCORE_GAP_TABLE = StepTable(
    steps=(
        Step(25, 99),
        Step(20, 98),
        Step(15, 95),
        Step(10, 88),
        Step(5, 78),
        Step(0, 65),
        Step(-5, 48),
        Step(-10, 32),
        Step(-15, 18),
        Step(-20, 8, inclusive=False),
    ),
    default=3,
)

RANK_GAP_TABLE = StepTable(
    steps=(
        Step(2000, 12, inclusive=False),
        Step(1000, 8, inclusive=False),
        Step(500, 5, inclusive=False),
        Step(0, 2, inclusive=False),
        Step(-500, -2, inclusive=False),
        Step(-1000, -5, inclusive=False),
        Step(-2000, -8, inclusive=False),
    ),
    default=-12,
)

VOLATILITY_TABLE = StepTable(
    steps=(
        Step(10, 0.80, inclusive=False),
        Step(8, 0.85, inclusive=False),
        Step(5, 0.92, inclusive=False),
        Step(3, 0.97, inclusive=False),
    ),
    default=1.0,
)

# ── Trend adjustment ──────────────────────────────────────────────────────────
# A sharp rise last year tends to revert (easier this year), and vice versa.
TREND_THRESHOLD = 8
TREND_RISE_BONUS = 3
TREND_FALL_PENALTY = -3

# ── Plan-count change adjustment ──────────────────────────────────────────────
PLAN_EXPANSION_MAJOR = 0.5
PLAN_EXPANSION_MAJOR_BONUS = 8
PLAN_EXPANSION_MODERATE = 0.3
PLAN_EXPANSION_MODERATE_BONUS = 5
PLAN_EXPANSION_MINOR = 0.1
PLAN_EXPANSION_MINOR_BONUS = 2
PLAN_CUT_MAJOR = -0.3
PLAN_CUT_MAJOR_PENALTY = -5
PLAN_CUT_MINOR = -0.1
PLAN_CUT_MINOR_PENALTY = -2

# ── Popularity adjustment (0–100 index) ───────────────────────────────────────
POPULARITY_EXTREME = 90
POPULARITY_EXTREME_PENALTY = -5
POPULARITY_HIGH = 75
POPULARITY_HIGH_PENALTY = -3
POPULARITY_LOW = 30
POPULARITY_LOW_BONUS = 3

# ── Confidence deductions ─────────────────────────────────────────────────────
CONFIDENCE_START = 100
CONFIDENCE_FULL_HISTORY_YEARS = 3
CONFIDENCE_SHORT_HISTORY_PENALTY = 20       # fewer than 3 years
CONFIDENCE_MINIMAL_HISTORY_YEARS = 2
CONFIDENCE_MINIMAL_HISTORY_PENALTY = 40     # fewer than 2 years
CONFIDENCE_HIGH_VOLATILITY = 10
CONFIDENCE_HIGH_VOLATILITY_PENALTY = 30
CONFIDENCE_MODERATE_VOLATILITY = 5
CONFIDENCE_MODERATE_VOLATILITY_PENALTY = 15
CONFIDENCE_INCONSISTENCY_PENALTY = 10
CONFIDENCE_PLAN_CHANGE_THRESHOLD = 0.3
CONFIDENCE_PLAN_CHANGE_PENALTY = 10

# ── No-data defaults ──────────────────────────────────────────────────────────
NO_DATA_PROBABILITY = 50
NO_DATA_CONFIDENCE = 0

# ── Filter reasons ────────────────────────────────────────────────────────────
FILTER_REASON_RUSH_GAP = "gap too large, rush is pointless"
FILTER_REASON_SAFE_GAP = "gap too large, wastes a safe slot"
FILTER_REASON_NEGLIGIBLE = "probability negligible and gap extreme"


@dataclass(frozen=True)
class ProbabilityPolicy:
    """Filter and tier cut points.

    The defaults are the empirically chosen values the engine ships with;
    ``ProbabilityConfig.to_policy()`` builds an instance from TOML.

    Attributes:
        rush_filter_gap:        score_gap strictly below this -> filtered (Rush).
        safe_filter_gap:        score_gap strictly above this -> filtered (Safe).
        negligible_probability: probability strictly below this ...
        negligible_gap:         ... with score_gap strictly below this -> filtered.
        rush_below:             probability strictly below this -> Rush.
        safe_above:             probability strictly above this -> Safe.
        rush_high_risk_below:   Rush sub-risk High below this probability.
        rush_medium_risk_below: Rush sub-risk Medium below this probability.
        stable_medium_risk_below: Stable sub-risk Medium below this probability.
    """

    rush_filter_gap:          float = -30
    safe_filter_gap:          float = 25
    negligible_probability:   float = 5
    negligible_gap:           float = -15
    rush_below:               float = 35
    safe_above:               float = 90
    rush_high_risk_below:     float = 15
    rush_medium_risk_below:   float = 25
    stable_medium_risk_below: float = 50


DEFAULT_POLICY = ProbabilityPolicy()
