"""Static evaluation tuning constants and host-supplied engine settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

# Canonical role order. Classification ties resolve to the first role listed here.
ROLE_ORDER: tuple[str, ...] = (
    "scorer",
    "playmaker",
    "two_way_forward",
    "defensive_center",
    "grinder",
    "offensive_defenseman",
    "shutdown_defenseman",
    "goalie",
)

MODES: tuple[str, ...] = ("win-now", "rebuild")

Z_EPSILON = 1e-8
REPLACEMENT_QUANTILE_Z = 0.67448975
NEUTRAL_TIER = 1.0
NEUTRAL_PDO = 100.0
LEAGUE_MIN_CAP_HIT = 0.925
SALARY_BAND_FLOOR = 0.8
DEFAULT_AGE = 30

# Confidence
DEFAULT_MIN_TOI_FOR_CONFIDENCE = 300.0
PDO_LUCK_PENALTY_PER_Z = 0.10
PDO_LUCK_PENALTY_MAX = 0.30

# Recommendation
WEAK_IMPACT_DELTA = -0.4
MIN_CONFIDENCE_TO_REPLACE = 0.6
NEAR_REPLACEMENT_DELTA = 0.25
LOW_CONFIDENCE_NOTE = 0.5

# Misuse severity buckets
MISUSE_MODERATE = 0.25
MISUSE_SEVERE = 0.40

# Shrinkage: prior weight is measured in the same unit as the metric's sample
# (ice-time minutes for rates, games, faceoff attempts, PP minutes).
DEFAULT_PRIOR_WEIGHTS: dict[str, float] = {
    "goals60": 120.0,
    "prim_a60": 120.0,
    "xgf60": 120.0,
    "xga60": 120.0,
    "shots60": 120.0,
    "takeaways60": 120.0,
    "blocks60": 120.0,
    "giveaways60": 120.0,
    "penalties60": 120.0,
    "pp_points60": 120.0,
    "save_pct": 120.0,
    "hd_save_pct": 120.0,
    "faceoff_pct": 200.0,
    "pdo": 10.0,
    "points_per_game": 5.0,
}

# Fallback prior means when the role benchmark lacks the metric.
DEFAULT_PRIOR_MEANS: dict[str, float] = {
    "goals60": 0.0,
    "prim_a60": 0.0,
    "xgf60": 0.0,
    "xga60": 2.2,
    "shots60": 28.0,
    "takeaways60": 1.0,
    "blocks60": 1.2,
    "giveaways60": 1.2,
    "penalties60": 0.6,
    "pp_points60": 1.0,
    "save_pct": 0.905,
    "hd_save_pct": 0.80,
    "faceoff_pct": 49.8,
    "pdo": NEUTRAL_PDO,
    "points_per_game": 0.45,
}

# Context nudges: (scale, cap)
QOC_DEFENSE_NUDGE = (0.03, 0.15)
QOT_OFFENSE_NUDGE = (0.02, 0.10)
DZ_DEFENSE_NUDGE = (0.20, 0.10)

# Role bundle weights: offense, defense, transition, composure.
ROLE_BUNDLE_WEIGHTS: dict[str, dict[str, float]] = {
    "scorer": {"offense": 0.65, "defense": 0.10, "transition": 0.15, "composure": 0.10},
    "playmaker": {"offense": 0.55, "defense": 0.15, "transition": 0.20, "composure": 0.10},
    "two_way_forward": {"offense": 0.35, "defense": 0.40, "transition": 0.15, "composure": 0.10},
    "defensive_center": {"offense": 0.15, "defense": 0.55, "transition": 0.20, "composure": 0.10},
    "grinder": {"offense": 0.35, "defense": 0.35, "transition": 0.15, "composure": 0.15},
    "offensive_defenseman": {"offense": 0.45, "defense": 0.30, "transition": 0.15, "composure": 0.10},
    "shutdown_defenseman": {"offense": 0.15, "defense": 0.55, "transition": 0.20, "composure": 0.10},
    "goalie": {"offense": 0.0, "defense": 1.0, "transition": 0.0, "composure": 0.0},
}

# Performance labels from impact z within role (quartiles of a normal role population).
PERFORMANCE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (REPLACEMENT_QUANTILE_Z, "elite"),
    (0.0, "above-average"),
    (-REPLACEMENT_QUANTILE_Z, "average"),
    (-REPLACEMENT_QUANTILE_Z - 1.0, "below-average"),
)
DISQUALIFYING_PERFORMANCE = frozenset({"weak", "below-average"})

TIER_RANKS: dict[str, int] = {"Elite": 5, "Star": 4, "Solid": 3, "Depth": 2, "Replacement": 1}
DEPTH_MIN_TOI_PER_GAME = 10.0
TIER_UPGRADE_MIN_AGE_GAP = 3

# Candidate search
TOP_LEAGUE_LEVELS = frozenset({"pro"})
DEVELOPMENT_LEAGUE_LEVELS = frozenset({"development"})
MAX_CANDIDATES = 5
MAX_PROSPECTS = 2
WIN_NOW_PROSPECT_MAX_AGE = 24
WIN_NOW_PROSPECT_MAX_CAP_HIT = 1.5
REBUILD_YOUTH_PIVOT_AGE = 30
REBUILD_YOUTH_POINTS_PER_YEAR = 4.0
BENCHMARK_MIN_ROLE_SAMPLE = 3


@dataclass(frozen=True, slots=True)
class SalaryBand:
    """Cap-hit window around the weak player's cap hit.

    Upper bound is ``cap + max(cap * raise_pct, min_cushion)`` when raises are
    allowed, otherwise the current cap hit. Lower bound is
    ``cap - max(cap * drop_pct, min_drop)`` floored at ``SALARY_BAND_FLOOR``.
    """

    raise_pct: float
    min_cushion: float
    drop_pct: float
    min_drop: float
    allow_raise: bool = True

    def bounds(self, cap_hit: float) -> tuple[float, float]:
        cushion = max(cap_hit * self.raise_pct, self.min_cushion)
        upper = cap_hit + cushion if self.allow_raise else cap_hit
        lower = max(SALARY_BAND_FLOOR, cap_hit - max(cap_hit * self.drop_pct, self.min_drop))
        return (lower, upper)


DEFAULT_SALARY_BANDS: dict[str, SalaryBand] = {
    "win-now": SalaryBand(raise_pct=0.30, min_cushion=1.0, drop_pct=0.30, min_drop=1.0),
    # Deep rebuild floor keeps near-minimum contracts in reach of expensive players.
    "rebuild": SalaryBand(raise_pct=0.0, min_cushion=0.0, drop_pct=0.90, min_drop=2.0, allow_raise=False),
}


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class EngineSettings:
    min_toi_for_confidence: float = DEFAULT_MIN_TOI_FOR_CONFIDENCE
    prior_weights: Mapping[str, float] = field(default_factory=lambda: _frozen(DEFAULT_PRIOR_WEIGHTS))
    salary_bands: Mapping[str, SalaryBand] = field(default_factory=lambda: _frozen(DEFAULT_SALARY_BANDS))

    def prior_weight(self, metric: str) -> float:
        return float(self.prior_weights.get(metric, DEFAULT_PRIOR_WEIGHTS.get(metric, 0.0)))

    def with_prior_weights(self, **weights: float) -> EngineSettings:
        merged = dict(self.prior_weights)
        merged.update(weights)
        return replace(self, prior_weights=_frozen(merged))


DEFAULT_SETTINGS = EngineSettings()
