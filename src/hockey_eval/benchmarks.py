"""Role benchmark tables and the benchmark comparator.

A benchmark table carries, per role, the mean and spread of each normalized
metric plus the mean and spread of the final impact score. The comparator
z-scores a player's metrics against their role, folds them into four bundles
(offense, defense, transition, composure), applies small context nudges and
weights the bundles into an impact score.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from .config import (
    BENCHMARK_MIN_ROLE_SAMPLE,
    DEFAULT_SETTINGS,
    DEPTH_MIN_TOI_PER_GAME,
    DZ_DEFENSE_NUDGE,
    NEUTRAL_PDO,
    NEUTRAL_TIER,
    PERFORMANCE_THRESHOLDS,
    QOC_DEFENSE_NUDGE,
    QOT_OFFENSE_NUDGE,
    REPLACEMENT_QUANTILE_Z,
    ROLE_BUNDLE_WEIGHTS,
    ROLE_ORDER,
    Z_EPSILON,
    EngineSettings,
)
from .models import BenchmarkLoadError, InvalidPlayerError, MeanSd, PlayerProfile, RoleBenchmarks
from .normalize import normalize_metrics
from .roles import check_role, classify_role

logger = logging.getLogger(__name__)

BENCHMARK_VERSION = 1

# (metric, weight, higher_is_worse, driver label)
BUNDLES: dict[str, tuple[tuple[str, float, bool, str], ...]] = {
    "offense": (
        # Production anchor; the per-60 rates refine it.
        ("points_per_game", 1.00, False, "points/game"),
        ("goals60", 0.50, False, "goals/60"),
        ("prim_a60", 0.20, False, "primary assists/60"),
        ("xgf60", 0.15, False, "xGF/60"),
        ("shots60", 0.10, False, "shots/60"),
        ("shooting_accuracy", 0.05, False, "shooting accuracy"),
        ("pp_points60", 0.10, False, "PP points/60"),
    ),
    "defense": (
        ("xga60", 0.45, True, "xGA/60 (neg)"),
        ("cf_rel", 0.20, False, "CF% rel"),
        ("takeaways60", 0.15, False, "takeaways/60"),
        ("blocks60", 0.10, False, "blocks/60"),
        ("pk_ga60", 0.10, True, "PK GA/60 (neg)"),
    ),
    "transition": (
        ("giveaways60", 0.40, True, "giveaways/60 (neg)"),
        ("faceoff_pct", 0.20, False, "faceoff %"),
        ("cf_rel", 0.20, False, "CF% rel"),
        ("shots60", 0.20, False, "shots/60"),
    ),
    "composure": (
        ("penalties60", 0.60, True, "penalties/60 (neg)"),
        ("qoc", 0.20, False, "quality of competition"),
    ),
}
PDO_LUCK_WEIGHT = 0.20
GOALIE_DEFENSE: tuple[tuple[str, float, bool, str], ...] = (
    ("save_pct", 0.65, False, "SV%"),
    ("hd_save_pct", 0.20, False, "HD SV%"),
    ("gsax", 0.15, False, "GSAx"),
)

BENCHMARK_METRICS: tuple[str, ...] = (
    "goals60",
    "prim_a60",
    "points_per_game",
    "xgf60",
    "shots60",
    "shooting_accuracy",
    "pp_points60",
    "xga60",
    "cf_rel",
    "takeaways60",
    "blocks60",
    "pk_ga60",
    "giveaways60",
    "penalties60",
    "faceoff_pct",
    "qoc",
    "pdo",
    "save_pct",
    "hd_save_pct",
    "gsax",
)


@dataclass(slots=True)
class MetricDriver:
    name: str
    z: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "z": round(self.z, 4)}


@dataclass(slots=True)
class BundleScores:
    offense: float = 0.0
    defense: float = 0.0
    transition: float = 0.0
    composure: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "offense": round(self.offense, 4),
            "defense": round(self.defense, 4),
            "transition": round(self.transition, 4),
            "composure": round(self.composure, 4),
        }


@dataclass(slots=True)
class ImpactOutput:
    role: str
    bundles: BundleScores
    impact_score: float
    impact_z: float
    replacement_delta: float
    drivers: list[MetricDriver] = field(default_factory=list)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _bundle(
    terms: Iterable[tuple[str, float, bool, str]],
    metrics: Mapping[str, float],
    role_metrics: Mapping[str, MeanSd],
    drivers: dict[str, MetricDriver],
) -> float:
    """Fixed weighted z sum; a metric missing on either side counts as z = 0."""
    total = 0.0
    for key, weight, inverted, label in terms:
        ref = role_metrics.get(key)
        if ref is None or key not in metrics:
            continue
        z = ref.z(metrics[key])
        if inverted:
            z = -z
        total += weight * z
        drivers.setdefault(label, MetricDriver(label, z))
    return total


def _pdo_ref(role: str, benchmarks: RoleBenchmarks) -> MeanSd:
    return benchmarks.metric(role, "pdo") or benchmarks.pdo_ref


def _skater_bundles(
    role: str, metrics: Mapping[str, float], benchmarks: RoleBenchmarks, drivers: dict[str, MetricDriver]
) -> BundleScores:
    role_metrics = benchmarks.role_metrics(role)
    offense = _bundle(BUNDLES["offense"], metrics, role_metrics, drivers)
    defense = _bundle(BUNDLES["defense"], metrics, role_metrics, drivers)
    transition = _bundle(BUNDLES["transition"], metrics, role_metrics, drivers)

    composure = _bundle(BUNDLES["composure"], metrics, role_metrics, drivers)
    if "pdo" in metrics:
        luck = -abs(_pdo_ref(role, benchmarks).z(metrics["pdo"]))
        composure += PDO_LUCK_WEIGHT * luck
        drivers.setdefault("PDO luck (neg)", MetricDriver("PDO luck (neg)", luck))

    qoc = metrics.get("qoc", NEUTRAL_TIER)
    qot = metrics.get("qot", NEUTRAL_TIER)
    dz = metrics.get("dz_starts", 0.5)
    scale, cap = QOC_DEFENSE_NUDGE
    defense += _clamp(scale * (qoc - NEUTRAL_TIER), -cap, cap)
    scale, cap = QOT_OFFENSE_NUDGE
    offense += _clamp(scale * (NEUTRAL_TIER - qot), -cap, cap)
    scale, cap = DZ_DEFENSE_NUDGE
    defense += _clamp(scale * (dz - 0.5), -cap, cap)
    return BundleScores(offense, defense, transition, composure)


def compare_to_benchmarks(role: str, metrics: Mapping[str, float], benchmarks: RoleBenchmarks) -> ImpactOutput:
    check_role(role)
    drivers: dict[str, MetricDriver] = {}
    if role == "goalie":
        defense = _bundle(GOALIE_DEFENSE, metrics, benchmarks.role_metrics(role), drivers)
        bundles = BundleScores(defense=defense)
    else:
        bundles = _skater_bundles(role, metrics, benchmarks, drivers)

    weights = ROLE_BUNDLE_WEIGHTS[role]
    impact = (
        weights["offense"] * bundles.offense
        + weights["defense"] * bundles.defense
        + weights["transition"] * bundles.transition
        + weights["composure"] * bundles.composure
    )

    ref = benchmarks.impact(role)
    impact_z = 0.0
    delta = 0.0
    if ref is not None and abs(ref.sd) > Z_EPSILON:
        impact_z = ref.z(impact)
        threshold = ref.mean - REPLACEMENT_QUANTILE_Z * ref.sd
        delta = (impact - threshold) / ref.sd

    top = sorted(drivers.values(), key=lambda d: abs(d.z), reverse=True)[:3]
    return ImpactOutput(role, bundles, impact, impact_z, delta, top)


def performance_label(impact_z: float) -> str:
    for threshold, label in PERFORMANCE_THRESHOLDS:
        if impact_z >= threshold:
            return label
    return "weak"


def trade_tier(label: str, toi_per_game: float) -> str:
    if label == "elite":
        return "Elite"
    if label == "above-average":
        return "Star"
    if label == "average":
        return "Solid"
    if label == "below-average" and toi_per_game > DEPTH_MIN_TOI_PER_GAME:
        return "Depth"
    return "Replacement"


def _default_role_metrics(role: str) -> dict[str, MeanSd]:
    if role == "goalie":
        return {
            "save_pct": MeanSd(0.905, 0.020),
            "hd_save_pct": MeanSd(0.80, 0.050),
            "gsax": MeanSd(0.0, 5.0),
            "pdo": MeanSd(NEUTRAL_PDO, 2.0),
        }
    goals = {"scorer": 1.2, "playmaker": 0.8}.get(role, 0.6)
    prim_a = {"playmaker": 1.5, "scorer": 1.0}.get(role, 0.5)
    pp_points = {"scorer": 2.5, "playmaker": 2.0}.get(role, 1.0)
    ppg = {"scorer": 0.75, "playmaker": 0.70, "offensive_defenseman": 0.50}.get(role, 0.35)
    return {
        "goals60": MeanSd(goals, 0.4),
        "prim_a60": MeanSd(prim_a, 0.5),
        "points_per_game": MeanSd(ppg, 0.20),
        "xgf60": MeanSd(2.2, 0.6),
        "shots60": MeanSd(28.0, 8.0),
        "shooting_accuracy": MeanSd(12.0, 3.0),
        "pp_points60": MeanSd(pp_points, 1.2),
        "xga60": MeanSd(2.2, 0.6),
        "cf_rel": MeanSd(0.0, 3.0),
        "takeaways60": MeanSd(1.0, 0.6),
        "blocks60": MeanSd(2.5 if role.endswith("defenseman") else 1.2, 1.0),
        "pk_ga60": MeanSd(3.5, 1.5),
        "giveaways60": MeanSd(1.2, 0.6),
        "penalties60": MeanSd(0.6, 0.4),
        "faceoff_pct": MeanSd(52.0 if role == "defensive_center" else 49.8, 6.0),
        "qoc": MeanSd(NEUTRAL_TIER, 0.5),
        "pdo": MeanSd(NEUTRAL_PDO, 2.0),
    }


def default_benchmarks() -> RoleBenchmarks:
    """League-wide defaults used when no benchmark file is supplied."""
    return RoleBenchmarks(
        metrics_by_role={role: _default_role_metrics(role) for role in ROLE_ORDER},
        impact_by_role={role: MeanSd(0.0, 1.0) for role in ROLE_ORDER},
        pdo_ref=MeanSd(NEUTRAL_PDO, 2.0),
    )


def _mean_sd_to_dict(value: MeanSd) -> dict[str, float]:
    return {"mean": value.mean, "sd": value.sd}


def _mean_sd_from_dict(raw: Any, where: str) -> MeanSd:
    if not isinstance(raw, Mapping) or "mean" not in raw or "sd" not in raw:
        raise BenchmarkLoadError(f"Expected {{mean, sd}} at {where}")
    try:
        mean = float(raw["mean"])
        sd = float(raw["sd"])
    except (TypeError, ValueError) as exc:
        raise BenchmarkLoadError(f"Non-numeric mean/sd at {where}") from exc
    if not (math.isfinite(mean) and math.isfinite(sd)):
        raise BenchmarkLoadError(f"Non-finite mean/sd at {where}")
    return MeanSd(mean, abs(sd))


def benchmarks_to_dict(benchmarks: RoleBenchmarks) -> dict[str, Any]:
    return {
        "benchmark_version": BENCHMARK_VERSION,
        "metrics_by_role": {
            role: {key: _mean_sd_to_dict(value) for key, value in metrics.items()}
            for role, metrics in benchmarks.metrics_by_role.items()
        },
        "impact_by_role": {role: _mean_sd_to_dict(value) for role, value in benchmarks.impact_by_role.items()},
        "pdo_ref": _mean_sd_to_dict(benchmarks.pdo_ref),
    }


def benchmarks_from_dict(raw: Mapping[str, Any]) -> RoleBenchmarks:
    if not isinstance(raw, Mapping):
        raise BenchmarkLoadError("Benchmark document must be a JSON object")
    version = raw.get("benchmark_version", BENCHMARK_VERSION)
    if version != BENCHMARK_VERSION:
        raise BenchmarkLoadError(
            f"Unsupported benchmark_version {version!r}; this build reads version {BENCHMARK_VERSION}"
        )

    metrics_raw = raw.get("metrics_by_role") or {}
    impact_raw = raw.get("impact_by_role") or {}
    if not isinstance(metrics_raw, Mapping) or not isinstance(impact_raw, Mapping):
        raise BenchmarkLoadError("metrics_by_role and impact_by_role must be objects")

    metrics_by_role: dict[str, dict[str, MeanSd]] = {}
    for role, metrics in metrics_raw.items():
        if role not in ROLE_ORDER:
            logger.warning("Ignoring benchmarks for unknown role %r", role)
            continue
        if not isinstance(metrics, Mapping):
            raise BenchmarkLoadError(f"metrics_by_role.{role} must be an object")
        metrics_by_role[role] = {
            str(key): _mean_sd_from_dict(value, f"metrics_by_role.{role}.{key}") for key, value in metrics.items()
        }
    impact_by_role = {
        role: _mean_sd_from_dict(value, f"impact_by_role.{role}")
        for role, value in impact_raw.items()
        if role in ROLE_ORDER
    }
    pdo_ref = _mean_sd_from_dict(raw["pdo_ref"], "pdo_ref") if "pdo_ref" in raw else MeanSd(NEUTRAL_PDO, 2.0)
    return RoleBenchmarks(metrics_by_role, impact_by_role, pdo_ref)


def load_benchmarks(path: str | Path) -> RoleBenchmarks:
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise BenchmarkLoadError(f"Could not read benchmarks from {path}: {exc}") from exc
    benchmarks = benchmarks_from_dict(raw)
    logger.info("Loaded benchmarks for %d roles from %s", len(benchmarks.metrics_by_role), path)
    return benchmarks


def _population_mean_sd(values: list[float]) -> MeanSd:
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return MeanSd(mean, math.sqrt(variance))


def build_benchmarks(
    players: Iterable[PlayerProfile], settings: EngineSettings | None = None
) -> RoleBenchmarks:
    """Derive a benchmark table from a player population.

    Players are classified and normalized against default priors. Roles with
    fewer than ``BENCHMARK_MIN_ROLE_SAMPLE`` players keep the league defaults,
    as do individual metrics carried by too few players.
    """
    settings = settings or DEFAULT_SETTINGS
    defaults = default_benchmarks()
    by_role: dict[str, list[dict[str, float]]] = {role: [] for role in ROLE_ORDER}
    for player in players:
        try:
            role, _ = classify_role(player)
        except InvalidPlayerError:
            logger.warning("Skipping %r while building benchmarks: unknown position", player.name)
            continue
        by_role[role].append(normalize_metrics(player, role, None, settings))

    metrics_by_role: dict[str, dict[str, MeanSd]] = {}
    for role in ROLE_ORDER:
        samples = by_role[role]
        role_metrics = dict(defaults.role_metrics(role))
        if len(samples) < BENCHMARK_MIN_ROLE_SAMPLE:
            if samples:
                logger.warning("Only %d %s samples; keeping default benchmarks", len(samples), role)
            metrics_by_role[role] = role_metrics
            continue
        for key in BENCHMARK_METRICS:
            values = [sample[key] for sample in samples if key in sample]
            if len(values) >= BENCHMARK_MIN_ROLE_SAMPLE:
                role_metrics[key] = _population_mean_sd(values)
        metrics_by_role[role] = role_metrics

    staged = RoleBenchmarks(metrics_by_role, defaults.impact_by_role, defaults.pdo_ref)
    impact_by_role: dict[str, MeanSd] = {}
    for role in ROLE_ORDER:
        samples = by_role[role]
        if len(samples) < BENCHMARK_MIN_ROLE_SAMPLE:
            impact_by_role[role] = defaults.impact(role) or MeanSd(0.0, 1.0)
            continue
        impacts = [compare_to_benchmarks(role, sample, staged).impact_score for sample in samples]
        impact_by_role[role] = _population_mean_sd(impacts)

    logger.info(
        "Built benchmarks from %d players (%s)",
        sum(len(samples) for samples in by_role.values()),
        ", ".join(f"{role}={len(by_role[role])}" for role in ROLE_ORDER),
    )
    return RoleBenchmarks(metrics_by_role, impact_by_role, defaults.pdo_ref)
