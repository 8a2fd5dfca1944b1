from __future__ import annotations

import math

from .config import DEFAULT_PRIOR_MEANS, DEFAULT_SETTINGS, NEUTRAL_TIER, EngineSettings
from .models import PlayerProfile, RoleBenchmarks

# Metric -> which sample size backs its shrinkage.
SAMPLE_SOURCES: dict[str, str] = {
    "goals60": "toi",
    "prim_a60": "toi",
    "xgf60": "toi",
    "xga60": "toi",
    "shots60": "toi",
    "takeaways60": "toi",
    "blocks60": "toi",
    "giveaways60": "toi",
    "penalties60": "toi",
    "save_pct": "toi",
    "hd_save_pct": "toi",
    "pp_points60": "pp_toi",
    "faceoff_pct": "faceoffs",
    "pdo": "games",
    "points_per_game": "games",
}


def per60(count: float, toi_minutes: float) -> float:
    if toi_minutes <= 0:
        return 0.0
    return 60.0 * count / toi_minutes


def shrink(observed: float, n: float, prior: float, prior_weight: float) -> float:
    """Blend an observed rate toward a prior, weighted by sample size."""
    n = max(0.0, n)
    prior_weight = max(0.0, prior_weight)
    if n + prior_weight <= 0:
        return observed
    return (observed * n + prior * prior_weight) / (n + prior_weight)


def _primary_assists(player: PlayerProfile) -> int:
    if player.primary_assists is not None:
        return max(0, player.primary_assists)
    # Rough split when the source has no primary/secondary breakdown.
    return max(0, player.assists - math.floor(player.assists * 0.4))


def raw_metrics(player: PlayerProfile) -> dict[str, float]:
    """Per-60 rates and context values before shrinkage.

    Optional advanced rates only appear when the record supplies them.
    """
    toi = max(0.0, player.toi_minutes)
    metrics: dict[str, float] = {
        "goals60": per60(player.goals, toi),
        "prim_a60": per60(_primary_assists(player), toi),
        "points_per_game": player.points_per_game,
        "shots60": player.shots_for60 if player.shots_for60 is not None else per60(player.shots, toi),
        "takeaways60": per60(player.takeaways, toi),
        "blocks60": per60(player.shot_blocks, toi),
        "giveaways60": per60(player.giveaways, toi),
        "penalties60": per60(player.penalty_minutes, toi),
        "faceoff_pct": 100.0 * player.faceoff_wins / max(1, player.faceoffs),
        "pp_points60": per60(player.pp_goals + player.pp_assists, player.pp_toi_minutes),
        "dz_starts": min(1.0, max(0.0, 1.0 - player.oz_start_pct)) if player.oz_start_pct is not None else 0.5,
        "qoc": player.qoc_tier if player.qoc_tier is not None else NEUTRAL_TIER,
        "qot": player.qot_tier if player.qot_tier is not None else NEUTRAL_TIER,
    }
    if "shooting_accuracy" in player.ratings:
        metrics["shooting_accuracy"] = player.rating("shooting_accuracy")

    xga = player.xga60 if player.xga60 is not None else player.goals_against60
    optional = {
        "xgf60": player.xgf60,
        "xga60": xga,
        "cf_rel": player.cf_rel,
        "pk_ga60": player.pk_goals_against60,
        "pdo": player.pdo,
        "save_pct": player.observed_save_pct,
        "hd_save_pct": player.hd_save_pct,
        "gsax": player.gsax,
    }
    for key, value in optional.items():
        if value is not None:
            metrics[key] = float(value)
    return metrics


def _sample_size(player: PlayerProfile, source: str) -> float:
    if source == "toi":
        return max(0.0, player.toi_minutes)
    if source == "pp_toi":
        return max(0.0, player.pp_toi_minutes)
    if source == "faceoffs":
        return float(max(0, player.faceoffs))
    return float(max(0, player.games_played))


def prior_mean(role: str, metric: str, benchmarks: RoleBenchmarks | None) -> float:
    if benchmarks is not None:
        if metric == "pdo":
            role_pdo = benchmarks.metric(role, "pdo")
            return role_pdo.mean if role_pdo is not None else benchmarks.pdo_ref.mean
        ref = benchmarks.metric(role, metric)
        if ref is not None:
            return ref.mean
    return DEFAULT_PRIOR_MEANS.get(metric, 0.0)


def normalize_metrics(
    player: PlayerProfile,
    role: str,
    benchmarks: RoleBenchmarks | None = None,
    settings: EngineSettings | None = None,
) -> dict[str, float]:
    settings = settings or DEFAULT_SETTINGS
    metrics = raw_metrics(player)
    for key, source in SAMPLE_SOURCES.items():
        if key not in metrics:
            continue
        metrics[key] = shrink(
            metrics[key],
            _sample_size(player, source),
            prior_mean(role, key, benchmarks),
            settings.prior_weight(key),
        )
    return metrics
