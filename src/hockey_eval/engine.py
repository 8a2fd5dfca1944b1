from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable

from .benchmarks import BundleScores, MetricDriver, compare_to_benchmarks, performance_label, trade_tier
from .config import DEFAULT_SETTINGS, EngineSettings
from .confidence import ConfidenceOutput, estimate_confidence
from .misuse import MisuseOutput, detect_misuse
from .models import MissingBenchmarkError, PlayerProfile, RoleBenchmarks, profile_summary
from .normalize import normalize_metrics
from .recommend import recommend
from .roles import check_role, classify_role

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Evaluation:
    player: PlayerProfile
    role: str
    logits: dict[str, float]
    metrics: dict[str, float]
    bundles: BundleScores
    drivers: list[MetricDriver]
    impact_score: float
    impact_z: float
    replacement_delta: float
    misuse: MisuseOutput
    confidence: ConfidenceOutput
    recommendation: str
    reasons: list[str] = field(default_factory=list)
    performance: str = "average"
    tier: str = "Solid"

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": profile_summary(self.player),
            "role": self.role,
            "logits": {role: (round(value, 4) if value != float("-inf") else None) for role, value in self.logits.items()},
            "metrics": {key: round(value, 4) for key, value in self.metrics.items()},
            "bundles": self.bundles.to_dict(),
            "drivers": [driver.to_dict() for driver in self.drivers],
            "impact_score": round(self.impact_score, 4),
            "impact_z": round(self.impact_z, 4),
            "replacement_delta": round(self.replacement_delta, 4),
            "misuse": self.misuse.to_dict(),
            "confidence": self.confidence.to_dict(),
            "recommendation": self.recommendation,
            "reasons": list(self.reasons),
            "performance": self.performance,
            "tier": self.tier,
        }


@dataclass(slots=True)
class WeakLink:
    evaluation: Evaluation
    weakness_type: str
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluation": self.evaluation.to_dict(),
            "weakness_type": self.weakness_type,
            "summary": self.summary,
        }


def evaluate_player(
    player: PlayerProfile,
    benchmarks: RoleBenchmarks,
    settings: EngineSettings | None = None,
    *,
    role: str | None = None,
) -> Evaluation:
    """Run one player through the full pipeline.

    A role missing from the benchmark table degrades to neutral z-scores.
    ``role`` overrides the classified role and must be one of ``ROLE_ORDER``.
    """
    settings = settings or DEFAULT_SETTINGS
    classified, logits = classify_role(player)
    role = check_role(role) if role is not None else classified
    metrics = normalize_metrics(player, role, benchmarks, settings)
    impact = compare_to_benchmarks(role, metrics, benchmarks)
    misuse = detect_misuse(player)
    confidence = estimate_confidence(player, metrics, benchmarks.pdo_ref, settings)
    decision = recommend(player.is_goalie, impact, misuse, confidence)
    label = performance_label(impact.impact_z)
    return Evaluation(
        player=player,
        role=role,
        logits=logits,
        metrics=metrics,
        bundles=impact.bundles,
        drivers=impact.drivers,
        impact_score=impact.impact_score,
        impact_z=impact.impact_z,
        replacement_delta=impact.replacement_delta,
        misuse=misuse,
        confidence=confidence,
        recommendation=decision.action,
        reasons=decision.reasons,
        performance=label,
        tier=trade_tier(label, player.toi_per_game),
    )


def evaluate_roster(
    players: Iterable[PlayerProfile],
    benchmarks: RoleBenchmarks,
    settings: EngineSettings | None = None,
    *,
    max_workers: int | None = None,
) -> list[Evaluation]:
    """Evaluate a batch against one shared table; output order matches input.

    Every role is checked against the table before any evaluation starts.
    """
    players = list(players)
    roles = [classify_role(player)[0] for player in players]
    missing = sorted({role for role in roles if not benchmarks.has_role(role)})
    if missing:
        raise MissingBenchmarkError(f"Benchmark table has no entry for role(s): {', '.join(missing)}")

    if max_workers and max_workers > 1 and len(players) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            evaluations = list(
                pool.map(lambda pair: evaluate_player(pair[0], benchmarks, settings, role=pair[1]), zip(players, roles))
            )
    else:
        evaluations = [evaluate_player(player, benchmarks, settings, role=role) for player, role in zip(players, roles)]
    logger.debug("Evaluated %d players", len(evaluations))
    return evaluations


def weak_links(evaluations: Iterable[Evaluation], limit: int = 5) -> list[WeakLink]:
    """Players flagged for replacement or reassignment, worst first.

    Impact problems rank ahead of misuse; within each group the lowest
    replacement delta comes first.
    """
    links: list[WeakLink] = []
    for evaluation in evaluations:
        if evaluation.recommendation == "replace":
            key_issues = ", ".join(evaluation.reasons[:2])
            summary = f"Below replacement level in {evaluation.role} role. Key issues: {key_issues}"
            links.append(WeakLink(evaluation, "impact", summary))
        elif evaluation.recommendation == "reassign":
            notes = "; ".join(evaluation.misuse.notes) or f"misuse {evaluation.misuse.severity}"
            links.append(WeakLink(evaluation, "misuse", f"Role adjustment needed: {notes}"))
    links.sort(key=lambda link: (link.weakness_type != "impact", link.evaluation.replacement_delta))
    return links[: max(0, limit)]
