from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .config import DEFAULT_SETTINGS, PDO_LUCK_PENALTY_MAX, PDO_LUCK_PENALTY_PER_Z, EngineSettings
from .models import MeanSd, PlayerProfile


@dataclass(slots=True)
class ConfidenceOutput:
    confidence: float
    volatility: float

    def to_dict(self) -> dict[str, Any]:
        return {"confidence": round(self.confidence, 4), "volatility": round(self.volatility, 4)}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def estimate_confidence(
    player: PlayerProfile,
    metrics: Mapping[str, float],
    pdo_ref: MeanSd,
    settings: EngineSettings | None = None,
) -> ConfidenceOutput:
    """Confidence grows with ice time and shrinks when PDO sits far from league norm."""
    settings = settings or DEFAULT_SETTINGS
    toi = max(0.0, player.toi_minutes)
    base = _clamp(math.sqrt(toi / max(1.0, settings.min_toi_for_confidence)), 0.0, 1.0)
    penalty = 0.0
    if "pdo" in metrics:
        penalty = _clamp(abs(pdo_ref.z(metrics["pdo"])) * PDO_LUCK_PENALTY_PER_Z, 0.0, PDO_LUCK_PENALTY_MAX)
    confidence = _clamp(base * (1.0 - penalty), 0.0, 1.0)
    return ConfidenceOutput(confidence, 1.0 - confidence)
