from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .config import MISUSE_MODERATE, MISUSE_SEVERE, NEUTRAL_TIER
from .models import PlayerProfile
from .roles import oz_start, pk_share, pp_share

SKILL_KEYS: tuple[str, ...] = (
    "shooting_accuracy",
    "passing",
    "getting_open",
    "puck_handling",
    "offensive_read",
    "defensive_read",
    "positioning",
    "stickchecking",
    "shot_blocking",
    "physicality",
    "strength",
    "faceoffs",
)


@dataclass(slots=True)
class MisuseOutput:
    score: float
    severity: str
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"score": round(self.score, 4), "severity": self.severity, "notes": list(self.notes)}


def skill_vector(player: PlayerProfile) -> list[float]:
    return [player.rating(key) for key in SKILL_KEYS]


def deployment_vector(player: PlayerProfile) -> list[float]:
    return [
        pp_share(player),
        pk_share(player),
        oz_start(player),
        player.qoc_tier if player.qoc_tier is not None else NEUTRAL_TIER,
        player.qot_tier if player.qot_tier is not None else NEUTRAL_TIER,
    ]


def cosine_distance(a: list[float], b: list[float]) -> float:
    """1 - cosine similarity, the shorter vector zero-padded; clamped to [0, 2]."""
    size = max(len(a), len(b))
    a = a + [0.0] * (size - len(a))
    b = b + [0.0] * (size - len(b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 1.0
    similarity = sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)
    return max(0.0, min(2.0, 1.0 - similarity))


def severity_for(score: float) -> str:
    if score >= MISUSE_SEVERE:
        return "severe"
    if score >= MISUSE_MODERATE:
        return "moderate"
    return "minor"


def detect_misuse(player: PlayerProfile) -> MisuseOutput:
    score = cosine_distance(skill_vector(player), deployment_vector(player))
    group = player.position_group
    notes: list[str] = []
    if group == "F" and score >= MISUSE_MODERATE and pp_share(player) < 0.10 and player.rating("shooting_accuracy") > 0:
        notes.append("Give PP2 time to a shooter/playmaker.")
    if (
        group == "D"
        and score >= MISUSE_MODERATE
        and pp_share(player) < 0.05
        and player.rating("passing") + player.rating("offensive_read") > 0
    ):
        notes.append("Try PP QB reps for puck-mover.")
    if group != "G" and pk_share(player) > 0.30 and player.rating("defensive_read") < player.rating("offensive_read"):
        notes.append("Reduce PK load for offense-first player.")
    return MisuseOutput(score, severity_for(score), notes)
