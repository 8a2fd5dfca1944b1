from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .config import ROLE_ORDER
from .models import PlayerProfile, UnknownRoleError, position_group


@dataclass(frozen=True, slots=True)
class RolePrototype:
    positions: frozenset[str]
    skill: dict[str, float]
    usage: dict[str, float]


ROLE_PROTOTYPES: dict[str, RolePrototype] = {
    "scorer": RolePrototype(
        frozenset({"F"}),
        {"shooting_accuracy": 1.0, "shooting": 0.6, "getting_open": 0.5, "offensive_read": 0.4, "passing": 0.2},
        {"pp_share": 0.8, "oz_start": 0.3},
    ),
    "playmaker": RolePrototype(
        frozenset({"F"}),
        {"passing": 1.0, "getting_open": 0.6, "offensive_read": 0.5, "puck_handling": 0.4, "shooting_accuracy": 0.2},
        {"pp_share": 0.7, "oz_start": 0.2},
    ),
    "two_way_forward": RolePrototype(
        frozenset({"F"}),
        {"defensive_read": 0.7, "positioning": 0.5, "stickchecking": 0.4, "faceoffs": 0.3, "offensive_read": 0.2},
        {"pk_share": 0.6},
    ),
    "defensive_center": RolePrototype(
        frozenset({"F"}),
        {"defensive_read": 0.8, "positioning": 0.6, "faceoffs": 0.8, "stickchecking": 0.4, "strength": 0.3},
        {"pk_share": 0.7},
    ),
    "grinder": RolePrototype(
        frozenset({"F"}),
        {"physicality": 0.8, "checking": 0.6, "strength": 0.4, "stickchecking": 0.3, "shot_blocking": 0.3},
        {"pk_share": 0.5},
    ),
    "offensive_defenseman": RolePrototype(
        frozenset({"D"}),
        {"passing": 0.8, "offensive_read": 0.6, "puck_handling": 0.5, "shooting_accuracy": 0.3},
        {"pp_share": 0.7, "oz_start": 0.2},
    ),
    "shutdown_defenseman": RolePrototype(
        frozenset({"D"}),
        {"defensive_read": 0.9, "positioning": 0.7, "stickchecking": 0.5, "shot_blocking": 0.6, "strength": 0.3},
        {"pk_share": 0.7},
    ),
    # Goalie workload is not expressed through PP/PK shares.
    "goalie": RolePrototype(
        frozenset({"G"}),
        {
            "reflexes": 0.6,
            "goalie_positioning": 0.6,
            "recovery": 0.4,
            "glove": 0.3,
            "blocker": 0.3,
            "goalie_technique": 0.3,
        },
        {},
    ),
}

# Roles that can stand in for one another in a replacement search.
ROLE_FAMILIES: dict[str, str] = {
    "scorer": "scoring_forward",
    "playmaker": "scoring_forward",
    "two_way_forward": "checking_forward",
    "defensive_center": "checking_forward",
    "grinder": "checking_forward",
    "offensive_defenseman": "offensive_defense",
    "shutdown_defenseman": "defensive_defense",
    "goalie": "goalie",
}


def pp_share(player: PlayerProfile) -> float:
    if player.toi_minutes <= 0:
        return 0.0
    return max(0.0, player.pp_toi_minutes) / player.toi_minutes


def pk_share(player: PlayerProfile) -> float:
    if player.toi_minutes <= 0:
        return 0.0
    return max(0.0, player.pk_toi_minutes) / player.toi_minutes


def oz_start(player: PlayerProfile) -> float:
    return player.oz_start_pct if player.oz_start_pct is not None else 0.5


def _speed(player: PlayerProfile) -> float:
    return player.rating("speed") or player.rating("skating")


USAGE_FEATURES: dict[str, Callable[[PlayerProfile], float]] = {
    "pp_share": pp_share,
    "pk_share": pk_share,
    "oz_start": oz_start,
}


def feature(player: PlayerProfile, name: str) -> float:
    if name in USAGE_FEATURES:
        return USAGE_FEATURES[name](player)
    if name == "speed":
        return _speed(player)
    return player.rating(name)


def _dot(weights: dict[str, float], player: PlayerProfile) -> float:
    return sum(weight * feature(player, name) for name, weight in weights.items())


def check_role(role: str) -> str:
    if role not in ROLE_ORDER:
        raise UnknownRoleError(f"Unknown role '{role}'. Expected one of: {', '.join(ROLE_ORDER)}")
    return role


def role_family(role: str) -> str:
    return ROLE_FAMILIES.get(role, role)


def classify_role(player: PlayerProfile) -> tuple[str, dict[str, float]]:
    """Pick the role whose skill + usage prototype best matches the player.

    Roles not allowed for the player's position group score ``-inf``. Equal
    logits resolve to the earliest role in ``ROLE_ORDER``.
    """
    group = position_group(player.position)
    logits: dict[str, float] = {}
    for role in ROLE_ORDER:
        proto = ROLE_PROTOTYPES[role]
        if group in proto.positions:
            logits[role] = _dot(proto.skill, player) + _dot(proto.usage, player)
        else:
            logits[role] = float("-inf")

    best = ROLE_ORDER[0]
    best_value = float("-inf")
    for role in ROLE_ORDER:
        if logits[role] > best_value:
            best, best_value = role, logits[role]
    return best, logits
