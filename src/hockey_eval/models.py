from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Mapping
from uuid import uuid4

from .config import LEAGUE_MIN_CAP_HIT, NEUTRAL_PDO, Z_EPSILON

FORWARD_POSITIONS = {"C", "LW", "RW", "F"}
DEFENSE_POSITIONS = {"D", "LD", "RD"}
GOALIE_POSITIONS = {"G"}


class InvalidPlayerError(ValueError):
    """Player record is structurally unusable (no identifiable position)."""


class MissingBenchmarkError(ValueError):
    """A batch needs a role that the benchmark table does not carry."""


class UnknownModeError(ValueError):
    """Replacement search mode is not one of the recognised modes."""


class UnknownRoleError(ValueError):
    """Role name is not one of the eight evaluation roles."""


class BenchmarkLoadError(ValueError):
    """Benchmark document could not be read or has an unsupported version."""


def position_group(position: str) -> str:
    pos = (position or "").strip().upper()
    if pos in FORWARD_POSITIONS:
        return "F"
    if pos in DEFENSE_POSITIONS:
        return "D"
    if pos in GOALIE_POSITIONS:
        return "G"
    raise InvalidPlayerError(f"Unknown position '{position}'")


@dataclass(slots=True)
class ContractTerms:
    cap_hit: float = LEAGUE_MIN_CAP_HIT
    years_left: int = 0
    status: str = "signed"


@dataclass(slots=True)
class PlayerProfile:
    name: str
    position: str
    team_name: str = ""
    player_id: str = field(default_factory=lambda: uuid4().hex)
    birth_date: date | None = None
    age: int | None = None
    league_level: str = "pro"
    parent_team: str | None = None

    games_played: int = 0
    goals: int = 0
    assists: int = 0
    primary_assists: int | None = None
    shots: int = 0
    hits: int = 0
    takeaways: int = 0
    giveaways: int = 0
    shot_blocks: int = 0
    faceoffs: int = 0
    faceoff_wins: int = 0
    penalty_minutes: int = 0
    plus_minus: int = 0
    pp_goals: int = 0
    pp_assists: int = 0

    toi_minutes: float = 0.0
    pp_toi_minutes: float = 0.0
    pk_toi_minutes: float = 0.0
    oz_start_pct: float | None = None
    qoc_tier: float | None = None
    qot_tier: float | None = None

    xgf60: float | None = None
    xga60: float | None = None
    goals_against60: float | None = None
    pk_goals_against60: float | None = None
    cf_rel: float | None = None
    shots_for60: float | None = None
    pdo: float | None = None

    shots_against: int = 0
    saves: int = 0
    goals_against: int = 0
    save_pct: float | None = None
    hd_save_pct: float | None = None
    gsax: float | None = None

    ratings: dict[str, float] = field(default_factory=dict)
    contract: ContractTerms = field(default_factory=ContractTerms)

    @property
    def points(self) -> int:
        return self.goals + self.assists

    @property
    def position_group(self) -> str:
        return position_group(self.position)

    @property
    def is_goalie(self) -> bool:
        return self.position_group == "G"

    @property
    def cap_hit(self) -> float:
        return self.contract.cap_hit if self.contract.cap_hit > 0 else LEAGUE_MIN_CAP_HIT

    @property
    def toi_per_game(self) -> float:
        if self.games_played <= 0:
            return 0.0
        return self.toi_minutes / self.games_played

    @property
    def points_per_game(self) -> float:
        if self.games_played <= 0:
            return 0.0
        return self.points / self.games_played

    @property
    def observed_save_pct(self) -> float | None:
        if self.save_pct is not None:
            return self.save_pct
        if self.shots_against <= 0:
            return None
        return self.saves / self.shots_against

    def rating(self, key: str) -> float:
        return _as_float(self.ratings.get(key))


@dataclass(frozen=True, slots=True)
class MeanSd:
    mean: float
    sd: float

    def z(self, value: float) -> float:
        if not self.sd or abs(self.sd) <= Z_EPSILON:
            return 0.0
        return (value - self.mean) / self.sd


@dataclass(frozen=True, slots=True)
class RoleBenchmarks:
    """Read-only benchmark table shared by every evaluation in a batch."""

    metrics_by_role: Mapping[str, Mapping[str, MeanSd]] = field(default_factory=dict)
    impact_by_role: Mapping[str, MeanSd] = field(default_factory=dict)
    pdo_ref: MeanSd = MeanSd(NEUTRAL_PDO, 2.0)

    def __post_init__(self) -> None:
        frozen_metrics = {
            str(role): MappingProxyType(dict(metrics)) for role, metrics in self.metrics_by_role.items()
        }
        object.__setattr__(self, "metrics_by_role", MappingProxyType(frozen_metrics))
        object.__setattr__(self, "impact_by_role", MappingProxyType(dict(self.impact_by_role)))

    def has_role(self, role: str) -> bool:
        return role in self.metrics_by_role and role in self.impact_by_role

    def role_metrics(self, role: str) -> Mapping[str, MeanSd]:
        return self.metrics_by_role.get(role, {})

    def metric(self, role: str, key: str) -> MeanSd | None:
        return self.role_metrics(role).get(key)

    def impact(self, role: str) -> MeanSd | None:
        return self.impact_by_role.get(role)


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return number


def _as_int(value: Any, default: int = 0) -> int:
    return int(_as_float(value, float(default)))


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    number = _as_float(value, float("nan"))
    return None if number != number else number


def _optional_int(value: Any) -> int | None:
    number = _optional_float(value)
    return None if number is None else int(number)


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def contract_from_dict(raw: Mapping[str, Any] | None) -> ContractTerms:
    raw = raw or {}
    cap_hit = _as_float(raw.get("cap_hit"), LEAGUE_MIN_CAP_HIT)
    return ContractTerms(
        cap_hit=cap_hit if cap_hit > 0 else LEAGUE_MIN_CAP_HIT,
        years_left=_as_int(raw.get("years_left")),
        status=str(raw.get("status") or "signed"),
    )


def profile_from_dict(raw: Mapping[str, Any]) -> PlayerProfile:
    """Build a profile from a JSON-like record.

    Numeric fields that are missing or malformed fall back to zero (or None for
    optional rates). A record without a recognisable position is rejected.
    """
    if not isinstance(raw, Mapping):
        raise InvalidPlayerError("Player record must be a mapping")
    position = str(raw.get("position") or "").strip().upper()
    position_group(position)

    ratings_raw = raw.get("ratings") or {}
    ratings = {str(k): _as_float(v) for k, v in ratings_raw.items()} if isinstance(ratings_raw, Mapping) else {}
    contract_raw = raw.get("contract")
    if not isinstance(contract_raw, Mapping):
        contract_raw = {"cap_hit": raw.get("cap_hit"), "years_left": raw.get("years_left")}

    kwargs: dict[str, Any] = {}
    if raw.get("player_id") is not None:
        kwargs["player_id"] = str(raw.get("player_id"))

    return PlayerProfile(
        name=str(raw.get("name") or ""),
        position=position,
        team_name=str(raw.get("team_name") or ""),
        birth_date=_parse_date(raw.get("birth_date")),
        age=_optional_int(raw.get("age")),
        league_level=str(raw.get("league_level") or "pro"),
        parent_team=(str(raw.get("parent_team")) if raw.get("parent_team") else None),
        games_played=_as_int(raw.get("games_played")),
        goals=_as_int(raw.get("goals")),
        assists=_as_int(raw.get("assists")),
        primary_assists=_optional_int(raw.get("primary_assists")),
        shots=_as_int(raw.get("shots")),
        hits=_as_int(raw.get("hits")),
        takeaways=_as_int(raw.get("takeaways")),
        giveaways=_as_int(raw.get("giveaways")),
        shot_blocks=_as_int(raw.get("shot_blocks")),
        faceoffs=_as_int(raw.get("faceoffs")),
        faceoff_wins=_as_int(raw.get("faceoff_wins")),
        penalty_minutes=_as_int(raw.get("penalty_minutes")),
        plus_minus=_as_int(raw.get("plus_minus")),
        pp_goals=_as_int(raw.get("pp_goals")),
        pp_assists=_as_int(raw.get("pp_assists")),
        toi_minutes=_as_float(raw.get("toi_minutes")),
        pp_toi_minutes=_as_float(raw.get("pp_toi_minutes")),
        pk_toi_minutes=_as_float(raw.get("pk_toi_minutes")),
        oz_start_pct=_optional_float(raw.get("oz_start_pct")),
        qoc_tier=_optional_float(raw.get("qoc_tier")),
        qot_tier=_optional_float(raw.get("qot_tier")),
        xgf60=_optional_float(raw.get("xgf60")),
        xga60=_optional_float(raw.get("xga60")),
        goals_against60=_optional_float(raw.get("goals_against60")),
        pk_goals_against60=_optional_float(raw.get("pk_goals_against60")),
        cf_rel=_optional_float(raw.get("cf_rel")),
        shots_for60=_optional_float(raw.get("shots_for60")),
        pdo=_optional_float(raw.get("pdo")),
        shots_against=_as_int(raw.get("shots_against")),
        saves=_as_int(raw.get("saves")),
        goals_against=_as_int(raw.get("goals_against")),
        save_pct=_optional_float(raw.get("save_pct")),
        hd_save_pct=_optional_float(raw.get("hd_save_pct")),
        gsax=_optional_float(raw.get("gsax")),
        ratings=ratings,
        contract=contract_from_dict(contract_raw),
        **kwargs,
    )


def profile_summary(player: PlayerProfile) -> dict[str, Any]:
    return {
        "player_id": player.player_id,
        "name": player.name,
        "position": player.position,
        "team_name": player.team_name,
        "league_level": player.league_level,
        "age": player.age,
        "birth_date": player.birth_date.isoformat() if player.birth_date else None,
        "games_played": player.games_played,
        "points": player.points,
        "toi_per_game": round(player.toi_per_game, 2),
        "cap_hit": round(player.cap_hit, 3),
        "years_left": player.contract.years_left,
    }
