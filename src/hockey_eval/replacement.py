"""Replacement search: filter the league pool, benchmark each candidate, gate
on trade realism, then score and rank. Falls back to the weak player's own
development affiliate when nothing in the top league survives."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .config import (
    DEFAULT_SETTINGS,
    DEVELOPMENT_LEAGUE_LEVELS,
    DISQUALIFYING_PERFORMANCE,
    MAX_CANDIDATES,
    MAX_PROSPECTS,
    MODES,
    REBUILD_YOUTH_PIVOT_AGE,
    REBUILD_YOUTH_POINTS_PER_YEAR,
    TIER_RANKS,
    TIER_UPGRADE_MIN_AGE_GAP,
    TOP_LEAGUE_LEVELS,
    WIN_NOW_PROSPECT_MAX_AGE,
    WIN_NOW_PROSPECT_MAX_CAP_HIT,
    EngineSettings,
)
from .contracts import contract_efficiency, expected_cap_hit, player_age, salary_band
from .engine import Evaluation, WeakLink, evaluate_player, evaluate_roster, weak_links
from .models import (
    InvalidPlayerError,
    MissingBenchmarkError,
    PlayerProfile,
    RoleBenchmarks,
    UnknownModeError,
    profile_summary,
)
from .roles import check_role, role_family

logger = logging.getLogger(__name__)

SAME_SALARY = "same-salary upgrade"
CAP_EFFICIENCY = "cap-efficiency play"
WORTHWHILE = "worthwhile upgrade"
EFFICIENCY = "efficiency play"
BARGAIN_SWAP = "overpaid-for-bargain swap"


@dataclass(slots=True)
class CandidateScore:
    player: PlayerProfile
    score: float
    tier: str
    realistic: bool = True
    evaluation: Evaluation | None = None
    improvement: float = 0.0
    trade_types: list[str] = field(default_factory=list)
    source: str = "trade"

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": profile_summary(self.player),
            "score": round(self.score, 2),
            "tier": self.tier,
            "realistic": self.realistic,
            "improvement": round(self.improvement, 4),
            "trade_types": list(self.trade_types),
            "source": self.source,
            "evaluation": self.evaluation.to_dict() if self.evaluation else None,
        }


@dataclass(slots=True)
class RosterMove:
    weak_link: WeakLink
    candidates: list[CandidateScore] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = self.weak_link.to_dict()
        payload["candidates"] = [candidate.to_dict() for candidate in self.candidates]
        return payload


def compatible_positions(position: str) -> set[str]:
    pos = (position or "").strip().upper()
    if pos == "G":
        return {"G"}
    if pos in {"D", "LD", "RD"}:
        return {"D", "LD", "RD"}
    if pos == "C":
        return {"C", "F"}
    if pos in {"LW", "RW"}:
        return {pos, "F"}
    if pos == "F":
        return {"F", "C", "LW", "RW"}
    raise InvalidPlayerError(f"Unknown position '{position}'")


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        raise UnknownModeError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")


def realistic_trade(weak_tier: str, candidate_tier: str, weak_age: int, candidate_age: int) -> bool:
    """Lateral or downward moves always; one tier up only for an older player.

    An Elite player is never realistic for anyone below Elite.
    """
    if candidate_tier == "Elite" and weak_tier != "Elite":
        return False
    gap = TIER_RANKS[candidate_tier] - TIER_RANKS[weak_tier]
    if gap <= 0:
        return True
    return gap == 1 and candidate_age - weak_age >= TIER_UPGRADE_MIN_AGE_GAP


def _efficiency_gain(weak_efficiency: float, candidate_efficiency: float) -> float:
    if weak_efficiency > 0:
        return (candidate_efficiency - weak_efficiency) / weak_efficiency
    return 1.0 if candidate_efficiency > 0 else 0.0


def _trade_types(improvement: float, cap_delta: float, gain: float, bargain_swap: bool) -> list[str]:
    types: list[str] = []
    if abs(cap_delta) < 0.5 and improvement > 0.25:
        types.append(SAME_SALARY)
    if improvement >= -0.2 and cap_delta < -1.0:
        types.append(CAP_EFFICIENCY)
    if improvement > 0.5 and cap_delta < 2.0:
        types.append(WORTHWHILE)
    if gain > 0.3:
        types.append(EFFICIENCY)
    if bargain_swap:
        types.append(BARGAIN_SWAP)
    return types


def _base_score(evaluation: Evaluation) -> float:
    score = 100.0 * evaluation.impact_z
    if evaluation.performance == "elite":
        score += 50.0
    elif evaluation.performance == "above-average":
        score += 25.0
    return score


def _win_now_score(score: float, age: int, improvement: float, cap_delta: float, gain: float, types: list[str]) -> float | None:
    if improvement <= 0 or not {SAME_SALARY, WORTHWHILE, EFFICIENCY, BARGAIN_SWAP} & set(types):
        return None
    if age < 23:
        score -= 5.0
    if SAME_SALARY in types:
        score += 25.0
    if improvement > 0.75 and cap_delta < 1.0:
        score += 20.0
    if gain > 0.4:
        score += 15.0
    if BARGAIN_SWAP in types:
        score += 30.0
    return score


def _rebuild_score(
    score: float, age: int, improvement: float, cap_delta: float, gain: float, types: list[str], prospect: bool
) -> float | None:
    young_and_close = age < 26 and improvement >= -0.3
    if not ({CAP_EFFICIENCY, EFFICIENCY, BARGAIN_SWAP} & set(types) or young_and_close):
        return None
    score += REBUILD_YOUTH_POINTS_PER_YEAR * max(0, REBUILD_YOUTH_PIVOT_AGE - age)
    if cap_delta < -2.0:
        score += 15.0
    if gain > 0.5:
        score += 20.0
    if prospect:
        score += 20.0
    if BARGAIN_SWAP in types:
        score += 30.0
    return score


def search_candidates(
    weak: PlayerProfile,
    role: str,
    mode: str,
    benchmarks: RoleBenchmarks,
    pool: Iterable[PlayerProfile],
    *,
    settings: EngineSettings | None = None,
    season: int | None = None,
) -> list[CandidateScore]:
    settings = settings or DEFAULT_SETTINGS
    _check_mode(mode)
    check_role(role)
    if not benchmarks.has_role(role):
        raise MissingBenchmarkError(f"Benchmark table has no entry for role: {role}")
    low, high = salary_band(weak.cap_hit, mode, settings)
    allowed = compatible_positions(weak.position)
    family = role_family(role)

    weak_eval = evaluate_player(weak, benchmarks, settings, role=role)
    weak_age = player_age(weak, season)
    weak_tier = weak_eval.tier
    weak_efficiency = contract_efficiency(weak_eval.impact_z, weak.cap_hit)
    weak_overpaid = weak.cap_hit > 1.2 * expected_cap_hit(weak)

    results: list[CandidateScore] = []
    for candidate in pool:
        if candidate.player_id == weak.player_id or (weak.team_name and candidate.team_name == weak.team_name):
            continue
        if candidate.league_level not in TOP_LEAGUE_LEVELS:
            continue
        if candidate.position.strip().upper() not in allowed:
            continue
        if not low <= candidate.cap_hit <= high:
            logger.debug("%s outside %s band %.2f-%.2f (%.2f)", candidate.name, mode, low, high, candidate.cap_hit)
            continue

        evaluation = evaluate_player(candidate, benchmarks, settings)
        if not benchmarks.has_role(evaluation.role):
            logger.debug("%s skipped: no benchmarks for %s", candidate.name, evaluation.role)
            continue
        if evaluation.performance in DISQUALIFYING_PERFORMANCE:
            logger.debug("%s rejected: %s for %s", candidate.name, evaluation.performance, evaluation.role)
            continue
        if role_family(evaluation.role) != family:
            logger.debug("%s rejected: role %s does not cover %s", candidate.name, evaluation.role, role)
            continue

        age = player_age(candidate, season)
        prospect = (
            evaluation.performance == "elite"
            and age < WIN_NOW_PROSPECT_MAX_AGE
            and candidate.cap_hit < WIN_NOW_PROSPECT_MAX_CAP_HIT
        )
        if prospect and mode == "win-now":
            logger.debug("%s rejected: untouchable prospect", candidate.name)
            continue

        tier = evaluation.tier
        if not realistic_trade(weak_tier, tier, weak_age, age):
            logger.debug("%s rejected: %s for %s is not a realistic trade", candidate.name, tier, weak_tier)
            continue

        improvement = evaluation.impact_z - weak_eval.impact_z
        cap_delta = candidate.cap_hit - weak.cap_hit
        gain = _efficiency_gain(weak_efficiency, contract_efficiency(evaluation.impact_z, candidate.cap_hit))
        bargain_swap = weak_overpaid and candidate.cap_hit < 0.8 * expected_cap_hit(candidate) and improvement >= -0.3
        types = _trade_types(improvement, cap_delta, gain, bargain_swap)

        base = _base_score(evaluation)
        if mode == "win-now":
            score = _win_now_score(base, age, improvement, cap_delta, gain, types)
        else:
            score = _rebuild_score(base, age, improvement, cap_delta, gain, types, prospect)
        if score is None:
            logger.debug("%s rejected: no %s trade case (improvement %.2f)", candidate.name, mode, improvement)
            continue
        results.append(CandidateScore(candidate, score, tier, True, evaluation, improvement, types))

    results.sort(key=lambda c: (-c.score, c.player.name))
    logger.info("%s search for %s (%s): %d candidates", mode, weak.name, role, len(results))
    return results[:MAX_CANDIDATES]


def find_development_prospects(
    weak: PlayerProfile,
    pool: Iterable[PlayerProfile],
    *,
    benchmarks: RoleBenchmarks | None = None,
    settings: EngineSettings | None = None,
    season: int | None = None,
) -> list[CandidateScore]:
    """Call-up options from the weak player's own development affiliate."""
    allowed = compatible_positions(weak.position)
    prospects: list[CandidateScore] = []
    for candidate in pool:
        if candidate.league_level not in DEVELOPMENT_LEAGUE_LEVELS:
            continue
        if not weak.team_name or candidate.parent_team != weak.team_name:
            continue
        if candidate.position.strip().upper() not in allowed:
            continue
        age = player_age(candidate, season)
        score = 50.0
        if age < 23:
            score += 20.0
        elif age < 26:
            score += 10.0
        elif age > 28:
            score -= 10.0
        if candidate.cap_hit < 1.0:
            score += 5.0
        evaluation = evaluate_player(candidate, benchmarks, settings) if benchmarks is not None else None
        tier = evaluation.tier if evaluation else "Replacement"
        prospects.append(CandidateScore(candidate, score, tier, True, evaluation, source="development"))
    prospects.sort(key=lambda c: (-c.score, c.player.name))
    return prospects[:MAX_PROSPECTS]


def find_replacement_candidates(
    weak: PlayerProfile,
    role: str,
    mode: str,
    benchmarks: RoleBenchmarks,
    pool: Iterable[PlayerProfile],
    *,
    settings: EngineSettings | None = None,
    season: int | None = None,
) -> list[CandidateScore]:
    pool = list(pool)
    found = search_candidates(weak, role, mode, benchmarks, pool, settings=settings, season=season)
    if found:
        return found
    logger.warning("No %s trade targets for %s; checking development affiliate", mode, weak.name)
    return find_development_prospects(weak, pool, benchmarks=benchmarks, settings=settings, season=season)


def plan_roster_moves(
    roster: Iterable[PlayerProfile],
    benchmarks: RoleBenchmarks,
    pool: Iterable[PlayerProfile],
    mode: str,
    *,
    settings: EngineSettings | None = None,
    season: int | None = None,
    limit: int = 5,
    max_workers: int | None = None,
) -> list[RosterMove]:
    """Weak links of a roster, with replacement options for each ``replace``."""
    _check_mode(mode)
    pool = list(pool)
    evaluations = evaluate_roster(roster, benchmarks, settings, max_workers=max_workers)
    moves: list[RosterMove] = []
    for link in weak_links(evaluations, limit):
        candidates: list[CandidateScore] = []
        if link.evaluation.recommendation == "replace":
            evaluation = link.evaluation
            candidates = find_replacement_candidates(
                evaluation.player, evaluation.role, mode, benchmarks, pool, settings=settings, season=season
            )
        moves.append(RosterMove(link, candidates))
    return moves
