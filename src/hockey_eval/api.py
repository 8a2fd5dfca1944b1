from __future__ import annotations

import logging
import os
from threading import Lock
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .benchmarks import benchmarks_to_dict, build_benchmarks, default_benchmarks, load_benchmarks
from .config import DEFAULT_SETTINGS, MODES
from .engine import evaluate_player, evaluate_roster
from .models import (
    BenchmarkLoadError,
    InvalidPlayerError,
    MissingBenchmarkError,
    PlayerProfile,
    RoleBenchmarks,
    UnknownModeError,
    UnknownRoleError,
    profile_from_dict,
)
from .replacement import find_replacement_candidates, plan_roster_moves
from .roles import classify_role

logger = logging.getLogger(__name__)

BENCHMARKS_ENV = "HOCKEY_EVAL_BENCHMARKS"

T = TypeVar("T")


class PlayerPayload(BaseModel):
    player: dict[str, Any]


class PoolPayload(BaseModel):
    players: list[dict[str, Any]] = []
    rebuild_benchmarks: bool = False


class RosterPayload(BaseModel):
    players: list[dict[str, Any]] = []
    max_workers: int | None = None


class ReplacementPayload(BaseModel):
    player: dict[str, Any]
    mode: str = "win-now"
    role: str | None = None
    pool: list[dict[str, Any]] | None = None
    season: int | None = None


class RosterMovesPayload(BaseModel):
    players: list[dict[str, Any]] = []
    mode: str = "win-now"
    pool: list[dict[str, Any]] | None = None
    season: int | None = None
    limit: int = 5


class EvalService:
    def __init__(self, benchmarks_path: str | None = None) -> None:
        self.settings = DEFAULT_SETTINGS
        self.benchmarks_source = "defaults"
        self.benchmarks = self._load_benchmarks(benchmarks_path or os.environ.get(BENCHMARKS_ENV))
        self.pool: list[PlayerProfile] = []
        self._lock = Lock()

    def _load_benchmarks(self, path: str | None) -> RoleBenchmarks:
        if not path:
            return default_benchmarks()
        try:
            benchmarks = load_benchmarks(path)
        except BenchmarkLoadError as exc:
            logger.warning("Falling back to default benchmarks: %s", exc)
            return default_benchmarks()
        self.benchmarks_source = str(path)
        return benchmarks

    def parse_players(self, rows: list[dict[str, Any]]) -> list[PlayerProfile]:
        players: list[PlayerProfile] = []
        for index, row in enumerate(rows):
            try:
                players.append(profile_from_dict(row))
            except InvalidPlayerError as exc:
                raise InvalidPlayerError(f"players[{index}]: {exc}") from exc
        return players

    def set_pool(self, rows: list[dict[str, Any]], rebuild_benchmarks: bool = False) -> dict[str, Any]:
        self.pool = self.parse_players(rows)
        if rebuild_benchmarks:
            self.benchmarks = build_benchmarks(self.pool, self.settings)
            self.benchmarks_source = "pool"
        return {"pool_size": len(self.pool), "benchmarks_source": self.benchmarks_source}

    def pool_for(self, rows: list[dict[str, Any]] | None) -> list[PlayerProfile]:
        return self.parse_players(rows) if rows is not None else self.pool


def _guarded(action: Callable[[], T]) -> T:
    try:
        return action()
    except (InvalidPlayerError, UnknownModeError, UnknownRoleError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MissingBenchmarkError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


service = EvalService()
app = FastAPI(title="Hockey Eval API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/benchmarks")
def benchmarks() -> dict[str, Any]:
    with service._lock:
        payload = benchmarks_to_dict(service.benchmarks)
        payload["source"] = service.benchmarks_source
        return payload


@app.post("/api/pool")
def set_pool(payload: PoolPayload) -> dict[str, Any]:
    with service._lock:
        return _guarded(lambda: service.set_pool(payload.players, payload.rebuild_benchmarks))


@app.post("/api/classify")
def classify(payload: PlayerPayload) -> dict[str, Any]:
    def run() -> dict[str, Any]:
        role, logits = classify_role(profile_from_dict(payload.player))
        return {
            "role": role,
            "logits": {name: (value if value != float("-inf") else None) for name, value in logits.items()},
        }

    return _guarded(run)


@app.post("/api/evaluate")
def evaluate(payload: PlayerPayload) -> dict[str, Any]:
    with service._lock:
        return _guarded(
            lambda: evaluate_player(profile_from_dict(payload.player), service.benchmarks, service.settings).to_dict()
        )


@app.post("/api/roster/evaluate")
def evaluate_roster_route(payload: RosterPayload) -> dict[str, Any]:
    with service._lock:
        evaluations = _guarded(
            lambda: evaluate_roster(
                service.parse_players(payload.players),
                service.benchmarks,
                service.settings,
                max_workers=payload.max_workers,
            )
        )
        return {"evaluations": [evaluation.to_dict() for evaluation in evaluations]}


@app.post("/api/replacements")
def replacements(payload: ReplacementPayload) -> dict[str, Any]:
    mode = payload.mode.lower().strip()
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode '{payload.mode}'")
    with service._lock:

        def run() -> dict[str, Any]:
            weak = profile_from_dict(payload.player)
            role = payload.role or classify_role(weak)[0]
            candidates = find_replacement_candidates(
                weak,
                role,
                mode,
                service.benchmarks,
                service.pool_for(payload.pool),
                settings=service.settings,
                season=payload.season,
            )
            return {"role": role, "mode": mode, "candidates": [candidate.to_dict() for candidate in candidates]}

        return _guarded(run)


@app.post("/api/roster/moves")
def roster_moves(payload: RosterMovesPayload) -> dict[str, Any]:
    mode = payload.mode.lower().strip()
    with service._lock:

        def run() -> dict[str, Any]:
            moves = plan_roster_moves(
                service.parse_players(payload.players),
                service.benchmarks,
                service.pool_for(payload.pool),
                mode,
                settings=service.settings,
                season=payload.season,
                limit=payload.limit,
            )
            return {"mode": mode, "moves": [move.to_dict() for move in moves]}

        return _guarded(run)
