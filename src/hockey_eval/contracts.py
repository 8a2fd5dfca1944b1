from __future__ import annotations

from datetime import date

from .config import DEFAULT_AGE, DEFAULT_SETTINGS, LEAGUE_MIN_CAP_HIT, MODES, EngineSettings, SalaryBand
from .models import PlayerProfile, UnknownModeError

# Per-game production model: (ppg value, per-game hits, blocks, takeaways,
# toi baseline, value per toi minute over baseline, plus-minus step, plus-minus cap, ceiling)
FORWARD_SALARY_MODEL = (8.0, 0.025, 0.0, 0.060, 12.0, 0.150, 0.030, 0.5, 13.0)
DEFENSE_SALARY_MODEL = (6.0, 0.030, 0.050, 0.080, 15.0, 0.200, 0.050, 1.0, 11.0)
GOALIE_SAVE_PCT_BASELINE = 0.895
GOALIE_VALUE_PER_SAVE_PCT_POINT = 2.5
GOALIE_SALARY_CEILING = 10.0


def player_age(player: PlayerProfile, season: int | None = None) -> int:
    if player.age is not None:
        return player.age
    if player.birth_date is not None:
        season = season if season is not None else date.today().year
        return max(0, season - player.birth_date.year)
    return DEFAULT_AGE


def expected_cap_hit(player: PlayerProfile) -> float:
    """What the player's production would typically earn, in millions."""
    if player.is_goalie:
        save_pct = player.observed_save_pct
        if save_pct is None:
            return LEAGUE_MIN_CAP_HIT
        # One point of save percentage (0.01) above baseline is worth 2.5M.
        value = LEAGUE_MIN_CAP_HIT + (save_pct - GOALIE_SAVE_PCT_BASELINE) * 100 * GOALIE_VALUE_PER_SAVE_PCT_POINT
        return max(LEAGUE_MIN_CAP_HIT, min(GOALIE_SALARY_CEILING, value))

    model = DEFENSE_SALARY_MODEL if player.position_group == "D" else FORWARD_SALARY_MODEL
    ppg_value, hit_value, block_value, takeaway_value, toi_base, toi_value, pm_step, pm_cap, ceiling = model
    games = max(1, player.games_played)
    offense = max(0.0, player.points_per_game * ppg_value)
    defense = max(
        0.0,
        player.hits / games * hit_value + player.shot_blocks / games * block_value + player.takeaways / games * takeaway_value,
    )
    ice_time = max(0.0, (player.toi_per_game - toi_base) * toi_value)
    plus_minus = max(-pm_cap, min(pm_cap, player.plus_minus * pm_step))
    return max(LEAGUE_MIN_CAP_HIT, min(ceiling, offense + defense + ice_time + plus_minus))


def contract_efficiency(impact_z: float, cap_hit: float) -> float:
    """Performance per million spent; higher is better value."""
    return max(0.0, 50.0 + 25.0 * impact_z) / max(cap_hit, 0.1)


def salary_band(cap_hit: float, mode: str, settings: EngineSettings | None = None) -> tuple[float, float]:
    settings = settings or DEFAULT_SETTINGS
    band: SalaryBand | None = settings.salary_bands.get(mode) if mode in MODES else None
    if band is None:
        raise UnknownModeError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")
    return band.bounds(cap_hit)
