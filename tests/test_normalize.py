import pytest

from hockey_eval.benchmarks import default_benchmarks
from hockey_eval.config import DEFAULT_SETTINGS
from hockey_eval.models import PlayerProfile
from hockey_eval.normalize import normalize_metrics, per60, raw_metrics, shrink


def test_per60_handles_zero_ice_time() -> None:
    assert per60(10, 600) == pytest.approx(1.0)
    assert per60(5, 0) == 0.0


def test_shrink_blends_toward_prior_by_sample_size() -> None:
    assert shrink(1.0, 0, 2.0, 120) == pytest.approx(2.0)
    assert shrink(1.0, 120, 2.0, 120) == pytest.approx(1.5)
    assert shrink(1.0, 50, 2.0, 0) == pytest.approx(1.0)


def test_raw_metrics_uses_primary_assist_proxy() -> None:
    player = PlayerProfile(name="Proxy", position="C", assists=10, toi_minutes=600)
    assert raw_metrics(player)["prim_a60"] == pytest.approx(0.6)

    player.primary_assists = 3
    assert raw_metrics(player)["prim_a60"] == pytest.approx(0.3)


def test_optional_advanced_metrics_only_when_supplied() -> None:
    player = PlayerProfile(name="Bare", position="LW", toi_minutes=900, games_played=50)
    metrics = raw_metrics(player)
    for key in ("xgf60", "xga60", "cf_rel", "pk_ga60", "pdo", "save_pct", "gsax"):
        assert key not in metrics
    assert metrics["dz_starts"] == pytest.approx(0.5)
    assert metrics["qoc"] == pytest.approx(1.0)
    assert metrics["qot"] == pytest.approx(1.0)

    player.goals_against60 = 2.8
    player.oz_start_pct = 0.3
    metrics = raw_metrics(player)
    assert metrics["xga60"] == pytest.approx(2.8)
    assert metrics["dz_starts"] == pytest.approx(0.7)


def test_faceoff_pct_floors_attempts_at_one() -> None:
    player = PlayerProfile(name="Draw", position="C", faceoffs=0, faceoff_wins=0)
    assert raw_metrics(player)["faceoff_pct"] == 0.0
    player.faceoffs, player.faceoff_wins = 200, 110
    assert raw_metrics(player)["faceoff_pct"] == pytest.approx(55.0)


def test_goalie_save_pct_from_saves_when_not_given() -> None:
    goalie = PlayerProfile(name="Keeper", position="G", shots_against=1000, saves=910)
    assert raw_metrics(goalie)["save_pct"] == pytest.approx(0.91)


def test_normalize_shrinks_toward_role_benchmark_mean() -> None:
    player = PlayerProfile(name="Cold", position="RW", goals=0, toi_minutes=120, games_played=8)
    metrics = normalize_metrics(player, "scorer", default_benchmarks())
    # Scorer goals/60 benchmark mean is 1.2; 120 minutes against a 120-minute prior.
    assert metrics["goals60"] == pytest.approx(0.6)


def test_prior_weights_are_overridable() -> None:
    player = PlayerProfile(name="Raw", position="RW", goals=0, toi_minutes=120, games_played=8)
    settings = DEFAULT_SETTINGS.with_prior_weights(goals60=0.0)
    metrics = normalize_metrics(player, "scorer", default_benchmarks(), settings)
    assert metrics["goals60"] == 0.0
