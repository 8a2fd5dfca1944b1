import json

import pytest

from hockey_eval.benchmarks import (
    benchmarks_from_dict,
    benchmarks_to_dict,
    build_benchmarks,
    compare_to_benchmarks,
    default_benchmarks,
    load_benchmarks,
    performance_label,
    trade_tier,
)
from hockey_eval.config import ROLE_ORDER
from hockey_eval.models import BenchmarkLoadError, MeanSd, PlayerProfile, RoleBenchmarks, UnknownRoleError
from hockey_eval.normalize import normalize_metrics


def _ppg_table() -> RoleBenchmarks:
    return RoleBenchmarks(
        metrics_by_role={"scorer": {"points_per_game": MeanSd(0.60, 0.20)}},
        impact_by_role={"scorer": MeanSd(0.0, 0.5)},
    )


def test_zero_spread_gives_zero_z() -> None:
    assert MeanSd(5.0, 0.0).z(10.0) == 0.0
    assert MeanSd(5.0, 1e-9).z(10.0) == 0.0


def test_points_per_game_anchors_offense() -> None:
    impact = compare_to_benchmarks("scorer", {"points_per_game": 0.4}, _ppg_table())
    assert impact.bundles.offense == pytest.approx(-1.0)
    assert impact.bundles.defense == pytest.approx(0.0)
    assert impact.impact_score == pytest.approx(-0.65)
    assert impact.impact_z == pytest.approx(-1.3)
    threshold = -0.67448975 * 0.5
    assert impact.replacement_delta == pytest.approx((-0.65 - threshold) / 0.5)
    assert impact.drivers[0].name == "points/game"


def test_bundle_is_fixed_weighted_sum() -> None:
    table = RoleBenchmarks(
        metrics_by_role={"scorer": {"goals60": MeanSd(1.2, 0.4), "penalties60": MeanSd(0.6, 0.4)}},
        impact_by_role={"scorer": MeanSd(0.0, 1.0)},
    )
    impact = compare_to_benchmarks("scorer", {"goals60": 0.8, "penalties60": 1.0}, table)
    # Metrics absent from the table or the record contribute nothing.
    assert impact.bundles.offense == pytest.approx(-0.5)
    assert impact.bundles.composure == pytest.approx(-0.6)
    assert impact.impact_score == pytest.approx(0.65 * -0.5 + 0.10 * -0.6)


def test_missing_role_is_neutral() -> None:
    impact = compare_to_benchmarks("grinder", {"goals60": 3.0, "points_per_game": 1.0}, _ppg_table())
    assert impact.impact_z == 0.0
    assert impact.replacement_delta == 0.0
    assert impact.drivers == []


def test_unknown_role_is_rejected() -> None:
    with pytest.raises(UnknownRoleError):
        compare_to_benchmarks("enforcer", {"points_per_game": 0.4}, _ppg_table())


def test_context_nudges_are_capped() -> None:
    table = RoleBenchmarks(impact_by_role={"scorer": MeanSd(0.0, 1.0)})
    impact = compare_to_benchmarks("scorer", {"qoc": 3.0, "qot": 1.0, "dz_starts": 1.0}, table)
    assert impact.bundles.defense == pytest.approx(0.06 + 0.10)

    impact = compare_to_benchmarks("scorer", {"qoc": 50.0, "qot": -20.0, "dz_starts": 0.5}, table)
    assert impact.bundles.defense == pytest.approx(0.15)
    assert impact.bundles.offense == pytest.approx(0.10)


def test_goalie_uses_shot_stopping_only() -> None:
    impact = compare_to_benchmarks("goalie", {"save_pct": 0.925, "qoc": 5.0}, default_benchmarks())
    assert impact.bundles.defense == pytest.approx(0.65)
    assert impact.bundles.offense == 0.0
    assert impact.impact_score == pytest.approx(0.65)


def test_pdo_luck_penalizes_both_directions() -> None:
    table = RoleBenchmarks(
        metrics_by_role={"grinder": {"penalties60": MeanSd(0.6, 0.4)}},
        impact_by_role={"grinder": MeanSd(0.0, 1.0)},
    )
    hot = compare_to_benchmarks("grinder", {"penalties60": 0.6, "pdo": 104.0}, table)
    cold = compare_to_benchmarks("grinder", {"penalties60": 0.6, "pdo": 96.0}, table)
    assert hot.bundles.composure == pytest.approx(cold.bundles.composure)
    assert hot.bundles.composure < 0


def test_performance_labels() -> None:
    assert performance_label(0.8) == "elite"
    assert performance_label(0.0) == "above-average"
    assert performance_label(-0.5) == "average"
    assert performance_label(-1.0) == "below-average"
    assert performance_label(-2.0) == "weak"


def test_trade_tiers() -> None:
    assert trade_tier("elite", 20) == "Elite"
    assert trade_tier("below-average", 12) == "Depth"
    assert trade_tier("below-average", 8) == "Replacement"
    assert trade_tier("weak", 20) == "Replacement"


def test_default_benchmarks_cover_every_role() -> None:
    table = default_benchmarks()
    for role in ROLE_ORDER:
        assert table.has_role(role)
    assert table.metric("defensive_center", "faceoff_pct").mean == pytest.approx(52.0)
    assert table.metric("shutdown_defenseman", "blocks60").mean == pytest.approx(2.5)


def test_benchmark_table_is_read_only() -> None:
    table = default_benchmarks()
    with pytest.raises(TypeError):
        table.metrics_by_role["scorer"] = {}  # type: ignore[index]


def test_load_benchmarks_from_file(tmp_path) -> None:
    path = tmp_path / "benchmarks.json"
    path.write_text(json.dumps(benchmarks_to_dict(_ppg_table())), encoding="utf-8")
    table = load_benchmarks(path)
    assert table.metric("scorer", "points_per_game") == MeanSd(0.60, 0.20)
    assert table.impact("scorer") == MeanSd(0.0, 0.5)


@pytest.mark.regression
def test_rejects_future_benchmark_version_with_clear_error(tmp_path) -> None:
    path = tmp_path / "benchmarks.json"
    path.write_text(json.dumps({"benchmark_version": 99, "metrics_by_role": {}}), encoding="utf-8")
    with pytest.raises(BenchmarkLoadError) as exc:
        load_benchmarks(path)
    assert "benchmark_version" in str(exc.value)


def test_unreadable_benchmark_file(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(BenchmarkLoadError):
        load_benchmarks(path)
    with pytest.raises(BenchmarkLoadError):
        load_benchmarks(tmp_path / "missing.json")


def test_malformed_mean_sd_is_rejected() -> None:
    with pytest.raises(BenchmarkLoadError):
        benchmarks_from_dict({"impact_by_role": {"scorer": {"mean": "high"}}})


def _scorer(name: str, points: int) -> PlayerProfile:
    return PlayerProfile(
        name=name,
        position="RW",
        games_played=80,
        goals=points // 2,
        assists=points - points // 2,
        toi_minutes=1440,
        ratings={"shooting_accuracy": 75},
    )


def test_build_benchmarks_from_population() -> None:
    scorers = [_scorer("A", 20), _scorer("B", 45), _scorer("C", 70)]
    lone_goalie = PlayerProfile(name="G", position="G", toi_minutes=3000, saves=1400, shots_against=1540)
    table = build_benchmarks(scorers + [lone_goalie])

    samples = [normalize_metrics(player, "scorer") for player in scorers]
    expected = sum(sample["points_per_game"] for sample in samples) / 3
    assert table.metric("scorer", "points_per_game").mean == pytest.approx(expected)
    assert table.metric("scorer", "points_per_game").sd > 0
    assert table.impact("scorer").sd > 0
    # One goalie is not enough to replace the league defaults.
    assert table.metric("goalie", "save_pct") == default_benchmarks().metric("goalie", "save_pct")
    assert table.impact("goalie") == MeanSd(0.0, 1.0)
