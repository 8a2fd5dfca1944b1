import json

import pytest

from hockey_eval.engine import evaluate_player, evaluate_roster, weak_links
from hockey_eval.models import MeanSd, MissingBenchmarkError, PlayerProfile, RoleBenchmarks, UnknownRoleError


def _table() -> RoleBenchmarks:
    return RoleBenchmarks(
        metrics_by_role={"scorer": {"points_per_game": MeanSd(0.60, 0.20)}},
        impact_by_role={"scorer": MeanSd(0.0, 0.5)},
    )


def _scorer(name: str = "Winger", points: int = 24, toi_minutes: float = 1440, **overrides) -> PlayerProfile:
    kwargs = {
        "name": name,
        "position": "RW",
        "team_name": "Home",
        "games_played": 80,
        "goals": points // 2,
        "assists": points - points // 2,
        "toi_minutes": toi_minutes,
        "ratings": {"shooting_accuracy": 70},
    }
    kwargs.update(overrides)
    return PlayerProfile(**kwargs)


@pytest.mark.regression
def test_underperforming_scorer_with_full_season_is_replaced() -> None:
    evaluation = evaluate_player(_scorer(), _table())
    assert evaluation.role == "scorer"
    assert -1.6 < evaluation.bundles.offense < -1.3
    assert evaluation.replacement_delta < -0.4
    assert evaluation.confidence.confidence >= 0.6
    assert evaluation.recommendation == "replace"
    assert "Below replacement-level impact for role." in evaluation.reasons
    assert evaluation.performance == "weak"
    assert evaluation.tier == "Replacement"


@pytest.mark.regression
def test_same_scorer_on_small_sample_is_monitored() -> None:
    evaluation = evaluate_player(_scorer(toi_minutes=50), _table())
    assert evaluation.confidence.confidence < 0.6
    assert evaluation.recommendation == "monitor"
    assert "Low confidence (limited TOI and/or luck factor)." in evaluation.reasons


def test_evaluation_does_not_mutate_player() -> None:
    player = _scorer()
    before = repr(player)
    evaluate_player(player, _table())
    assert repr(player) == before


def test_explicit_role_must_be_known() -> None:
    assert evaluate_player(_scorer(), _table(), role="playmaker").role == "playmaker"
    with pytest.raises(UnknownRoleError):
        evaluate_player(_scorer(), _table(), role="enforcer")


def test_evaluation_to_dict_is_json_ready() -> None:
    payload = evaluate_player(_scorer(), _table()).to_dict()
    text = json.dumps(payload)
    assert '"recommendation": "replace"' in text
    assert payload["logits"]["goalie"] is None
    assert payload["player"]["name"] == "Winger"


def test_roster_keeps_input_order_with_workers() -> None:
    players = [_scorer(f"P{i}", points=20 + i * 4) for i in range(8)]
    serial = evaluate_roster(players, _table())
    threaded = evaluate_roster(players, _table(), max_workers=4)
    assert [e.player.name for e in threaded] == [p.name for p in players]
    assert [e.impact_z for e in threaded] == [e.impact_z for e in serial]


def test_roster_with_uncovered_role_fails_before_evaluating() -> None:
    goalie = PlayerProfile(name="Keeper", position="G", toi_minutes=3000)
    with pytest.raises(MissingBenchmarkError) as exc:
        evaluate_roster([_scorer(), goalie], _table())
    assert "goalie" in str(exc.value)


def test_weak_links_rank_impact_problems_worst_first() -> None:
    players = [
        _scorer("Mild", points=24),
        _scorer("Star", points=70),
        _scorer("Worst", points=12),
    ]
    links = weak_links(evaluate_roster(players, _table()))
    assert [link.evaluation.player.name for link in links] == ["Worst", "Mild"]
    assert all(link.weakness_type == "impact" for link in links)
    assert links[0].summary.startswith("Below replacement level in scorer role.")
    assert weak_links(evaluate_roster(players, _table()), limit=1)[0].evaluation.player.name == "Worst"
