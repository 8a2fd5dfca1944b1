import math

import pytest

from hockey_eval.config import ROLE_ORDER
from hockey_eval.models import InvalidPlayerError, PlayerProfile
from hockey_eval.roles import ROLE_PROTOTYPES, classify_role, role_family


def _player(position: str, **ratings: float) -> PlayerProfile:
    return PlayerProfile(name="Test", position=position, toi_minutes=1200, ratings=dict(ratings))


def test_shooter_classifies_as_scorer() -> None:
    role, logits = classify_role(_player("LW", shooting_accuracy=80, shooting=70))
    assert role == "scorer"
    assert set(logits) == set(ROLE_ORDER)


def test_passer_classifies_as_playmaker() -> None:
    role, _ = classify_role(_player("C", passing=85, getting_open=60, puck_handling=70))
    assert role == "playmaker"


def test_faceoff_specialist_classifies_as_defensive_center() -> None:
    role, _ = classify_role(_player("C", defensive_read=70, positioning=70, faceoffs=90, strength=60))
    assert role == "defensive_center"


def test_defenseman_roles() -> None:
    role, logits = classify_role(_player("LD", defensive_read=80, positioning=75, shot_blocking=70))
    assert role == "shutdown_defenseman"
    assert logits["scorer"] == -math.inf

    role, _ = classify_role(_player("RD", passing=85, offensive_read=80, puck_handling=70))
    assert role == "offensive_defenseman"


def test_goalie_only_allows_goalie_role() -> None:
    role, logits = classify_role(_player("G", reflexes=80, glove=70))
    assert role == "goalie"
    assert all(value == -math.inf for name, value in logits.items() if name != "goalie")


def test_ties_resolve_to_first_declared_role() -> None:
    player = PlayerProfile(name="Blank", position="F", oz_start_pct=0.0)
    role, logits = classify_role(player)
    assert logits["scorer"] == logits["grinder"] == 0.0
    assert role == "scorer"


def test_classified_role_allows_player_position_group() -> None:
    for position in ("C", "LW", "RW", "F", "D", "LD", "RD", "G"):
        player = _player(position, passing=50, defensive_read=40, reflexes=60)
        role, _ = classify_role(player)
        assert player.position_group in ROLE_PROTOTYPES[role].positions


def test_unknown_position_is_rejected() -> None:
    with pytest.raises(InvalidPlayerError):
        classify_role(_player("Z"))


def test_role_families_pair_interchangeable_roles() -> None:
    assert role_family("scorer") == role_family("playmaker")
    assert role_family("grinder") == role_family("defensive_center")
    assert role_family("offensive_defenseman") != role_family("shutdown_defenseman")
