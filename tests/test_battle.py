"""Battle engine: turn order, move resolution, conclusion, rewards and capture odds."""

import math
import random

import pytest

from lounge.models.creature import Move
from lounge.services.battle_service import (
    PLAYER,
    WILD,
    Battle,
    attempt_catch,
    catch_rate,
)
from tests.factories import FixedRandom, damaging_moves, make_creature

GUARD = Move(id="g1", name="Filter Guard", damage=0, type="defense", effect="defense_up")


def _battle(player=None, wild=None, rng=None):
    return Battle(player or make_creature(), wild or make_creature(moves=damaging_moves("w")), rng=rng)


def test_equal_speed_player_acts_first_every_trial():
    for seed in range(50):
        rng = random.Random(seed)
        speed = rng.randint(1, 40)
        battle = _battle(make_creature(speed=speed), make_creature(speed=speed), rng=rng)
        assert battle.turn_order == (PLAYER, WILD)


def test_faster_wild_acts_first():
    battle = _battle(make_creature(speed=5), make_creature(speed=6))
    assert battle.turn_order == (WILD, PLAYER)


def test_battle_works_on_copies():
    player = make_creature(hp=60)
    wild = make_creature(hp=60)
    battle = _battle(player, wild, rng=random.Random(1))
    battle.exchange("m1")
    assert player.hp == 60
    assert wild.hp == 60
    assert battle.wild.hp < 60


def test_damage_formula():
    player = make_creature(attack=20)
    wild = make_creature(hp=100, defense=5)
    battle = _battle(player, wild)
    entry = battle.resolve_move(PLAYER, player.move("m3"))  # Tar Slam, 25
    # 25 + floor(20 * 0.5) - 5
    assert entry.damage == 30
    assert battle.wild.hp == 70
    assert entry.attacker == PLAYER
    assert entry.defender == WILD
    assert entry.defender_hp == 70
    assert entry.to_dict()["isDefeated"] is False


def test_defense_up_buffs_the_attacker():
    player = make_creature(defense=6, moves=[GUARD] + damaging_moves()[:3])
    wild = make_creature(hp=50)
    battle = _battle(player, wild)
    entry = battle.resolve_move(PLAYER, GUARD)
    assert battle.player.defense == 11
    assert battle.wild.hp == 50
    assert entry.damage == 0
    assert entry.effect == "defense_up"
    # The log still names the opposing side as defender
    assert entry.defender == WILD


def test_unknown_move_is_a_noop():
    battle = _battle(rng=random.Random(3))
    assert battle.exchange("does-not-exist") == []
    assert battle.log == []
    assert battle.player.hp == battle.player.max_hp
    assert battle.wild.hp == battle.wild.max_hp


def test_exchange_runs_both_sides_in_turn_order():
    battle = _battle(make_creature(hp=500, speed=5), make_creature(hp=500, speed=9), rng=random.Random(2))
    entries = battle.exchange("m1")
    assert [e.attacker for e in entries] == [WILD, PLAYER]
    assert battle.log == entries


def test_exchange_stops_when_defender_faints():
    battle = _battle(make_creature(attack=20, speed=20), make_creature(hp=1, speed=1), rng=random.Random(2))
    entries = battle.exchange("m1")
    assert len(entries) == 1
    assert battle.is_concluded()
    assert battle.winner() == PLAYER
    assert entries[0].to_dict()["isDefeated"] is True
    # Concluded battles ignore further actions
    assert battle.exchange("m1") == []


def test_wild_can_win():
    battle = _battle(make_creature(hp=5, speed=1), make_creature(attack=200, speed=50), rng=random.Random(2))
    battle.exchange("m1")
    assert battle.winner() == WILD
    assert battle.compute_rewards() is None


@pytest.mark.parametrize("wild_level", [1, 3, 7, 10])
def test_reward_experience_is_level_times_fifteen(wild_level):
    battle = _battle(
        make_creature(level=5, attack=50, speed=50),
        make_creature(level=wild_level, hp=1, speed=1),
        rng=random.Random(0),
    )
    battle.exchange("m1")
    rewards = battle.compute_rewards()
    assert rewards["experience"] == math.floor(wild_level * 15)
    assert rewards["level_up"] is False
    assert rewards["level_up_data"] is None
    assert battle.player.experience == wild_level * 15


def test_rewards_granted_once():
    battle = _battle(make_creature(level=1, attack=50, speed=50), make_creature(level=7, hp=1, speed=1))
    battle.exchange("m1")
    first = battle.compute_rewards()
    # 105 experience crosses the level 1 threshold
    assert first["level_up"] is True
    assert first["level_up_data"]["level"] == 2
    assert battle.compute_rewards() is first
    assert battle.player.level == 2
    assert battle.player.experience == 0


def test_snapshot_shape():
    battle = _battle(rng=random.Random(1))
    battle.exchange("m2")
    snap = battle.snapshot()
    assert set(snap) == {"wildId", "playerCigarette", "wildCigarette", "turnOrder", "log"}
    assert snap["turnOrder"] == [PLAYER, WILD]
    assert len(snap["log"]) == len(battle.log)


def test_catch_rate_bounds():
    c = make_creature(hp=100)
    assert catch_rate(c) == pytest.approx(0.5)
    c.hp = 0
    assert catch_rate(c) == pytest.approx(1.0)


def test_catch_rate_higher_when_weakened():
    c = make_creature(hp=100)
    c.hp = 90
    healthy = catch_rate(c)
    c.hp = 10
    weak = catch_rate(c)
    assert weak >= healthy
    assert healthy >= 0.1


def test_attempt_catch_uses_rng():
    c = make_creature(hp=100)
    assert attempt_catch(c, rng=FixedRandom(0.49)) is True
    assert attempt_catch(c, rng=FixedRandom(0.5)) is False
