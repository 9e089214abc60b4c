"""Turn-based battle engine.

Responsibilities:
    * Pair one player-owned creature against one wild creature.
    * Fix the turn order once at battle start (faster side first, ties to the player).
    * Resolve moves (damage formula / defense buff) and keep an append-only log.
    * Detect the end of the battle, the winner, and compute experience rewards.
    * Capture probability helpers used by ``cigarette:catch``.

Design notes:
    - Both creatures are deep-copied at construction; the battle only ever
      mutates its own snapshots. The coordinator decides what (if anything)
      is written back to the player record afterwards.
    - The log is the authoritative history for client replay and for auditing
      rewards. ``LogEntry.defender`` always names the opposing side, including
      for ``defense_up`` moves whose effect lands on the attacker itself.
    - Unknown move ids are ignored without a log entry; a stale client view is
      not an error.
"""

from __future__ import annotations

import math
import random
import time
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from lounge.models.creature import (
    DEFENSE_UP,
    DEFENSE_UP_AMOUNT,
    Creature,
    Move,
    apply_damage,
    grant_experience,
)

PLAYER = "player"
WILD = "wild"
REWARD_XP_PER_LEVEL = 15
MIN_CATCH_RATE = 0.1


class LogEntry(NamedTuple):
    attacker: str
    defender: str
    move: str
    damage: int
    effect: Optional[str]
    attacker_hp: int
    defender_hp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attacker": self.attacker,
            "defender": self.defender,
            "move": self.move,
            "damage": self.damage,
            "effect": self.effect,
            "attackerHp": self.attacker_hp,
            "defenderHp": self.defender_hp,
            "isDefeated": self.defender_hp <= 0,
        }


def _other(side: str) -> str:
    return WILD if side == PLAYER else PLAYER


class Battle:
    """One player creature vs one wild creature."""

    def __init__(self, player: Creature, wild: Creature, wild_id: Optional[str] = None, rng=None):
        self.rng = rng or random
        self.player = player.copy()
        self.wild = wild.copy()
        self.wild_id = wild_id or wild.id
        self.log: List[LogEntry] = []
        self.rewards: Optional[Dict[str, Any]] = None
        self._rewarded = False
        self.started_at = time.time()
        self.turn_order: Tuple[str, str] = self.determine_turn_order()

    def side(self, name: str) -> Creature:
        if name == PLAYER:
            return self.player
        if name == WILD:
            return self.wild
        raise ValueError(f"unknown battle side {name!r}")

    def determine_turn_order(self) -> Tuple[str, str]:
        if self.player.speed >= self.wild.speed:
            return (PLAYER, WILD)
        return (WILD, PLAYER)

    def resolve_move(self, attacker_side: str, move: Move) -> LogEntry:
        attacker = self.side(attacker_side)
        defender_side = _other(attacker_side)
        defender = self.side(defender_side)
        damage = 0
        effect = None
        if move.effect == DEFENSE_UP:
            attacker.defense += DEFENSE_UP_AMOUNT
            effect = DEFENSE_UP
        else:
            raw = move.damage + math.floor(attacker.attack * 0.5)
            damage = apply_damage(defender, raw)
        entry = LogEntry(
            attacker=attacker_side,
            defender=defender_side,
            move=move.name,
            damage=damage,
            effect=effect,
            attacker_hp=attacker.hp,
            defender_hp=defender.hp,
        )
        self.log.append(entry)
        return entry

    def pick_wild_move(self) -> Move:
        return self.rng.choice(self.wild.moves)

    def exchange(self, move_id: str) -> List[LogEntry]:
        """Run one full action exchange and return the entries it produced.

        Sides act in ``turn_order``; the exchange stops as soon as either side
        faints. Returns ``[]`` without touching state when ``move_id`` is not
        in the player creature's move-set or the battle is already over.
        """
        if self.is_concluded():
            return []
        player_move = self.player.move(move_id)
        if player_move is None:
            return []
        entries = []
        for side in self.turn_order:
            move = player_move if side == PLAYER else self.pick_wild_move()
            entries.append(self.resolve_move(side, move))
            if self.is_concluded():
                break
        return entries

    def is_concluded(self) -> bool:
        return self.player.hp <= 0 or self.wild.hp <= 0

    def winner(self) -> Optional[str]:
        if self.player.hp > 0 and self.wild.hp <= 0:
            return PLAYER
        if self.wild.hp > 0 and self.player.hp <= 0:
            return WILD
        return None

    def compute_rewards(self) -> Optional[Dict[str, Any]]:
        """Grant experience to the player creature on victory (once per battle).

        Experience is ``floor(wild_level * 15)``. The level-up result of
        ``grant_experience`` is surfaced unchanged under ``level_up_data``.
        """
        if self._rewarded:
            return self.rewards
        if self.winner() != PLAYER:
            return None
        self._rewarded = True
        experience = math.floor(self.wild.level * REWARD_XP_PER_LEVEL)
        level_up = grant_experience(self.player, experience, rng=self.rng)
        self.rewards = {
            "experience": experience,
            "level_up": level_up is not None,
            "level_up_data": level_up.to_dict() if level_up else None,
        }
        return self.rewards

    def snapshot(self) -> Dict[str, Any]:
        return {
            "wildId": self.wild_id,
            "playerCigarette": self.player.to_dict(),
            "wildCigarette": self.wild.to_dict(),
            "turnOrder": list(self.turn_order),
            "log": [e.to_dict() for e in self.log],
        }


def catch_rate(creature: Creature) -> float:
    """Probability a catch succeeds; lower remaining HP means easier catches."""
    if creature.max_hp <= 0:
        return 1.0
    return max(MIN_CATCH_RATE, 1 - (creature.hp / creature.max_hp) * 0.5)


def attempt_catch(creature: Creature, rng=None) -> bool:
    rng = rng or random
    return rng.random() < catch_rate(creature)


__all__ = [
    "Battle",
    "LogEntry",
    "PLAYER",
    "WILD",
    "attempt_catch",
    "catch_rate",
]
