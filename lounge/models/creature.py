"""Creature entity model.

A creature ("cigarette") is the battle-capable unit players own and fight.
This module provides:

    * ``Move`` / ``Creature`` dataclasses with JSON-friendly ``to_dict`` /
      ``from_dict`` helpers (camelCase keys, matching the client wire format).
    * ``create_creature`` which fills in any stat or move-set the caller omits.
    * ``apply_damage`` and ``grant_experience``, the two mutations battles use.
    * ``starter_creature`` / ``wild_creature`` archetype factories.

Stat formulas (floored to int, jitter drawn from ``rng.random()``):

    hp      = 50 + 10   * level + [0, 20)
    attack  = 10 + 2    * level + [0, 5)
    defense = 5  + 1.5  * level + [0, 3)
    speed   = 8  + 1.2  * level + [0, 4)

Every function that rolls dice accepts an optional ``rng`` (anything with
``random()``, ``choice()`` and ``sample()``, e.g. ``random.Random(42)``) so
tests can pin outcomes; the module-level ``random`` is used otherwise.
"""

from __future__ import annotations

import copy
import math
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lounge.models.xp import xp_for_level

CREATURE_TYPES = ("Menthol", "Light", "Full", "Filter", "Unfiltered")
MOVESET_SIZE = 4
DEFENSE_UP = "defense_up"
DEFENSE_UP_AMOUNT = 5

MOVE_CATALOG = (
    {"name": "Smoke Blast", "damage": 20, "type": "normal"},
    {"name": "Nicotine Rush", "damage": 15, "type": "speed"},
    {"name": "Tar Slam", "damage": 25, "type": "normal"},
    {"name": "Filter Guard", "damage": 0, "type": "defense", "effect": DEFENSE_UP},
    {"name": "Ashes Attack", "damage": 18, "type": "normal"},
    {"name": "Menthol Freeze", "damage": 22, "type": "ice"},
)

STARTERS = (
    {"name": "Camel Filter", "type": "Filter"},
    {"name": "Camel Menthol", "type": "Menthol"},
    {"name": "Camel Light", "type": "Light"},
)
STARTER_LEVEL = 5

WILD_BRANDS = ("Camel", "Joe Camel", "Desert Cigarette", "Sandstorm Smoke")
WILD_LEVEL_RANGE = (1, 10)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Move:
    id: str
    name: str
    damage: int
    type: str
    effect: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "damage": self.damage, "type": self.type}
        if self.effect:
            data["effect"] = self.effect
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Move":
        return cls(
            id=str(data.get("id") or _new_id("move")),
            name=str(data["name"]),
            damage=int(data.get("damage", 0)),
            type=str(data.get("type", "normal")),
            effect=data.get("effect") or None,
        )


@dataclass(frozen=True)
class LevelUp:
    """Result of a level-up: the new level and how much max HP changed."""

    level: int
    hp_increase: int

    def to_dict(self) -> Dict[str, int]:
        return {"level": self.level, "hpIncrease": self.hp_increase}


@dataclass
class Creature:
    id: str
    name: str
    type: str
    level: int
    hp: int
    max_hp: int
    attack: int
    defense: int
    speed: int
    experience: int = 0
    moves: List[Move] = field(default_factory=list)

    @property
    def fainted(self) -> bool:
        return self.hp <= 0

    def move(self, move_id: str) -> Optional[Move]:
        for m in self.moves:
            if m.id == move_id:
                return m
        return None

    def copy(self) -> "Creature":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "level": self.level,
            "hp": self.hp,
            "maxHp": self.max_hp,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
            "experience": self.experience,
            "experienceToNext": xp_for_level(self.level),
            "moves": [m.to_dict() for m in self.moves],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Creature":
        """Rebuild a creature exactly as stored; stats are never re-derived."""
        moves = [Move.from_dict(m) for m in data.get("moves") or []]
        if len(moves) != MOVESET_SIZE:
            raise ValueError(f"creature {data.get('id')!r} has {len(moves)} moves, expected {MOVESET_SIZE}")
        max_hp = int(data.get("maxHp", data.get("max_hp", data["hp"])))
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            type=str(data["type"]),
            level=int(data["level"]),
            hp=max(0, min(int(data["hp"]), max_hp)),
            max_hp=max_hp,
            attack=int(data["attack"]),
            defense=int(data["defense"]),
            speed=int(data["speed"]),
            experience=int(data.get("experience", 0)),
            moves=moves,
        )


# --- Stat derivation ---------------------------------------------------------------------------


def _roll_hp(level: int, rng) -> int:
    return math.floor(50 + level * 10 + rng.random() * 20)


def _roll_attack(level: int, rng) -> int:
    return math.floor(10 + level * 2 + rng.random() * 5)


def _roll_defense(level: int, rng) -> int:
    return math.floor(5 + level * 1.5 + rng.random() * 3)


def _roll_speed(level: int, rng) -> int:
    return math.floor(8 + level * 1.2 + rng.random() * 4)


def roll_moveset(rng=None) -> List[Move]:
    """Draw 4 distinct catalog moves, each with a fresh instance id."""
    rng = rng or random
    picks = rng.sample(MOVE_CATALOG, MOVESET_SIZE)
    return [Move(id=_new_id("move"), **entry) for entry in picks]


def create_creature(
    name: Optional[str] = None,
    type: Optional[str] = None,
    level: int = 1,
    hp: Optional[int] = None,
    attack: Optional[int] = None,
    defense: Optional[int] = None,
    speed: Optional[int] = None,
    moves: Optional[List[Move]] = None,
    experience: int = 0,
    rng=None,
) -> Creature:
    """Build a fully initialized creature, deriving anything left as ``None``.

    Raises ``ValueError`` for a level below 1, an unknown type, a negative
    experience value or an explicit move-set that is not exactly 4 moves.
    """
    rng = rng or random
    if not isinstance(level, int) or isinstance(level, bool) or level < 1:
        raise ValueError(f"level must be an integer >= 1, got {level!r}")
    if type is None:
        type = rng.choice(CREATURE_TYPES)
    elif type not in CREATURE_TYPES:
        raise ValueError(f"unknown creature type {type!r}")
    if experience < 0:
        raise ValueError("experience must be >= 0")
    if moves is None:
        moves = roll_moveset(rng)
    elif len(moves) != MOVESET_SIZE:
        raise ValueError(f"move-set must contain exactly {MOVESET_SIZE} moves, got {len(moves)}")
    if name is None:
        name = f"{rng.choice(WILD_BRANDS)} {type}"
    max_hp = hp if hp is not None else _roll_hp(level, rng)
    if max_hp < 1:
        raise ValueError("hp must be >= 1")
    return Creature(
        id=_new_id("cig"),
        name=name,
        type=type,
        level=level,
        hp=max_hp,
        max_hp=max_hp,
        attack=attack if attack is not None else _roll_attack(level, rng),
        defense=defense if defense is not None else _roll_defense(level, rng),
        speed=speed if speed is not None else _roll_speed(level, rng),
        experience=experience,
        moves=list(moves),
    )


# --- Mutations ---------------------------------------------------------------------------------


def apply_damage(creature: Creature, raw_damage: int) -> int:
    """Reduce ``creature`` HP by ``max(1, raw_damage - defense)``; return damage dealt.

    At least 1 damage always lands so a battle makes progress even against a
    defense stat higher than any move. HP floors at 0.
    """
    dealt = max(1, int(raw_damage) - creature.defense)
    creature.hp = max(0, creature.hp - dealt)
    return dealt


def grant_experience(creature: Creature, amount: int, rng=None) -> Optional[LevelUp]:
    """Add experience; level up once if the threshold is reached.

    A level-up increments the level, re-rolls every stat for the new level,
    restores HP to the new maximum and resets experience to 0 (overflow is
    discarded). Returns ``LevelUp`` in that case, otherwise ``None``.
    """
    if amount < 0:
        raise ValueError("experience amount must be >= 0")
    creature.experience += int(amount)
    if creature.experience < xp_for_level(creature.level):
        return None
    return _level_up(creature, rng or random)


def _level_up(creature: Creature, rng) -> LevelUp:
    creature.level += 1
    old_max = creature.max_hp
    creature.max_hp = _roll_hp(creature.level, rng)
    creature.hp = creature.max_hp
    creature.attack = _roll_attack(creature.level, rng)
    creature.defense = _roll_defense(creature.level, rng)
    creature.speed = _roll_speed(creature.level, rng)
    creature.experience = 0
    return LevelUp(level=creature.level, hp_increase=creature.max_hp - old_max)


# --- Archetypes --------------------------------------------------------------------------------


def starter_creature(level: int = STARTER_LEVEL, rng=None) -> Creature:
    """Random starter archetype at the fixed starter level."""
    rng = rng or random
    archetype = rng.choice(STARTERS)
    return create_creature(name=archetype["name"], type=archetype["type"], level=level, rng=rng)


def wild_creature(rng=None) -> Creature:
    """Random wild creature, level 1-10, named ``"<brand> <type>"``."""
    rng = rng or random
    lo, hi = WILD_LEVEL_RANGE
    level = rng.randint(lo, hi)
    type_ = rng.choice(CREATURE_TYPES)
    name = f"{rng.choice(WILD_BRANDS)} {rng.choice(CREATURE_TYPES)}"
    return create_creature(name=name, type=type_, level=level, rng=rng)


__all__ = [
    "CREATURE_TYPES",
    "Creature",
    "LevelUp",
    "MOVE_CATALOG",
    "Move",
    "apply_damage",
    "create_creature",
    "grant_experience",
    "roll_moveset",
    "starter_creature",
    "wild_creature",
]
