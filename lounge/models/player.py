"""Persistent player progression record.

``PlayerRecord`` is the only durable game state: the roster of owned
creatures, which one is active, and the last known world position. It is
stored as an opaque JSON blob keyed by username (see
``lounge.services.persistence``); everything else in the server is ephemeral.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lounge.models.creature import Creature


@dataclass
class PlayerRecord:
    username: str
    creatures: List[Creature] = field(default_factory=list)
    active_id: Optional[str] = None
    position: Dict[str, float] = field(default_factory=lambda: {"x": 0, "y": 0})

    def __post_init__(self):
        self._repair_active()

    def _repair_active(self):
        # Active reference must point at an owned creature; fall back to the first one
        if self.active_id is not None and self.owned(self.active_id) is not None:
            return
        self.active_id = self.creatures[0].id if self.creatures else None

    def owned(self, creature_id: str) -> Optional[Creature]:
        for c in self.creatures:
            if c.id == creature_id:
                return c
        return None

    @property
    def active(self) -> Optional[Creature]:
        if self.active_id is None:
            return None
        return self.owned(self.active_id)

    def add_creature(self, creature: Creature):
        self.creatures.append(creature)
        self._repair_active()

    def replace_creature(self, creature: Creature) -> bool:
        """Swap in an updated copy of an owned creature (matched by id)."""
        for idx, c in enumerate(self.creatures):
            if c.id == creature.id:
                self.creatures[idx] = creature
                return True
        return False

    def remove_creature(self, creature_id: str) -> Optional[Creature]:
        for idx, c in enumerate(self.creatures):
            if c.id == creature_id:
                removed = self.creatures.pop(idx)
                self._repair_active()
                return removed
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "cigarettes": [c.to_dict() for c in self.creatures],
            "activeCigaretteId": self.active_id,
            "position": dict(self.position),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerRecord":
        pos = data.get("position") or {}
        return cls(
            username=str(data["username"]),
            creatures=[Creature.from_dict(c) for c in data.get("cigarettes") or []],
            active_id=data.get("activeCigaretteId"),
            position={"x": float(pos.get("x", 0)), "y": float(pos.get("y", 0))},
        )
