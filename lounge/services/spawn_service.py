"""Wild spawn pool & ambient world ticker.

The world holds a pool of 5-10 wild cigarettes scattered across a square
extent. Every tick the *entire* pool is replaced; captured or defeated
creatures never respawn individually, players simply see a fresh pool on the
next tick.

``SpawnManager`` is plain state (no I/O) so it can be unit tested directly.
``start_ticker`` runs the periodic regeneration as a Flask-SocketIO
background task; the coordinator performs the broadcast.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from lounge.logging_utils import get_logger
from lounge.models.creature import Creature, wild_creature

_log = get_logger("spawn")

DEFAULT_WORLD_SIZE = 1000
DEFAULT_MIN_COUNT = 5
DEFAULT_MAX_COUNT = 10


@dataclass
class WildSpawn:
    creature: Creature
    x: float
    y: float

    @property
    def id(self) -> str:
        return self.creature.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.creature.to_dict()
        data["position"] = {"x": self.x, "y": self.y}
        return data


class SpawnManager:
    def __init__(
        self,
        world_size: float = DEFAULT_WORLD_SIZE,
        min_count: int = DEFAULT_MIN_COUNT,
        max_count: int = DEFAULT_MAX_COUNT,
        rng=None,
    ):
        if min_count < 0 or max_count < min_count:
            raise ValueError(f"invalid spawn count range {min_count}-{max_count}")
        self.world_size = world_size
        self.min_count = min_count
        self.max_count = max_count
        self.rng = rng or random
        self.pool: List[WildSpawn] = []
        self.generation = 0

    def regenerate(self) -> List[WildSpawn]:
        """Replace the whole pool with a fresh batch of wild creatures."""
        count = self.rng.randint(self.min_count, self.max_count)
        self.pool = []
        for _ in range(count):
            creature = wild_creature(self.rng)
            self.add(creature, x=self.rng.random() * self.world_size, y=self.rng.random() * self.world_size)
        self.generation += 1
        _log.info(event="spawn_regenerated", generation=self.generation, count=count)
        return self.pool

    def add(self, creature: Creature, x: float = 0.0, y: float = 0.0) -> WildSpawn:
        spawn = WildSpawn(creature=creature, x=x, y=y)
        self.pool.append(spawn)
        return spawn

    def find(self, wild_id: str) -> Optional[WildSpawn]:
        for spawn in self.pool:
            if spawn.id == wild_id:
                return spawn
        return None

    def remove(self, wild_id: str) -> Optional[WildSpawn]:
        for idx, spawn in enumerate(self.pool):
            if spawn.id == wild_id:
                return self.pool.pop(idx)
        return None

    def clear(self):
        self.pool = []

    def snapshot(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.pool]

    def __len__(self) -> int:
        return len(self.pool)


def start_ticker(socketio, app, coordinator, interval: float):  # pragma: no cover - runtime loop
    """Regenerate the pool every ``interval`` seconds as a background task.

    The first regeneration happens immediately so a fresh server has wild
    creatures before anyone joins. A failing tick is logged and the loop keeps
    going; ambient updates must not depend on any one connection's state.
    """

    def _loop():
        while True:
            with app.app_context():
                try:
                    coordinator.spawn_tick()
                except Exception as exc:
                    _log.error(event="spawn_tick_failed", error=repr(exc))
            socketio.sleep(interval)

    _log.info(event="spawn_ticker_start", interval=interval)
    return socketio.start_background_task(_loop)
