# Model package init
from .creature import Creature, LevelUp, Move  # noqa: F401 re-export
from .player import PlayerRecord  # noqa: F401 re-export

__all__ = [
    "Creature",
    "LevelUp",
    "Move",
    "PlayerRecord",
]
