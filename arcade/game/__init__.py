"""Game logic for Arcade Duels"""

from .engine import GameEngine
from .rules import PreconditionValidator
from .state import StateManager

__all__ = [
    "GameEngine",
    "PreconditionValidator",
    "StateManager",
]
