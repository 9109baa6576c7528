"""Persistence for Arcade Duels"""

from .match_log import MatchLogger
from .registry import GameRegistry, InMemoryRegistryStore, JsonFileRegistryStore, RegistryStore

__all__ = [
    "GameRegistry",
    "InMemoryRegistryStore",
    "JsonFileRegistryStore",
    "MatchLogger",
    "RegistryStore",
]
