"""Per-community game registry: enable flags, play counters and player records.

Values live in a RegistryStore under dotted keys, one document per community:

    games.<kind>.enabled          bool (missing means enabled)
    games.<kind>.total_played     int
    players.<user>.<kind>.wins    int
    players.<user>.<kind>.losses  int
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from arcade.types.game import ALL_GAME_KINDS, GameKind, GameKindConfig, PlayerRecord

logger = logging.getLogger(__name__)


class RegistryStore(ABC):
    """Key-value document store keyed by community."""

    @abstractmethod
    async def get(self, community_id: str, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, community_id: str, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def increment(self, community_id: str, key: str, amount: int = 1) -> int:
        """Atomically add ``amount`` and return the new value."""

    @abstractmethod
    async def document(self, community_id: str) -> Dict[str, Any]:
        """Snapshot of every key stored for a community."""


class InMemoryRegistryStore(RegistryStore):
    """Process-local store. Increments never yield, so they are atomic on the event loop."""

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}

    async def get(self, community_id: str, key: str) -> Optional[Any]:
        return self.documents.get(community_id, {}).get(key)

    async def set(self, community_id: str, key: str, value: Any) -> None:
        self.documents.setdefault(community_id, {})[key] = value

    async def increment(self, community_id: str, key: str, amount: int = 1) -> int:
        document = self.documents.setdefault(community_id, {})
        document[key] = int(document.get(key, 0)) + amount
        return document[key]

    async def document(self, community_id: str) -> Dict[str, Any]:
        return dict(self.documents.get(community_id, {}))


class JsonFileRegistryStore(InMemoryRegistryStore):
    """Store persisted as one JSON file, rewritten after every mutation."""

    def __init__(self, path: str = "registry.json"):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    self.documents = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Registry file {self.path} is corrupt, starting empty: {e}")
                self.documents = {}

    def _flush(self) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.documents, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    async def set(self, community_id: str, key: str, value: Any) -> None:
        async with self._lock:
            await super().set(community_id, key, value)
            self._flush()

    async def increment(self, community_id: str, key: str, amount: int = 1) -> int:
        async with self._lock:
            value = await super().increment(community_id, key, amount)
            self._flush()
            return value


class GameRegistry:
    """Which games each community allows, and how often they were played."""

    def __init__(self, store: Optional[RegistryStore] = None):
        self.store = store or InMemoryRegistryStore()

    @staticmethod
    def _game_key(game_kind: GameKind, field: str) -> str:
        return f"games.{GameKind(game_kind).value}.{field}"

    @staticmethod
    def _player_key(user_id: str, game_kind: GameKind, field: str) -> str:
        return f"players.{user_id}.{GameKind(game_kind).value}.{field}"

    async def is_enabled(self, community_id: str, game_kind: GameKind) -> bool:
        """Unconfigured games are enabled"""
        value = await self.store.get(community_id, self._game_key(game_kind, "enabled"))
        return True if value is None else bool(value)

    async def set_enabled(self, community_id: str, game_kind: GameKind, enabled: bool) -> None:
        await self.store.set(community_id, self._game_key(game_kind, "enabled"), bool(enabled))
        logger.info(
            f"{GameKind(game_kind).value} {'enabled' if enabled else 'disabled'} in community {community_id}"
        )

    async def increment_played(self, community_id: str, game_kind: GameKind) -> int:
        return await self.store.increment(community_id, self._game_key(game_kind, "total_played"))

    async def get_counts(self, community_id: str) -> Dict[GameKind, int]:
        document = await self.store.document(community_id)
        return {
            kind: int(document.get(self._game_key(kind, "total_played"), 0))
            for kind in ALL_GAME_KINDS
        }

    def _config_from(self, document: Dict[str, Any], game_kind: GameKind) -> GameKindConfig:
        enabled = document.get(self._game_key(game_kind, "enabled"))
        return GameKindConfig(
            game_kind=game_kind,
            enabled=True if enabled is None else bool(enabled),
            total_played=int(document.get(self._game_key(game_kind, "total_played"), 0)),
        )

    async def get_config(self, community_id: str, game_kind: GameKind) -> GameKindConfig:
        document = await self.store.document(community_id)
        return self._config_from(document, GameKind(game_kind))

    async def get_configs(self, community_id: str) -> List[GameKindConfig]:
        document = await self.store.document(community_id)
        return [self._config_from(document, kind) for kind in ALL_GAME_KINDS]

    async def record_result(
        self,
        community_id: str,
        game_kind: GameKind,
        winner_id: str,
        loser_id: str
    ) -> None:
        await self.store.increment(community_id, self._player_key(winner_id, game_kind, "wins"))
        await self.store.increment(community_id, self._player_key(loser_id, game_kind, "losses"))

    async def get_player_stats(self, community_id: str, user_id: str) -> List[PlayerRecord]:
        document = await self.store.document(community_id)
        return [
            PlayerRecord(
                user_id=user_id,
                game_kind=kind,
                wins=int(document.get(self._player_key(user_id, kind, "wins"), 0)),
                losses=int(document.get(self._player_key(user_id, kind, "losses"), 0)),
            )
            for kind in ALL_GAME_KINDS
        ]
