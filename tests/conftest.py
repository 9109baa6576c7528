"""Shared test fixtures for Arcade Duels."""

import random
from collections.abc import Callable
from typing import Dict, Iterable, List, Optional

import pytest

from arcade.config import ArcadeConfig
from arcade.game.engine import GameEngine
from arcade.orchestrator import ArcadeOrchestrator
from arcade.sessions import SessionManager
from arcade.storage.match_log import MatchLogger
from arcade.storage.registry import GameRegistry
from arcade.types.game import Mark
from arcade.wallet import InMemoryWallet

COMMUNITY = "guild"


@pytest.fixture
def fast_config(tmp_path) -> ArcadeConfig:
    return ArcadeConfig(
        challenge_timeout=0.05,
        chooser_round_timeout=0.3,
        relay_round_timeout=0.3,
        board_timeout=0.3,
        log_dir=str(tmp_path / "match_logs"),
    )


@pytest.fixture
def registry() -> GameRegistry:
    return GameRegistry()


@pytest.fixture
def wallet() -> InMemoryWallet:
    return InMemoryWallet({
        (COMMUNITY, "alice"): 100,
        (COMMUNITY, "bob"): 100,
        (COMMUNITY, "carol"): 20,
    })


@pytest.fixture
def match_logger(tmp_path) -> MatchLogger:
    return MatchLogger(log_dir=str(tmp_path / "match_logs"))


@pytest.fixture
def session_manager_factory(
    registry, wallet, match_logger, fast_config
) -> Callable[..., SessionManager]:
    """Factory fixture so tests can swap the wallet, the registry or the timeouts."""

    def _factory(
        *,
        wallet_override=None,
        registry_override: Optional[GameRegistry] = None,
        config: Optional[ArcadeConfig] = None,
        seed: int = 7,
    ) -> SessionManager:
        return SessionManager(
            GameEngine(rng=random.Random(seed)),
            registry_override or registry,
            wallet_override or wallet,
            match_logger=match_logger,
            config=config or fast_config,
        )

    return _factory


@pytest.fixture
def session_manager(session_manager_factory) -> SessionManager:
    return session_manager_factory()


@pytest.fixture
def orchestrator(fast_config, registry, wallet, match_logger) -> ArcadeOrchestrator:
    return ArcadeOrchestrator(
        config=fast_config,
        registry=registry,
        wallet=wallet,
        match_logger=match_logger,
        rng=random.Random(11),
    )


@pytest.fixture
def cells_factory() -> Callable[[Iterable[str]], List[List[Mark]]]:
    """Build a board from rows like ``"AB."`` where ``.`` is an empty cell."""
    symbols: Dict[str, Mark] = {"A": Mark.A, "B": Mark.B, ".": Mark.EMPTY}

    def _factory(rows: Iterable[str]) -> List[List[Mark]]:
        return [[symbols[ch] for ch in row] for row in rows]

    return _factory
