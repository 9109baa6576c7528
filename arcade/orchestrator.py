"""Arcade orchestration: precondition checks, challenge negotiation and sessions."""

import logging
import random
from typing import Any, Dict, List, Optional

from arcade.challenge import ChallengeProtocol
from arcade.config import ArcadeConfig
from arcade.errors.handler import PreconditionFailed
from arcade.game.engine import GameEngine
from arcade.game.rules import PreconditionValidator
from arcade.sessions import SessionManager
from arcade.storage.match_log import MatchLogger
from arcade.storage.registry import GameRegistry, InMemoryRegistryStore, JsonFileRegistryStore
from arcade.types.challenge import Challenge, ChallengeOutcome, Decision, Participant
from arcade.types.game import GameKind, GameKindConfig, MoveResult, PlayerRecord
from arcade.wallet import HttpWalletGateway, InMemoryWallet, WalletGateway

logger = logging.getLogger(__name__)


class ArcadeOrchestrator:
    """Entry point for the interaction surface."""

    def __init__(
        self,
        config: Optional[ArcadeConfig] = None,
        registry: Optional[GameRegistry] = None,
        wallet: Optional[WalletGateway] = None,
        match_logger: Optional[MatchLogger] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Timeouts and backing services; defaults apply when omitted
            registry: Game registry; built from ``config.registry_path`` if omitted
            wallet: Wallet gateway; built from ``config.wallet_url`` if omitted
            match_logger: Session event log; written under ``config.log_dir`` if omitted
            rng: Random source for relay puzzles
        """
        self.config = config or ArcadeConfig()

        if registry is None:
            store = (
                JsonFileRegistryStore(self.config.registry_path)
                if self.config.registry_path else InMemoryRegistryStore()
            )
            registry = GameRegistry(store)
        self.registry = registry

        if wallet is None:
            wallet = HttpWalletGateway(self.config.wallet_url) if self.config.wallet_url else InMemoryWallet()
        self.wallet = wallet

        self.match_logger = match_logger or MatchLogger(self.config.log_dir)
        self.engine = GameEngine(rng=rng)
        self.validator = PreconditionValidator(self.registry, self.wallet)
        self.sessions = SessionManager(
            self.engine, self.registry, self.wallet,
            match_logger=self.match_logger,
            config=self.config,
        )
        self.challenges = ChallengeProtocol(
            timeout=self.config.challenge_timeout,
            on_accept=self._start_session,
        )

    def _start_session(self, challenge: Challenge) -> str:
        session = self.sessions.start(
            challenge.community_id,
            [challenge.proposer_id, challenge.opponent_id],
            challenge.game_kind,
            stake=challenge.stake,
            target_score=challenge.target_score,
        )
        session.metadata["challenge_id"] = challenge.challenge_id
        return session.session_id

    async def propose_challenge(
        self,
        community_id: str,
        proposer: Participant,
        opponent: Participant,
        game_kind: GameKind,
        stake: int = 0,
        target_score: Optional[int] = None
    ) -> Challenge:
        """
        Validate preconditions and open a pending challenge.

        Raises PreconditionFailed without creating anything when a check fails.
        """
        is_valid, rejection = await self.validator.validate(
            community_id, proposer, opponent, stake, game_kind
        )
        if not is_valid:
            logger.info(
                f"Challenge from {proposer.user_id} to {opponent.user_id} rejected: {rejection.describe()}"
            )
            raise PreconditionFailed(rejection)

        if game_kind != GameKind.CHOOSER:
            target_score = None
        elif target_score is not None:
            target_score = max(1, min(target_score, self.config.max_target_score))

        return self.challenges.open(
            community_id, proposer.user_id, opponent.user_id, game_kind,
            stake=stake, target_score=target_score,
        )

    async def await_challenge(self, challenge_id: str) -> ChallengeOutcome:
        return await self.challenges.wait(challenge_id)

    def player_responded(self, challenge_id: str, player_id: str, decision: Decision) -> ChallengeOutcome:
        return self.challenges.respond(challenge_id, player_id, decision)

    def cancel_challenge(self, challenge_id: str, player_id: str) -> ChallengeOutcome:
        return self.challenges.cancel(challenge_id, player_id)

    def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        return self.challenges.get(challenge_id)

    async def move_submitted(self, session_id: str, player_id: str, move: Any) -> MoveResult:
        return await self.sessions.submit_move(session_id, player_id, move)

    async def set_game_enabled(self, community_id: str, game_kind: GameKind, enabled: bool) -> GameKindConfig:
        await self.registry.set_enabled(community_id, game_kind, enabled)
        return await self.registry.get_config(community_id, game_kind)

    async def get_game_counts(self, community_id: str) -> Dict[GameKind, int]:
        return await self.registry.get_counts(community_id)

    async def get_game_configs(self, community_id: str) -> List[GameKindConfig]:
        return await self.registry.get_configs(community_id)

    async def get_player_stats(self, community_id: str, user_id: str) -> List[PlayerRecord]:
        return await self.registry.get_player_stats(community_id, user_id)

    async def close(self) -> None:
        """Expire pending challenges, cancel active sessions and release the wallet client."""
        self.challenges.close()
        await self.sessions.close()
        await self.wallet.close()
