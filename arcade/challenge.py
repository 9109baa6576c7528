"""Challenge negotiation: propose, accept, decline or let it expire."""

import asyncio
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from arcade.errors.handler import ChallengeError, ChallengeErrorCode
from arcade.types.challenge import Challenge, ChallengeOutcome, ChallengeStatus, Decision
from arcade.types.game import GameKind

logger = logging.getLogger(__name__)

# Resolved challenges remembered for status lookups
MAX_RESOLVED_HISTORY = 1000


class ChallengeProtocol:
    """
    Tracks pending challenges and resolves each exactly once.

    Every transition goes through ``_resolve``, which runs synchronously on
    the event loop, so an accept racing the expiry timer either wins outright
    or sees the challenge already resolved.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        on_accept: Optional[Callable[[Challenge], str]] = None
    ):
        """
        Initialize the protocol.

        Args:
            timeout: Seconds the opponent has to respond
            on_accept: Called with an accepted challenge before waiters resume;
                returns the id of the session it started
        """
        self.timeout = timeout
        self.on_accept = on_accept

        self._pending: Dict[str, Challenge] = {}
        self._futures: Dict[str, asyncio.Future] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._resolved: "OrderedDict[str, tuple[Challenge, ChallengeOutcome]]" = OrderedDict()

    def open(
        self,
        community_id: str,
        proposer_id: str,
        opponent_id: str,
        game_kind: GameKind,
        stake: int = 0,
        target_score: Optional[int] = None
    ) -> Challenge:
        """Register a pending challenge and start its expiry timer."""
        if proposer_id == opponent_id:
            raise ValueError("A player cannot challenge themselves")

        loop = asyncio.get_running_loop()
        challenge = Challenge(
            challenge_id=str(uuid.uuid4()),
            community_id=community_id,
            proposer_id=proposer_id,
            opponent_id=opponent_id,
            game_kind=game_kind,
            stake=stake,
            target_score=target_score,
        )

        self._pending[challenge.challenge_id] = challenge
        self._futures[challenge.challenge_id] = loop.create_future()
        self._timers[challenge.challenge_id] = loop.call_later(
            self.timeout, self._expire, challenge.challenge_id
        )

        logger.info(
            f"Challenge {challenge.challenge_id}: {proposer_id} challenged {opponent_id} "
            f"to {game_kind.value} for {stake} in {community_id}"
        )
        return challenge

    async def wait(self, challenge_id: str) -> ChallengeOutcome:
        """Suspend until the challenge resolves."""
        if challenge_id in self._resolved:
            return self._resolved[challenge_id][1]

        future = self._futures.get(challenge_id)
        if future is None:
            raise ChallengeError(ChallengeErrorCode.UNKNOWN_CHALLENGE, challenge_id)

        # Shielded so one cancelled waiter does not resolve the challenge for the others
        return await asyncio.shield(future)

    async def propose(
        self,
        community_id: str,
        proposer_id: str,
        opponent_id: str,
        game_kind: GameKind,
        stake: int = 0,
        target_score: Optional[int] = None
    ) -> ChallengeOutcome:
        """Open a challenge and wait for its outcome on behalf of the proposer."""
        challenge = self.open(community_id, proposer_id, opponent_id, game_kind, stake, target_score)
        try:
            return await self.wait(challenge.challenge_id)
        except asyncio.CancelledError:
            if challenge.challenge_id in self._pending:
                logger.info(f"Challenge {challenge.challenge_id}: proposer stopped waiting")
                self._resolve(challenge.challenge_id, ChallengeStatus.EXPIRED)
            raise

    def respond(self, challenge_id: str, player_id: str, decision: Decision) -> ChallengeOutcome:
        """Accept or decline on behalf of the designated opponent."""
        challenge = self._require_pending(challenge_id)

        if player_id != challenge.opponent_id:
            logger.warning(f"Challenge {challenge_id}: {player_id} is not the challenged player")
            raise ChallengeError(ChallengeErrorCode.UNAUTHORIZED_RESPONDER, challenge_id)

        status = ChallengeStatus.ACCEPTED if decision == Decision.ACCEPT else ChallengeStatus.DECLINED
        return self._resolve(challenge_id, status)

    def cancel(self, challenge_id: str, player_id: str) -> ChallengeOutcome:
        """Withdraw a pending challenge; only its proposer may do so."""
        challenge = self._require_pending(challenge_id)

        if player_id != challenge.proposer_id:
            logger.warning(f"Challenge {challenge_id}: {player_id} cannot withdraw it")
            raise ChallengeError(ChallengeErrorCode.UNAUTHORIZED_RESPONDER, challenge_id)

        logger.info(f"Challenge {challenge_id}: withdrawn by {player_id}")
        return self._resolve(challenge_id, ChallengeStatus.EXPIRED)

    def get(self, challenge_id: str) -> Optional[Challenge]:
        """Pending or recently resolved challenge."""
        if challenge_id in self._pending:
            return self._pending[challenge_id]
        if challenge_id in self._resolved:
            return self._resolved[challenge_id][0]
        return None

    def outcome(self, challenge_id: str) -> Optional[ChallengeOutcome]:
        if challenge_id in self._resolved:
            return self._resolved[challenge_id][1]
        return None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def close(self) -> None:
        """Expire every pending challenge."""
        for challenge_id in list(self._pending):
            self._resolve(challenge_id, ChallengeStatus.EXPIRED)

    def _require_pending(self, challenge_id: str) -> Challenge:
        challenge = self._pending.get(challenge_id)
        if challenge is not None:
            return challenge
        if challenge_id in self._resolved:
            raise ChallengeError(ChallengeErrorCode.CHALLENGE_RESOLVED, challenge_id)
        raise ChallengeError(ChallengeErrorCode.UNKNOWN_CHALLENGE, challenge_id)

    def _expire(self, challenge_id: str) -> None:
        if challenge_id in self._pending:
            logger.info(f"Challenge {challenge_id}: no response within {self.timeout}s")
            self._resolve(challenge_id, ChallengeStatus.EXPIRED)

    def _resolve(self, challenge_id: str, status: ChallengeStatus) -> ChallengeOutcome:
        """The single terminal transition of a challenge."""
        challenge = self._require_pending(challenge_id)

        session_id = None
        if status == ChallengeStatus.ACCEPTED and self.on_accept is not None:
            # Runs before any state changes, so a failing hook leaves the challenge pending
            session_id = self.on_accept(challenge)

        del self._pending[challenge_id]
        timer = self._timers.pop(challenge_id, None)
        if timer is not None:
            timer.cancel()

        challenge.status = status
        challenge.resolved_at = datetime.now(timezone.utc)
        outcome = ChallengeOutcome(challenge_id=challenge_id, status=status, session_id=session_id)

        self._resolved[challenge_id] = (challenge, outcome)
        while len(self._resolved) > MAX_RESOLVED_HISTORY:
            self._resolved.popitem(last=False)

        future = self._futures.pop(challenge_id, None)
        if future is not None and not future.done():
            future.set_result(outcome)

        logger.info(f"Challenge {challenge_id}: {status.value}")
        return outcome
