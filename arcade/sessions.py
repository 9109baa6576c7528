"""Session manager: owns accepted matches from first move to settlement."""

import asyncio
import inspect
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from arcade.config import ArcadeConfig
from arcade.errors.handler import ErrorHandler, WalletError
from arcade.game.engine import GameEngine
from arcade.storage.match_log import MatchLogger
from arcade.storage.registry import GameRegistry
from arcade.types.game import (
    GameKind, MatchCompleted, MatchResult, MoveResult, RejectReason, Session,
    SessionEvent, SessionEventType, SessionStatus, SettlementStatus, Verdict,
    VerdictStatus,
)
from arcade.wallet import WalletGateway

logger = logging.getLogger(__name__)

MatchListener = Callable[[MatchCompleted], Union[None, Awaitable[None]]]

# Finished or cancelled sessions kept for lookups
MAX_CLOSED_SESSIONS = 1000


def composite_key(proposer_id: str, opponent_id: str, created_at: datetime) -> str:
    """Human-readable secondary key: ``proposer-opponent-<epoch ms>``"""
    return f"{proposer_id}-{opponent_id}-{int(created_at.timestamp() * 1000)}"


class SessionManager:
    """
    Runs every active session independently.

    Each session has its own lock; moves, expiry and settlement for a session
    all run under it, so transitions of one session are serialized while
    different sessions never wait on each other.
    """

    def __init__(
        self,
        engine: GameEngine,
        registry: GameRegistry,
        wallet: WalletGateway,
        match_logger: Optional[MatchLogger] = None,
        config: Optional[ArcadeConfig] = None
    ):
        self.engine = engine
        self.registry = registry
        self.wallet = wallet
        self.match_logger = match_logger
        self.config = config or ArcadeConfig()

        self._sessions: Dict[str, Session] = {}
        self._index: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._generations: Dict[str, int] = {}
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}
        self._listeners: List[MatchListener] = []
        self._settled: Set[str] = set()
        self._closed: "OrderedDict[str, None]" = OrderedDict()
        self._expiry_tasks: Set[asyncio.Task] = set()

    def start(
        self,
        community_id: str,
        players: List[str],
        game_kind: GameKind,
        stake: int = 0,
        target_score: Optional[int] = None
    ) -> Session:
        """Create a session for two players and arm its inactivity timer."""
        if game_kind == GameKind.CHOOSER:
            target_score = min(
                target_score or self.config.default_target_score,
                self.config.max_target_score,
            )

        session = self.engine.create_session(
            community_id, players, game_kind, stake=stake, target_score=target_score
        )
        key = composite_key(players[0], players[1], session.created_at)
        session.metadata["composite_key"] = key

        self._sessions[session.session_id] = session
        self._index[key] = session.session_id
        self._locks[session.session_id] = asyncio.Lock()
        self._subscribers[session.session_id] = []
        self._schedule_timeout(session)

        if self.match_logger:
            self.match_logger.log_session_started(session)

        logger.info(f"Session {session.session_id} started ({key})")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def find(self, key: str) -> Optional[Session]:
        """Look a session up by its composite key"""
        session_id = self._index.get(key)
        return self._sessions.get(session_id) if session_id else None

    @property
    def active_sessions(self) -> List[Session]:
        return [s for s in self._sessions.values() if s.is_active]

    def subscribe(self, session_id: str) -> asyncio.Queue:
        """Queue receiving every SessionEvent published for a session."""
        if session_id not in self._sessions:
            raise KeyError(session_id)
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(session_id, []).append(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(session_id, [])
        if queue in queues:
            queues.remove(queue)

    def add_listener(self, listener: MatchListener) -> None:
        """Register a callback for MatchCompleted; coroutine functions are awaited."""
        self._listeners.append(listener)

    async def submit_move(self, session_id: str, player_id: str, move: Any) -> MoveResult:
        """
        Validate and apply one move.

        Rejections never change the session. A move that ends the game
        settles it before this returns.
        """
        session = self._sessions.get(session_id)
        lock = self._locks.get(session_id)
        if session is None or lock is None:
            return MoveResult.rejected(RejectReason.UNKNOWN_SESSION)

        async with lock:
            if not session.is_active:
                return MoveResult.rejected(RejectReason.SESSION_ALREADY_FINISHED)

            step = self.engine.process_move(session, player_id, move)
            self._log_move(session, player_id, move, step.reason)

            if not step.accepted:
                logger.warning(
                    f"Session {session_id}: rejected move from {player_id} ({step.reason.value})"
                )
                return MoveResult.rejected(step.reason)

            if step.verdict.is_over:
                try:
                    await self._finalize(session, step.verdict)
                finally:
                    board = session.board.model_copy(deep=True)
                    self._publish(session_id, SessionEventType.GAME_OVER, board=board, result=session.result)
                    self._release(session_id)
                return MoveResult.game_over(board, session.result)

            self._schedule_timeout(session)
            board = session.board.model_copy(deep=True)
            event_type = SessionEventType.ROUND_RESOLVED if step.round_resolved else SessionEventType.BOARD_UPDATED
            self._publish(session_id, event_type, board=board)
            return MoveResult.accepted(board)

    async def cancel(self, session_id: str, reason: str = "cancelled") -> bool:
        """Cancel an active session without a winner. Returns False if it was not active."""
        lock = self._locks.get(session_id)
        if lock is None:
            return False

        async with lock:
            session = self._sessions.get(session_id)
            if session is None or not session.is_active:
                return False
            self._cancel_locked(session, reason)
            return True

    async def close(self) -> None:
        """Cancel every active session and pending expiry."""
        for session in self.active_sessions:
            await self.cancel(session.session_id, reason="shutdown")
        for task in list(self._expiry_tasks):
            task.cancel()

    def _cancel_locked(self, session: Session, reason: str) -> None:
        session.status = SessionStatus.CANCELLED
        session.finished_at = datetime.now(timezone.utc)
        session.turn = None
        self._cancel_timer(session.session_id)

        if self.match_logger:
            self.match_logger.log_session_cancelled(session.session_id, reason)
        logger.info(f"Session {session.session_id} cancelled ({reason})")

        self._publish(session.session_id, SessionEventType.CANCELLED, board=session.board.model_copy(deep=True))
        self._release(session.session_id)

    async def _finalize(self, session: Session, verdict: Verdict) -> MatchResult:
        """Close a finished session; its effects happen once, however often this is reached."""
        if session.session_id in self._settled:
            return session.result
        self._settled.add(session.session_id)

        session.status = SessionStatus.FINISHED
        session.finished_at = datetime.now(timezone.utc)
        session.turn = None
        self._cancel_timer(session.session_id)

        winner_id = loser_id = None
        if verdict.status == VerdictStatus.WIN:
            winner_id = session.player_of(verdict.winner)
            loser_id = session.other(winner_id)

        result = MatchResult(
            session_id=session.session_id,
            community_id=session.community_id,
            game_kind=session.game_kind,
            winner_id=winner_id,
            loser_id=loser_id,
            is_draw=verdict.status == VerdictStatus.DRAW,
            stake=session.stake,
            rounds=session.round_number,
        )
        session.result = result

        if winner_id and session.stake > 0:
            try:
                await self.wallet.transfer(loser_id, winner_id, session.community_id, session.stake)
                result.settlement = SettlementStatus.SETTLED
            except WalletError as e:
                result.settlement = SettlementStatus.FAILED
                result.settlement_error = str(e)
                error_log = ErrorHandler.format_error_log(
                    e,
                    community_id=session.community_id,
                    subject_id=session.session_id,
                    details=f"{session.stake} owed by {loser_id} to {winner_id}",
                )
                logger.error(f"Settlement failed: {error_log}")

        await self._write_registry(
            session, "played counter",
            lambda: self.registry.increment_played(session.community_id, session.game_kind),
        )
        if winner_id:
            await self._write_registry(
                session, f"win for {winner_id}, loss for {loser_id}",
                lambda: self.registry.record_result(session.community_id, session.game_kind, winner_id, loser_id),
            )

        if self.match_logger:
            self.match_logger.log_session_finished(result)

        if result.is_draw:
            logger.info(f"Session {session.session_id} finished in a draw")
        else:
            logger.info(
                f"Session {session.session_id} won by {winner_id} "
                f"(stake {session.stake}, settlement {result.settlement.value})"
            )

        await self._emit(MatchCompleted(
            community_id=session.community_id,
            game_kind=session.game_kind,
            session_id=session.session_id,
            winner_id=winner_id,
            loser_id=loser_id,
            stake=session.stake,
            is_draw=result.is_draw,
        ))
        return result

    async def _write_registry(self, session: Session, what: str, write: Callable[[], Awaitable[Any]]) -> None:
        """Registry failures are logged; the finished match stands."""
        try:
            await write()
        except Exception as e:
            error_log = ErrorHandler.format_error_log(
                e,
                community_id=session.community_id,
                subject_id=session.session_id,
                details=what,
            )
            logger.error(f"Registry update failed: {error_log}")

    async def _emit(self, event: MatchCompleted) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"MatchCompleted listener failed for {event.session_id}: {e}")

    def _publish(
        self,
        session_id: str,
        event_type: SessionEventType,
        board: Any = None,
        result: Optional[MatchResult] = None
    ) -> None:
        event = SessionEvent(event=event_type, session_id=session_id, board=board, result=result)
        for queue in self._subscribers.get(session_id, []):
            queue.put_nowait(event)

    def _log_move(self, session: Session, player_id: str, move: Any, reason: Optional[RejectReason]) -> None:
        if not self.match_logger:
            return
        self.match_logger.log_move(
            session.session_id,
            player_id,
            move,
            outcome="rejected" if reason else "accepted",
            reason=reason.value if reason else None,
            round_number=session.round_number,
        )

    def _schedule_timeout(self, session: Session) -> None:
        """(Re)arm the inactivity timer; older timers become no-ops."""
        self._cancel_timer(session.session_id)
        generation = self._generations.get(session.session_id, 0) + 1
        self._generations[session.session_id] = generation

        loop = asyncio.get_running_loop()
        self._timers[session.session_id] = loop.call_later(
            self.config.timeout_for(session.game_kind),
            self._on_timeout,
            session.session_id,
            generation,
        )

    def _cancel_timer(self, session_id: str) -> None:
        timer = self._timers.pop(session_id, None)
        if timer is not None:
            timer.cancel()

    def _on_timeout(self, session_id: str, generation: int) -> None:
        task = asyncio.get_running_loop().create_task(self._expire(session_id, generation))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_tasks.discard)

    async def _expire(self, session_id: str, generation: int) -> None:
        lock = self._locks.get(session_id)
        if lock is None:
            return

        async with lock:
            session = self._sessions.get(session_id)
            # A move accepted while this task waited for the lock re-armed the timer
            if session is None or not session.is_active or self._generations.get(session_id) != generation:
                return
            self._cancel_locked(session, "timeout")

    def _release(self, session_id: str) -> None:
        """Drop per-session runtime state; the session itself stays readable."""
        self._cancel_timer(session_id)
        self._generations.pop(session_id, None)
        self._subscribers.pop(session_id, None)

        self._closed[session_id] = None
        while len(self._closed) > MAX_CLOSED_SESSIONS:
            old_id, _ = self._closed.popitem(last=False)
            old = self._sessions.pop(old_id, None)
            self._locks.pop(old_id, None)
            self._settled.discard(old_id)
            if old is not None:
                self._index.pop(old.metadata.get("composite_key", ""), None)
