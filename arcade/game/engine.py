"""Core game engine for Arcade Duels"""

import random
import uuid
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import BaseModel, Field, ValidationError

from arcade.game.chooser import DEFAULT_TARGET_SCORE
from arcade.game.state import StateManager
from arcade.types.game import (
    AnswerMove, CellMove, ChoiceMove, DropMove, GameKind, Mark, Move,
    RejectReason, Session, Verdict,
)

logger = logging.getLogger(__name__)

ALTERNATING_KINDS = {GameKind.ALIGNMENT, GameKind.GRAVITY}


class MoveStep(BaseModel):
    """What happened to a session when the engine processed one move"""
    reason: Optional[RejectReason] = None
    verdict: Verdict = Field(default_factory=Verdict.ongoing)
    round_resolved: bool = False

    @property
    def accepted(self) -> bool:
        return self.reason is None


def parse_move(game_kind: GameKind, raw: Any) -> Optional[Move]:
    """
    Coerce a move from the interaction surface into the model for its game.

    Accepts the model itself, a dict of its fields, or the bare value
    (a choice name, a column, a ``[row, col]`` pair, or an ``[answer, round]``
    pair).
    Returns None when the value does not describe a move for this game.
    """
    models = {
        GameKind.ALIGNMENT: CellMove,
        GameKind.GRAVITY: DropMove,
        GameKind.CHOOSER: ChoiceMove,
        GameKind.RELAY: AnswerMove,
    }
    model = models[game_kind]
    if isinstance(raw, model):
        return raw

    if not isinstance(raw, dict):
        if game_kind == GameKind.ALIGNMENT and isinstance(raw, (list, tuple)) and len(raw) == 2:
            raw = {"row": raw[0], "col": raw[1]}
        elif game_kind == GameKind.GRAVITY:
            raw = {"column": raw}
        elif game_kind == GameKind.CHOOSER:
            raw = {"choice": raw}
        elif game_kind == GameKind.RELAY and isinstance(raw, (list, tuple)) and len(raw) == 2:
            raw = {"answer": raw[0], "round_number": raw[1]}
        else:
            return None

    # Booleans are ints to pydantic's lax mode
    if any(isinstance(v, bool) for v in raw.values()):
        return None

    try:
        return model.model_validate(raw)
    except ValidationError:
        return None


class GameEngine:
    """Applies turn discipline and move validation to a session's board."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.state_manager = StateManager()
        self.rng = rng or random.Random()

    def create_session(
        self,
        community_id: str,
        players: List[str],
        game_kind: GameKind,
        stake: int = 0,
        target_score: Optional[int] = None
    ) -> Session:
        """Create a new session; seat A (players[0]) moves first."""
        if len(players) != 2 or players[0] == players[1]:
            raise ValueError("A session needs two distinct players")
        if stake < 0:
            raise ValueError("Stake cannot be negative")

        board = self.state_manager.create_board(
            game_kind,
            rng=self.rng,
            target_score=target_score or DEFAULT_TARGET_SCORE,
        )

        session = Session(
            session_id=str(uuid.uuid4()),
            community_id=community_id,
            game_kind=game_kind,
            players=list(players),
            stake=stake,
            turn=players[0] if game_kind in ALTERNATING_KINDS else None,
            board=board,
        )

        logger.info(
            f"Created {game_kind.value} session {session.session_id} "
            f"for {players[0]} vs {players[1]} (stake {stake})"
        )
        return session

    def process_move(self, session: Session, player_id: str, raw_move: Any) -> MoveStep:
        """Validate a move from ``player_id`` and apply it if legal."""
        mark = session.mark_of(player_id)
        if mark is None:
            return MoveStep(reason=RejectReason.NOT_A_PARTICIPANT)

        move = parse_move(session.game_kind, raw_move)
        if move is None:
            return MoveStep(reason=RejectReason.INVALID_MOVE)

        handlers: Dict[GameKind, Callable[[Session, str, Mark, Any], MoveStep]] = {
            GameKind.ALIGNMENT: self._play_alignment,
            GameKind.GRAVITY: self._play_gravity,
            GameKind.CHOOSER: self._play_chooser,
            GameKind.RELAY: self._play_relay,
        }
        step = handlers[session.game_kind](session, player_id, mark, move)

        if not step.accepted:
            logger.debug(
                f"Session {session.session_id}: move from {player_id} rejected ({step.reason.value})"
            )
        return step

    def _advance_turn(self, session: Session, player_id: str, verdict: Verdict) -> None:
        if verdict.is_over:
            session.turn = None
        else:
            session.turn = session.other(player_id)
            session.round_number += 1

    def _play_alignment(self, session: Session, player_id: str, mark: Mark, move: CellMove) -> MoveStep:
        if session.turn != player_id:
            return MoveStep(reason=RejectReason.NOT_YOUR_TURN)

        reason, verdict = self.state_manager.place_mark(session.board, move.row, move.col, mark)
        if reason:
            return MoveStep(reason=reason)

        self._advance_turn(session, player_id, verdict)
        return MoveStep(verdict=verdict)

    def _play_gravity(self, session: Session, player_id: str, mark: Mark, move: DropMove) -> MoveStep:
        if session.turn != player_id:
            return MoveStep(reason=RejectReason.NOT_YOUR_TURN)

        reason, verdict = self.state_manager.drop_disc(session.board, move.column, mark)
        if reason:
            return MoveStep(reason=reason)

        self._advance_turn(session, player_id, verdict)
        return MoveStep(verdict=verdict)

    def _play_chooser(self, session: Session, player_id: str, mark: Mark, move: ChoiceMove) -> MoveStep:
        reason = self.state_manager.record_choice(session.board, mark, move.choice)
        if reason:
            return MoveStep(reason=reason)

        if not self.state_manager.round_ready(session.board):
            return MoveStep()

        verdict = self.state_manager.resolve_round(session.board, session.round_number)
        if not verdict.is_over:
            session.round_number += 1
        return MoveStep(verdict=verdict, round_resolved=True)

    def _play_relay(self, session: Session, player_id: str, mark: Mark, move: AnswerMove) -> MoveStep:
        reason, verdict = self.state_manager.answer_puzzle(
            session.board, mark, move.answer, move.round_number, rng=self.rng
        )
        if reason:
            return MoveStep(reason=reason)

        if not verdict.is_over:
            session.round_number += 1
        return MoveStep(verdict=verdict, round_resolved=True)
