"""Session and board models for Arcade Duels"""

from enum import Enum
from typing import Annotated, List, Dict, Any, Optional, Union, Literal
from pydantic import BaseModel, Field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameKind(str, Enum):
    """Mini-games available in the arcade"""
    CHOOSER = "chooser"
    ALIGNMENT = "alignment"
    GRAVITY = "gravity"
    RELAY = "relay"


ALL_GAME_KINDS: List[GameKind] = list(GameKind)


class Mark(str, Enum):
    """Seat marker; A is the proposer, B the opponent"""
    EMPTY = "empty"
    A = "A"
    B = "B"


class VerdictStatus(str, Enum):
    CONTINUE = "continue"
    WIN = "win"
    DRAW = "draw"


class Verdict(BaseModel):
    """Classification of a board or choice state"""
    status: VerdictStatus
    winner: Optional[Mark] = None

    @classmethod
    def ongoing(cls) -> "Verdict":
        return cls(status=VerdictStatus.CONTINUE)

    @classmethod
    def draw(cls) -> "Verdict":
        return cls(status=VerdictStatus.DRAW)

    @classmethod
    def win(cls, mark: Mark) -> "Verdict":
        return cls(status=VerdictStatus.WIN, winner=mark)

    @property
    def is_over(self) -> bool:
        return self.status != VerdictStatus.CONTINUE


class Choice(str, Enum):
    """Chooser game hands"""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class PuzzleKind(str, Enum):
    ARITHMETIC = "arithmetic"
    SEQUENCE = "sequence"
    COMPARISON = "comparison"
    COUNTING = "counting"


class Puzzle(BaseModel):
    """A relay puzzle with four candidate answers"""
    kind: PuzzleKind
    question: str
    choices: List[str] = Field(..., min_length=4, max_length=4)
    correct_index: Optional[int] = Field(
        None, ge=0, le=3, exclude=True, description="Answer index, hidden from every board view"
    )


class ChooserRound(BaseModel):
    """Record of one resolved chooser round"""
    round_number: int
    choice_a: Choice
    choice_b: Choice
    verdict: Verdict


class ChooserBoard(BaseModel):
    kind: Literal["chooser"] = "chooser"
    score_a: int = Field(0, ge=0)
    score_b: int = Field(0, ge=0)
    target_score: int = Field(3, ge=1)
    choices: Dict[Mark, Choice] = Field(
        default_factory=dict,
        exclude=True,
        description="Choices submitted this round, hidden until the round resolves"
    )
    submitted: List[Mark] = Field(default_factory=list, description="Seats that have chosen this round")
    last_round: Optional[ChooserRound] = None


class AlignmentBoard(BaseModel):
    kind: Literal["alignment"] = "alignment"
    cells: List[List[Mark]] = Field(
        default_factory=lambda: [[Mark.EMPTY] * 3 for _ in range(3)]
    )


class GravityBoard(BaseModel):
    kind: Literal["gravity"] = "gravity"
    cells: List[List[Mark]] = Field(
        default_factory=lambda: [[Mark.EMPTY] * 7 for _ in range(6)],
        description="Row 0 is the top row"
    )
    last_row: Optional[int] = None
    last_col: Optional[int] = None


class RelayBoard(BaseModel):
    kind: Literal["relay"] = "relay"
    rope: int = Field(0, ge=-3, le=3, description="Positive pulls toward A, negative toward B")
    puzzle: Puzzle
    round_number: int = Field(1, ge=1, description="Round the current puzzle belongs to")


Board = Annotated[
    Union[ChooserBoard, AlignmentBoard, GravityBoard, RelayBoard],
    Field(discriminator="kind"),
]


class CellMove(BaseModel):
    """Alignment move"""
    row: int = Field(..., ge=0, le=2)
    col: int = Field(..., ge=0, le=2)


class DropMove(BaseModel):
    """Gravity move"""
    column: int = Field(..., ge=0, le=6)


class ChoiceMove(BaseModel):
    """Chooser move"""
    choice: Choice


class AnswerMove(BaseModel):
    """Relay move; names the round whose puzzle it answers"""
    answer: int = Field(..., ge=0, le=3)
    round_number: int = Field(..., ge=1)


Move = Union[CellMove, DropMove, ChoiceMove, AnswerMove]


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class SettlementStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    SETTLED = "settled"
    FAILED = "failed"


class MatchResult(BaseModel):
    """Final outcome of a finished session"""
    session_id: str
    community_id: str
    game_kind: GameKind
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    is_draw: bool = False
    stake: int = 0
    rounds: int = 0
    settlement: SettlementStatus = SettlementStatus.NOT_REQUIRED
    settlement_error: Optional[str] = None


class Session(BaseModel):
    """One accepted match from start to termination"""
    session_id: str = Field(..., description="Opaque generated handle")
    community_id: str
    game_kind: GameKind
    players: List[str] = Field(..., min_length=2, max_length=2, description="[A, B]")
    stake: int = Field(0, ge=0)
    turn: Optional[str] = Field(None, description="Player expected to move; None for simultaneous games")
    board: Board
    status: SessionStatus = Field(SessionStatus.IN_PROGRESS)
    round_number: int = Field(1, ge=1)

    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    result: Optional[MatchResult] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    def mark_of(self, player_id: str) -> Optional[Mark]:
        if player_id == self.players[0]:
            return Mark.A
        if player_id == self.players[1]:
            return Mark.B
        return None

    def player_of(self, mark: Mark) -> str:
        return self.players[0] if mark == Mark.A else self.players[1]

    def other(self, player_id: str) -> str:
        return self.players[1] if player_id == self.players[0] else self.players[0]

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS


class MoveOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    GAME_OVER = "game_over"


class RejectReason(str, Enum):
    NOT_YOUR_TURN = "not_your_turn"
    CELL_OCCUPIED = "cell_occupied"
    COLUMN_FULL = "column_full"
    UNKNOWN_SESSION = "unknown_session"
    SESSION_ALREADY_FINISHED = "session_already_finished"
    NOT_A_PARTICIPANT = "not_a_participant"
    INVALID_MOVE = "invalid_move"
    CHOICE_ALREADY_SUBMITTED = "choice_already_submitted"
    WRONG_ANSWER = "wrong_answer"
    STALE_ROUND = "stale_round"


class MoveResult(BaseModel):
    """Structured reply to a submitted move"""
    outcome: MoveOutcome
    reason: Optional[RejectReason] = None
    board: Optional[Board] = None
    result: Optional[MatchResult] = None

    @classmethod
    def accepted(cls, board: Any) -> "MoveResult":
        return cls(outcome=MoveOutcome.ACCEPTED, board=board)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "MoveResult":
        return cls(outcome=MoveOutcome.REJECTED, reason=reason)

    @classmethod
    def game_over(cls, board: Any, result: MatchResult) -> "MoveResult":
        return cls(outcome=MoveOutcome.GAME_OVER, board=board, result=result)


class SessionEventType(str, Enum):
    ROUND_RESOLVED = "round_resolved"
    BOARD_UPDATED = "board_updated"
    GAME_OVER = "game_over"
    CANCELLED = "cancelled"


class SessionEvent(BaseModel):
    """Pushed to both players of a session"""
    event: SessionEventType
    session_id: str
    board: Optional[Board] = None
    result: Optional[MatchResult] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class MatchCompleted(BaseModel):
    """Outbound event emitted once per finished session"""
    community_id: str
    game_kind: GameKind
    session_id: str
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    stake: int = 0
    is_draw: bool = False


class GameKindConfig(BaseModel):
    """Per-community registry entry for one game kind"""
    game_kind: GameKind
    enabled: bool = True
    total_played: int = Field(0, ge=0)


class PlayerRecord(BaseModel):
    user_id: str
    game_kind: GameKind
    wins: int = 0
    losses: int = 0
