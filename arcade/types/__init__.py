"""Data types for Arcade Duels"""

from .challenge import (
    Participant, Challenge, ChallengeStatus, ChallengeOutcome, Decision,
    Rejection, RejectionReason,
)
from .game import (
    GameKind, Mark, Verdict, VerdictStatus, Choice, Puzzle, PuzzleKind,
    ChooserBoard, AlignmentBoard, GravityBoard, RelayBoard,
    CellMove, DropMove, ChoiceMove, AnswerMove,
    Session, SessionStatus, MatchResult, SettlementStatus,
    MoveResult, MoveOutcome, RejectReason,
    SessionEvent, SessionEventType, MatchCompleted,
    GameKindConfig, PlayerRecord,
)

__all__ = [
    # Challenge types
    "Participant",
    "Challenge",
    "ChallengeStatus",
    "ChallengeOutcome",
    "Decision",
    "Rejection",
    "RejectionReason",
    # Game types
    "GameKind",
    "Mark",
    "Verdict",
    "VerdictStatus",
    "Choice",
    "Puzzle",
    "PuzzleKind",
    "ChooserBoard",
    "AlignmentBoard",
    "GravityBoard",
    "RelayBoard",
    "CellMove",
    "DropMove",
    "ChoiceMove",
    "AnswerMove",
    "Session",
    "SessionStatus",
    "MatchResult",
    "SettlementStatus",
    "MoveResult",
    "MoveOutcome",
    "RejectReason",
    "SessionEvent",
    "SessionEventType",
    "MatchCompleted",
    "GameKindConfig",
    "PlayerRecord",
]
