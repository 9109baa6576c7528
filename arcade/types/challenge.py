"""Challenge negotiation models for Arcade Duels"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from arcade.types.game import GameKind


class Participant(BaseModel):
    """A community member as seen by the presentation layer"""
    user_id: str = Field(..., min_length=1)
    is_bot: bool = Field(False, description="Automated accounts cannot be challenged")


class ChallengeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class Decision(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class Challenge(BaseModel):
    """Pre-match consent negotiation between proposer and opponent"""
    challenge_id: str
    community_id: str
    proposer_id: str
    opponent_id: str
    game_kind: GameKind
    stake: int = Field(0, ge=0)
    target_score: Optional[int] = Field(None, ge=1, description="Round wins needed (chooser only)")
    status: ChallengeStatus = Field(ChallengeStatus.PENDING)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None


class ChallengeOutcome(BaseModel):
    """Terminal result of a challenge"""
    challenge_id: str
    status: ChallengeStatus
    session_id: Optional[str] = Field(None, description="Set when the challenge was accepted")


class RejectionReason(str, Enum):
    """Precondition failures raised before a challenge exists"""
    GAME_DISABLED = "game_disabled"
    SELF_CHALLENGE = "self_challenge"
    INVALID_OPPONENT = "invalid_opponent"
    INVALID_STAKE = "invalid_stake"
    INSUFFICIENT_FUNDS = "insufficient_funds"


class Rejection(BaseModel):
    reason: RejectionReason
    who: Optional[str] = Field(None, description="User lacking funds for insufficient_funds")
    balance: Optional[int] = None
    required: Optional[int] = None

    def describe(self) -> str:
        if self.reason == RejectionReason.INSUFFICIENT_FUNDS:
            return f"{self.who} has insufficient funds ({self.balance}/{self.required})"
        return self.reason.value
