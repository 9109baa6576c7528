"""
Error handling for Arcade Duels.

Defines the exceptions raised across the challenge and session lifecycle and
an ErrorHandler that classifies failures into the four recovery categories:
precondition, protocol, move and settlement.
"""

import logging
from typing import Dict, Any, Optional
from enum import Enum

from arcade.types.challenge import Rejection, RejectionReason

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """How a failure may be recovered from."""

    # Synchronous, no state created; retry after fixing the condition
    PRECONDITION = "precondition"
    # Terminal for the challenge; the proposer must re-propose
    PROTOCOL = "protocol"
    # Session stays playable, nothing mutated
    MOVE = "move"
    # Result is final; the transfer needs external reconciliation
    SETTLEMENT = "settlement"

    UNKNOWN = "unknown"


class ArcadeError(Exception):
    """Base class for arcade failures."""

    category = ErrorCategory.UNKNOWN


class PreconditionFailed(ArcadeError):
    """A challenge could not be created."""

    category = ErrorCategory.PRECONDITION

    def __init__(self, rejection: Rejection):
        self.rejection = rejection
        super().__init__(rejection.describe())


class ChallengeErrorCode(str, Enum):
    UNKNOWN_CHALLENGE = "unknown_challenge"
    UNAUTHORIZED_RESPONDER = "unauthorized_responder"
    CHALLENGE_RESOLVED = "challenge_resolved"


class ChallengeError(ArcadeError):
    """A response or cancel request was not allowed."""

    category = ErrorCategory.PROTOCOL

    def __init__(self, code: ChallengeErrorCode, challenge_id: str):
        self.code = code
        self.challenge_id = challenge_id
        super().__init__(f"{code.value}: {challenge_id}")


class WalletError(ArcadeError):
    """The wallet gateway could not read a balance or perform a transfer."""

    category = ErrorCategory.SETTLEMENT


class ErrorHandler:
    """Classifies and formats arcade errors."""

    HTTP_STATUS = {
        RejectionReason.GAME_DISABLED: 409,
        RejectionReason.SELF_CHALLENGE: 409,
        RejectionReason.INVALID_OPPONENT: 409,
        RejectionReason.INSUFFICIENT_FUNDS: 409,
        RejectionReason.INVALID_STAKE: 422,
        ChallengeErrorCode.UNKNOWN_CHALLENGE: 404,
        ChallengeErrorCode.UNAUTHORIZED_RESPONDER: 403,
        ChallengeErrorCode.CHALLENGE_RESOLVED: 409,
    }

    @staticmethod
    def classify_error(error: Exception) -> ErrorCategory:
        """
        Classify an exception into an ErrorCategory.

        Args:
            error: The exception that occurred

        Returns:
            The category that decides how callers recover
        """
        if isinstance(error, ArcadeError):
            return error.category
        return ErrorCategory.UNKNOWN

    @staticmethod
    def http_status(error: ArcadeError) -> int:
        """HTTP status used by the API for an error."""
        if isinstance(error, PreconditionFailed):
            return ErrorHandler.HTTP_STATUS.get(error.rejection.reason, 409)
        if isinstance(error, ChallengeError):
            return ErrorHandler.HTTP_STATUS.get(error.code, 409)
        if isinstance(error, WalletError):
            return 502
        return 500

    @staticmethod
    def format_error_log(
        error: Exception,
        community_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        details: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format an error for logging.

        Args:
            error: The exception
            community_id: Community the failure happened in
            subject_id: Challenge or session involved
            details: Additional error details

        Returns:
            Formatted error log dictionary
        """
        category = ErrorHandler.classify_error(error)
        return {
            "category": category.value,
            "error": type(error).__name__,
            "message": str(error),
            "community_id": community_id,
            "subject_id": subject_id,
            "details": details,
            "severity": ErrorHandler._get_severity(category),
        }

    @staticmethod
    def _get_severity(category: ErrorCategory) -> str:
        """Get severity level for an error category."""
        if category in {ErrorCategory.SETTLEMENT, ErrorCategory.UNKNOWN}:
            return "high"
        elif category == ErrorCategory.PROTOCOL:
            return "medium"
        else:
            return "low"
