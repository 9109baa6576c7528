"""Tests for error classification."""

from arcade.errors.handler import (
    ChallengeError, ChallengeErrorCode, ErrorCategory, ErrorHandler,
    PreconditionFailed, WalletError,
)
from arcade.types.challenge import Rejection, RejectionReason


def test_classify_error():
    rejection = Rejection(reason=RejectionReason.SELF_CHALLENGE)
    assert ErrorHandler.classify_error(PreconditionFailed(rejection)) == ErrorCategory.PRECONDITION
    assert ErrorHandler.classify_error(
        ChallengeError(ChallengeErrorCode.CHALLENGE_RESOLVED, "c1")
    ) == ErrorCategory.PROTOCOL
    assert ErrorHandler.classify_error(WalletError("down")) == ErrorCategory.SETTLEMENT
    assert ErrorHandler.classify_error(KeyError("x")) == ErrorCategory.UNKNOWN


def test_http_status():
    funds = Rejection(reason=RejectionReason.INSUFFICIENT_FUNDS, who="carol", balance=20, required=50)
    assert ErrorHandler.http_status(PreconditionFailed(funds)) == 409
    assert ErrorHandler.http_status(PreconditionFailed(Rejection(reason=RejectionReason.INVALID_STAKE))) == 422
    assert ErrorHandler.http_status(ChallengeError(ChallengeErrorCode.UNKNOWN_CHALLENGE, "c1")) == 404
    assert ErrorHandler.http_status(ChallengeError(ChallengeErrorCode.UNAUTHORIZED_RESPONDER, "c1")) == 403
    assert ErrorHandler.http_status(WalletError("down")) == 502


def test_rejection_message_names_the_short_player():
    funds = Rejection(reason=RejectionReason.INSUFFICIENT_FUNDS, who="carol", balance=20, required=50)
    assert str(PreconditionFailed(funds)) == "carol has insufficient funds (20/50)"


def test_format_error_log():
    entry = ErrorHandler.format_error_log(
        WalletError("timeout"),
        community_id="guild",
        subject_id="session-1",
        details="10 owed by bob to alice",
    )

    assert entry["category"] == "settlement"
    assert entry["error"] == "WalletError"
    assert entry["message"] == "timeout"
    assert entry["severity"] == "high"
    assert entry["subject_id"] == "session-1"

    protocol = ErrorHandler.format_error_log(ChallengeError(ChallengeErrorCode.CHALLENGE_RESOLVED, "c1"))
    assert protocol["severity"] == "medium"
