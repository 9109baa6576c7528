"""Error types for Arcade Duels"""

from .handler import (
    ArcadeError,
    ChallengeError,
    ChallengeErrorCode,
    ErrorCategory,
    ErrorHandler,
    PreconditionFailed,
    WalletError,
)

__all__ = [
    "ArcadeError",
    "ChallengeError",
    "ChallengeErrorCode",
    "ErrorCategory",
    "ErrorHandler",
    "PreconditionFailed",
    "WalletError",
]
