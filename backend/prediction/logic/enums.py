"""
String enum definitions for the prediction round game.
"""

from enum import Enum


class RoundStatus(str, Enum):
    """Lifecycle status of a round. Transitions only move forward."""

    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class GameMode(str, Enum):
    """Which settlement executor backs a session."""

    DEMO = "demo"
    REAL = "real"


class ErrorCode(str, Enum):
    """Error codes reported to callers of GameSession.join."""

    INVALID_GUESS = "invalid_guess"
    ROUND_NOT_ACCEPTING = "round_not_accepting"
    ROUND_FULL = "round_full"
    DUPLICATE_PARTICIPANT = "duplicate_participant"
    EXECUTOR_FAILURE = "executor_failure"
    POST_TRANSFER_INCONSISTENCY = "post_transfer_inconsistency"
    INTERNAL_ERROR = "internal_error"


# codes that are rejected before any money moves
CLIENT_ERROR_CODES = frozenset(
    {
        ErrorCode.INVALID_GUESS,
        ErrorCode.ROUND_NOT_ACCEPTING,
        ErrorCode.ROUND_FULL,
        ErrorCode.DUPLICATE_PARTICIPANT,
        ErrorCode.EXECUTOR_FAILURE,
    },
)
