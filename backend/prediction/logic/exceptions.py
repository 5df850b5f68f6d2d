"""Typed domain exceptions for round admission and lifecycle violations.

Domain code (round.py) raises subclasses of GameError. GameSession catches
them at its boundary and converts them to JoinOutcome values, so nothing in
the core aborts a request handler.
"""

from prediction.logic.enums import ErrorCode


class GameError(Exception):
    """Base exception for round game rule violations."""


class GuessValidationError(GameError):
    """Guess is outside the configured [1, K] range."""

    code = ErrorCode.INVALID_GUESS

    def __init__(self, guess: object, max_guess: int) -> None:
        self.guess = guess
        self.max_guess = max_guess
        super().__init__(f"Guess must be a number between 1 and {max_guess}, got {guess!r}")


class RoundRejectionError(GameError):
    """Round refused an admission. State is never mutated when raised.

    Attributes:
        code: The ErrorCode reported to the caller.
        round_id: The round that rejected the admission.

    """

    code: ErrorCode = ErrorCode.ROUND_NOT_ACCEPTING

    def __init__(self, round_id: str, reason: str) -> None:
        self.round_id = round_id
        self.reason = reason
        super().__init__(reason)


class RoundNotAcceptingError(RoundRejectionError):
    """Round has ended or its deadline has passed."""

    code = ErrorCode.ROUND_NOT_ACCEPTING


class RoundFullError(RoundRejectionError):
    """Round already holds max_participants participants."""

    code = ErrorCode.ROUND_FULL


class DuplicateParticipantError(RoundRejectionError):
    """Identity already joined (or is joining) this round."""

    code = ErrorCode.DUPLICATE_PARTICIPANT


class InvalidRoundTransitionError(GameError):
    """A status transition was requested that the state machine does not allow."""
