"""
Correct-answer sources for round resolution.

RandomAnswerSource uses the stdlib Mersenne Twister. It is not
cryptographically secure and not fairness-audited; it is only meant for the
non-monetary demo. Tests inject deterministic sources through the same
protocol.
"""

import random
from typing import Protocol


class AnswerSource(Protocol):
    """Protocol for picking the correct answer of a round."""

    def pick(self, max_guess: int) -> int: ...


class RandomAnswerSource:
    """Uniform pick in [1, max_guess]. A seed makes the sequence reproducible."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)  # noqa: S311

    def pick(self, max_guess: int) -> int:
        if max_guess < 1:
            raise ValueError(f"max_guess must be at least 1, got {max_guess}")
        return self._rng.randint(1, max_guess)
