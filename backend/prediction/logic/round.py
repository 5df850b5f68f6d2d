"""
Single-round state machine.

A round moves WAITING -> ACTIVE -> ENDED and never backwards. The first
admitted participant activates the round and fixes its deadline; joins keep
being admitted until the deadline passes or capacity is reached. Resolution
happens only on clock expiry and picks the first participant (by join order)
whose guess matches the correct answer.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from prediction.logic.enums import RoundStatus
from prediction.logic.exceptions import (
    DuplicateParticipantError,
    InvalidRoundTransitionError,
    RoundFullError,
    RoundNotAcceptingError,
)
from prediction.logic.prize_pool import PrizePool

if TYPE_CHECKING:
    from collections.abc import Collection

    from prediction.logic.settings import GameSettings


class Participant(BaseModel):
    """A joined identity with its guess and stake proof."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    identity: str
    guess: int
    stake_receipt: str
    stake_amount: Decimal
    chain: str
    joined_at: datetime


class RoundSnapshot(BaseModel):
    """Immutable copy of a round, safe to hand to readers."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    round_id: str
    status: RoundStatus
    created_at: datetime
    started_at: datetime | None
    ends_at: datetime | None
    participants: tuple[Participant, ...]
    max_participants: int
    correct_answer: int | None
    winner: Participant | None
    prize_pool: Decimal
    prize_per_winner: Decimal


class RoundState:
    """Mutable state of one round. All mutation goes through admit() and resolve()."""

    def __init__(self, round_id: str, settings: GameSettings, created_at: datetime | None = None) -> None:
        self.round_id = round_id
        self._settings = settings
        self.status = RoundStatus.WAITING
        self.created_at = created_at or datetime.now(UTC)
        self.started_at: datetime | None = None
        self.ends_at: datetime | None = None
        self.participants: list[Participant] = []
        self.correct_answer: int | None = None
        self.winner: Participant | None = None
        self.pool = PrizePool()

    @property
    def max_participants(self) -> int:
        return self._settings.max_participants

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_ended(self) -> bool:
        return self.status == RoundStatus.ENDED

    def has_identity(self, identity: str) -> bool:
        return any(p.identity == identity for p in self.participants)

    def get_participant(self, identity: str) -> Participant | None:
        for participant in self.participants:
            if participant.identity == identity:
                return participant
        return None

    def is_accepting(self, now: datetime | None = None) -> bool:
        """True while the round is WAITING, or ACTIVE with its deadline still ahead."""
        if self.status == RoundStatus.WAITING:
            return True
        if self.status == RoundStatus.ACTIVE and self.ends_at is not None:
            return (now or datetime.now(UTC)) < self.ends_at
        return False

    def check_admission(
        self,
        identity: str,
        now: datetime | None = None,
        pending: Collection[str] = (),
    ) -> None:
        """Run the admission checks in order; raise the first one that fails.

        pending holds identities whose stake transfer into this round is still
        in flight. They count against capacity and uniqueness like admitted
        participants.
        """
        if not self.is_accepting(now):
            raise RoundNotAcceptingError(self.round_id, "Round is not accepting joins")
        if self.participant_count + len(pending) >= self.max_participants:
            raise RoundFullError(self.round_id, "Round is full")
        if self.has_identity(identity) or identity in pending:
            raise DuplicateParticipantError(self.round_id, "Player already joined this round")

    def admit(self, participant: Participant, now: datetime | None = None) -> bool:
        """
        Append a participant and add its stake to the pool.

        Returns True when this admission activated the round (first participant).
        Raises a RoundRejectionError without mutating anything on failure.
        """
        now = now or datetime.now(UTC)
        self.check_admission(participant.identity, now)

        self.participants.append(participant)
        self.pool.add(participant.stake_amount)

        if self.status == RoundStatus.WAITING:
            self.status = RoundStatus.ACTIVE
            self.started_at = now
            self.ends_at = now + timedelta(seconds=max(0.0, self._settings.round_duration_seconds))
            return True
        return False

    def resolve(self, correct_answer: int, *, force: bool = False) -> bool:
        """
        End the round with the given answer and pick the winner.

        Returns False (no-op) when the round has already ended, so a repeated
        expiry signal resolves exactly once. A WAITING round can only be ended
        with force=True and no participants.
        """
        if self.status == RoundStatus.ENDED:
            return False
        if self.status == RoundStatus.WAITING and (not force or self.participants):
            raise InvalidRoundTransitionError(f"Round {self.round_id} cannot end before it is active")

        self.correct_answer = correct_answer
        self.winner = next((p for p in self.participants if p.guess == correct_answer), None)
        self.status = RoundStatus.ENDED
        self.pool.settle([self.winner] if self.winner is not None else [])
        return True

    def snapshot(self) -> RoundSnapshot:
        return RoundSnapshot(
            round_id=self.round_id,
            status=self.status,
            created_at=self.created_at,
            started_at=self.started_at,
            ends_at=self.ends_at,
            participants=tuple(self.participants),
            max_participants=self.max_participants,
            correct_answer=self.correct_answer,
            winner=self.winner,
            prize_pool=self.pool.total,
            prize_per_winner=self.pool.share,
        )
