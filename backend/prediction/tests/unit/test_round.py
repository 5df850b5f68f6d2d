from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from prediction.logic.enums import ErrorCode, RoundStatus
from prediction.logic.exceptions import (
    DuplicateParticipantError,
    InvalidRoundTransitionError,
    RoundFullError,
    RoundNotAcceptingError,
)
from prediction.logic.round import Participant, RoundState
from prediction.tests.conftest import make_settings

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def make_participant(identity: str, guess: int = 3, stake: str = "0.5") -> Participant:
    return Participant(
        identity=identity,
        guess=guess,
        stake_receipt=f"tx-{identity}",
        stake_amount=Decimal(stake),
        chain="Ethereum",
        joined_at=T0,
    )


@pytest.fixture
def round_state():
    return RoundState("round-1", make_settings(round_duration_seconds=5, max_participants=2), created_at=T0)


class TestAdmission:
    def test_new_round_is_waiting(self, round_state):
        assert round_state.status == RoundStatus.WAITING
        assert round_state.started_at is None
        assert round_state.ends_at is None
        assert round_state.correct_answer is None
        assert round_state.winner is None

    def test_first_admission_activates(self, round_state):
        activated = round_state.admit(make_participant("A"), now=T0)

        assert activated is True
        assert round_state.status == RoundStatus.ACTIVE
        assert round_state.started_at == T0
        assert round_state.ends_at == T0 + timedelta(seconds=5)

    def test_second_admission_keeps_active(self, round_state):
        round_state.admit(make_participant("A"), now=T0)
        activated = round_state.admit(make_participant("B"), now=T0 + timedelta(seconds=1))

        assert activated is False
        assert round_state.status == RoundStatus.ACTIVE
        assert round_state.started_at == T0
        assert [p.identity for p in round_state.participants] == ["A", "B"]

    def test_pool_tracks_sum_of_stakes(self, round_state):
        round_state.admit(make_participant("A", stake="0.25"), now=T0)
        round_state.admit(make_participant("B", stake="0.75"), now=T0)

        assert round_state.pool.total == sum(p.stake_amount for p in round_state.participants)

    def test_full_round_rejects(self, round_state):
        round_state.admit(make_participant("A"), now=T0)
        round_state.admit(make_participant("B"), now=T0)

        with pytest.raises(RoundFullError) as exc_info:
            round_state.admit(make_participant("C"), now=T0)
        assert exc_info.value.code == ErrorCode.ROUND_FULL
        assert round_state.participant_count == 2

    @pytest.mark.parametrize("guess", [1, 3, 5])
    def test_duplicate_identity_rejected_regardless_of_guess(self, round_state, guess):
        round_state.admit(make_participant("A", guess=3), now=T0)

        with pytest.raises(DuplicateParticipantError):
            round_state.admit(make_participant("A", guess=guess), now=T0)
        assert round_state.participant_count == 1
        assert round_state.pool.total == Decimal("0.5")

    def test_admission_after_deadline_rejected(self, round_state):
        round_state.admit(make_participant("A"), now=T0)

        with pytest.raises(RoundNotAcceptingError):
            round_state.admit(make_participant("B"), now=T0 + timedelta(seconds=5))

    def test_ended_round_rejects_before_capacity_check(self, round_state):
        round_state.admit(make_participant("A"), now=T0)
        round_state.admit(make_participant("B"), now=T0)
        round_state.resolve(1)

        # not-accepting wins over full and duplicate
        with pytest.raises(RoundNotAcceptingError):
            round_state.admit(make_participant("A"), now=T0)

    def test_full_checked_before_duplicate(self, round_state):
        round_state.admit(make_participant("A"), now=T0)
        round_state.admit(make_participant("B"), now=T0)

        with pytest.raises(RoundFullError):
            round_state.admit(make_participant("A"), now=T0)

    def test_pending_transfers_count_against_capacity(self, round_state):
        round_state.admit(make_participant("A"), now=T0)

        with pytest.raises(RoundFullError):
            round_state.check_admission("C", now=T0, pending=["B"])
        round_state.check_admission("C", now=T0)

    def test_pending_identity_is_duplicate(self, round_state):
        with pytest.raises(DuplicateParticipantError):
            round_state.check_admission("A", now=T0, pending=["A"])

    def test_zero_duration_round_stops_accepting_at_once(self):
        round_state = RoundState("round-0", make_settings(round_duration_seconds=0), created_at=T0)
        round_state.admit(make_participant("A"), now=T0)

        assert not round_state.is_accepting(T0)


class TestResolution:
    def test_matching_guess_wins(self, round_state):
        round_state.admit(make_participant("A", guess=2), now=T0)
        round_state.admit(make_participant("B", guess=4), now=T0)

        assert round_state.resolve(4) is True
        assert round_state.status == RoundStatus.ENDED
        assert round_state.correct_answer == 4
        assert round_state.winner is not None
        assert round_state.winner.identity == "B"

    def test_no_match_means_no_winner(self, round_state):
        round_state.admit(make_participant("A", guess=2), now=T0)
        round_state.admit(make_participant("B", guess=4), now=T0)

        round_state.resolve(1)
        assert round_state.status == RoundStatus.ENDED
        assert round_state.correct_answer == 1
        assert round_state.winner is None
        assert round_state.pool.share == Decimal(0)

    def test_first_joined_wins_tie(self, round_state):
        round_state.admit(make_participant("A", guess=3), now=T0)
        round_state.admit(make_participant("B", guess=3), now=T0)

        round_state.resolve(3)
        assert round_state.winner.identity == "A"
        assert round_state.pool.share == Decimal("1.0")

    def test_second_resolve_is_noop(self, round_state):
        round_state.admit(make_participant("A", guess=3), now=T0)
        round_state.resolve(3)

        assert round_state.resolve(1) is False
        assert round_state.correct_answer == 3
        assert round_state.winner.identity == "A"

    def test_waiting_round_cannot_resolve(self, round_state):
        with pytest.raises(InvalidRoundTransitionError):
            round_state.resolve(3)
        assert round_state.status == RoundStatus.WAITING

    def test_forced_expiry_of_empty_round(self, round_state):
        assert round_state.resolve(2, force=True) is True
        assert round_state.status == RoundStatus.ENDED
        assert round_state.winner is None


class TestSnapshot:
    def test_snapshot_is_detached_copy(self, round_state):
        round_state.admit(make_participant("A"), now=T0)
        snapshot = round_state.snapshot()

        round_state.admit(make_participant("B"), now=T0)

        assert len(snapshot.participants) == 1
        assert snapshot.status == RoundStatus.ACTIVE
        assert snapshot.prize_pool == Decimal("0.5")

    def test_snapshot_serializes_camel_case(self, round_state):
        round_state.admit(make_participant("A", guess=2), now=T0)
        round_state.resolve(2)

        payload = round_state.snapshot().model_dump(mode="json", by_alias=True)
        assert payload["roundId"] == "round-1"
        assert payload["status"] == "ended"
        assert payload["correctAnswer"] == 2
        assert payload["prizePool"] == "0.5"
        assert payload["winner"]["stakeReceipt"] == "tx-A"
