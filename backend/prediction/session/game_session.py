"""
Orchestrator owning the current round of one game mode.

Join flow: validate the guess, check admission under the session lock and
hold a place in the round, release the lock while the settlement executor
moves the stake, then re-acquire the lock and admit. Held places count
against capacity, so a full round is rejected before any transfer starts.
Join order is the order admissions complete. A round can still expire while
a transfer is in flight; that case is reported as a post-transfer
inconsistency and never silently dropped.
"""

from __future__ import annotations

import asyncio
import functools
import itertools
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from prediction.logic.answers import RandomAnswerSource
from prediction.logic.clock import RoundClock
from prediction.logic.enums import ErrorCode, RoundStatus
from prediction.logic.exceptions import DuplicateParticipantError, GuessValidationError, RoundRejectionError
from prediction.logic.round import Participant, RoundState
from prediction.session.outcomes import JoinOutcome
from prediction.settlement.executor import SettlementError, TransferRequest

if TYPE_CHECKING:
    from decimal import Decimal

    from prediction.logic.answers import AnswerSource
    from prediction.logic.round import RoundSnapshot
    from prediction.logic.settings import GameSettings
    from prediction.settlement.executor import SettlementExecutor, TransferReceipt

logger = structlog.get_logger()


class GameSession:
    def __init__(
        self,
        settings: GameSettings,
        executor: SettlementExecutor,
        *,
        answer_source: AnswerSource | None = None,
        round_prefix: str = "game",
    ) -> None:
        self._settings = settings
        self._executor = executor
        self._answer_source = answer_source or RandomAnswerSource()
        self._round_prefix = round_prefix
        self._round_counter = itertools.count(1)
        self._round: RoundState | None = None
        self._clock: RoundClock | None = None
        self._lock = asyncio.Lock()
        self._pending: dict[str, str] = {}  # identity -> round id, stake transfer in flight
        self._payout_tasks: set[asyncio.Task[None]] = set()

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def current_round(self) -> RoundState | None:
        return self._round

    def _new_round_id(self) -> str:
        return f"{self._round_prefix}_{next(self._round_counter)}_{int(time.time() * 1000)}"

    def _ensure_round(self) -> RoundState:
        """Return the current round, creating a fresh one if none exists or the last one ended."""
        if self._round is None or self._round.is_ended:
            if self._clock is not None:
                self._clock.cancel()
            self._round = RoundState(self._new_round_id(), self._settings)
            self._clock = RoundClock()
            logger.info("round created", round_id=self._round.round_id)
        return self._round

    async def join(self, identity: str, guess: int) -> JoinOutcome:
        """Admit identity with guess into the current round, moving its stake first."""
        if not self._settings.is_valid_guess(guess):
            error = GuessValidationError(guess, self._settings.max_guess)
            logger.warning("join rejected", error_code=error.code, identity=identity)
            return JoinOutcome.failed(identity, error.code, str(error))

        try:
            return await self._join(identity, guess)
        except Exception:
            logger.exception("unexpected error during join", identity=identity)
            return JoinOutcome.failed(identity, ErrorCode.INTERNAL_ERROR, "Internal error while joining")

    async def _join(self, identity: str, guess: int) -> JoinOutcome:
        async with self._lock:
            round_state = self._ensure_round()
            with structlog.contextvars.bound_contextvars(round_id=round_state.round_id):
                rejection = self._reserve(round_state, identity)
            if rejection is not None:
                return rejection

        with structlog.contextvars.bound_contextvars(round_id=round_state.round_id):
            return await self._complete_join(round_state, identity, guess)

    def _pending_for(self, round_state: RoundState) -> list[str]:
        return [identity for identity, round_id in self._pending.items() if round_id == round_state.round_id]

    def _reserve(self, round_state: RoundState, identity: str) -> JoinOutcome | None:
        """
        Check admission with in-flight transfers counted as participants.

        On success the identity holds a place in the round until its transfer
        settles. Must be called with the session lock held.
        """
        try:
            round_state.check_admission(identity, pending=self._pending_for(round_state))
            if identity in self._pending:
                raise DuplicateParticipantError(round_state.round_id, "Player already joining another round")
        except RoundRejectionError as e:
            logger.warning("join rejected", error_code=e.code, identity=identity, reason=e.reason)
            return JoinOutcome.failed(identity, e.code, e.reason, round_id=round_state.round_id)
        self._pending[identity] = round_state.round_id
        return None

    async def _complete_join(self, round_state: RoundState, identity: str, guess: int) -> JoinOutcome:
        try:
            receipt = await self._transfer_stake(identity)
            async with self._lock:
                # the held place turns into a participant with no await in between
                del self._pending[identity]
                return self._admit(round_state, identity, guess, receipt)
        except SettlementError as e:
            logger.warning("stake transfer failed", identity=identity, error=str(e))
            return JoinOutcome.failed(
                identity,
                ErrorCode.EXECUTOR_FAILURE,
                f"Stake transfer failed: {e}",
                round_id=round_state.round_id,
            )
        finally:
            self._pending.pop(identity, None)

    async def _transfer_stake(self, identity: str) -> TransferReceipt:
        request = TransferRequest(
            amount=self._settings.stake_amount,
            source_chain=self._settings.source_chain,
            destination_chain=self._settings.destination_chain,
            sender=identity,
            receiver=self._settings.house_identity,
        )
        try:
            return await asyncio.wait_for(
                self._executor.transfer(request),
                timeout=self._settings.settlement_timeout_seconds,
            )
        except TimeoutError as e:
            raise SettlementError(
                f"Transfer timed out after {self._settings.settlement_timeout_seconds} seconds",
            ) from e

    def _admit(self, round_state: RoundState, identity: str, guess: int, receipt: TransferReceipt) -> JoinOutcome:
        participant = Participant(
            identity=identity,
            guess=guess,
            stake_receipt=receipt.tx_id,
            stake_amount=self._settings.stake_amount,
            chain=self._settings.source_chain,
            joined_at=datetime.now(UTC),
        )
        try:
            activated = round_state.admit(participant)
        except RoundRejectionError as e:
            # funds moved but the participant is not recorded
            logger.error(
                "post-transfer inconsistency",
                identity=identity,
                tx_id=receipt.tx_id,
                round_id=round_state.round_id,
                rejection=e.code,
                reason=e.reason,
            )
            return JoinOutcome.failed(
                identity,
                ErrorCode.POST_TRANSFER_INCONSISTENCY,
                f"Stake transferred but admission failed: {e.reason}",
                round_id=round_state.round_id,
                tx_id=receipt.tx_id,
            )

        logger.info(
            "participant admitted",
            identity=identity,
            guess=guess,
            tx_id=receipt.tx_id,
            participants=round_state.participant_count,
            prize_pool=str(round_state.pool.total),
        )
        if activated and self._clock is not None:
            self._clock.start(
                self._settings.round_duration_seconds,
                functools.partial(self.expire_round, round_state.round_id),
            )
            logger.info("round activated", duration_seconds=self._settings.round_duration_seconds)

        return JoinOutcome(
            success=True,
            identity=identity,
            round_id=round_state.round_id,
            tx_id=receipt.tx_id,
        )

    async def expire_round(self, round_id: str) -> None:
        """
        Resolve round_id if it is the current, active round.

        Calls for any other round, and repeated calls after the first, are no-ops.
        """
        async with self._lock:
            round_state = self._round
            if round_state is None or round_state.round_id != round_id or round_state.status != RoundStatus.ACTIVE:
                return
            answer = self._answer_source.pick(self._settings.max_guess)
            round_state.resolve(answer)
            winner = round_state.winner
            share = round_state.pool.share
            logger.info(
                "round resolved",
                round_id=round_state.round_id,
                correct_answer=answer,
                winner=winner.identity if winner else None,
                participants=round_state.participant_count,
                prize_pool=str(round_state.pool.total),
            )

        if winner is None:
            logger.info("no winner this round", round_id=round_state.round_id)
            return
        task = asyncio.create_task(self._pay_out(round_state.round_id, winner.identity, share))
        self._payout_tasks.add(task)
        task.add_done_callback(self._payout_tasks.discard)

    async def _pay_out(self, round_id: str, identity: str, amount: Decimal) -> None:
        """Best-effort prize return to the winner; never touches the ended round."""
        request = TransferRequest(
            amount=amount,
            source_chain=self._settings.destination_chain,
            destination_chain=self._settings.source_chain,
            sender=self._settings.house_identity,
            receiver=identity,
        )
        try:
            receipt = await asyncio.wait_for(
                self._executor.transfer(request),
                timeout=self._settings.settlement_timeout_seconds,
            )
        except (SettlementError, TimeoutError):
            logger.exception("prize payout failed", round_id=round_id, winner=identity, amount=str(amount))
            return
        logger.info("prize paid out", round_id=round_id, winner=identity, amount=str(amount), tx_id=receipt.tx_id)

    def status(self) -> RoundSnapshot | None:
        return self._round.snapshot() if self._round is not None else None

    def time_remaining(self) -> int:
        if self._round is None or self._round.status != RoundStatus.ACTIVE or self._clock is None:
            return 0
        return self._clock.time_remaining()

    def can_join(self) -> bool:
        round_state = self._round
        if round_state is None or not round_state.is_accepting():
            return False
        return round_state.participant_count + len(self._pending_for(round_state)) < round_state.max_participants

    def get_participant(self, identity: str) -> Participant | None:
        return self._round.get_participant(identity) if self._round is not None else None

    async def shutdown(self) -> None:
        """Cancel the round clock and any in-flight payouts."""
        if self._clock is not None:
            self._clock.cancel()
        tasks = list(self._payout_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._executor.aclose()
