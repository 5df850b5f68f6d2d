"""Stake accumulator for the active round."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

ZERO = Decimal(0)


class PrizePool:
    """
    Running total of stakes contributed to one round.

    The total only grows while the round accepts players. settle() fixes the
    per-winner share; with no winners the total is kept on the pool and the
    share is zero.
    """

    def __init__(self) -> None:
        self._total = ZERO
        self._settled = False
        self._share = ZERO

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def share(self) -> Decimal:
        """Per-winner amount fixed by settle(); zero before settlement."""
        return self._share

    def add(self, amount: Decimal) -> Decimal:
        if amount < 0:
            raise ValueError(f"Stake amount must be non-negative, got {amount}")
        if self._settled:
            raise ValueError("Cannot add stake to a settled prize pool")
        self._total += amount
        return self._total

    def settle(self, winners: Sequence[object]) -> Decimal:
        """Split the total equally across winners and return the per-winner amount."""
        if self._settled:
            return self._share
        self._settled = True
        if winners:
            self._share = self._total / len(winners)
        return self._share
