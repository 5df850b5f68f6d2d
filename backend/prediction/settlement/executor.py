from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class SettlementError(Exception):
    """Transfer failed or timed out. No money is assumed to have moved."""


class TransferRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(ge=0)
    source_chain: str
    destination_chain: str
    sender: str
    receiver: str


class TransferReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    tx_id: str = Field(min_length=1)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SettlementExecutor(ABC):
    """
    Abstract interface for the value-transfer side effect.

    The call may suspend for an unbounded time; GameSession bounds it with
    its own timeout. Implementations raise SettlementError on failure.
    """

    @abstractmethod
    async def transfer(self, request: TransferRequest) -> TransferReceipt:
        """
        Move request.amount from sender on source_chain to receiver on destination_chain.
        """
        ...

    async def aclose(self) -> None:  # noqa: B027
        """Release any resources held by the executor."""
