"""Demo executor that simulates a cross-chain transfer without moving funds."""

from __future__ import annotations

import asyncio
import random
import string
import time
from typing import TYPE_CHECKING

import structlog

from prediction.settlement.executor import SettlementExecutor, TransferReceipt

if TYPE_CHECKING:
    from prediction.settlement.executor import TransferRequest

logger = structlog.get_logger()

_TX_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_TX_SUFFIX_LENGTH = 9


def demo_tx_id(rng: random.Random) -> str:
    """Build a mock transaction id: demo_tx_<epoch-millis>_<9 base36 chars>."""
    suffix = "".join(rng.choice(_TX_SUFFIX_ALPHABET) for _ in range(_TX_SUFFIX_LENGTH))
    return f"demo_tx_{int(time.time() * 1000)}_{suffix}"


class StubExecutor(SettlementExecutor):
    def __init__(self, delay_seconds: float = 1.0, seed: int | None = None) -> None:
        self._delay_seconds = max(0.0, delay_seconds)
        self._rng = random.Random(seed)  # noqa: S311

    async def transfer(self, request: TransferRequest) -> TransferReceipt:
        logger.info(
            "simulating transfer",
            amount=str(request.amount),
            source_chain=request.source_chain,
            destination_chain=request.destination_chain,
        )
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        return TransferReceipt(tx_id=demo_tx_id(self._rng))
