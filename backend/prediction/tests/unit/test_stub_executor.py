import random
import re
from decimal import Decimal

from prediction.settlement.executor import TransferRequest
from prediction.settlement.stub import StubExecutor, demo_tx_id

TX_ID_PATTERN = re.compile(r"^demo_tx_\d{13}_[a-z0-9]{9}$")


def _request() -> TransferRequest:
    return TransferRequest(
        amount=Decimal("0.00001"),
        source_chain="Ethereum",
        destination_chain="Solana",
        sender="0x1234567890123456789012345678901234567890",
        receiver="house",
    )


class TestDemoTxId:
    def test_format(self):
        assert TX_ID_PATTERN.match(demo_tx_id(random.Random(1)))

    def test_seeded_suffix_is_reproducible(self):
        first = demo_tx_id(random.Random(7)).rsplit("_", 1)[1]
        second = demo_tx_id(random.Random(7)).rsplit("_", 1)[1]
        assert first == second


class TestStubExecutor:
    async def test_returns_demo_receipt(self):
        receipt = await StubExecutor(delay_seconds=0).transfer(_request())

        assert TX_ID_PATTERN.match(receipt.tx_id)
        assert receipt.completed_at is not None

    async def test_distinct_ids_per_transfer(self):
        executor = StubExecutor(delay_seconds=0, seed=3)

        first = await executor.transfer(_request())
        second = await executor.transfer(_request())

        assert first.tx_id != second.tx_id

    async def test_negative_delay_treated_as_zero(self):
        receipt = await StubExecutor(delay_seconds=-1).transfer(_request())
        assert receipt.tx_id.startswith("demo_tx_")

    async def test_aclose_is_noop(self):
        await StubExecutor(delay_seconds=0).aclose()
