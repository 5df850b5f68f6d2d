"""HTTP client for the external settlement (bridge) service used in real mode."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from prediction.settlement.executor import SettlementError, SettlementExecutor, TransferReceipt

if TYPE_CHECKING:
    from prediction.settlement.executor import TransferRequest

logger = structlog.get_logger()

_ACCEPTED_STATUSES = frozenset({HTTPStatus.OK, HTTPStatus.CREATED})


class BridgeExecutor(SettlementExecutor):
    """
    Delegate transfers to a settlement service over HTTP.

    POST {base_url}/transfers with the transfer request as JSON; the service
    quotes, routes and executes the bridge transfer and answers with
    {"txid": "..."} once the source-side transaction is initiated.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def transfer(self, request: TransferRequest) -> TransferReceipt:
        try:
            response = await self._client.post(
                f"{self._base_url}/transfers",
                json=request.model_dump(mode="json"),
            )
        except httpx.RequestError as e:
            raise SettlementError(f"Failed to reach settlement service: {e}") from e

        if response.status_code not in _ACCEPTED_STATUSES:
            raise SettlementError(f"Settlement service returned {response.status_code}: {response.text}")

        try:
            body = response.json()
            receipt = TransferReceipt(tx_id=body["txid"])
        except (ValueError, TypeError, KeyError, ValidationError) as e:
            raise SettlementError(f"Malformed settlement response: {response.text}") from e

        logger.info("bridge transfer initiated", tx_id=receipt.tx_id)
        return receipt

    async def aclose(self) -> None:
        await self._client.aclose()
