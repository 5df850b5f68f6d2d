from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from prediction.logic.enums import ErrorCode


class JoinOutcome(BaseModel):
    """Result of GameSession.join. Failures carry an ErrorCode and a readable message."""

    model_config = ConfigDict(frozen=True)

    success: bool
    identity: str
    round_id: str | None = None
    tx_id: str | None = None
    error_code: ErrorCode | None = None
    message: str | None = None

    @classmethod
    def failed(
        cls,
        identity: str,
        code: ErrorCode,
        message: str,
        *,
        round_id: str | None = None,
        tx_id: str | None = None,
    ) -> JoinOutcome:
        return cls(
            success=False,
            identity=identity,
            round_id=round_id,
            tx_id=tx_id,
            error_code=code,
            message=message,
        )
