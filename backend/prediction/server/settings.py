"""Prediction server configuration via environment variables."""

import json
from decimal import Decimal
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from prediction.logic.enums import GameMode
from prediction.logic.settings import GameSettings
from prediction.settlement.wallets import derive_wallet_address


def parse_origins(value: str | list[str]) -> list[str]:
    """Accept a list, a JSON array string or a comma-separated string of origins."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ValueError("JSON value must be an array of strings")
        else:
            value = [item.strip() for item in stripped.split(",") if item.strip()]
    if not value:
        raise ValueError("cors_origins must not be empty")
    return value


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PREDICTION_", populate_by_name=True)

    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    log_dir: str | None = None
    default_mode: GameMode = GameMode.DEMO

    # gameplay, forwarded to GameSettings
    round_duration_seconds: float = Field(default=120, ge=0)
    max_participants: int = Field(default=5, ge=1)
    max_guess: int = Field(default=5, ge=1)
    stake_amount: Decimal = Field(default=Decimal("0.00001"), ge=0)
    source_chain: str = Field(default="Ethereum", min_length=1)
    destination_chain: str = Field(default="Solana", min_length=1)
    house_identity: str = Field(default="house", min_length=1)
    settlement_timeout_seconds: float = Field(default=900, gt=0)

    # settlement backends
    demo_transfer_delay_seconds: float = Field(default=1.0, ge=0)
    bridge_url: str | None = None

    # Read from MAINNET_ETH_PRIVATE_KEY (no PREDICTION_ prefix) to stay
    # compatible with existing wallet tooling.
    wallet_private_key: str | None = Field(default=None, validation_alias="MAINNET_ETH_PRIVATE_KEY")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origins(v)

    @property
    def wallet_address(self) -> str | None:
        return derive_wallet_address(self.wallet_private_key)

    def game_settings(self) -> GameSettings:
        return GameSettings(
            round_duration_seconds=self.round_duration_seconds,
            max_participants=self.max_participants,
            max_guess=self.max_guess,
            stake_amount=self.stake_amount,
            source_chain=self.source_chain,
            destination_chain=self.destination_chain,
            house_identity=self.house_identity,
            settlement_timeout_seconds=self.settlement_timeout_seconds,
        )
