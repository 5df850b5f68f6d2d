"""Gameplay settings for a single game session."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class GameSettings(BaseModel):
    """
    Configuration for one GameSession.

    Defaults match the demo deployment: two-minute rounds, five players,
    guesses from 1 to 5 and a tiny fixed stake.
    """

    model_config = ConfigDict(frozen=True)

    # --- Round ---
    round_duration_seconds: float = Field(default=120, ge=0)
    max_participants: int = Field(default=5, ge=1)
    max_guess: int = Field(default=5, ge=1)

    # --- Stake / settlement ---
    stake_amount: Decimal = Field(default=Decimal("0.00001"), ge=0)
    source_chain: str = Field(default="Ethereum", min_length=1)
    destination_chain: str = Field(default="Solana", min_length=1)
    house_identity: str = Field(default="house", min_length=1)
    settlement_timeout_seconds: float = Field(default=900, gt=0)

    def is_valid_guess(self, guess: object) -> bool:
        """Return True when guess is an int (not bool) in [1, max_guess]."""
        if isinstance(guess, bool) or not isinstance(guess, int):
            return False
        return 1 <= guess <= self.max_guess
