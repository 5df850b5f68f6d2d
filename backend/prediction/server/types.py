from pydantic import BaseModel, ConfigDict, StrictInt

from prediction.logic.enums import GameMode


class JoinRequest(BaseModel):
    """Body of POST /join. Range checks on the guess belong to the session."""

    model_config = ConfigDict(extra="forbid")

    guess: StrictInt
    mode: GameMode | None = None
