from typing import Optional
from pydantic import Field

from .base import CamelModel


class ConversationRequest(CamelModel):
    character_id: int = Field(..., examples=[2])
    message: str = Field(..., min_length=1, examples=["Want to go on an adventure?"])
    game_state_id: Optional[int] = Field(
        None,
        description="When given, recent dialogue and affection from this game state are sent as context.",
    )
    user_id: Optional[int] = Field(
        None,
        description="Whose settings (API key, model, content filter) apply to the request.",
    )


class ConversationResponse(CamelModel):
    message: str
    affection_change: int
    emotion: str
