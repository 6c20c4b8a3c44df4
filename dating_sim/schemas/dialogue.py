from pydantic import Field
from typing import Literal, Optional

from .base import CamelModel, UtcDatetime

Speaker = Literal["character", "player"]
MessageType = Literal["choice", "custom", "character", "backstory"]


class DialogueCreate(CamelModel):
    game_state_id: int
    speaker: Speaker
    message: str = Field(..., examples=["Oh geez, h-hi there! I'm Morty!"])
    message_type: MessageType
    affection_change: int = 0
    emotion_triggered: Optional[str] = None
    backstory_id: Optional[str] = None


class Dialogue(DialogueCreate):
    id: int
    timestamp: UtcDatetime
