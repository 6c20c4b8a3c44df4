from pydantic import Field, field_validator
from typing import List, Optional

from .base import CamelModel, UtcDatetime


class CharacterCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Morty Smith"])
    description: str = Field(..., examples=["Rick's grandson, a nervous but good-hearted teenager."])
    personality: str = Field(..., description="Free-text personality used to prompt the conversation model.")
    sprite: str = Field(..., examples=["/characters/morty.jpg"])
    color: str = Field(..., examples=["#FFB800"])
    traits: List[str] = Field(default_factory=list)
    emotion_states: List[str] = Field(
        default_factory=list,
        description="Vocabulary of valid currentEmotion values for game states with this character.",
    )

    @field_validator('traits', 'emotion_states')
    @classmethod
    def dedupe_preserving_order(cls, v: List[str]):
        """Traits and emotion states are sets; keep the first occurrence of each."""
        return list(dict.fromkeys(v))


class Character(CharacterCreate):
    id: int
    created_at: Optional[UtcDatetime] = None
