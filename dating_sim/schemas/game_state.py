from pydantic import ConfigDict, Field
from typing import Any, Dict, List, Optional

from .base import CamelModel, UtcDatetime
from .settings import SettingsUpdate


class GameStateCreate(CamelModel):
    user_id: int
    character_id: int
    # Omitted fields get the store defaults
    affection_level: Optional[int] = None
    relationship_status: Optional[str] = None
    conversation_count: Optional[int] = Field(default=None, ge=0)
    current_emotion: Optional[str] = None
    unlocked_backstories: Optional[List[str]] = None
    settings: Optional[SettingsUpdate] = None


class GameStateUpdate(CamelModel):
    """
    Partial update. List and object fields replace the stored value
    wholesale; nothing is deep-merged.
    """
    model_config = ConfigDict(extra="ignore")

    affection_level: Optional[int] = None
    relationship_status: Optional[str] = None
    conversation_count: Optional[int] = Field(default=None, ge=0)
    current_emotion: Optional[str] = None
    unlocked_backstories: Optional[List[str]] = None
    settings: Optional[SettingsUpdate] = None
    last_saved_at: Optional[UtcDatetime] = None

    def changes(self) -> Dict[str, Any]:
        """Fields the client sent. Null clears the settings override; for other fields it means unchanged."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k == "settings"}


class GameState(CamelModel):
    id: int
    user_id: int
    character_id: int
    affection_level: int = 0
    relationship_status: str = "stranger"
    conversation_count: int = 0
    current_emotion: str = "neutral"
    unlocked_backstories: List[str] = Field(default_factory=list)
    settings: Optional[Dict[str, Any]] = None
    last_saved_at: Optional[UtcDatetime] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class TurnOutcome(CamelModel):
    """Result of one exchange, applied to a game state by the game rules."""
    affection_change: int = 0
    emotion: Optional[str] = None


class BackstoryUnlockRequest(CamelModel):
    backstory_id: str = Field(..., min_length=1, max_length=100, examples=["origin"])


class BackstoryList(CamelModel):
    game_state_id: int
    unlocked_backstories: List[str]
