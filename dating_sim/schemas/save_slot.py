from pydantic import Field
from typing import Any, Dict, Optional

from .base import CamelModel, UtcDatetime


class SaveSlotCreate(CamelModel):
    user_id: int
    slot_number: int = Field(..., ge=1)
    game_state_snapshot: Dict[str, Any]
    dialogue_count: int = Field(default=0, ge=0)
    character_name: str
    affection_level: int
    relationship_status: str


class SaveSlot(SaveSlotCreate):
    id: int
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class SaveGameRequest(CamelModel):
    """Save the live game state into a slot; the server builds the snapshot."""
    user_id: int
    slot_number: int = Field(..., ge=1)
    game_state_id: int
