"""
The storage contract shared by the SQL and in-memory backends.

Lookups return None when nothing matches; updates on a missing id raise
NotFoundError; uniqueness violations raise DuplicateKeyError.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from dating_sim.core.errors import NotFoundError
from dating_sim.schemas.character import Character, CharacterCreate
from dating_sim.schemas.dialogue import Dialogue, DialogueCreate
from dating_sim.schemas.game_state import GameState, GameStateCreate, GameStateUpdate
from dating_sim.schemas.save_slot import SaveSlot, SaveSlotCreate
from dating_sim.schemas.settings import GameSettings
from dating_sim.schemas.user import User, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

__all__ = ["Storage", "DEFAULT_DIALOGUE_LIMIT", "GAME_STATE_DEFAULTS"]

DEFAULT_DIALOGUE_LIMIT = 50

GAME_STATE_DEFAULTS = {
    "affection_level": 0,
    "relationship_status": "stranger",
    "conversation_count": 0,
    "current_emotion": "neutral",
}


class Storage(ABC):
    backend_name = "unknown"

    # --- Users ---

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Case-sensitive exact match."""

    @abstractmethod
    async def create_user(self, user_data: UserCreate) -> User: ...

    @abstractmethod
    async def update_user(self, user_id: int, updates: UserUpdate) -> User: ...

    @abstractmethod
    async def update_user_global_settings(self, user_id: int, settings: GameSettings) -> User: ...

    # --- Characters ---

    @abstractmethod
    async def get_all_characters(self) -> List[Character]:
        """Insertion order."""

    @abstractmethod
    async def get_character(self, character_id: int) -> Optional[Character]: ...

    @abstractmethod
    async def create_character(self, character_data: CharacterCreate) -> Character: ...

    # --- Game states ---

    @abstractmethod
    async def get_game_state(self, user_id: int, character_id: int) -> Optional[GameState]: ...

    @abstractmethod
    async def get_game_state_by_id(self, game_state_id: int) -> Optional[GameState]: ...

    @abstractmethod
    async def create_game_state(self, game_state_data: GameStateCreate) -> GameState:
        """Raises DuplicateKeyError if the (user, character) pair already has a state."""

    @abstractmethod
    async def update_game_state(self, game_state_id: int, updates: GameStateUpdate) -> GameState: ...

    @abstractmethod
    async def get_user_game_states(self, user_id: int) -> List[GameState]:
        """Most recently updated first."""

    # --- Dialogues ---

    @abstractmethod
    async def get_dialogues(self, game_state_id: int, limit: int = DEFAULT_DIALOGUE_LIMIT) -> List[Dialogue]:
        """The most recent `limit` turns, returned oldest first."""

    @abstractmethod
    async def create_dialogue(self, dialogue_data: DialogueCreate) -> Dialogue: ...

    @abstractmethod
    async def count_dialogues(self, game_state_id: int) -> int: ...

    # --- Save slots ---

    @abstractmethod
    async def get_save_slots(self, user_id: int) -> List[SaveSlot]: ...

    @abstractmethod
    async def get_save_slot(self, user_id: int, slot_number: int) -> Optional[SaveSlot]: ...

    @abstractmethod
    async def create_save_slot(self, save_slot_data: SaveSlotCreate) -> SaveSlot:
        """Upsert: saving into an occupied slot replaces its content."""

    @abstractmethod
    async def delete_save_slot(self, user_id: int, slot_number: int) -> None:
        """Idempotent."""

    # --- Backstories ---

    @abstractmethod
    async def unlock_backstory(self, game_state_id: int, backstory_id: str) -> GameState: ...

    async def get_unlocked_backstories(self, game_state_id: int) -> List[str]:
        game_state = await self.get_game_state_by_id(game_state_id)
        if game_state is None:
            raise NotFoundError(f"Game state with ID '{game_state_id}' not found.")
        return list(game_state.unlocked_backstories or [])
