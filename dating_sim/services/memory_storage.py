"""
Process-local storage used when no database is configured or reachable.

Nothing survives a restart. Records are copied on the way in and out so
callers never hold a reference to stored state.
"""
import itertools
import logging
from typing import Dict, List, Optional, Tuple

from dating_sim.core.errors import DuplicateKeyError, NotFoundError
from dating_sim.models._time import utcnow
from dating_sim.schemas.character import Character, CharacterCreate
from dating_sim.schemas.dialogue import Dialogue, DialogueCreate
from dating_sim.schemas.game_state import GameState, GameStateCreate, GameStateUpdate
from dating_sim.schemas.save_slot import SaveSlot, SaveSlotCreate
from dating_sim.schemas.settings import GameSettings
from dating_sim.schemas.user import User, UserCreate, UserUpdate
from dating_sim.services.settings import override_to_blob, settings_to_blob
from dating_sim.services.storage import DEFAULT_DIALOGUE_LIMIT, GAME_STATE_DEFAULTS, Storage

logger = logging.getLogger(__name__)

__all__ = ["MemoryStorage"]


class MemoryStorage(Storage):
    backend_name = "memory"

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._characters: Dict[int, Character] = {}
        self._game_states: Dict[int, GameState] = {}
        self._dialogues: Dict[int, List[Dialogue]] = {}
        self._save_slots: Dict[Tuple[int, int], SaveSlot] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("users", "characters", "game_states", "dialogues", "save_slots")
        }

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # --- Users ---

    async def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def create_user(self, user_data: UserCreate) -> User:
        if await self.get_user_by_username(user_data.username):
            logger.warning(f"User creation conflict: '{user_data.username}' already exists.")
            raise DuplicateKeyError(f"Username '{user_data.username}' is already taken.")

        user = User(
            id=self._next_id("users"),
            username=user_data.username,
            password=user_data.password,
            email=user_data.email,
            created_at=utcnow(),
        )
        self._users[user.id] = user
        logger.info(f"Created user '{user.username}' with ID: {user.id}")
        return user.model_copy(deep=True)

    def _require_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            logger.warning(f"User with ID '{user_id}' not found.")
            raise NotFoundError(f"User with ID '{user_id}' not found.")
        return user

    async def update_user(self, user_id: int, updates: UserUpdate) -> User:
        user = self._require_user(user_id)
        updated = user.model_copy(update=updates.changes(), deep=True)
        self._users[user_id] = updated
        return updated.model_copy(deep=True)

    async def update_user_global_settings(self, user_id: int, settings: GameSettings) -> User:
        user = self._require_user(user_id)
        updated = user.model_copy(update={"global_settings": settings_to_blob(settings)}, deep=True)
        self._users[user_id] = updated
        logger.info(f"Updated global settings for user {user_id}")
        return updated.model_copy(deep=True)

    # --- Characters ---

    async def get_all_characters(self) -> List[Character]:
        return [char.model_copy(deep=True) for char in self._characters.values()]

    async def get_character(self, character_id: int) -> Optional[Character]:
        character = self._characters.get(character_id)
        return character.model_copy(deep=True) if character else None

    async def create_character(self, character_data: CharacterCreate) -> Character:
        character = Character(
            id=self._next_id("characters"),
            created_at=utcnow(),
            **character_data.model_dump(),
        )
        self._characters[character.id] = character
        logger.info(f"Created character '{character.name}' with ID: {character.id}")
        return character.model_copy(deep=True)

    # --- Game states ---

    async def get_game_state(self, user_id: int, character_id: int) -> Optional[GameState]:
        for state in self._game_states.values():
            if state.user_id == user_id and state.character_id == character_id:
                return state.model_copy(deep=True)
        return None

    async def get_game_state_by_id(self, game_state_id: int) -> Optional[GameState]:
        state = self._game_states.get(game_state_id)
        return state.model_copy(deep=True) if state else None

    async def create_game_state(self, game_state_data: GameStateCreate) -> GameState:
        user_id, character_id = game_state_data.user_id, game_state_data.character_id
        if await self.get_game_state(user_id, character_id):
            detail = f"Game state for user {user_id} and character {character_id} already exists."
            logger.warning(detail)
            raise DuplicateKeyError(detail)

        values = game_state_data.model_dump(exclude={"settings"}, exclude_none=True)
        for key, default in GAME_STATE_DEFAULTS.items():
            values.setdefault(key, default)
        values.setdefault("unlocked_backstories", [])

        now = utcnow()
        state = GameState(
            id=self._next_id("game_states"),
            settings=override_to_blob(game_state_data.settings),
            created_at=now,
            updated_at=now,
            **values,
        )
        self._game_states[state.id] = state
        logger.info(f"Created game state {state.id} for user {user_id}, character {character_id}")
        return state.model_copy(deep=True)

    def _require_game_state(self, game_state_id: int) -> GameState:
        state = self._game_states.get(game_state_id)
        if state is None:
            logger.warning(f"Game state with ID '{game_state_id}' not found.")
            raise NotFoundError(f"Game state with ID '{game_state_id}' not found.")
        return state

    async def update_game_state(self, game_state_id: int, updates: GameStateUpdate) -> GameState:
        state = self._require_game_state(game_state_id)
        update_data = updates.changes()
        if "settings" in update_data:
            update_data["settings"] = override_to_blob(updates.settings)
        update_data["updated_at"] = utcnow()

        updated = state.model_copy(update=update_data, deep=True)
        self._game_states[game_state_id] = updated
        return updated.model_copy(deep=True)

    async def get_user_game_states(self, user_id: int) -> List[GameState]:
        states = [s for s in self._game_states.values() if s.user_id == user_id]
        states.sort(key=lambda s: (s.updated_at, s.id), reverse=True)
        return [s.model_copy(deep=True) for s in states]

    # --- Dialogues ---

    async def get_dialogues(self, game_state_id: int, limit: int = DEFAULT_DIALOGUE_LIMIT) -> List[Dialogue]:
        if limit <= 0:
            return []
        turns = sorted(self._dialogues.get(game_state_id, []), key=lambda d: (d.timestamp, d.id))
        return [d.model_copy(deep=True) for d in turns[-limit:]]

    async def create_dialogue(self, dialogue_data: DialogueCreate) -> Dialogue:
        dialogue = Dialogue(
            id=self._next_id("dialogues"),
            timestamp=utcnow(),
            **dialogue_data.model_dump(),
        )
        self._dialogues.setdefault(dialogue.game_state_id, []).append(dialogue)
        logger.debug(f"Appended dialogue {dialogue.id} to game state {dialogue.game_state_id}")
        return dialogue.model_copy(deep=True)

    async def count_dialogues(self, game_state_id: int) -> int:
        return len(self._dialogues.get(game_state_id, []))

    # --- Save slots ---

    async def get_save_slots(self, user_id: int) -> List[SaveSlot]:
        slots = [slot for (owner, _), slot in self._save_slots.items() if owner == user_id]
        slots.sort(key=lambda slot: slot.slot_number)
        return [slot.model_copy(deep=True) for slot in slots]

    async def get_save_slot(self, user_id: int, slot_number: int) -> Optional[SaveSlot]:
        slot = self._save_slots.get((user_id, slot_number))
        return slot.model_copy(deep=True) if slot else None

    async def create_save_slot(self, save_slot_data: SaveSlotCreate) -> SaveSlot:
        key = (save_slot_data.user_id, save_slot_data.slot_number)
        now = utcnow()
        existing = self._save_slots.get(key)
        if existing:
            logger.info(f"Overwriting save slot {key[1]} for user {key[0]}")
            slot = existing.model_copy(update={**save_slot_data.model_dump(), "updated_at": now}, deep=True)
        else:
            logger.info(f"Creating save slot {key[1]} for user {key[0]}")
            slot = SaveSlot(
                id=self._next_id("save_slots"),
                created_at=now,
                updated_at=now,
                **save_slot_data.model_dump(),
            )
        self._save_slots[key] = slot
        return slot.model_copy(deep=True)

    async def delete_save_slot(self, user_id: int, slot_number: int) -> None:
        removed = self._save_slots.pop((user_id, slot_number), None)
        logger.info(f"Deleted {1 if removed else 0} save slot(s) at slot {slot_number} for user {user_id}")

    # --- Backstories ---

    async def unlock_backstory(self, game_state_id: int, backstory_id: str) -> GameState:
        state = self._require_game_state(game_state_id)
        if backstory_id in state.unlocked_backstories:
            logger.debug(f"Backstory '{backstory_id}' already unlocked for game state {game_state_id}")
            return state.model_copy(deep=True)

        updated = state.model_copy(
            update={
                "unlocked_backstories": state.unlocked_backstories + [backstory_id],
                "updated_at": utcnow(),
            },
            deep=True,
        )
        self._game_states[game_state_id] = updated
        logger.info(f"Unlocked backstory '{backstory_id}' for game state {game_state_id}")
        return updated.model_copy(deep=True)
