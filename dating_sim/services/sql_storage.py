import logging
from typing import List, Optional

from sqlalchemy import func as sql_func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dating_sim.core.errors import DuplicateKeyError, NotFoundError, StorageUnavailableError
from dating_sim.models import (
    Character as CharacterModel,
    Dialogue as DialogueModel,
    GameState as GameStateModel,
    SaveSlot as SaveSlotModel,
    User as UserModel,
)
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

__all__ = ["SqlStorage"]


class SqlStorage(Storage):
    """
    Storage backed by a SQLAlchemy session; one instance per request.

    Methods are async to share the Storage interface but run the session
    synchronously on the event loop.
    """

    backend_name = "database"

    def __init__(self, db: Session):
        """
        Args:
            db (Session): The SQLAlchemy database session.
        """
        self.db = db
        logger.debug(f"SqlStorage initialized with db session: {db}")

    def _commit(self, action: str, conflict_detail: Optional[str] = None) -> None:
        """
        Commit the pending unit of work, translating database failures into
        domain errors. Integrity errors become DuplicateKeyError.
        """
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error while trying to {action}: {e.orig}")
            raise DuplicateKeyError(conflict_detail or f"Could not {action}: uniqueness constraint violated.") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action}: {str(e)}", exc_info=True)
            raise StorageUnavailableError(f"Database error while trying to {action}.") from e

    def _query(self, action: str, run):
        try:
            return run()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action}: {str(e)}", exc_info=True)
            raise StorageUnavailableError(f"Database error while trying to {action}.") from e

    # --- Users ---

    async def get_user(self, user_id: int) -> Optional[User]:
        logger.debug(f"Retrieving user by ID: {user_id}")
        db_user = self._query("read user", lambda: self.db.get(UserModel, user_id))
        return User.model_validate(db_user) if db_user else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        logger.debug(f"Retrieving user by username: {username}")
        db_user = self._query(
            "read user",
            lambda: self.db.query(UserModel).filter(UserModel.username == username).first(),
        )
        return User.model_validate(db_user) if db_user else None

    async def create_user(self, user_data: UserCreate) -> User:
        logger.info(f"Attempting to create user: {user_data.username}")
        detail = f"Username '{user_data.username}' is already taken."

        existing = await self.get_user_by_username(user_data.username)
        if existing:
            logger.warning(f"User creation conflict: '{user_data.username}' already exists (ID: {existing.id}).")
            raise DuplicateKeyError(detail)

        db_user = UserModel(
            username=user_data.username,
            password=user_data.password,
            email=user_data.email,
        )
        self.db.add(db_user)
        # The unique constraint still guards against a concurrent insert
        self._commit("create user", conflict_detail=detail)
        self.db.refresh(db_user)
        logger.info(f"Successfully created user '{db_user.username}' with ID: {db_user.id}")
        return User.model_validate(db_user)

    def _get_user_row(self, user_id: int) -> UserModel:
        db_user = self._query("read user", lambda: self.db.get(UserModel, user_id))
        if not db_user:
            logger.warning(f"User with ID '{user_id}' not found.")
            raise NotFoundError(f"User with ID '{user_id}' not found.")
        return db_user

    async def update_user(self, user_id: int, updates: UserUpdate) -> User:
        logger.info(f"Attempting to update user with ID: {user_id}")
        db_user = self._get_user_row(user_id)

        update_data = updates.changes()
        logger.debug(f"Updating user {user_id} fields: {sorted(update_data)}")
        for key, value in update_data.items():
            setattr(db_user, key, value)

        self._commit("update user")
        self.db.refresh(db_user)
        return User.model_validate(db_user)

    async def update_user_global_settings(self, user_id: int, settings: GameSettings) -> User:
        logger.info(f"Updating global settings for user {user_id}")
        db_user = self._get_user_row(user_id)
        db_user.global_settings = settings_to_blob(settings)
        self._commit("update user settings")
        self.db.refresh(db_user)
        return User.model_validate(db_user)

    # --- Characters ---

    async def get_all_characters(self) -> List[Character]:
        db_characters = self._query(
            "read characters",
            lambda: self.db.query(CharacterModel).order_by(CharacterModel.id).all(),
        )
        logger.debug(f"Retrieved {len(db_characters)} characters.")
        return [Character.model_validate(char) for char in db_characters]

    async def get_character(self, character_id: int) -> Optional[Character]:
        db_character = self._query("read character", lambda: self.db.get(CharacterModel, character_id))
        if not db_character:
            logger.debug(f"Character with ID '{character_id}' not found.")
            return None
        return Character.model_validate(db_character)

    async def create_character(self, character_data: CharacterCreate) -> Character:
        logger.info(f"Attempting to create character: {character_data.name}")
        db_character = CharacterModel(**character_data.model_dump())
        self.db.add(db_character)
        self._commit("create character")
        self.db.refresh(db_character)
        logger.info(f"Successfully created character '{db_character.name}' with ID: {db_character.id}")
        return Character.model_validate(db_character)

    # --- Game states ---

    async def get_game_state(self, user_id: int, character_id: int) -> Optional[GameState]:
        db_state = self._query(
            "read game state",
            lambda: self.db.query(GameStateModel)
            .filter(GameStateModel.user_id == user_id, GameStateModel.character_id == character_id)
            .first(),
        )
        return GameState.model_validate(db_state) if db_state else None

    async def get_game_state_by_id(self, game_state_id: int) -> Optional[GameState]:
        db_state = self._query("read game state", lambda: self.db.get(GameStateModel, game_state_id))
        return GameState.model_validate(db_state) if db_state else None

    async def create_game_state(self, game_state_data: GameStateCreate) -> GameState:
        user_id, character_id = game_state_data.user_id, game_state_data.character_id
        logger.info(f"Creating game state for user {user_id}, character {character_id}")
        detail = f"Game state for user {user_id} and character {character_id} already exists."

        if await self.get_game_state(user_id, character_id):
            logger.warning(detail)
            raise DuplicateKeyError(detail)

        values = game_state_data.model_dump(exclude={"settings"}, exclude_none=True)
        for key, default in GAME_STATE_DEFAULTS.items():
            values.setdefault(key, default)
        values.setdefault("unlocked_backstories", [])

        now = utcnow()
        db_state = GameStateModel(
            **values,
            settings=override_to_blob(game_state_data.settings),
            created_at=now,
            updated_at=now,
        )
        self.db.add(db_state)
        self._commit("create game state", conflict_detail=detail)
        self.db.refresh(db_state)
        logger.info(f"Created game state {db_state.id} for user {user_id}, character {character_id}")
        return GameState.model_validate(db_state)

    def _get_game_state_row(self, game_state_id: int) -> GameStateModel:
        db_state = self._query("read game state", lambda: self.db.get(GameStateModel, game_state_id))
        if not db_state:
            logger.warning(f"Game state with ID '{game_state_id}' not found.")
            raise NotFoundError(f"Game state with ID '{game_state_id}' not found.")
        return db_state

    async def update_game_state(self, game_state_id: int, updates: GameStateUpdate) -> GameState:
        db_state = self._get_game_state_row(game_state_id)

        update_data = updates.changes()
        if "settings" in update_data:
            update_data["settings"] = override_to_blob(updates.settings)
        logger.debug(f"Updating game state {game_state_id} fields: {sorted(update_data)}")

        for key, value in update_data.items():
            setattr(db_state, key, value)
        db_state.updated_at = utcnow()

        self._commit("update game state")
        self.db.refresh(db_state)
        return GameState.model_validate(db_state)

    async def get_user_game_states(self, user_id: int) -> List[GameState]:
        db_states = self._query(
            "read game states",
            lambda: self.db.query(GameStateModel)
            .filter(GameStateModel.user_id == user_id)
            .order_by(GameStateModel.updated_at.desc(), GameStateModel.id.desc())
            .all(),
        )
        return [GameState.model_validate(state) for state in db_states]

    # --- Dialogues ---

    async def get_dialogues(self, game_state_id: int, limit: int = DEFAULT_DIALOGUE_LIMIT) -> List[Dialogue]:
        if limit <= 0:
            return []
        # Newest first to take the most recent turns, then back to chronological order
        db_dialogues = self._query(
            "read dialogues",
            lambda: self.db.query(DialogueModel)
            .filter(DialogueModel.game_state_id == game_state_id)
            .order_by(DialogueModel.timestamp.desc(), DialogueModel.id.desc())
            .limit(limit)
            .all(),
        )
        return [Dialogue.model_validate(d) for d in reversed(db_dialogues)]

    async def create_dialogue(self, dialogue_data: DialogueCreate) -> Dialogue:
        db_dialogue = DialogueModel(**dialogue_data.model_dump(), timestamp=utcnow())
        self.db.add(db_dialogue)
        self._commit("create dialogue")
        self.db.refresh(db_dialogue)
        logger.debug(f"Appended dialogue {db_dialogue.id} to game state {db_dialogue.game_state_id}")
        return Dialogue.model_validate(db_dialogue)

    async def count_dialogues(self, game_state_id: int) -> int:
        return self._query(
            "count dialogues",
            lambda: self.db.query(sql_func.count(DialogueModel.id))
            .filter(DialogueModel.game_state_id == game_state_id)
            .scalar(),
        ) or 0

    # --- Save slots ---

    def _save_slot_row(self, user_id: int, slot_number: int) -> Optional[SaveSlotModel]:
        return self._query(
            "read save slot",
            lambda: self.db.query(SaveSlotModel)
            .filter(SaveSlotModel.user_id == user_id, SaveSlotModel.slot_number == slot_number)
            .first(),
        )

    async def get_save_slots(self, user_id: int) -> List[SaveSlot]:
        db_slots = self._query(
            "read save slots",
            lambda: self.db.query(SaveSlotModel)
            .filter(SaveSlotModel.user_id == user_id)
            .order_by(SaveSlotModel.slot_number)
            .all(),
        )
        return [SaveSlot.model_validate(slot) for slot in db_slots]

    async def get_save_slot(self, user_id: int, slot_number: int) -> Optional[SaveSlot]:
        db_slot = self._save_slot_row(user_id, slot_number)
        return SaveSlot.model_validate(db_slot) if db_slot else None

    async def create_save_slot(self, save_slot_data: SaveSlotCreate) -> SaveSlot:
        user_id, slot_number = save_slot_data.user_id, save_slot_data.slot_number
        values = save_slot_data.model_dump()
        now = utcnow()

        db_slot = self._save_slot_row(user_id, slot_number)
        if db_slot:
            logger.info(f"Overwriting save slot {slot_number} for user {user_id}")
            for key, value in values.items():
                setattr(db_slot, key, value)
            db_slot.updated_at = now
        else:
            logger.info(f"Creating save slot {slot_number} for user {user_id}")
            db_slot = SaveSlotModel(**values, created_at=now, updated_at=now)
            self.db.add(db_slot)

        self._commit(
            "save game",
            conflict_detail=f"Save slot {slot_number} for user {user_id} was written concurrently; retry the save.",
        )
        self.db.refresh(db_slot)
        return SaveSlot.model_validate(db_slot)

    async def delete_save_slot(self, user_id: int, slot_number: int) -> None:
        deleted = self._query(
            "delete save slot",
            lambda: self.db.query(SaveSlotModel)
            .filter(SaveSlotModel.user_id == user_id, SaveSlotModel.slot_number == slot_number)
            .delete(synchronize_session=False),
        )
        self._commit("delete save slot")
        logger.info(f"Deleted {deleted} save slot(s) at slot {slot_number} for user {user_id}")

    # --- Backstories ---

    async def unlock_backstory(self, game_state_id: int, backstory_id: str) -> GameState:
        db_state = self._get_game_state_row(game_state_id)
        current = list(db_state.unlocked_backstories or [])
        if backstory_id in current:
            logger.debug(f"Backstory '{backstory_id}' already unlocked for game state {game_state_id}")
            return GameState.model_validate(db_state)

        # Assign a new list so the JSON column is flagged as modified
        db_state.unlocked_backstories = current + [backstory_id]
        db_state.updated_at = utcnow()
        self._commit("unlock backstory")
        self.db.refresh(db_state)
        logger.info(f"Unlocked backstory '{backstory_id}' for game state {game_state_id}")
        return GameState.model_validate(db_state)
