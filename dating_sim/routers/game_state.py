import logging
from fastapi import APIRouter, Depends, status

from dating_sim.core.dependencies import get_storage
from dating_sim.core.errors import NotFoundError
from dating_sim.schemas.game_state import (
    BackstoryList,
    BackstoryUnlockRequest,
    GameState,
    GameStateCreate,
    GameStateUpdate,
    TurnOutcome,
)
from dating_sim.schemas.settings import GameSettings
from dating_sim.services import game
from dating_sim.services.settings import effective_settings
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/game-state", tags=["game-state"])


async def require_game_state(storage: Storage, game_state_id: int) -> GameState:
    state = await storage.get_game_state_by_id(game_state_id)
    if state is None:
        raise NotFoundError(f"Game state with ID '{game_state_id}' not found.")
    return state


# Routes with a literal suffix are declared before /{user_id}/{character_id}
# so that e.g. /5/settings is not parsed as a character id.

@router.get("/{game_state_id}/settings", response_model=GameSettings, summary="Effective settings for a game")
async def read_effective_settings(game_state_id: int, storage: Storage = Depends(get_storage)):
    """
    The settings in force for this character's session: the game state's
    override, over the user's globals, over the defaults.
    """
    state = await require_game_state(storage, game_state_id)
    user = await storage.get_user(state.user_id)
    return effective_settings(user.global_settings if user else None, state.settings)


@router.get("/{game_state_id}/backstories", response_model=BackstoryList, summary="List unlocked backstories")
async def read_backstories(game_state_id: int, storage: Storage = Depends(get_storage)):
    unlocked = await storage.get_unlocked_backstories(game_state_id)
    return BackstoryList(game_state_id=game_state_id, unlocked_backstories=unlocked)


@router.post("/{game_state_id}/backstories", response_model=GameState, summary="Unlock a backstory")
async def unlock_backstory(
    game_state_id: int,
    request: BackstoryUnlockRequest,
    storage: Storage = Depends(get_storage),
):
    """
    Unlock a backstory route. Requires enough affection; unlocking an
    already unlocked backstory changes nothing.
    """
    state = await require_game_state(storage, game_state_id)
    game.ensure_backstory_unlockable(state, request.backstory_id)
    return await storage.unlock_backstory(game_state_id, request.backstory_id)


@router.post("/{game_state_id}/turn", response_model=GameState, summary="Apply a conversation outcome")
async def apply_turn(game_state_id: int, outcome: TurnOutcome, storage: Storage = Depends(get_storage)):
    """
    Apply one exchange: affection moves by the (clamped) change, the
    relationship label follows it, the conversation count goes up by one.
    """
    state = await require_game_state(storage, game_state_id)
    character = await storage.get_character(state.character_id)
    update = game.apply_conversation_turn(state, character, outcome.affection_change, outcome.emotion)
    logger.info(
        f"Game state {game_state_id}: affection {state.affection_level} -> {update.affection_level} "
        f"({update.relationship_status})"
    )
    return await storage.update_game_state(game_state_id, update)


@router.get("/{user_id}/{character_id}", response_model=GameState, summary="Get the game for a user and character")
async def read_game_state(user_id: int, character_id: int, storage: Storage = Depends(get_storage)):
    state = await storage.get_game_state(user_id, character_id)
    if state is None:
        raise NotFoundError(f"No game state for user {user_id} and character {character_id}.")
    return state


@router.post("", response_model=GameState, status_code=status.HTTP_201_CREATED, summary="Start a game")
async def create_game_state(game_state_data: GameStateCreate, storage: Storage = Depends(get_storage)):
    """
    Create the game state for a (user, character) pair. Fails with 409 if
    the pair already has one.
    """
    if await storage.get_character(game_state_data.character_id) is None:
        raise NotFoundError(f"Character with ID '{game_state_data.character_id}' not found.")

    changes = {}
    if game_state_data.affection_level is not None:
        changes["affection_level"] = game.clamp_affection(game_state_data.affection_level)
        if game_state_data.relationship_status is None:
            changes["relationship_status"] = game.relationship_status_for(changes["affection_level"])
    return await storage.create_game_state(game_state_data.model_copy(update=changes))


@router.put("/{game_state_id}", response_model=GameState, summary="Update a game")
async def update_game_state(
    game_state_id: int,
    updates: GameStateUpdate,
    storage: Storage = Depends(get_storage),
):
    """
    Partial update. Affection is clamped to 0-100; conversationCount and
    unlockedBackstories may only grow.
    """
    state = await require_game_state(storage, game_state_id)
    character = await storage.get_character(state.character_id)
    checked = game.validate_progress_update(state, updates, character)
    return await storage.update_game_state(game_state_id, checked)
