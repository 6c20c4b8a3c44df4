import logging
from typing import List
from fastapi import APIRouter, Depends, status

from dating_sim.core.dependencies import get_storage
from dating_sim.core.errors import NotFoundError, ValidationFailure
from dating_sim.schemas.game_state import GameState, GameStateCreate, GameStateUpdate
from dating_sim.schemas.save_slot import SaveGameRequest, SaveSlot
from dating_sim.services import game
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/save-slots", tags=["save-slots"])


async def _require_save_slot(storage: Storage, user_id: int, slot_number: int) -> SaveSlot:
    slot = await storage.get_save_slot(user_id, slot_number)
    if slot is None:
        raise NotFoundError(f"Save slot {slot_number} for user {user_id} is empty.")
    return slot


@router.get("/{user_id}", response_model=List[SaveSlot], summary="List save slots")
async def read_save_slots(user_id: int, storage: Storage = Depends(get_storage)):
    return await storage.get_save_slots(user_id)


@router.get("/{user_id}/{slot_number}", response_model=SaveSlot, summary="Get one save slot")
async def read_save_slot(user_id: int, slot_number: int, storage: Storage = Depends(get_storage)):
    return await _require_save_slot(storage, user_id, slot_number)


@router.post("", response_model=SaveSlot, status_code=status.HTTP_201_CREATED, summary="Save the game")
async def save_game(request: SaveGameRequest, storage: Storage = Depends(get_storage)):
    """
    Snapshot the live game state into a slot. Saving into an occupied slot
    overwrites it.
    """
    state = await storage.get_game_state_by_id(request.game_state_id)
    if state is None:
        raise NotFoundError(f"Game state with ID '{request.game_state_id}' not found.")
    if state.user_id != request.user_id:
        raise ValidationFailure(
            "Cannot save another user's game.",
            errors=[{"field": "gameStateId", "message": f"does not belong to user {request.user_id}"}],
        )

    character = await storage.get_character(state.character_id)
    character_name = character.name if character else f"Character {state.character_id}"
    dialogue_count = await storage.count_dialogues(state.id)

    slot = await storage.create_save_slot(
        game.build_save_slot(request.user_id, request.slot_number, state, character_name, dialogue_count)
    )
    await storage.update_game_state(state.id, GameStateUpdate(last_saved_at=slot.updated_at))
    logger.info(f"User {request.user_id} saved game state {state.id} to slot {request.slot_number}")
    return slot


@router.post("/{user_id}/{slot_number}/load", response_model=GameState, summary="Load a save slot")
async def load_save_slot(user_id: int, slot_number: int, storage: Storage = Depends(get_storage)):
    """
    Restore a saved snapshot into the live game state for that character,
    creating the live state if it no longer exists.
    """
    slot = await _require_save_slot(storage, user_id, slot_number)
    saved = GameState.model_validate(slot.game_state_snapshot)

    state = await storage.get_game_state(user_id, saved.character_id)
    if state is None:
        state = await storage.create_game_state(GameStateCreate(user_id=user_id, character_id=saved.character_id))

    update = game.restore_from_snapshot(state, slot.game_state_snapshot)
    logger.info(f"User {user_id} loaded slot {slot_number} into game state {state.id}")
    return await storage.update_game_state(state.id, update)


@router.delete("/{user_id}/{slot_number}", summary="Delete a save slot")
async def delete_save_slot(user_id: int, slot_number: int, storage: Storage = Depends(get_storage)):
    """Deleting an empty slot is not an error."""
    await storage.delete_save_slot(user_id, slot_number)
    return {"success": True}
