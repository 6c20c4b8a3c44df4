import logging
from typing import List
from fastapi import APIRouter, Depends, Query, status

from dating_sim.core.dependencies import get_storage
from dating_sim.core.errors import NotFoundError
from dating_sim.schemas.dialogue import Dialogue, DialogueCreate
from dating_sim.services.storage import DEFAULT_DIALOGUE_LIMIT, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dialogues", tags=["dialogues"])


@router.get("/{game_state_id}", response_model=List[Dialogue], summary="Recent dialogue")
async def read_dialogues(
    game_state_id: int,
    limit: int = Query(DEFAULT_DIALOGUE_LIMIT, ge=1, le=500),
    storage: Storage = Depends(get_storage),
):
    """
    The most recent `limit` turns of a game, oldest first, ready to display
    as a transcript.
    """
    return await storage.get_dialogues(game_state_id, limit)


@router.post("", response_model=Dialogue, status_code=status.HTTP_201_CREATED, summary="Append a turn")
async def create_dialogue(dialogue_data: DialogueCreate, storage: Storage = Depends(get_storage)):
    if await storage.get_game_state_by_id(dialogue_data.game_state_id) is None:
        raise NotFoundError(f"Game state with ID '{dialogue_data.game_state_id}' not found.")
    return await storage.create_dialogue(dialogue_data)
