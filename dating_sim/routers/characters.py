import logging
from typing import List
from fastapi import APIRouter, Depends

from dating_sim.core.dependencies import get_storage
from dating_sim.core.errors import NotFoundError
from dating_sim.schemas.character import Character
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/characters", tags=["characters"])


@router.get(
    "",
    response_model=List[Character],
    summary="Get all characters"
)
async def read_all_characters(storage: Storage = Depends(get_storage)):
    """
    Retrieve the playable character catalog in insertion order.
    """
    return await storage.get_all_characters()


@router.get(
    "/{character_id}",
    response_model=Character,
    summary="Get a character by ID"
)
async def read_character_by_id(character_id: int, storage: Storage = Depends(get_storage)):
    character = await storage.get_character(character_id)
    if character is None:
        raise NotFoundError(f"Character with ID '{character_id}' not found.")
    return character
