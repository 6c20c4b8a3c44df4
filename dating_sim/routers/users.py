import logging
from typing import List
from fastapi import APIRouter, Depends, status

from dating_sim.core.dependencies import get_storage
from dating_sim.core.errors import NotFoundError
from dating_sim.schemas.game_state import GameState
from dating_sim.schemas.settings import GameSettings, SettingsUpdate
from dating_sim.schemas.user import SignInRequest, User, UserCreate, UserUpdate
from dating_sim.services.settings import effective_settings, merge_settings
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


async def _require_user(storage: Storage, user_id: int) -> User:
    user = await storage.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User with ID '{user_id}' not found.")
    return user


@router.post(
    "/users",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user"
)
async def create_user(user_data: UserCreate, storage: Storage = Depends(get_storage)):
    """
    Create an account.
    - **username**: 2-20 letters, numbers, hyphens or underscores; must be unique.
    """
    return await storage.create_user(user_data)


@router.post("/users/sign-in", response_model=User, summary="Sign in, creating the account on first use")
async def sign_in(request: SignInRequest, storage: Storage = Depends(get_storage)):
    user = await storage.get_user_by_username(request.username)
    if user is not None:
        logger.info(f"User '{request.username}' signed in (ID: {user.id})")
        return user
    return await storage.create_user(UserCreate(username=request.username))


@router.get("/users/by-username/{username}", response_model=User, summary="Get a user by username")
async def read_user_by_username(username: str, storage: Storage = Depends(get_storage)):
    """Exact, case-sensitive match."""
    user = await storage.get_user_by_username(username)
    if user is None:
        raise NotFoundError(f"User '{username}' not found.")
    return user


@router.get("/users/{user_id}", response_model=User, summary="Get a user by ID")
async def read_user(user_id: int, storage: Storage = Depends(get_storage)):
    return await _require_user(storage, user_id)


@router.patch("/users/{user_id}", response_model=User, summary="Update profile fields")
async def update_user(user_id: int, updates: UserUpdate, storage: Storage = Depends(get_storage)):
    """Only fields provided in the request body are changed."""
    return await storage.update_user(user_id, updates)


@router.get("/user/{user_id}/settings", response_model=GameSettings, summary="Get global settings")
async def read_user_settings(user_id: int, storage: Storage = Depends(get_storage)):
    """
    The user's global settings with defaults filled in for anything never set.
    """
    user = await _require_user(storage, user_id)
    return effective_settings(user.global_settings)


@router.put("/user/{user_id}/settings", response_model=GameSettings, summary="Update global settings")
async def update_user_settings(
    user_id: int,
    settings_update: SettingsUpdate,
    storage: Storage = Depends(get_storage),
):
    """
    Merge the provided fields onto the user's current global settings.
    Unknown fields are rejected.
    """
    user = await _require_user(storage, user_id)
    merged = merge_settings(effective_settings(user.global_settings), settings_update)
    updated = await storage.update_user_global_settings(user_id, merged)
    logger.info(f"Saved global settings for user {user_id}: fields {sorted(settings_update.model_fields_set)}")
    return effective_settings(updated.global_settings)


@router.get("/user/{user_id}/game-states", response_model=List[GameState], summary="List a user's games")
async def read_user_game_states(user_id: int, storage: Storage = Depends(get_storage)):
    """Most recently played first."""
    return await storage.get_user_game_states(user_id)
