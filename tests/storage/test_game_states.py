"""Tests for the game state store."""

from datetime import timedelta

import pytest

from dating_sim.core.errors import DuplicateKeyError, NotFoundError
from dating_sim.schemas.game_state import GameStateCreate, GameStateUpdate
from dating_sim.schemas.settings import SettingsUpdate


async def test_create_applies_defaults(storage):
    state = await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))

    assert state.affection_level == 0
    assert state.relationship_status == "stranger"
    assert state.conversation_count == 0
    assert state.current_emotion == "neutral"
    assert state.unlocked_backstories == []
    assert state.settings is None
    assert state.created_at is not None
    assert state.updated_at is not None


async def test_create_keeps_supplied_values(storage):
    state = await storage.create_game_state(GameStateCreate(
        user_id=1, character_id=2, affection_level=30, current_emotion="happy",
        settings=SettingsUpdate(music_volume=0),
    ))
    assert state.affection_level == 30
    assert state.current_emotion == "happy"
    assert state.relationship_status == "stranger"
    assert state.settings == {"musicVolume": 0}


async def test_at_most_one_state_per_pair(storage):
    await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))
    with pytest.raises(DuplicateKeyError):
        await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))

    # Other pairs are unaffected
    await storage.create_game_state(GameStateCreate(user_id=1, character_id=2))
    await storage.create_game_state(GameStateCreate(user_id=2, character_id=1))
    assert len(await storage.get_user_game_states(1)) == 2


async def test_get_game_state_absent_without_implicit_creation(storage):
    assert await storage.get_game_state(1, 1) is None
    assert await storage.get_game_state(1, 1) is None
    assert await storage.get_user_game_states(1) == []


async def test_update_merges_partial_fields_and_stamps_updated_at(storage):
    state = await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))

    updated = await storage.update_game_state(state.id, GameStateUpdate(affection_level=2, conversation_count=1))

    assert updated.affection_level == 2
    assert updated.conversation_count == 1
    assert updated.relationship_status == "stranger"
    assert updated.current_emotion == "neutral"
    assert updated.updated_at >= state.updated_at
    assert updated.created_at == state.created_at


async def test_update_replaces_nested_fields_wholesale(storage):
    state = await storage.create_game_state(GameStateCreate(
        user_id=1, character_id=1, unlocked_backstories=["origin"],
        settings=SettingsUpdate(music_volume=5, sfx_volume=5),
    ))

    updated = await storage.update_game_state(state.id, GameStateUpdate(
        unlocked_backstories=["worst_day"],
        settings=SettingsUpdate(music_volume=90),
    ))

    assert updated.unlocked_backstories == ["worst_day"]
    assert updated.settings == {"musicVolume": 90}


async def test_update_missing_state_raises(storage):
    with pytest.raises(NotFoundError):
        await storage.update_game_state(404, GameStateUpdate(affection_level=1))


async def test_user_game_states_most_recently_updated_first(storage):
    first = await storage.create_game_state(GameStateCreate(user_id=7, character_id=1))
    second = await storage.create_game_state(GameStateCreate(user_id=7, character_id=2))
    await storage.create_game_state(GameStateCreate(user_id=8, character_id=1))

    assert [s.id for s in await storage.get_user_game_states(7)] == [second.id, first.id]

    await storage.update_game_state(first.id, GameStateUpdate(current_emotion="excited"))
    assert [s.id for s in await storage.get_user_game_states(7)] == [first.id, second.id]


async def test_returned_records_are_copies(storage):
    state = await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))
    state.unlocked_backstories.append("tampered")

    reloaded = await storage.get_game_state_by_id(state.id)
    assert reloaded.unlocked_backstories == []


async def test_timestamps_are_utc_aware_on_every_backend(storage):
    state = await storage.create_game_state(GameStateCreate(user_id=1, character_id=1))
    updated = await storage.update_game_state(state.id, GameStateUpdate(affection_level=1))
    reloaded = await storage.get_game_state_by_id(state.id)

    for stamp in (state.created_at, updated.updated_at, reloaded.created_at, reloaded.updated_at):
        assert stamp.utcoffset() == timedelta(0)
    assert reloaded.model_dump(mode="json", by_alias=True)["createdAt"].endswith(("Z", "+00:00"))
