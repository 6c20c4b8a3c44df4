"""Tests for save slots: snapshots, upsert by slot number, idempotent delete."""

from dating_sim.schemas.game_state import GameStateCreate, GameStateUpdate
from dating_sim.services.game import build_save_slot


async def _snapshot_slot(storage, user_id=1, slot_number=1, affection=40, status="friend"):
    state = await storage.create_game_state(GameStateCreate(
        user_id=user_id, character_id=slot_number, affection_level=affection, relationship_status=status,
    ))
    slot = await storage.create_save_slot(build_save_slot(user_id, slot_number, state, "Morty Smith", 3))
    return state, slot


async def test_snapshot_round_trip_survives_live_changes(storage):
    state, _ = await _snapshot_slot(storage)

    await storage.update_game_state(state.id, GameStateUpdate(affection_level=95, relationship_status="soulmate"))

    slot = await storage.get_save_slot(1, 1)
    assert slot.affection_level == 40
    assert slot.relationship_status == "friend"
    assert slot.character_name == "Morty Smith"
    assert slot.dialogue_count == 3
    assert slot.game_state_snapshot["affectionLevel"] == 40
    assert slot.game_state_snapshot["relationshipStatus"] == "friend"


async def test_saving_into_occupied_slot_overwrites(storage):
    state, original = await _snapshot_slot(storage)
    state = await storage.update_game_state(state.id, GameStateUpdate(affection_level=60))

    overwritten = await storage.create_save_slot(build_save_slot(1, 1, state, "Morty Smith", 9))

    assert overwritten.id == original.id
    assert overwritten.affection_level == 60
    assert overwritten.dialogue_count == 9
    slots = await storage.get_save_slots(1)
    assert len(slots) == 1
    assert slots[0].affection_level == 60


async def test_slot_numbers_are_scoped_per_user(storage):
    await _snapshot_slot(storage, user_id=1, slot_number=1)
    await _snapshot_slot(storage, user_id=2, slot_number=1, affection=5, status="stranger")

    assert (await storage.get_save_slot(1, 1)).affection_level == 40
    assert (await storage.get_save_slot(2, 1)).affection_level == 5


async def test_list_ordered_by_slot_number(storage):
    await _snapshot_slot(storage, slot_number=3)
    await _snapshot_slot(storage, slot_number=1)
    await _snapshot_slot(storage, slot_number=2)

    assert [s.slot_number for s in await storage.get_save_slots(1)] == [1, 2, 3]
    assert await storage.get_save_slots(99) == []


async def test_delete_is_idempotent(storage):
    await _snapshot_slot(storage)

    await storage.delete_save_slot(1, 1)
    await storage.delete_save_slot(1, 1)
    await storage.delete_save_slot(1, 7)

    assert await storage.get_save_slot(1, 1) is None
    assert await storage.get_save_slot(1, 7) is None
