"""Tests for the relationship rules."""

from datetime import datetime, timezone

import pytest

from dating_sim.core.errors import ValidationFailure
from dating_sim.schemas.character import Character
from dating_sim.schemas.game_state import GameState, GameStateUpdate
from dating_sim.services import game


def make_state(**overrides) -> GameState:
    values = {"id": 1, "user_id": 1, "character_id": 2}
    values.update(overrides)
    return GameState(**values)


MORTY = Character(
    id=2,
    name="Morty Smith",
    description="Rick's grandson.",
    personality="Anxious but kind.",
    sprite="morty",
    color="#F0E68C",
    traits=["anxious", "kind"],
    emotion_states=["neutral", "happy", "nervous"],
)


@pytest.mark.parametrize("value, expected", [(-20, 0), (0, 0), (55, 55), (100, 100), (140, 100)])
def test_clamp_affection(value, expected):
    assert game.clamp_affection(value) == expected


@pytest.mark.parametrize("affection, status", [
    (0, "stranger"),
    (9, "stranger"),
    (10, "acquaintance"),
    (24, "acquaintance"),
    (25, "friend"),
    (49, "friend"),
    (50, "close_friend"),
    (75, "crush"),
    (89, "crush"),
    (90, "soulmate"),
    (100, "soulmate"),
])
def test_relationship_status_thresholds(affection, status):
    assert game.relationship_status_for(affection) == status


def test_turn_clamps_and_counts():
    state = make_state(affection_level=98, conversation_count=4, current_emotion="nervous")

    update = game.apply_conversation_turn(state, MORTY, 5, "happy")

    assert update.affection_level == 100
    assert update.relationship_status == "soulmate"
    assert update.conversation_count == 5
    assert update.current_emotion == "happy"


def test_turn_never_goes_below_zero():
    update = game.apply_conversation_turn(make_state(affection_level=1), MORTY, -3, None)
    assert update.affection_level == 0
    assert update.relationship_status == "stranger"
    assert update.current_emotion == "neutral"


def test_normalize_emotion_keeps_vocabulary():
    assert game.normalize_emotion(MORTY, "happy", "neutral") == "happy"
    assert game.normalize_emotion(MORTY, "smug", "nervous") == "nervous"
    assert game.normalize_emotion(MORTY, None, "nervous") == "nervous"
    assert game.normalize_emotion(None, "smug", "neutral") == "smug"


def test_backstory_gate():
    with pytest.raises(ValidationFailure) as exc_info:
        game.ensure_backstory_unlockable(make_state(affection_level=24), "origin")
    assert exc_info.value.errors[0]["field"] == "affectionLevel"

    game.ensure_backstory_unlockable(make_state(affection_level=25), "origin")
    # Already unlocked backstories stay readable after affection drops
    game.ensure_backstory_unlockable(make_state(affection_level=3, unlocked_backstories=["origin"]), "origin")


def test_progress_update_clamps_and_derives_status():
    checked = game.validate_progress_update(make_state(), GameStateUpdate(affection_level=150))
    assert checked.affection_level == 100
    assert checked.relationship_status == "soulmate"

    explicit = game.validate_progress_update(
        make_state(), GameStateUpdate(affection_level=30, relationship_status="friend")
    )
    assert explicit.relationship_status == "friend"


def test_progress_update_rejects_regressions():
    state = make_state(conversation_count=6, unlocked_backstories=["origin", "worst_day"])

    with pytest.raises(ValidationFailure) as exc_info:
        game.validate_progress_update(state, GameStateUpdate(
            conversation_count=2, unlocked_backstories=["origin"],
        ))

    fields = {e["field"] for e in exc_info.value.errors}
    assert fields == {"conversationCount", "unlockedBackstories"}


def test_progress_update_keeps_emotion_in_vocabulary():
    state = make_state(current_emotion="nervous")

    unknown = game.validate_progress_update(state, GameStateUpdate(current_emotion="smug"), MORTY)
    assert unknown.current_emotion == "nervous"

    known = game.validate_progress_update(state, GameStateUpdate(current_emotion="happy"), MORTY)
    assert known.current_emotion == "happy"


def test_progress_update_dedupes_backstories():
    state = make_state(unlocked_backstories=["origin"])
    checked = game.validate_progress_update(state, GameStateUpdate(
        unlocked_backstories=["origin", "worst_day", "origin"],
    ))
    assert checked.unlocked_backstories == ["origin", "worst_day"]


def test_save_slot_snapshot_is_json_ready():
    state = make_state(affection_level=40, relationship_status="friend", updated_at=datetime.now(timezone.utc))

    slot = game.build_save_slot(1, 2, state, "Morty Smith", 12)

    assert slot.slot_number == 2
    assert slot.affection_level == 40
    assert slot.relationship_status == "friend"
    assert slot.game_state_snapshot["affectionLevel"] == 40
    assert isinstance(slot.game_state_snapshot["updatedAt"], str)


def test_restore_keeps_progress_monotonic():
    saved = make_state(
        affection_level=40, relationship_status="friend", conversation_count=3,
        unlocked_backstories=["origin"], settings={"musicVolume": 10},
    )
    live = make_state(
        affection_level=80, relationship_status="crush", conversation_count=9,
        unlocked_backstories=["worst_day"],
    )

    update = game.restore_from_snapshot(live, saved.model_dump(mode="json", by_alias=True))

    assert update.affection_level == 40
    assert update.relationship_status == "friend"
    assert update.conversation_count == 9
    assert update.unlocked_backstories == ["worst_day", "origin"]
    assert update.settings.music_volume == 10


def test_restore_rejects_foreign_snapshot():
    other = make_state(character_id=3).model_dump(mode="json", by_alias=True)
    with pytest.raises(ValidationFailure):
        game.restore_from_snapshot(make_state(), other)
