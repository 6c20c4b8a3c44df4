"""Tests for the append-only dialogue log."""

from dating_sim.schemas.dialogue import DialogueCreate


def turn(game_state_id: int, message: str, speaker: str = "player", **extra) -> DialogueCreate:
    message_type = "character" if speaker == "character" else "custom"
    return DialogueCreate(
        game_state_id=game_state_id, speaker=speaker, message=message, message_type=message_type, **extra
    )


async def test_create_assigns_timestamp_and_defaults(storage):
    dialogue = await storage.create_dialogue(turn(1, "Hi Rick"))

    assert dialogue.id is not None
    assert dialogue.timestamp is not None
    assert dialogue.affection_change == 0
    assert dialogue.emotion_triggered is None
    assert dialogue.backstory_id is None


async def test_recent_turns_in_chronological_order(storage):
    for text in ("t1", "t2", "t3"):
        await storage.create_dialogue(turn(1, text))

    recent = await storage.get_dialogues(1, 2)
    assert [d.message for d in recent] == ["t2", "t3"]

    everything = await storage.get_dialogues(1)
    assert [d.message for d in everything] == ["t1", "t2", "t3"]


async def test_default_limit_keeps_latest_fifty(storage):
    for i in range(55):
        await storage.create_dialogue(turn(1, f"line {i}"))

    recent = await storage.get_dialogues(1)
    assert len(recent) == 50
    assert recent[0].message == "line 5"
    assert recent[-1].message == "line 54"


async def test_dialogues_are_scoped_to_game_state(storage):
    await storage.create_dialogue(turn(1, "for one"))
    await storage.create_dialogue(turn(2, "for two"))

    assert [d.message for d in await storage.get_dialogues(2)] == ["for two"]
    assert await storage.get_dialogues(3) == []
    assert await storage.count_dialogues(1) == 1
    assert await storage.count_dialogues(3) == 0


async def test_non_positive_limit_returns_nothing(storage):
    await storage.create_dialogue(turn(1, "hello"))
    assert await storage.get_dialogues(1, 0) == []


async def test_character_turn_keeps_effects(storage):
    dialogue = await storage.create_dialogue(turn(
        1, "I turned myself into a pickle!", speaker="character",
        affection_change=2, emotion_triggered="smug",
    ))
    assert dialogue.affection_change == 2
    assert dialogue.emotion_triggered == "smug"

    backstory = await storage.create_dialogue(DialogueCreate(
        game_state_id=1, speaker="character", message="It all started...",
        message_type="backstory", backstory_id="origin",
    ))
    assert backstory.backstory_id == "origin"
