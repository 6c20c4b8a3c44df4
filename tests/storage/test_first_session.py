"""A first play session driven directly through the store."""

from dating_sim.schemas.dialogue import DialogueCreate
from dating_sim.schemas.game_state import GameStateCreate, GameStateUpdate
from dating_sim.schemas.user import UserCreate


async def test_first_session_through_store(storage):
    user = await storage.create_user(UserCreate(username="MortySmith99"))
    state = await storage.create_game_state(GameStateCreate(user_id=user.id, character_id=1))
    assert state.affection_level == 0
    assert state.relationship_status == "stranger"

    turns = [
        DialogueCreate(game_state_id=state.id, speaker="player", message="Hey Rick!", message_type="custom"),
        DialogueCreate(
            game_state_id=state.id, speaker="character", message="*burp* What?",
            message_type="character", affection_change=2,
        ),
        DialogueCreate(game_state_id=state.id, speaker="player", message="Adventure?", message_type="choice"),
    ]
    for turn in turns:
        await storage.create_dialogue(turn)

    await storage.update_game_state(state.id, GameStateUpdate(affection_level=2, conversation_count=1))

    reloaded = await storage.get_game_state(user.id, 1)
    assert reloaded.affection_level == 2
    assert reloaded.conversation_count == 1
    assert [d.message for d in await storage.get_dialogues(state.id)] == ["Hey Rick!", "*burp* What?", "Adventure?"]
