"""
Relationship rules applied by the request layer.

The stores keep whatever they are given; clamping affection, deriving the
relationship label, gating backstories and keeping progress monotonic all
happen here.
"""
import logging
from typing import Any, Dict, List, Optional

from dating_sim.core.errors import ValidationFailure
from dating_sim.schemas.character import Character
from dating_sim.schemas.game_state import GameState, GameStateUpdate
from dating_sim.schemas.save_slot import SaveSlotCreate
from dating_sim.services.settings import override_from_blob

logger = logging.getLogger(__name__)

MIN_AFFECTION = 0
MAX_AFFECTION = 100

# Lower bound of each label, highest first
RELATIONSHIP_THRESHOLDS = (
    (90, "soulmate"),
    (75, "crush"),
    (50, "close_friend"),
    (25, "friend"),
    (10, "acquaintance"),
    (MIN_AFFECTION, "stranger"),
)

BACKSTORY_UNLOCK_THRESHOLD = 25


def clamp_affection(value: int) -> int:
    return max(MIN_AFFECTION, min(MAX_AFFECTION, value))


def relationship_status_for(affection: int) -> str:
    affection = clamp_affection(affection)
    for threshold, label in RELATIONSHIP_THRESHOLDS:
        if affection >= threshold:
            return label
    return "stranger"


def can_unlock_backstory(state: GameState) -> bool:
    return state.affection_level >= BACKSTORY_UNLOCK_THRESHOLD


def ensure_backstory_unlockable(state: GameState, backstory_id: str) -> None:
    if backstory_id in state.unlocked_backstories:
        return
    if not can_unlock_backstory(state):
        raise ValidationFailure(
            f"Backstories unlock at {BACKSTORY_UNLOCK_THRESHOLD} affection (current: {state.affection_level}).",
            errors=[{"field": "affectionLevel", "message": f"must be at least {BACKSTORY_UNLOCK_THRESHOLD}"}],
        )


def normalize_emotion(character: Optional[Character], emotion: Optional[str], fallback: str) -> str:
    """Keep `emotion` only if it belongs to the character's vocabulary."""
    if not emotion:
        return fallback
    if character is None or not character.emotion_states or emotion in character.emotion_states:
        return emotion
    logger.debug(f"Emotion '{emotion}' is not in {character.name}'s vocabulary; keeping '{fallback}'")
    return fallback


def apply_conversation_turn(
    state: GameState,
    character: Optional[Character],
    affection_change: int,
    emotion: Optional[str],
) -> GameStateUpdate:
    """Build the update for one completed exchange with the character."""
    affection = clamp_affection(state.affection_level + affection_change)
    return GameStateUpdate(
        affection_level=affection,
        relationship_status=relationship_status_for(affection),
        conversation_count=state.conversation_count + 1,
        current_emotion=normalize_emotion(character, emotion, state.current_emotion),
    )


def validate_progress_update(
    state: GameState,
    update: GameStateUpdate,
    character: Optional[Character] = None,
) -> GameStateUpdate:
    """
    Check a client-supplied partial update against the progress rules.

    Affection is clamped and, when the client did not send a label, the
    relationship status is derived from it. An emotion outside the
    character's vocabulary keeps the current one. Decreasing
    conversationCount or dropping an unlocked backstory is rejected.
    """
    errors: List[Dict[str, str]] = []
    changes: Dict[str, Any] = {}

    if update.conversation_count is not None and update.conversation_count < state.conversation_count:
        errors.append({
            "field": "conversationCount",
            "message": f"cannot decrease (current: {state.conversation_count})",
        })

    if update.unlocked_backstories is not None:
        missing = [b for b in state.unlocked_backstories if b not in update.unlocked_backstories]
        if missing:
            errors.append({
                "field": "unlockedBackstories",
                "message": f"cannot remove unlocked backstories: {', '.join(missing)}",
            })
        else:
            changes["unlocked_backstories"] = list(dict.fromkeys(update.unlocked_backstories))

    if errors:
        raise ValidationFailure("Game state update violates progress rules.", errors=errors)

    if update.affection_level is not None:
        clamped = clamp_affection(update.affection_level)
        if clamped != update.affection_level:
            logger.debug(f"Clamped affection {update.affection_level} -> {clamped} for game state {state.id}")
        changes["affection_level"] = clamped
        if update.relationship_status is None:
            changes["relationship_status"] = relationship_status_for(clamped)

    if update.current_emotion is not None:
        changes["current_emotion"] = normalize_emotion(character, update.current_emotion, state.current_emotion)

    return update.model_copy(update=changes)


def build_save_slot(
    user_id: int,
    slot_number: int,
    state: GameState,
    character_name: str,
    dialogue_count: int,
) -> SaveSlotCreate:
    return SaveSlotCreate(
        user_id=user_id,
        slot_number=slot_number,
        game_state_snapshot=state.model_dump(mode="json", by_alias=True),
        dialogue_count=dialogue_count,
        character_name=character_name,
        affection_level=state.affection_level,
        relationship_status=state.relationship_status,
    )


def restore_from_snapshot(state: GameState, snapshot: Dict[str, Any]) -> GameStateUpdate:
    """
    Build the update that loads a saved snapshot into the live state.

    Affection, status, emotion and the settings override come from the save.
    Conversation count and unlocked backstories never go backwards: the
    larger count and the union of backstories win.
    """
    saved = GameState.model_validate(snapshot)
    if saved.user_id != state.user_id or saved.character_id != state.character_id:
        raise ValidationFailure(
            "Save slot belongs to a different game.",
            errors=[{"field": "gameStateSnapshot", "message": "user or character does not match the live game state"}],
        )

    backstories = list(dict.fromkeys(state.unlocked_backstories + saved.unlocked_backstories))
    return GameStateUpdate(
        affection_level=clamp_affection(saved.affection_level),
        relationship_status=saved.relationship_status,
        current_emotion=saved.current_emotion,
        conversation_count=max(state.conversation_count, saved.conversation_count),
        unlocked_backstories=backstories,
        settings=override_from_blob(saved.settings),
    )
