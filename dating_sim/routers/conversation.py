import logging
from fastapi import APIRouter, Depends

from dating_sim.core.dependencies import get_gateway_selector, get_storage
from dating_sim.core.errors import NotFoundError, ValidationFailure
from dating_sim.schemas.conversation import ConversationRequest, ConversationResponse
from dating_sim.services.conversation import HISTORY_TURNS, GatewaySelector
from dating_sim.services.game import normalize_emotion
from dating_sim.services.settings import effective_settings
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversation", tags=["conversation"])


@router.post("", response_model=ConversationResponse, summary="Talk to a character")
async def converse(
    request: ConversationRequest,
    storage: Storage = Depends(get_storage),
    selector: GatewaySelector = Depends(get_gateway_selector),
):
    """
    Get the character's reply to one player message.

    The reply is not recorded: the client appends it with POST /dialogues
    and applies the affection change with POST /game-state/{id}/turn.
    A provider failure is reported as 502.
    """
    character = await storage.get_character(request.character_id)
    if character is None:
        raise NotFoundError(f"Character with ID '{request.character_id}' not found.")

    game_state = None
    history = []
    if request.game_state_id is not None:
        game_state = await storage.get_game_state_by_id(request.game_state_id)
        if game_state is None:
            raise NotFoundError(f"Game state with ID '{request.game_state_id}' not found.")
        errors = []
        if game_state.character_id != request.character_id:
            errors.append({
                "field": "gameStateId",
                "message": f"belongs to character {game_state.character_id}, not {request.character_id}",
            })
        if request.user_id is not None and game_state.user_id != request.user_id:
            errors.append({"field": "gameStateId", "message": f"does not belong to user {request.user_id}"})
        if errors:
            raise ValidationFailure("Game state does not match this conversation.", errors=errors)
        history = await storage.get_dialogues(game_state.id, HISTORY_TURNS)

    user_id = request.user_id if request.user_id is not None else (game_state.user_id if game_state else None)
    user = await storage.get_user(user_id) if user_id is not None else None
    config = effective_settings(
        user.global_settings if user else None,
        game_state.settings if game_state else None,
    )

    gateway = selector.for_settings(config)
    logger.info(f"Conversation with {character.name} via {gateway.name} gateway")
    reply = await gateway.generate_reply(character, request.message, history, config, game_state)

    fallback_emotion = game_state.current_emotion if game_state else "neutral"
    return ConversationResponse(
        message=reply.message,
        affection_change=reply.affection_change,
        emotion=normalize_emotion(character, reply.emotion, fallback_emotion),
    )
