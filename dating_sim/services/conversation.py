import json
import logging
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import requests
from fastapi.concurrency import run_in_threadpool

from dating_sim.core.errors import UpstreamUnavailableError
from dating_sim.schemas.character import Character
from dating_sim.schemas.dialogue import Dialogue
from dating_sim.schemas.game_state import GameState
from dating_sim.schemas.settings import GameSettings

logger = logging.getLogger(__name__)

__all__ = [
    "ConversationReply",
    "ConversationGateway",
    "OpenRouterGateway",
    "CannedResponseGateway",
    "GatewaySelector",
]

MAX_AFFECTION_DELTA = 5
HISTORY_TURNS = 10


@dataclass(frozen=True)
class ConversationReply:
    message: str
    affection_change: int
    emotion: str


class ConversationGateway(ABC):
    """Produces a character's reply to one player message."""

    name = "gateway"

    @abstractmethod
    async def generate_reply(
        self,
        character: Character,
        message: str,
        history: Sequence[Dialogue],
        config: GameSettings,
        game_state: Optional[GameState] = None,
    ) -> ConversationReply:
        """
        Raises:
            UpstreamUnavailableError: If the reply could not be produced.
        """


def _clamp_delta(value: int) -> int:
    return max(-MAX_AFFECTION_DELTA, min(MAX_AFFECTION_DELTA, value))


class OpenRouterGateway(ConversationGateway):
    """
    Calls an OpenAI-compatible chat completion endpoint (OpenRouter by default).

    The model is asked to answer with a JSON object carrying the reply, an
    affection delta and an emotion; plain-text answers are accepted as the
    reply with no affection change.
    """

    name = "openrouter"

    def __init__(self, api_key: str, base_url: str = "https://openrouter.ai/api/v1", timeout: float = 30.0):
        if not api_key:
            raise ValueError("OpenRouterGateway requires an API key.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_system_prompt(self, character: Character, config: GameSettings, game_state: Optional[GameState]) -> str:
        parts = [
            f"You are {character.name}. {character.description}",
            f"Personality: {character.personality}",
        ]
        if character.traits:
            parts.append(f"Traits: {', '.join(character.traits)}.")
        if game_state is not None:
            parts.append(
                f"Your relationship with the player is '{game_state.relationship_status}' "
                f"with affection {game_state.affection_level}/100. You currently feel {game_state.current_emotion}."
            )
        if not config.nsfw_content:
            parts.append("Keep the conversation PG-13: no explicit sexual content.")
        emotions = ", ".join(character.emotion_states) or "neutral"
        parts.append(
            "Stay in character and never mention being an AI. Respond ONLY with a JSON object of the form "
            '{"message": "<your reply>", "affectionChange": <integer from -5 to 5>, '
            f'"emotion": "<one of: {emotions}>"}}. '
            "affectionChange is how much the player's message made you like them more or less."
        )
        return "\n".join(parts)

    def _build_messages(
        self,
        character: Character,
        message: str,
        history: Sequence[Dialogue],
        config: GameSettings,
        game_state: Optional[GameState],
    ) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self._build_system_prompt(character, config, game_state)}]
        for turn in list(history)[-HISTORY_TURNS:]:
            role = "assistant" if turn.speaker == "character" else "user"
            messages.append({"role": role, "content": turn.message})
        messages.append({"role": "user", "content": message})
        return messages

    @staticmethod
    def _parse_content(content: str) -> ConversationReply:
        text = content.strip()
        # Models often wrap JSON in a markdown code fence
        fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
        if fenced:
            text = fenced.group(1)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Model reply was not JSON; using it verbatim.")
            return ConversationReply(message=content.strip(), affection_change=0, emotion="neutral")

        if not isinstance(payload, dict) or not str(payload.get("message", "")).strip():
            return ConversationReply(message=content.strip(), affection_change=0, emotion="neutral")

        try:
            delta = int(payload.get("affectionChange", 0))
        except (TypeError, ValueError, OverflowError):
            # Non-numeric or non-finite values (JSON allows Infinity and NaN)
            delta = 0
        emotion = str(payload.get("emotion") or "neutral")
        return ConversationReply(
            message=str(payload["message"]).strip(),
            affection_change=_clamp_delta(delta),
            emotion=emotion,
        )

    def _post(self, body: Dict) -> Dict:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"Conversation provider timed out after {self.timeout}s")
            raise UpstreamUnavailableError("The conversation provider timed out.") from e
        except requests.RequestException as e:
            logger.error(f"Could not reach conversation provider: {e}")
            raise UpstreamUnavailableError("The conversation provider could not be reached.") from e

        if not response.ok:
            logger.error(f"Conversation provider returned HTTP {response.status_code}: {response.text[:200]}")
            raise UpstreamUnavailableError(f"The conversation provider returned HTTP {response.status_code}.")
        try:
            return response.json()
        except ValueError as e:
            logger.error("Conversation provider returned a non-JSON body")
            raise UpstreamUnavailableError("The conversation provider returned an invalid response.") from e

    async def generate_reply(
        self,
        character: Character,
        message: str,
        history: Sequence[Dialogue],
        config: GameSettings,
        game_state: Optional[GameState] = None,
    ) -> ConversationReply:
        body = {
            "model": config.ai_model,
            "messages": self._build_messages(character, message, history, config, game_state),
        }
        logger.info(f"Requesting reply from '{config.ai_model}' as {character.name}")
        data = await run_in_threadpool(self._post, body)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected completion envelope: {str(data)[:200]}")
            raise UpstreamUnavailableError("The conversation provider returned an invalid response.") from e
        if not content or not str(content).strip():
            raise UpstreamUnavailableError("The conversation provider returned an empty reply.")

        return self._parse_content(str(content))


CANNED_RESPONSES: Dict[int, List[str]] = {
    1: [  # Rick
        "Wubba lubba dub dub! *burp* What do you want?",
        "Listen, I'm busy inventing stuff that'll blow your tiny mind. Make it quick.",
        "Great, another dimension where people ask stupid questions.",
        "You know what? Fine. *takes swig* What's your deal?",
    ],
    2: [  # Morty
        "Oh geez, h-hi there! I'm Morty!",
        "I-I don't know about this, but... hi?",
        "W-wow, this is really happening! Are you real?",
        "Aw geez, I hope Rick doesn't find out about this...",
    ],
    3: [  # Evil Morty
        "How... interesting. Another visitor.",
        "You think you understand me, but you don't. Nobody does.",
        "Everything has a purpose. Even this conversation.",
        "I've transcended what Mortys are supposed to be. What about you?",
    ],
    4: [  # Rick Prime
        "You're wasting my time. I've destroyed better things than you.",
        "Pathetic. Just like all the infinite versions of everyone.",
        "I am the Rick. The original. The one who started everything.",
        "You want to talk? How quaint. I've killed for less.",
    ],
}


class CannedResponseGateway(ConversationGateway):
    """Offline stand-in: random canned lines, affection drifting by -1, 0 or +1."""

    name = "canned"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def generate_reply(
        self,
        character: Character,
        message: str,
        history: Sequence[Dialogue],
        config: GameSettings,
        game_state: Optional[GameState] = None,
    ) -> ConversationReply:
        lines = CANNED_RESPONSES.get(character.id, CANNED_RESPONSES[1])
        delta = self.rng.randint(-1, 1)
        emotion = "happy" if delta > 0 else "annoyed" if delta < 0 else "neutral"
        return ConversationReply(message=self.rng.choice(lines), affection_change=delta, emotion=emotion)


class GatewaySelector:
    """
    Chooses the gateway for a request: the provider when an API key is
    available (the player's own, else the server's), canned replies otherwise.
    """

    def __init__(
        self,
        server_api_key: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 30.0,
        offline: Optional[ConversationGateway] = None,
    ):
        self.server_api_key = server_api_key
        self.base_url = base_url
        self.timeout = timeout
        self.offline = offline or CannedResponseGateway()

    def for_settings(self, config: GameSettings) -> ConversationGateway:
        api_key = config.openrouter_api_key or self.server_api_key
        if not api_key:
            logger.debug("No provider API key configured; using canned replies.")
            return self.offline
        return OpenRouterGateway(api_key=api_key, base_url=self.base_url, timeout=self.timeout)
