import logging
from typing import List

from dating_sim.schemas.character import CharacterCreate
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)

__all__ = ["CANONICAL_CHARACTERS", "seed_characters"]

CANONICAL_CHARACTERS: List[CharacterCreate] = [
    CharacterCreate(
        name="Rick Sanchez (C-137)",
        description="Genius scientist and interdimensional traveler with a cynical worldview and god complex.",
        personality=(
            "Rick is brilliant but arrogant, nihilistic yet protective of his family. He uses science and "
            "sarcasm as shields against emotional vulnerability. Despite his claims of not caring, he deeply "
            "loves his family but struggles to express it healthily."
        ),
        sprite="/characters/rick.jpg",
        color="#00D4AA",
        traits=["genius", "cynical", "alcoholic", "protective", "emotionally_distant"],
        emotion_states=["neutral", "annoyed", "drunk", "excited", "angry", "vulnerable", "smug"],
    ),
    CharacterCreate(
        name="Morty Smith",
        description="Rick's grandson, a nervous but good-hearted teenager who gets dragged into interdimensional adventures.",
        personality=(
            "Morty is anxious and insecure but has a strong moral compass. He's often overwhelmed by Rick's "
            "adventures but is growing more confident and assertive. He seeks approval while trying to do "
            "the right thing."
        ),
        sprite="/characters/morty.jpg",
        color="#FFB800",
        traits=["anxious", "moral", "growing", "loyal", "insecure", "brave_when_needed"],
        emotion_states=["nervous", "excited", "scared", "determined", "happy", "confused", "angry"],
    ),
    CharacterCreate(
        name="Evil Morty",
        description="A cold, calculating version of Morty who has transcended his naive nature through dark experiences.",
        personality=(
            "Evil Morty is manipulative, intelligent, and ruthlessly pragmatic. He's tired of being "
            "underestimated and has developed a cynical worldview that rivals Rick's. He values control and "
            "independence above all else."
        ),
        sprite="/characters/evil-morty.png",
        color="#8B0000",
        traits=["manipulative", "intelligent", "cold", "calculating", "independent", "ruthless"],
        emotion_states=["cold", "calculating", "angry", "satisfied", "contemplative", "sinister", "disappointed"],
    ),
    CharacterCreate(
        name="Rick Prime",
        description="The most dangerous Rick in the multiverse, who killed C-137 Rick's family and represents pure chaos.",
        personality=(
            "Rick Prime is the darkest version of Rick - completely without empathy or attachment. He's a "
            "force of pure destruction who finds joy in causing pain. He represents what Rick could become "
            "without any emotional connections."
        ),
        sprite="/characters/RICKPRIME.webp",
        color="#FF0000",
        traits=["psychopathic", "destructive", "chaotic", "brilliant", "remorseless", "unpredictable"],
        emotion_states=["maniacal", "cold", "amused", "violent", "bored", "excited", "contemptuous"],
    ),
]


async def seed_characters(storage: Storage) -> int:
    """
    Insert the canonical characters if the catalog is empty.

    Returns the number of characters inserted (0 when already seeded).
    """
    existing = await storage.get_all_characters()
    if existing:
        logger.info(f"Character catalog already holds {len(existing)} characters; skipping seed.")
        return 0

    for character in CANONICAL_CHARACTERS:
        await storage.create_character(character)
    logger.info(f"Seeded {len(CANONICAL_CHARACTERS)} characters into the {storage.backend_name} store.")
    return len(CANONICAL_CHARACTERS)
