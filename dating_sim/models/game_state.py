# dating_sim/models/game_state.py
from sqlalchemy import Column, Integer, String, JSON, DateTime, UniqueConstraint
from dating_sim.database import Base
from ._time import utcnow

class GameState(Base):
    """
    Relationship progress for one (user, character) pair.
    """
    __tablename__ = "game_states"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    character_id = Column(Integer, nullable=False)

    affection_level = Column(Integer, nullable=False, default=0)
    relationship_status = Column(String(50), nullable=False, default="stranger")
    conversation_count = Column(Integer, nullable=False, default=0)
    current_emotion = Column(String(50), nullable=False, default="neutral")
    unlocked_backstories = Column(JSON, nullable=False, default=list)

    # Per-character settings override, layered on top of the user's globals
    settings = Column(JSON, nullable=True)

    last_saved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "character_id", name="uq_game_state_user_character"),
    )

    def __repr__(self):
        return f"<GameState(id={self.id}, user_id={self.user_id}, character_id={self.character_id}, affection={self.affection_level})>"
