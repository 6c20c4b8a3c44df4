# dating_sim/models/dialogue.py
from sqlalchemy import Column, Index, Integer, String, Text, DateTime, CheckConstraint
from dating_sim.database import Base
from ._time import utcnow

class Dialogue(Base):
    """
    One immutable turn of a conversation, owned by a game state.
    """
    __tablename__ = "dialogues"

    id = Column(Integer, primary_key=True)
    game_state_id = Column(Integer, nullable=False, index=True)
    speaker = Column(String(10), nullable=False)  # 'character' or 'player'
    message = Column(Text, nullable=False)
    message_type = Column(String(10), nullable=False)  # 'choice', 'custom', 'character', 'backstory'
    affection_change = Column(Integer, nullable=False, default=0)
    emotion_triggered = Column(String(50), nullable=True)
    backstory_id = Column(String(100), nullable=True)  # 'origin', 'worst_day', 'rise_to_power', ...

    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("speaker IN ('character', 'player')", name="dialogue_speaker_check"),
        CheckConstraint(
            "message_type IN ('choice', 'custom', 'character', 'backstory')",
            name="dialogue_message_type_check",
        ),
        # Recent-history reads walk this index backwards
        Index("idx_dialogues_game_state_timestamp", game_state_id, timestamp, id),
    )

    def __repr__(self):
        return f"<Dialogue(id={self.id}, game_state_id={self.game_state_id}, speaker='{self.speaker}')>"
