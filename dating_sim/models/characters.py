from sqlalchemy import Column, Integer, String, Text, JSON, DateTime
from dating_sim.database import Base
from ._time import utcnow

class Character(Base):
    __tablename__ = "characters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    personality = Column(Text, nullable=False)
    sprite = Column(String(500), nullable=False)
    color = Column(String(20), nullable=False)
    traits = Column(JSON, nullable=False, default=list)
    emotion_states = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
