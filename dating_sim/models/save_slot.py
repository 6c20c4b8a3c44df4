from sqlalchemy import Column, Integer, String, JSON, DateTime, UniqueConstraint
from dating_sim.database import Base
from ._time import utcnow

class SaveSlot(Base):
    __tablename__ = "save_slots"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    slot_number = Column(Integer, nullable=False)

    game_state_snapshot = Column(JSON, nullable=False)

    # Denormalised for listing without reading the snapshot
    dialogue_count = Column(Integer, nullable=False, default=0)
    character_name = Column(String(100), nullable=False)
    affection_level = Column(Integer, nullable=False)
    relationship_status = Column(String(50), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "slot_number", name="uq_save_slot_user_slot"),
    )
