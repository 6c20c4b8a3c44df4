from sqlalchemy import Column, Integer, String, Text, JSON, DateTime
from dating_sim.database import Base
from ._time import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    password = Column(Text, nullable=False, default="")
    email = Column(String(255), nullable=True)
    profile_picture = Column(Text, nullable=True)  # URL or base64 encoded image
    global_settings = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
