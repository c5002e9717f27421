import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from app.db.session import Base

DEFAULT_PRIVACY = {"ghostMode": False, "showExactLocation": False, "allowCheckIns": True}
DEFAULT_LOCATION = "Бишкек, Кыргызстан"

# text[] / jsonb on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
StringList = ARRAY(String).with_variant(JSON(), "sqlite")
JsonDoc = JSONB().with_variant(JSON(), "sqlite")


class Profile(Base):
    __tablename__ = "profiles"

    # Same identifier as the identity provider's user
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=True, index=True)
    avatar_url = Column(String, nullable=True)
    vibe = Column(String(32), nullable=True)
    bio = Column(Text, nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)
    languages = Column(StringList, nullable=False, default=lambda: ["ru"])
    interests = Column(StringList, nullable=False, default=lambda: [])
    conversation_starters = Column(StringList, nullable=False, default=lambda: [])
    favorite_spots = Column(JsonDoc, nullable=False, default=lambda: [])
    privacy = Column(JsonDoc, nullable=False, default=lambda: dict(DEFAULT_PRIVACY))
    location = Column(String, nullable=True, default=DEFAULT_LOCATION)

    # Map / ghost mode
    is_ghost = Column(Boolean, nullable=False, default=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    last_seen = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Profile(id={self.id}, name='{self.name}', ghost={self.is_ghost})>"
