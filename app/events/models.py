import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, String, Text, text
)
from app.db.session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_uuid)
    creator_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Meeting point
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    place_name = Column(String(255), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)

    emoji = Column(String(16), nullable=False, server_default="📍", default="📍")
    # If false, join requests need creator approval ("face control")
    auto_accept = Column(Boolean, nullable=False, server_default=text("true"))
    cover_image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', auto_accept={self.auto_accept})>"


class EventParticipant(Base):
    __tablename__ = "event_participants"
    __table_args__ = (
        CheckConstraint("status in ('pending', 'approved', 'rejected')", name="event_participants_status_check"),
    )

    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True, index=True)
    # No python-side default: inserts that omit it must not mention the column
    status = Column(String(20), nullable=False, server_default=ParticipantStatus.APPROVED.value)
    joined_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<EventParticipant(event_id={self.event_id}, user_id={self.user_id}, status='{self.status}')>"


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Message(id={self.id}, event_id={self.event_id}, user_id={self.user_id})>"
