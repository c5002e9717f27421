import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint

from app.db.session import Base


class FriendshipStatus(str, Enum):
    pending = "pending"     # Waiting for the receiver
    accepted = "accepted"   # Friends, in both directions
    rejected = "rejected"   # Declined by the receiver


class Friendship(Base):
    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("requester_id", "receiver_id", name="friendships_requester_id_receiver_id_key"),
        CheckConstraint("status in ('pending', 'accepted', 'rejected')", name="friendships_status_check"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=FriendshipStatus.pending.value, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Friendship(id={self.id}, {self.requester_id} -> {self.receiver_id}, status='{self.status}')>"
