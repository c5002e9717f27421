from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from app.events.models import ParticipantStatus
from app.users.schemas import ProfileSummary


# ===========================
# AUTHOR / CREATOR SNAPSHOT
# ===========================
class AuthorOut(BaseModel):
    name: str
    avatar_url: Optional[str] = None
    vibe: Optional[str] = None


# ===========================
# EVENTS
# ===========================
class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    meeting_place: Optional[str] = Field(default=None, max_length=255)
    place_name: Optional[str] = Field(default=None, max_length=255)
    meeting_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    meeting_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    start_time: Optional[datetime] = None
    emoji: Optional[str] = Field(default=None, max_length=16)
    auto_accept: bool = True


class EventUpdate(BaseModel):
    # None keeps the current value; for description/cover an empty string clears it
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image_url: Optional[str] = Field(None, max_length=500)


class EventRecord(BaseModel):
    id: str
    creator_id: str
    title: str
    description: Optional[str] = None
    meeting_lat: Optional[float] = None
    meeting_lng: Optional[float] = None
    place_name: str = ""
    start_time: Optional[datetime] = None
    emoji: str = "📍"
    auto_accept: bool = True
    cover_image_url: Optional[str] = None
    created_at: datetime
    creator: Optional[AuthorOut] = None

    model_config = ConfigDict(from_attributes=True)


# ===========================
# PARTICIPANTS
# ===========================
class JoinResponse(BaseModel):
    event_id: str
    status: ParticipantStatus


class MyParticipation(BaseModel):
    event_id: str
    status: Optional[ParticipantStatus] = None


class ParticipantStatusUpdate(BaseModel):
    status: ParticipantStatus


class ParticipantRecord(ProfileSummary):
    name: str = "User"
    status: ParticipantStatus


# ===========================
# EVENT CHAT
# ===========================
class MessageCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)


class MessageRecord(BaseModel):
    id: str
    event_id: str
    user_id: str
    body: str
    created_at: datetime
    author: AuthorOut


class ErrorResponse(BaseModel):
    detail: str
    error_code: Optional[str] = None


class DeletedResponse(BaseModel):
    deleted: bool
    id: str
