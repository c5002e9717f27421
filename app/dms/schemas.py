from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DMAuthor(BaseModel):
    name: str
    avatar_url: Optional[str] = None
    vibe: Optional[str] = None


class DMChat(BaseModel):
    id: str                     # The counterpart's user id, relative to the viewer
    user_name: str
    user_avatar: Optional[str] = None
    user_vibe: Optional[str] = None
    last_message: str = ""
    updated_at: datetime


class DMMessage(BaseModel):
    id: str
    chat_id: str
    sender_id: str
    body: str
    created_at: datetime
    author: DMAuthor            # Snapshot at send time


class DMChatOpen(BaseModel):
    user_name: str = Field(..., min_length=1, max_length=100)
    user_avatar: Optional[str] = None
    user_vibe: Optional[str] = None


class DMSend(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)
    simulate_reply: bool = True
