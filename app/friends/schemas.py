from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.friends.models import FriendshipStatus
from app.users.schemas import ProfileBasic


class FriendshipRecord(BaseModel):
    id: str
    requester_id: str
    receiver_id: str
    status: FriendshipStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FriendRequestWithSender(FriendshipRecord):
    requester: Optional[ProfileBasic] = None


class FriendWithProfile(BaseModel):
    friendship_id: str
    user: ProfileBasic


class FriendRequestCreate(BaseModel):
    receiver_id: str = Field(..., min_length=1)


class FriendshipStatusOut(BaseModel):
    user_id: str
    status: Optional[FriendshipStatus] = None


class FriendshipStatusesRequest(BaseModel):
    user_ids: List[str] = Field(default_factory=list, max_length=200)


class FriendshipStatusesOut(BaseModel):
    statuses: Dict[str, FriendshipStatus]


class ResolutionOut(BaseModel):
    friendship_id: str
    updated: bool
