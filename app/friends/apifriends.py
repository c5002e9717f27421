from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.db.session import get_db
from app.auth.schemas import CallerIdentity
from app.auth.dependencies import get_current_user
from app.friends.services import FriendshipService, FriendNotFoundError, SelfFriendRequestError
from app.friends.schemas import (
    FriendRequestCreate,
    FriendRequestWithSender,
    FriendshipRecord,
    FriendshipStatusOut,
    FriendshipStatusesOut,
    FriendshipStatusesRequest,
    FriendWithProfile,
    ResolutionOut,
)
from app.users.schemas import ProfileBasic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/friends", tags=["friends"])


def get_friendship_service(db: AsyncSession = Depends(get_db)) -> FriendshipService:
    return FriendshipService(db)


# ─────────────────────────────────────────────
# 1. Send a friend request
# ─────────────────────────────────────────────
@router.post("/requests", response_model=FriendshipRecord, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    body: FriendRequestCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    try:
        return await service.send_friend_request(current_user, body.receiver_id)
    except SelfFriendRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FriendNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receiver not found")


# ─────────────────────────────────────────────
# 2. Incoming requests
# ─────────────────────────────────────────────
@router.get("/requests", response_model=List[FriendRequestWithSender])
async def get_friend_requests(
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.get_friend_requests(current_user)


# ─────────────────────────────────────────────
# 3. Accept / decline
# ─────────────────────────────────────────────
@router.post("/requests/{friendship_id}/accept", response_model=ResolutionOut)
async def accept_friend_request(
    friendship_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    # updated=False: already resolved or not addressed to the caller
    updated = await service.accept_request(current_user, friendship_id)
    return ResolutionOut(friendship_id=friendship_id, updated=updated)


@router.post("/requests/{friendship_id}/decline", response_model=ResolutionOut)
async def decline_friend_request(
    friendship_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    updated = await service.decline_request(current_user, friendship_id)
    return ResolutionOut(friendship_id=friendship_id, updated=updated)


# ─────────────────────────────────────────────
# 4. Friends list, unfriend
# ─────────────────────────────────────────────
@router.get("", response_model=List[FriendWithProfile])
async def get_my_friends(
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.get_my_friends(current_user)


# ─────────────────────────────────────────────
# 5. Search and statuses
# ─────────────────────────────────────────────
@router.get("/search", response_model=List[ProfileBasic])
async def search_users(
    q: str = Query("", max_length=100),
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.search_users(current_user, q)


@router.get("/status/{user_id}", response_model=FriendshipStatusOut)
async def get_friendship_status(
    user_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return FriendshipStatusOut(user_id=user_id, status=await service.get_friendship_status(current_user, user_id))


@router.post("/statuses", response_model=FriendshipStatusesOut)
async def get_friendship_statuses(
    body: FriendshipStatusesRequest,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return FriendshipStatusesOut(statuses=await service.get_friendship_statuses(current_user, body.user_ids))


@router.delete("/{friendship_id}", response_model=ResolutionOut)
async def remove_friendship(
    friendship_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    removed = await service.remove_friendship(current_user, friendship_id)
    return ResolutionOut(friendship_id=friendship_id, updated=removed)
