from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.db.session import get_db
from app.auth.schemas import CallerIdentity
from app.auth.dependencies import get_current_user
from app.users.presence import PresenceService
from app.users.schemas import LocationUpdate, NearbyUser, ProfileOut, ProfileUpdate, ProfileUpsert
from app.users.services import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_presence_service(db: AsyncSession = Depends(get_db)) -> PresenceService:
    return PresenceService(db)


# 🔍 GET /users/me - My profile
@router.get("/me", response_model=ProfileOut)
async def get_my_profile(
    current_user: CallerIdentity = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    profile = await service.get_profile(current_user.user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


# ✏️ PUT /users/me - Onboarding: name, avatar, vibe, bio
@router.put("/me", response_model=ProfileOut)
async def upsert_my_profile(
    data: ProfileUpsert,
    current_user: CallerIdentity = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.upsert_profile(current_user, data)


# ✏️ PATCH /users/me - Partial update
@router.patch("/me", response_model=ProfileOut)
async def update_my_profile(
    updates: ProfileUpdate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    profile = await service.update_profile(current_user, updates)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("/me/complete")
async def has_complete_profile(
    current_user: CallerIdentity = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return {"complete": await service.has_complete_profile(current_user)}


# 📍 POST /users/me/location - Heartbeat from the map screen
@router.post("/me/location", status_code=status.HTTP_204_NO_CONTENT)
async def update_my_location(
    location: LocationUpdate,
    current_user: CallerIdentity = Depends(get_current_user),
    presence: PresenceService = Depends(get_presence_service),
):
    await presence.update_my_location(current_user, location.lat, location.lng)


# 🗺️ GET /users/nearby - Visible users seen recently
@router.get("/nearby", response_model=List[NearbyUser])
async def get_nearby_users(
    current_user: CallerIdentity = Depends(get_current_user),
    presence: PresenceService = Depends(get_presence_service),
):
    return await presence.get_nearby_users(current_user)


# 🔍 GET /users/{user_id} - Public profile
@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(user_id: str, service: ProfileService = Depends(get_profile_service)):
    profile = await service.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile
