from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VibeIntent(str, Enum):
    JUST_COFFEE = "just-coffee"
    NETWORKING = "networking"
    ROMANTIC_DATE = "romantic-date"
    LANGUAGE_PRACTICE = "language-practice"
    FRIENDSHIP = "friendship"
    ADVENTURE = "adventure"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class FavoriteSpot(BaseModel):
    id: str
    name: str
    address: str = ""
    lat: float
    lng: float


class PrivacySettings(BaseModel):
    ghostMode: bool = False
    showExactLocation: bool = False
    allowCheckIns: bool = True


# ────────────────────────────────
# SUMMARIES (joined into other records)
# ────────────────────────────────

class ProfileBasic(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileSummary(ProfileBasic):
    vibe: Optional[str] = None


# ────────────────────────────────
# FULL PROFILE
# ────────────────────────────────

class ProfileOut(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    vibe: Optional[str] = None
    bio: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    languages: List[str] = Field(default_factory=lambda: ["ru"])
    interests: List[str] = Field(default_factory=list)
    conversation_starters: List[str] = Field(default_factory=list)
    favorite_spots: List[FavoriteSpot] = Field(default_factory=list)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    location: Optional[str] = None
    is_ghost: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_seen: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpsert(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    avatar_url: Optional[str] = None
    vibe: Optional[VibeIntent] = None
    bio: Optional[str] = None

    @field_validator("vibe", mode="before")
    @classmethod
    def blank_vibe_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar_url: Optional[str] = None
    vibe: Optional[VibeIntent] = None
    bio: Optional[str] = None
    age: Optional[int] = Field(None, ge=16, le=120)
    gender: Optional[Gender] = None
    languages: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    conversation_starters: Optional[List[str]] = None
    favorite_spots: Optional[List[FavoriteSpot]] = None
    privacy: Optional[PrivacySettings] = None
    location: Optional[str] = None

    @field_validator("languages", "interests", "conversation_starters", "favorite_spots", "privacy")
    @classmethod
    def not_null(cls, v):
        # Omit the field to keep it; these columns cannot be cleared to null
        if v is None:
            raise ValueError("Field cannot be null, send an empty value instead")
        return v


# ────────────────────────────────
# PRESENCE
# ────────────────────────────────

class NearbyUser(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    latitude: float
    longitude: float
    last_seen: datetime


class LocationUpdate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
