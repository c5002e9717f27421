import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CallerIdentity
from app.db.dialect import insert_for
from app.users.models import Profile
from app.users.schemas import ProfileOut, ProfileSummary, ProfileUpdate, ProfileUpsert
from app.utils.avatar import generate_default_avatar_url

logger = logging.getLogger(__name__)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def ensure_profile(self, caller: CallerIdentity) -> None:
        """Create the caller's profile on first authentication, leave it untouched otherwise."""
        name = _blank_to_none(caller.name) or "User"
        stmt = insert_for(self.db, Profile.__table__).values(
            id=caller.user_id,
            name=name,
            avatar_url=caller.avatar_url or generate_default_avatar_url(name),
        ).on_conflict_do_nothing(index_elements=["id"])
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating profile {caller.user_id}: {e}")
            raise
        if result.rowcount:
            logger.info(f"Profile created on first authentication: id={caller.user_id}")

    async def _get_row(self, user_id: str) -> Optional[Profile]:
        result = await self.db.execute(
            select(Profile).where(Profile.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_profile(self, user_id: str) -> Optional[ProfileOut]:
        profile = await self._get_row(user_id)
        if profile is None:
            return None
        return ProfileOut.model_validate(profile)

    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, ProfileSummary]:
        """Batch lookup of display fields, one query for all ids."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.db.execute(
            select(Profile.id, Profile.name, Profile.avatar_url, Profile.vibe).where(Profile.id.in_(ids))
        )
        return {
            row.id: ProfileSummary(id=row.id, name=row.name, avatar_url=row.avatar_url, vibe=row.vibe)
            for row in result.all()
        }

    async def upsert_profile(self, caller: CallerIdentity, data: ProfileUpsert) -> ProfileOut:
        """Create or replace the mandatory fields filled in right after sign-up."""
        values = {
            "name": data.name.strip(),
            "avatar_url": _blank_to_none(data.avatar_url),
            "vibe": data.vibe.value if data.vibe else None,
            "bio": _blank_to_none(data.bio),
            "updated_at": datetime.utcnow(),
        }
        stmt = insert_for(self.db, Profile.__table__).values(id=caller.user_id, **values)
        stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=values)
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error upserting profile {caller.user_id}: {e}")
            raise
        logger.info(f"Profile upserted: id={caller.user_id}")
        return await self.get_profile(caller.user_id)

    async def update_profile(self, caller: CallerIdentity, updates: ProfileUpdate) -> Optional[ProfileOut]:
        profile = await self._get_row(caller.user_id)
        if profile is None:
            return None

        changes = updates.model_dump(exclude_unset=True, mode="json")
        privacy = changes.pop("privacy", None)
        for field, value in changes.items():
            setattr(profile, field, value)

        if privacy is not None:
            profile.privacy = privacy
            profile.is_ghost = bool(privacy.get("ghostMode"))
            if profile.is_ghost:
                # Ghost mode hides the location at the data layer, not only in the UI
                profile.latitude = None
                profile.longitude = None

        profile.updated_at = datetime.utcnow()
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating profile {caller.user_id}: {e}")
            raise
        await self.db.refresh(profile)
        logger.info(f"Profile updated: id={caller.user_id}, fields={sorted(changes) + (['privacy'] if privacy else [])}")
        return ProfileOut.model_validate(profile)

    async def has_complete_profile(self, caller: CallerIdentity) -> bool:
        result = await self.db.execute(select(Profile.name).where(Profile.id == caller.user_id))
        name = result.scalar_one_or_none()
        return name is not None and str(name).strip() != ""
