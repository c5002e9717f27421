import logging
from datetime import datetime, timedelta
from typing import List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CallerIdentity
from app.config import settings
from app.users.models import Profile
from app.users.schemas import NearbyUser

logger = logging.getLogger(__name__)


class PresenceService:
    """Map "social radar": who is around, and what we store about where I am."""

    def __init__(self, db: AsyncSession, window_hours: int = None):
        self.db = db
        self.window = timedelta(hours=window_hours or settings.NEARBY_WINDOW_HOURS)

    async def get_nearby_users(self, caller: CallerIdentity) -> List[NearbyUser]:
        since = datetime.utcnow() - self.window
        result = await self.db.execute(
            select(Profile.id, Profile.name, Profile.avatar_url, Profile.latitude, Profile.longitude, Profile.last_seen)
            .where(
                Profile.id != caller.user_id,
                Profile.is_ghost.is_(False),
                Profile.latitude.is_not(None),
                Profile.longitude.is_not(None),
                Profile.last_seen.is_not(None),
                Profile.last_seen >= since,
            )
        )
        return [
            NearbyUser(
                id=row.id,
                name=row.name,
                avatar_url=row.avatar_url,
                latitude=float(row.latitude),
                longitude=float(row.longitude),
                last_seen=row.last_seen,
            )
            for row in result.all()
        ]

    async def update_my_location(self, caller: CallerIdentity, lat: float, lng: float) -> None:
        result = await self.db.execute(select(Profile.is_ghost).where(Profile.id == caller.user_id))
        is_ghost = result.scalar_one_or_none() is True

        values = {"last_seen": datetime.utcnow()}
        if is_ghost:
            values.update(latitude=None, longitude=None)
        else:
            values.update(latitude=lat, longitude=lng)

        try:
            await self.db.execute(update(Profile).where(Profile.id == caller.user_id).values(**values))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating location of {caller.user_id}: {e}")
            raise
        logger.debug(f"Location refreshed for {caller.user_id} (ghost={is_ghost})")
