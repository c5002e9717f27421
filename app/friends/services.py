import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CallerIdentity
from app.config import settings
from app.db.dialect import insert_for
from app.friends.models import Friendship, FriendshipStatus
from app.friends.schemas import FriendRequestWithSender, FriendshipRecord, FriendWithProfile
from app.users.models import Profile
from app.users.schemas import ProfileBasic

logger = logging.getLogger(__name__)


class SelfFriendRequestError(ValueError):
    pass


class FriendNotFoundError(Exception):
    pass


def _pair(a: str, b: str):
    return and_(Friendship.requester_id == a, Friendship.receiver_id == b)


class FriendshipService:
    """
    Friendship graph.

    Directional while pending (requester -> receiver), symmetric once accepted:
    "friends with" is always queried across both directions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, requester_id: str, receiver_id: str) -> Optional[Friendship]:
        result = await self.db.execute(
            select(Friendship).where(_pair(requester_id, receiver_id)).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─────────────────────────────────────────────
    # 1. Send a friend request
    # ─────────────────────────────────────────────
    async def send_friend_request(self, caller: CallerIdentity, receiver_id: str) -> FriendshipRecord:
        me = caller.user_id
        if receiver_id == me:
            raise SelfFriendRequestError("Cannot add yourself")

        exists = await self.db.execute(select(Profile.id).where(Profile.id == receiver_id))
        if exists.scalar_one_or_none() is None:
            raise FriendNotFoundError(f"User {receiver_id} not found")

        # The other side already asked (or we are already friends): no second row
        reverse = await self._find(receiver_id, me)
        if reverse is not None and reverse.status in (FriendshipStatus.pending.value, FriendshipStatus.accepted.value):
            logger.info(f"Friend request {me} -> {receiver_id} skipped, reverse row {reverse.id} is {reverse.status}")
            return FriendshipRecord.model_validate(reverse)

        stmt = insert_for(self.db, Friendship.__table__).values(
            id=str(uuid.uuid4()),
            requester_id=me,
            receiver_id=receiver_id,
            status=FriendshipStatus.pending.value,
            created_at=datetime.utcnow(),
        ).on_conflict_do_nothing(index_elements=["requester_id", "receiver_id"])
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error sending friend request {me} -> {receiver_id}: {e}")
            raise

        if result.rowcount:
            logger.info(f"Friend request sent: {me} -> {receiver_id}")
        else:
            logger.info(f"Friend request {me} -> {receiver_id} already exists")
        return FriendshipRecord.model_validate(await self._find(me, receiver_id))

    # ─────────────────────────────────────────────
    # 2. Incoming pending requests
    # ─────────────────────────────────────────────
    async def get_friend_requests(self, caller: CallerIdentity) -> List[FriendRequestWithSender]:
        result = await self.db.execute(
            select(Friendship, Profile.name, Profile.avatar_url, Profile.id.label("profile_id"))
            .outerjoin(Profile, Profile.id == Friendship.requester_id)
            .where(
                Friendship.receiver_id == caller.user_id,
                Friendship.status == FriendshipStatus.pending.value,
            )
            .order_by(Friendship.created_at.desc())
        )
        requests = []
        for friendship, name, avatar_url, profile_id in result.all():
            requester = ProfileBasic(id=profile_id, name=name, avatar_url=avatar_url) if profile_id else None
            requests.append(
                FriendRequestWithSender(
                    **FriendshipRecord.model_validate(friendship).model_dump(),
                    requester=requester,
                )
            )
        return requests

    # ─────────────────────────────────────────────
    # 3. Accept / decline
    # ─────────────────────────────────────────────
    async def _resolve(self, caller: CallerIdentity, friendship_id: str, new_status: FriendshipStatus) -> bool:
        """
        Single conditional UPDATE: only the receiver moves a pending row.

        False means zero rows matched: already resolved, unknown, or not ours.
        Concurrent accept/decline calls have exactly one winner.
        """
        try:
            result = await self.db.execute(
                update(Friendship)
                .where(
                    Friendship.id == friendship_id,
                    Friendship.receiver_id == caller.user_id,
                    Friendship.status == FriendshipStatus.pending.value,
                )
                .values(status=new_status.value)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error setting friendship {friendship_id} to {new_status.value}: {e}")
            raise

        if result.rowcount == 0:
            logger.warning(
                f"Friendship {friendship_id} not updated to {new_status.value} by {caller.user_id}: "
                "already resolved or not the receiver"
            )
            return False
        logger.info(f"Friendship {friendship_id} {new_status.value} by {caller.user_id}")
        return True

    async def accept_request(self, caller: CallerIdentity, friendship_id: str) -> bool:
        return await self._resolve(caller, friendship_id, FriendshipStatus.accepted)

    async def decline_request(self, caller: CallerIdentity, friendship_id: str) -> bool:
        return await self._resolve(caller, friendship_id, FriendshipStatus.rejected)

    # ─────────────────────────────────────────────
    # 4. My friends (both directions)
    # ─────────────────────────────────────────────
    async def get_my_friends(self, caller: CallerIdentity) -> List[FriendWithProfile]:
        me = caller.user_id
        result = await self.db.execute(
            select(Friendship.id, Friendship.requester_id, Friendship.receiver_id).where(
                Friendship.status == FriendshipStatus.accepted.value,
                or_(Friendship.requester_id == me, Friendship.receiver_id == me),
            )
        )
        rows = result.all()
        other_ids = {row.receiver_id if row.requester_id == me else row.requester_id for row in rows}
        if not other_ids:
            return []

        profiles = await self.db.execute(
            select(Profile.id, Profile.name, Profile.avatar_url).where(Profile.id.in_(other_ids))
        )
        by_id = {p.id: ProfileBasic(id=p.id, name=p.name, avatar_url=p.avatar_url) for p in profiles.all()}

        friends = []
        for row in rows:
            other = row.receiver_id if row.requester_id == me else row.requester_id
            if other in by_id:
                friends.append(FriendWithProfile(friendship_id=row.id, user=by_id[other]))
        return friends

    async def remove_friendship(self, caller: CallerIdentity, friendship_id: str) -> bool:
        """Unfriend, or withdraw a request. Either party may delete the row."""
        me = caller.user_id
        try:
            result = await self.db.execute(
                delete(Friendship).where(
                    Friendship.id == friendship_id,
                    or_(Friendship.requester_id == me, Friendship.receiver_id == me),
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting friendship {friendship_id}: {e}")
            raise
        if result.rowcount:
            logger.info(f"Friendship {friendship_id} removed by {me}")
        return result.rowcount > 0

    # ─────────────────────────────────────────────
    # 5. Search and statuses
    # ─────────────────────────────────────────────
    async def search_users(self, caller: CallerIdentity, query: str, limit: int = None) -> List[ProfileBasic]:
        q = (query or "").strip()
        if not q:
            return []
        result = await self.db.execute(
            select(Profile.id, Profile.name, Profile.avatar_url)
            .where(Profile.id != caller.user_id, Profile.name.ilike(f"%{q}%"))
            .order_by(Profile.name)
            .limit(limit or settings.SEARCH_LIMIT)
        )
        return [ProfileBasic(id=row.id, name=row.name, avatar_url=row.avatar_url) for row in result.all()]

    async def get_friendship_status(self, caller: CallerIdentity, other_id: str) -> Optional[FriendshipStatus]:
        statuses = await self.get_friendship_statuses(caller, [other_id])
        return statuses.get(other_id)

    async def get_friendship_statuses(
        self, caller: CallerIdentity, candidate_ids: Iterable[str]
    ) -> Dict[str, FriendshipStatus]:
        """Status per candidate in one query, for rendering a result list without N+1 lookups."""
        me = caller.user_id
        candidates = set(candidate_ids) - {me}
        if not candidates:
            return {}

        result = await self.db.execute(
            select(Friendship.requester_id, Friendship.receiver_id, Friendship.status)
            .where(
                or_(
                    and_(Friendship.requester_id == me, Friendship.receiver_id.in_(candidates)),
                    and_(Friendship.receiver_id == me, Friendship.requester_id.in_(candidates)),
                )
            )
            .order_by(Friendship.created_at)
        )
        statuses = {}
        for row in result.all():
            other = row.receiver_id if row.requester_id == me else row.requester_id
            current = statuses.get(other)
            # A live row in one direction wins over a rejected one in the other
            if current is None or current == FriendshipStatus.rejected:
                statuses[other] = FriendshipStatus(row.status)
        return statuses
