import logging
import uuid
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CallerIdentity
from app.db.capabilities import StoreCapabilities, get_capabilities
from app.db.dialect import insert_for
from app.events.models import Event, EventParticipant, Message, ParticipantStatus
from app.events.schemas import (
    AuthorOut,
    EventCreate,
    EventRecord,
    EventUpdate,
    MessageRecord,
    ParticipantRecord,
)
from app.users.models import Profile

logger = logging.getLogger(__name__)

DEFAULT_EMOJI = "📍"
MIN_TITLE_LENGTH = 3


class EventNotFoundError(Exception):
    pass


class EventPermissionError(Exception):
    pass


class InvalidEventError(ValueError):
    pass


class InvalidParticipantStatusError(ValueError):
    pass


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class EventService:
    """
    Events, the participant state machine and the per-event chat.

    Participant states: absent -> pending | approved (auto_accept) -> approved | rejected.
    Leaving deletes the row (back to absent).
    """

    def __init__(self, db: AsyncSession, capabilities: Optional[StoreCapabilities] = None):
        self.db = db
        self.caps = capabilities or get_capabilities()

    # ===============================
    # ROW MATERIALIZATION
    # ===============================
    def _event_columns(self) -> list:
        skipped = set()
        if not self.caps.event_auto_accept:
            skipped.add("auto_accept")
        if not self.caps.event_cover_image:
            skipped.add("cover_image_url")
        return [col for col in Event.__table__.c if col.name not in skipped]

    def _event_query(self):
        return select(
            *self._event_columns(),
            Profile.name.label("creator_name"),
            Profile.avatar_url.label("creator_avatar_url"),
            Profile.vibe.label("creator_vibe"),
            Profile.id.label("creator_profile_id"),
        ).outerjoin(Profile, Profile.id == Event.creator_id)

    @staticmethod
    def _to_event(row) -> EventRecord:
        data = row._mapping
        creator = None
        if data["creator_profile_id"] is not None:
            creator = AuthorOut(
                name=data["creator_name"] or "User",
                avatar_url=data["creator_avatar_url"],
                vibe=data["creator_vibe"],
            )
        return EventRecord(
            id=data["id"],
            creator_id=data["creator_id"],
            title=data["title"],
            description=data["description"],
            meeting_lat=data["lat"],
            meeting_lng=data["lng"],
            place_name=data["place_name"] or "",
            start_time=data["start_time"],
            emoji=data["emoji"] or DEFAULT_EMOJI,
            # Stores without the column predate face control: everyone got in
            auto_accept=data.get("auto_accept") is not False,
            cover_image_url=data.get("cover_image_url"),
            created_at=data["created_at"],
            creator=creator,
        )

    @staticmethod
    def _to_message(row) -> MessageRecord:
        data = row._mapping
        return MessageRecord(
            id=data["id"],
            event_id=data["event_id"],
            user_id=data["user_id"],
            body=data["content"],
            created_at=data["created_at"],
            author=AuthorOut(
                name=data["author_name"] or "Guest",
                avatar_url=data["author_avatar_url"],
                vibe=data["author_vibe"],
            ),
        )

    def _message_query(self):
        return select(
            Message.id,
            Message.event_id,
            Message.user_id,
            Message.content,
            Message.created_at,
            Profile.name.label("author_name"),
            Profile.avatar_url.label("author_avatar_url"),
            Profile.vibe.label("author_vibe"),
        ).outerjoin(Profile, Profile.id == Message.user_id)

    async def _creator_of(self, event_id: str) -> str:
        result = await self.db.execute(select(Event.creator_id).where(Event.id == event_id))
        creator_id = result.scalar_one_or_none()
        if creator_id is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        return creator_id

    async def _require_creator(self, caller: CallerIdentity, event_id: str) -> None:
        creator_id = await self._creator_of(event_id)
        if creator_id != caller.user_id:
            logger.warning(f"User {caller.user_id} is not the creator of event {event_id}")
            raise EventPermissionError("Only the event creator can do this")

    # ===============================
    # EVENTS
    # ===============================
    async def create_event(self, caller: CallerIdentity, data: Union[EventCreate, dict]) -> EventRecord:
        if isinstance(data, dict):
            data = EventCreate(**data)

        title = (data.title or "").strip()
        if len(title) < MIN_TITLE_LENGTH:
            raise InvalidEventError(f"Title must be at least {MIN_TITLE_LENGTH} characters")

        event_id = str(uuid.uuid4())
        payload = {
            "id": event_id,
            "creator_id": caller.user_id,
            "title": title[:100],
            "description": _clean(data.description),
            "place_name": _clean(data.place_name) or _clean(data.meeting_place),
            "lat": data.meeting_lat,
            "lng": data.meeting_lng,
            "start_time": data.start_time,
            "emoji": _clean(data.emoji) or DEFAULT_EMOJI,
        }
        if self.caps.event_auto_accept:
            payload["auto_accept"] = data.auto_accept
        elif not data.auto_accept:
            logger.warning(
                "auto_accept column missing in the store, event created as auto-accept. "
                "Run the 'auto_accept and participant status' migration."
            )

        try:
            await self.db.execute(insert_for(self.db, Event.__table__).values(**payload))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating event: {e}")
            raise

        logger.info(f"Event created: id={event_id}, title={title}, by creator_id={caller.user_id}")
        return await self.get_event(event_id)

    async def list_events(self) -> List[EventRecord]:
        result = await self.db.execute(self._event_query().order_by(Event.created_at.desc()))
        return [self._to_event(row) for row in result.all()]

    async def get_event(self, event_id: str) -> Optional[EventRecord]:
        result = await self.db.execute(self._event_query().where(Event.id == event_id))
        row = result.first()
        return self._to_event(row) if row else None

    async def update_event(self, caller: CallerIdentity, event_id: str, data: EventUpdate) -> EventRecord:
        await self._require_creator(caller, event_id)

        values = {}
        title = _clean(data.title)
        if title is not None:
            if len(title) < MIN_TITLE_LENGTH:
                raise InvalidEventError(f"Title must be at least {MIN_TITLE_LENGTH} characters")
            values["title"] = title
        if data.description is not None:
            values["description"] = _clean(data.description)
        if data.cover_image_url is not None:
            if self.caps.event_cover_image:
                values["cover_image_url"] = _clean(data.cover_image_url)
            else:
                logger.warning("cover_image_url column missing in the store, cover image ignored")

        if values:
            try:
                await self.db.execute(update(Event).where(Event.id == event_id).values(**values))
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Error updating event {event_id}: {e}")
                raise
            logger.info(f"Event {event_id} updated: {sorted(values)}")

        return await self.get_event(event_id)

    async def delete_event(self, caller: CallerIdentity, event_id: str) -> None:
        """Delete an event with its participants and messages, all or nothing."""
        await self._require_creator(caller, event_id)
        try:
            messages = await self.db.execute(delete(Message).where(Message.event_id == event_id))
            participants = await self.db.execute(delete(EventParticipant).where(EventParticipant.event_id == event_id))
            await self.db.execute(delete(Event).where(Event.id == event_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting event {event_id}, rolled back: {e}")
            raise
        logger.info(
            f"Event {event_id} deleted with {participants.rowcount} participants "
            f"and {messages.rowcount} messages"
        )

    # ===============================
    # PARTICIPANTS
    # ===============================
    async def _stored_status(self, event_id: str, user_id: str) -> Optional[ParticipantStatus]:
        if not self.caps.participant_status:
            result = await self.db.execute(
                select(EventParticipant.event_id).where(
                    EventParticipant.event_id == event_id, EventParticipant.user_id == user_id
                )
            )
            return ParticipantStatus.APPROVED if result.first() else None

        result = await self.db.execute(
            select(EventParticipant.status).where(
                EventParticipant.event_id == event_id, EventParticipant.user_id == user_id
            )
        )
        status = result.scalar_one_or_none()
        return ParticipantStatus(status) if status else None

    async def join_event(self, caller: CallerIdentity, event_id: str) -> ParticipantStatus:
        """
        Join (or request to join) an event.

        The row is inserted with ON CONFLICT DO NOTHING on (event_id, user_id): a second
        join, concurrent or not, is a no-op and reports the status already stored.
        """
        event = await self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")

        values = {"event_id": event_id, "user_id": caller.user_id, "joined_at": datetime.utcnow()}
        if self.caps.participant_status:
            status = ParticipantStatus.APPROVED if event.auto_accept else ParticipantStatus.PENDING
            values["status"] = status.value
        else:
            status = ParticipantStatus.APPROVED

        stmt = insert_for(self.db, EventParticipant.__table__).values(**values).on_conflict_do_nothing(
            index_elements=["event_id", "user_id"]
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error joining event {event_id}: {e}")
            raise

        if result.rowcount == 0:
            stored = await self._stored_status(event_id, caller.user_id)
            logger.info(f"User {caller.user_id} already in event {event_id} (status={stored})")
            return stored or status

        logger.info(f"User {caller.user_id} joined event {event_id} with status={status.value}")
        return status

    async def get_my_participant_status(self, caller: CallerIdentity, event_id: str) -> Optional[ParticipantStatus]:
        return await self._stored_status(event_id, caller.user_id)

    async def update_participant_status(
        self,
        caller: CallerIdentity,
        event_id: str,
        participant_user_id: str,
        status: Union[ParticipantStatus, str],
    ) -> Optional[ParticipantStatus]:
        """
        Approve or reject a join request. Creator only.

        Only a pending row moves; repeating the status it already has is a silent
        success. Returns the status stored afterwards (None when there is no row).
        """
        try:
            status = ParticipantStatus(status)
        except ValueError:
            raise InvalidParticipantStatusError(f"Unknown participant status: {status}")
        if status == ParticipantStatus.PENDING:
            raise InvalidParticipantStatusError("Only approved or rejected can be set by the creator")

        await self._require_creator(caller, event_id)

        if not self.caps.participant_status:
            logger.warning("Participant status column missing in the store, status update skipped")
            return await self._stored_status(event_id, participant_user_id)

        try:
            result = await self.db.execute(
                update(EventParticipant)
                .where(
                    EventParticipant.event_id == event_id,
                    EventParticipant.user_id == participant_user_id,
                    EventParticipant.status == ParticipantStatus.PENDING.value,
                )
                .values(status=status.value)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating participant {participant_user_id} in event {event_id}: {e}")
            raise

        stored = await self._stored_status(event_id, participant_user_id)
        if result.rowcount:
            logger.info(f"Participant {participant_user_id} of event {event_id} -> {status.value}")
        elif stored is None:
            logger.info(f"No participant {participant_user_id} in event {event_id}, nothing to update")
        elif stored != status:
            logger.warning(
                f"Participant {participant_user_id} of event {event_id} already resolved as {stored.value}, "
                f"ignoring {status.value}"
            )
        return stored

    async def leave_event(self, caller: CallerIdentity, event_id: str) -> None:
        await self._delete_participant(event_id, caller.user_id)

    async def remove_participant(self, caller: CallerIdentity, event_id: str, user_id: str) -> None:
        await self._require_creator(caller, event_id)
        await self._delete_participant(event_id, user_id)

    async def _delete_participant(self, event_id: str, user_id: str) -> None:
        try:
            result = await self.db.execute(
                delete(EventParticipant).where(
                    EventParticipant.event_id == event_id, EventParticipant.user_id == user_id
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error removing {user_id} from event {event_id}: {e}")
            raise
        if result.rowcount:
            logger.info(f"User {user_id} left event {event_id}")

    async def get_event_participants_with_status(self, event_id: str) -> List[ParticipantRecord]:
        """Participants joined with their profile; the caller splits Requests / Going by status."""
        columns = [EventParticipant.user_id, Profile.name, Profile.avatar_url, Profile.vibe]
        if self.caps.participant_status:
            columns.append(EventParticipant.status)

        result = await self.db.execute(
            select(*columns)
            .join(Profile, Profile.id == EventParticipant.user_id)
            .where(EventParticipant.event_id == event_id)
        )
        participants = []
        for row in result.all():
            data = row._mapping
            participants.append(
                ParticipantRecord(
                    id=data["user_id"],
                    name=data["name"] or "User",
                    avatar_url=data["avatar_url"],
                    vibe=data["vibe"],
                    status=data.get("status") or ParticipantStatus.APPROVED,
                )
            )
        return participants

    async def get_event_participants(self, event_id: str) -> List[ParticipantRecord]:
        return [
            p for p in await self.get_event_participants_with_status(event_id)
            if p.status == ParticipantStatus.APPROVED
        ]

    # ===============================
    # EVENT CHAT
    # ===============================
    async def list_messages(self, event_id: str) -> List[MessageRecord]:
        result = await self.db.execute(
            self._message_query().where(Message.event_id == event_id).order_by(Message.created_at.asc())
        )
        return [self._to_message(row) for row in result.all()]

    async def add_message(self, caller: CallerIdentity, event_id: str, body: str) -> MessageRecord:
        body = (body or "").strip()
        if not body:
            raise InvalidEventError("Message body is empty")
        await self._creator_of(event_id)

        message_id = str(uuid.uuid4())
        try:
            await self.db.execute(
                insert_for(self.db, Message.__table__).values(
                    id=message_id,
                    event_id=event_id,
                    user_id=caller.user_id,
                    content=body,
                    created_at=datetime.utcnow(),
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error adding message to event {event_id}: {e}")
            raise

        # Author comes from the current profile, not a cached snapshot
        result = await self.db.execute(self._message_query().where(Message.id == message_id))
        return self._to_message(result.first())

    async def delete_message(self, caller: CallerIdentity, message_id: str) -> bool:
        result = await self.db.execute(
            select(Message.user_id, Event.creator_id)
            .join(Event, Event.id == Message.event_id)
            .where(Message.id == message_id)
        )
        row = result.first()
        if row is None:
            return False
        if caller.user_id not in (row.user_id, row.creator_id):
            raise EventPermissionError("Only the sender or the event creator can delete this message")

        try:
            await self.db.execute(delete(Message).where(Message.id == message_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting message {message_id}: {e}")
            raise
        logger.info(f"Message {message_id} deleted by {caller.user_id}")
        return True
