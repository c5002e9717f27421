from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.db.session import get_db
from app.auth.schemas import CallerIdentity
from app.auth.dependencies import get_current_user
from app.events.services import (
    EventService,
    EventNotFoundError,
    EventPermissionError,
    InvalidEventError,
    InvalidParticipantStatusError,
)
from .schemas import (
    DeletedResponse, EventCreate, EventRecord, EventUpdate, JoinResponse, MessageCreate,
    MessageRecord, MyParticipation, ParticipantRecord, ParticipantStatusUpdate, ErrorResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/events", tags=["events"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    return EventService(db)


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, EventNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if isinstance(e, EventPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ===============================
# EVENTS
# ===============================
@router.get("", response_model=List[EventRecord])
async def list_events(service: EventService = Depends(get_event_service)):
    """All events, newest first (feed and map pins)."""
    return await service.list_events()


@router.post("", response_model=EventRecord, status_code=status.HTTP_201_CREATED, responses=ERRORS)
async def create_event(
    event_data: EventCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    try:
        return await service.create_event(current_user, event_data)
    except InvalidEventError as e:
        logger.warning(f"Event creation refused: {e}")
        raise _http_error(e)


@router.get("/{event_id}", response_model=EventRecord, responses=ERRORS)
async def get_event(event_id: str, service: EventService = Depends(get_event_service)):
    event = await service.get_event(event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.patch("/{event_id}", response_model=EventRecord, responses=ERRORS)
async def update_event(
    event_id: str,
    event_update: EventUpdate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Creator only: title, description and cover image."""
    try:
        return await service.update_event(current_user, event_id, event_update)
    except (EventNotFoundError, EventPermissionError, InvalidEventError) as e:
        raise _http_error(e)


@router.delete("/{event_id}", response_model=DeletedResponse, responses=ERRORS)
async def delete_event(
    event_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Creator only. Participants and messages go with the event."""
    try:
        await service.delete_event(current_user, event_id)
    except (EventNotFoundError, EventPermissionError) as e:
        raise _http_error(e)
    return DeletedResponse(deleted=True, id=event_id)


# ===============================
# PARTICIPATION
# ===============================
@router.post("/{event_id}/join", response_model=JoinResponse, responses=ERRORS)
async def join_event(
    event_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    try:
        participant_status = await service.join_event(current_user, event_id)
    except EventNotFoundError as e:
        raise _http_error(e)
    return JoinResponse(event_id=event_id, status=participant_status)


@router.delete("/{event_id}/join", status_code=status.HTTP_204_NO_CONTENT)
async def leave_event(
    event_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    await service.leave_event(current_user, event_id)


@router.get("/{event_id}/participants", response_model=List[ParticipantRecord])
async def get_participants(
    event_id: str,
    approved_only: bool = Query(False, description="Only the 'Going' list"),
    service: EventService = Depends(get_event_service),
):
    if approved_only:
        return await service.get_event_participants(event_id)
    return await service.get_event_participants_with_status(event_id)


@router.get("/{event_id}/participants/me", response_model=MyParticipation)
async def get_my_participation(
    event_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    participant_status = await service.get_my_participant_status(current_user, event_id)
    return MyParticipation(event_id=event_id, status=participant_status)


@router.put("/{event_id}/participants/{user_id}", response_model=MyParticipation, responses=ERRORS)
async def update_participant_status(
    event_id: str,
    user_id: str,
    body: ParticipantStatusUpdate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Creator approves or rejects a join request."""
    try:
        stored = await service.update_participant_status(current_user, event_id, user_id, body.status)
    except (EventNotFoundError, EventPermissionError, InvalidParticipantStatusError) as e:
        raise _http_error(e)
    return MyParticipation(event_id=event_id, status=stored)


@router.delete("/{event_id}/participants/{user_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERRORS)
async def remove_participant(
    event_id: str,
    user_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    try:
        await service.remove_participant(current_user, event_id, user_id)
    except (EventNotFoundError, EventPermissionError) as e:
        raise _http_error(e)


# ===============================
# EVENT CHAT
# ===============================
@router.get("/{event_id}/messages", response_model=List[MessageRecord])
async def list_messages(event_id: str, service: EventService = Depends(get_event_service)):
    return await service.list_messages(event_id)


@router.post("/{event_id}/messages", response_model=MessageRecord, status_code=status.HTTP_201_CREATED, responses=ERRORS)
async def add_message(
    event_id: str,
    message: MessageCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    try:
        return await service.add_message(current_user, event_id, message.body)
    except (EventNotFoundError, InvalidEventError) as e:
        raise _http_error(e)


@router.delete("/messages/{message_id}", response_model=DeletedResponse, responses=ERRORS)
async def delete_message(
    message_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """The sender, or the creator of the event, may delete a message."""
    try:
        deleted = await service.delete_message(current_user, message_id)
    except EventPermissionError as e:
        raise _http_error(e)
    return DeletedResponse(deleted=deleted, id=message_id)
