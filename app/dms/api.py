from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.config import settings
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.auth.schemas import CallerIdentity
from app.auth.dependencies import get_current_user
from app.dms.replies import ReplyStrategy, build_reply_strategy
from app.dms.schemas import DMAuthor, DMChat, DMChatOpen, DMMessage, DMSend
from app.dms.services import DMChatNotFoundError, DMService
from app.users.services import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dms", tags=["dms"])

_reply_strategy = build_reply_strategy(settings)


def get_reply_strategy() -> ReplyStrategy:
    return _reply_strategy


def get_dm_service(
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
    strategy: ReplyStrategy = Depends(get_reply_strategy),
) -> DMService:
    return DMService(mongo, strategy)


@router.get("", response_model=List[DMChat])
async def list_dm_chats(
    current_user: CallerIdentity = Depends(get_current_user),
    service: DMService = Depends(get_dm_service),
):
    return await service.list_dm_chats(current_user)


@router.put("/{user_id}", response_model=DMChat)
async def open_dm_chat(
    user_id: str,
    body: DMChatOpen,
    current_user: CallerIdentity = Depends(get_current_user),
    service: DMService = Depends(get_dm_service),
):
    """Open (or re-open) the chat with a user, refreshing how they are displayed."""
    if user_id == current_user.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot message yourself")
    return await service.get_or_create_dm_chat(
        current_user, user_id, body.user_name, body.user_avatar, body.user_vibe
    )


@router.get("/{user_id}", response_model=DMChat)
async def get_dm_chat(
    user_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: DMService = Depends(get_dm_service),
):
    chat = await service.get_dm_chat(current_user, user_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return chat


@router.get("/{user_id}/messages", response_model=List[DMMessage])
async def get_dm_messages(
    user_id: str,
    current_user: CallerIdentity = Depends(get_current_user),
    service: DMService = Depends(get_dm_service),
):
    return await service.get_dm_messages(current_user, user_id)


@router.post("/{user_id}/messages", response_model=DMMessage, status_code=status.HTTP_201_CREATED)
async def send_dm_message(
    user_id: str,
    body: DMSend,
    current_user: CallerIdentity = Depends(get_current_user),
    service: DMService = Depends(get_dm_service),
    db: AsyncSession = Depends(get_db),
):
    # Author snapshot comes from the sender's profile at send time
    me = (await ProfileService(db).get_summaries([current_user.user_id])).get(current_user.user_id)
    author = DMAuthor(
        name=(me.name if me and me.name else current_user.name) or "User",
        avatar_url=me.avatar_url if me else current_user.avatar_url,
        vibe=me.vibe if me else None,
    )
    try:
        return await service.send_dm_message(current_user, user_id, body.body, author, body.simulate_reply)
    except DMChatNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
