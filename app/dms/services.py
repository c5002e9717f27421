import logging
import uuid
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.auth.schemas import CallerIdentity
from app.db.mongo import DM_CHATS, DM_MESSAGES
from app.dms.replies import ReplyScheduler, ReplyStrategy, reply_scheduler
from app.dms.schemas import DMAuthor, DMChat, DMMessage
from app.utils.mongodb_utils import convert_mongodb_result, preview

logger = logging.getLogger(__name__)


class DMChatNotFoundError(Exception):
    pass


class DMService:
    """
    Direct messages, addressed by the counterpart's user id.

    Every viewer owns its own chat record and message copy (owner_id), so the two
    people in a conversation do not share a chat entity.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        strategy: ReplyStrategy,
        scheduler: ReplyScheduler = reply_scheduler,
    ):
        self.chats = db[DM_CHATS]
        self.messages = db[DM_MESSAGES]
        self.strategy = strategy
        self.scheduler = scheduler

    @staticmethod
    def _to_chat(doc: dict) -> DMChat:
        doc = convert_mongodb_result(doc)
        return DMChat(
            id=doc["chat_id"],
            user_name=doc.get("user_name") or "User",
            user_avatar=doc.get("user_avatar"),
            user_vibe=doc.get("user_vibe"),
            last_message=doc.get("last_message") or "",
            updated_at=doc["updated_at"],
        )

    @staticmethod
    def _to_message(doc: dict) -> DMMessage:
        doc = convert_mongodb_result(doc)
        return DMMessage(
            id=doc["id"],
            chat_id=doc["chat_id"],
            sender_id=doc["sender_id"],
            body=doc["body"],
            created_at=doc["created_at"],
            author=DMAuthor(**doc["author"]),
        )

    async def get_or_create_dm_chat(
        self,
        caller: CallerIdentity,
        user_id: str,
        user_name: str,
        user_avatar: Optional[str] = None,
        user_vibe: Optional[str] = None,
    ) -> DMChat:
        """Create the chat on first contact; otherwise refresh the counterpart's display fields."""
        doc = await self.chats.find_one_and_update(
            {"owner_id": caller.user_id, "chat_id": user_id},
            {
                "$set": {"user_name": user_name, "user_avatar": user_avatar, "user_vibe": user_vibe},
                "$setOnInsert": {"last_message": "", "updated_at": datetime.utcnow()},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_chat(doc)

    async def get_dm_chat(self, caller: CallerIdentity, user_id: str) -> Optional[DMChat]:
        doc = await self.chats.find_one({"owner_id": caller.user_id, "chat_id": user_id})
        return self._to_chat(doc) if doc else None

    async def list_dm_chats(self, caller: CallerIdentity) -> List[DMChat]:
        """Chats that have at least one message, most recent first."""
        cursor = self.chats.find(
            {"owner_id": caller.user_id, "last_message": {"$nin": ["", None]}}
        ).sort("updated_at", DESCENDING)
        chats = []
        async for doc in cursor:
            chats.append(self._to_chat(doc))
        return chats

    async def get_dm_messages(self, caller: CallerIdentity, chat_id: str) -> List[DMMessage]:
        cursor = self.messages.find({"owner_id": caller.user_id, "chat_id": chat_id}).sort("created_at", ASCENDING)
        messages = []
        async for doc in cursor:
            messages.append(self._to_message(doc))
        return messages

    async def _append(self, owner_id: str, chat_id: str, sender_id: str, body: str, author: DMAuthor) -> DMMessage:
        now = datetime.utcnow()
        doc = {
            "id": uuid.uuid4().hex,
            "owner_id": owner_id,
            "chat_id": chat_id,
            "sender_id": sender_id,
            "body": body,
            "created_at": now,
            "author": author.model_dump(),
        }
        await self.messages.insert_one(doc)

        # The preview follows whichever message is the latest by wall clock
        await self.chats.update_one(
            {"owner_id": owner_id, "chat_id": chat_id, "updated_at": {"$lte": now}},
            {"$set": {"last_message": preview(body), "updated_at": now}},
        )
        return self._to_message(doc)

    async def send_dm_message(
        self,
        caller: CallerIdentity,
        chat_id: str,
        body: str,
        author: DMAuthor,
        simulate_reply: bool = True,
    ) -> DMMessage:
        body = (body or "").strip()
        if not body:
            raise ValueError("Message body is empty")

        chat = await self.get_dm_chat(caller, chat_id)
        if chat is None:
            raise DMChatNotFoundError(f"No chat with {chat_id}")

        message = await self._append(caller.user_id, chat_id, caller.user_id, body, author)

        if simulate_reply:
            plan = self.strategy.plan_reply(chat)
            if plan is not None:
                logger.debug(f"Simulated reply from {chat.id} scheduled in {plan.delay:.1f}s")
                self.scheduler.schedule(plan.delay, lambda: self._deliver_reply(caller.user_id, chat, plan.body))

        return message

    async def _deliver_reply(self, owner_id: str, chat: DMChat, body: str) -> None:
        author = DMAuthor(name=chat.user_name, avatar_url=chat.user_avatar, vibe=chat.user_vibe)
        await self._append(owner_id, chat.id, chat.id, body, author)
        logger.info(f"Simulated reply from {chat.id} delivered to {owner_id}")
