import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

logger = logging.getLogger(__name__)

# Client MongoDB asynchrone
client = AsyncIOMotorClient(settings.MONGO_URL)
db = client[settings.MONGO_DB]

DM_CHATS = "dm_chats"
DM_MESSAGES = "dm_messages"


def get_mongo_db() -> AsyncIOMotorDatabase:
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    """Indexes backing the per-viewer DM addressing."""
    await database[DM_CHATS].create_index(
        [("owner_id", ASCENDING), ("chat_id", ASCENDING)], unique=True
    )
    await database[DM_CHATS].create_index([("owner_id", ASCENDING), ("updated_at", DESCENDING)])
    await database[DM_MESSAGES].create_index(
        [("owner_id", ASCENDING), ("chat_id", ASCENDING), ("created_at", ASCENDING)]
    )
    logger.info("DM collection indexes ensured")
