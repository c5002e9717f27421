"""
Store capability flags.

Older deployments may not have run every migration yet. Instead of reacting to
"column does not exist" errors on each call, the columns are inspected once at
startup and services pick their degraded path from these flags.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreCapabilities:
    participant_status: bool = True
    event_auto_accept: bool = True
    event_cover_image: bool = True

    @classmethod
    def full(cls) -> "StoreCapabilities":
        return cls()

    def missing(self) -> list:
        return [name for name, enabled in vars(self).items() if not enabled]


def _columns(sync_conn, table: str) -> set:
    inspector = inspect(sync_conn)
    if not inspector.has_table(table):
        return set()
    return {col["name"] for col in inspector.get_columns(table)}


async def resolve_capabilities(engine: AsyncEngine) -> StoreCapabilities:
    async with engine.connect() as conn:
        participant_cols = await conn.run_sync(_columns, "event_participants")
        event_cols = await conn.run_sync(_columns, "events")

    caps = StoreCapabilities(
        participant_status="status" in participant_cols,
        event_auto_accept="auto_accept" in event_cols,
        event_cover_image="cover_image_url" in event_cols,
    )
    if caps.missing():
        logger.warning(
            f"Store is missing optional columns {caps.missing()}; running in degraded mode. "
            "Apply the pending alembic migrations to enable them."
        )
    else:
        logger.info("Store capabilities: all optional columns present")
    return caps


# Resolved by the application lifespan; full capabilities until then
_current = StoreCapabilities.full()


def set_capabilities(caps: StoreCapabilities) -> None:
    global _current
    _current = caps


def get_capabilities() -> StoreCapabilities:
    return _current
