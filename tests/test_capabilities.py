"""Stores that have not run the later migrations yet."""
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from app.auth.schemas import CallerIdentity
from app.db.capabilities import StoreCapabilities, resolve_capabilities
from app.events.models import Message, ParticipantStatus
from app.events.schemas import EventCreate, EventUpdate
from app.events.services import EventService
from app.users.models import Profile
from app.users.services import ProfileService
from conftest import new_engine

LEGACY_EVENTS = """
CREATE TABLE events (
    id VARCHAR(36) PRIMARY KEY,
    creator_id VARCHAR(36) NOT NULL REFERENCES profiles(id),
    title VARCHAR(100) NOT NULL,
    description TEXT,
    lat FLOAT,
    lng FLOAT,
    place_name VARCHAR(255),
    start_time DATETIME,
    emoji VARCHAR(16) NOT NULL DEFAULT '📍',
    created_at DATETIME NOT NULL
)
"""

LEGACY_PARTICIPANTS = """
CREATE TABLE event_participants (
    event_id VARCHAR(36) NOT NULL REFERENCES events(id),
    user_id VARCHAR(36) NOT NULL REFERENCES profiles(id),
    joined_at DATETIME NOT NULL,
    PRIMARY KEY (event_id, user_id)
)
"""


@pytest_asyncio.fixture
async def legacy_engine():
    engine = new_engine()
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Profile.__table__.create(sync_conn))
        await conn.execute(text(LEGACY_EVENTS))
        await conn.execute(text(LEGACY_PARTICIPANTS))
        await conn.run_sync(lambda sync_conn: Message.__table__.create(sync_conn))
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def legacy_db(legacy_engine):
    factory = sessionmaker(bind=legacy_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def test_full_store_capabilities(engine):
    assert await resolve_capabilities(engine) == StoreCapabilities.full()


async def test_legacy_store_capabilities(legacy_engine):
    caps = await resolve_capabilities(legacy_engine)

    assert caps == StoreCapabilities(participant_status=False, event_auto_accept=False, event_cover_image=False)
    assert sorted(caps.missing()) == ["event_auto_accept", "event_cover_image", "participant_status"]


async def test_degraded_event_flow(legacy_engine, legacy_db):
    caps = await resolve_capabilities(legacy_engine)
    aida = CallerIdentity(user_id="aida", name="Aida")
    timur = CallerIdentity(user_id="timur", name="Timur")
    for caller in (aida, timur):
        await ProfileService(legacy_db).ensure_profile(caller)
    service = EventService(legacy_db, caps)

    # Face control is not available: the event still gets created, as auto-accept
    event = await service.create_event(aida, EventCreate(title="Coffee Walk", auto_accept=False))
    assert event.auto_accept is True
    assert event.cover_image_url is None

    assert await service.join_event(timur, event.id) == ParticipantStatus.APPROVED
    assert await service.join_event(timur, event.id) == ParticipantStatus.APPROVED
    participants = await service.get_event_participants(event.id)
    assert [(p.id, p.status) for p in participants] == [(timur.user_id, ParticipantStatus.APPROVED)]

    stored = await service.update_participant_status(aida, event.id, timur.user_id, ParticipantStatus.REJECTED)
    assert stored == ParticipantStatus.APPROVED

    updated = await service.update_event(aida, event.id, EventUpdate(title="Coffee Run", cover_image_url="x.jpg"))
    assert updated.title == "Coffee Run"
    assert updated.cover_image_url is None
