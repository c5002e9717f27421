import pytest

from app.events.models import ParticipantStatus
from app.events.schemas import EventCreate, EventUpdate
from app.events.services import (
    EventNotFoundError,
    EventPermissionError,
    EventService,
    InvalidEventError,
)


@pytest.fixture
def coffee_walk():
    return EventCreate(
        title="Coffee Walk",
        description="Morning walk with coffee",
        place_name="Sierra Coffee",
        meeting_lat=42.8746,
        meeting_lng=74.5698,
        auto_accept=False,
    )


async def test_create_event_defaults(db, make_user):
    aida = await make_user("Aida")
    service = EventService(db)

    event = await service.create_event(aida, EventCreate(title="  Board games  "))

    assert event.title == "Board games"
    assert event.emoji == "📍"
    assert event.auto_accept is True
    assert event.place_name == ""
    assert event.creator_id == aida.user_id
    assert event.creator.name == "Aida"


async def test_create_event_rejects_short_title(db, make_user):
    aida = await make_user("Aida")
    with pytest.raises(InvalidEventError):
        await EventService(db).create_event(aida, {"title": "   a  "})


async def test_meeting_place_fallback(db, make_user):
    aida = await make_user("Aida")
    event = await EventService(db).create_event(aida, EventCreate(title="Hike", meeting_place="Ala-Archa"))
    assert event.place_name == "Ala-Archa"


async def test_list_events_newest_first(db, make_user):
    aida = await make_user("Aida")
    service = EventService(db)
    first = await service.create_event(aida, EventCreate(title="First"))
    second = await service.create_event(aida, EventCreate(title="Second"))

    events = await service.list_events()

    assert [e.id for e in events] == [second.id, first.id]


async def test_get_unknown_event_returns_none(db):
    assert await EventService(db).get_event("missing") is None


async def test_update_event_by_creator(db, make_user, coffee_walk):
    aida = await make_user("Aida")
    service = EventService(db)
    event = await service.create_event(aida, coffee_walk)

    # Blank title keeps the current one, empty description clears it
    updated = await service.update_event(
        aida, event.id, EventUpdate(title="  ", description="", cover_image_url="https://img/cover.jpg")
    )

    assert updated.title == "Coffee Walk"
    assert updated.description is None
    assert updated.cover_image_url == "https://img/cover.jpg"


async def test_update_event_requires_creator(db, make_user, coffee_walk):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = EventService(db)
    event = await service.create_event(aida, coffee_walk)

    with pytest.raises(EventPermissionError):
        await service.update_event(timur, event.id, EventUpdate(title="Hijacked"))
    with pytest.raises(EventNotFoundError):
        await service.update_event(aida, "missing", EventUpdate(title="Nothing"))


async def test_delete_event_cascades(db, make_user, coffee_walk):
    aida = await make_user("Aida")
    guests = [await make_user(name) for name in ("Timur", "Jibek", "Max")]
    service = EventService(db)
    event = await service.create_event(aida, coffee_walk)
    for guest in guests:
        await service.join_event(guest, event.id)
    for i in range(5):
        await service.add_message(guests[i % 3], event.id, f"message {i}")
    assert len(await service.get_event_participants_with_status(event.id)) == 3
    assert len(await service.list_messages(event.id)) == 5

    await service.delete_event(aida, event.id)

    assert await service.get_event(event.id) is None
    assert await service.get_event_participants_with_status(event.id) == []
    assert await service.list_messages(event.id) == []


async def test_delete_event_requires_creator(db, make_user, coffee_walk):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = EventService(db)
    event = await service.create_event(aida, coffee_walk)

    with pytest.raises(EventPermissionError):
        await service.delete_event(timur, event.id)
    assert await service.get_event(event.id) is not None


async def test_coffee_walk_scenario(db, make_user, coffee_walk):
    """Face control: request, approval, then the Going list."""
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = EventService(db)
    event = await service.create_event(aida, coffee_walk)

    assert await service.join_event(timur, event.id) == ParticipantStatus.PENDING
    assert await service.get_event_participants(event.id) == []

    stored = await service.update_participant_status(aida, event.id, timur.user_id, ParticipantStatus.APPROVED)
    assert stored == ParticipantStatus.APPROVED

    going = await service.get_event_participants(event.id)
    assert [p.id for p in going] == [timur.user_id]
    assert going[0].name == "Timur"
