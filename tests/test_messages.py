import pytest

from app.events.schemas import EventCreate
from app.events.services import EventNotFoundError, EventPermissionError, EventService, InvalidEventError


async def test_messages_in_order_with_author(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = EventService(db)
    event = await service.create_event(aida, EventCreate(title="Coffee Walk"))

    await service.add_message(aida, event.id, "Hi all")
    sent = await service.add_message(timur, event.id, "  On my way  ")

    assert sent.body == "On my way"
    assert sent.author.name == "Timur"

    messages = await service.list_messages(event.id)
    assert [m.body for m in messages] == ["Hi all", "On my way"]
    assert [m.user_id for m in messages] == [aida.user_id, timur.user_id]


async def test_add_message_validation(db, make_user):
    aida = await make_user("Aida")
    service = EventService(db)
    event = await service.create_event(aida, EventCreate(title="Coffee Walk"))

    with pytest.raises(InvalidEventError):
        await service.add_message(aida, event.id, "   ")
    with pytest.raises(EventNotFoundError):
        await service.add_message(aida, "missing", "hello")


async def test_delete_message_permissions(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    jibek = await make_user("Jibek")
    service = EventService(db)
    event = await service.create_event(aida, EventCreate(title="Coffee Walk"))
    own = await service.add_message(timur, event.id, "mine")
    other = await service.add_message(timur, event.id, "moderated")

    with pytest.raises(EventPermissionError):
        await service.delete_message(jibek, own.id)

    assert await service.delete_message(timur, own.id) is True
    # The event creator moderates the chat
    assert await service.delete_message(aida, other.id) is True
    assert await service.delete_message(aida, other.id) is False
    assert await service.list_messages(event.id) == []
