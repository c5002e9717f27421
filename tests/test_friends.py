import asyncio

import pytest

from app.friends.models import FriendshipStatus
from app.friends.services import FriendNotFoundError, FriendshipService, SelfFriendRequestError


async def test_request_then_accept_is_symmetric(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = FriendshipService(db)

    request = await service.send_friend_request(aida, timur.user_id)
    assert request.status == FriendshipStatus.pending

    incoming = await service.get_friend_requests(timur)
    assert [r.id for r in incoming] == [request.id]
    assert incoming[0].requester.name == "Aida"

    assert await service.accept_request(timur, request.id) is True

    assert [f.user.id for f in await service.get_my_friends(aida)] == [timur.user_id]
    assert [f.user.id for f in await service.get_my_friends(timur)] == [aida.user_id]
    assert await service.get_friend_requests(timur) == []


async def test_self_request_fails(db, make_user):
    aida = await make_user("Aida")
    with pytest.raises(SelfFriendRequestError):
        await FriendshipService(db).send_friend_request(aida, aida.user_id)


async def test_request_to_unknown_user(db, make_user):
    aida = await make_user("Aida")
    with pytest.raises(FriendNotFoundError):
        await FriendshipService(db).send_friend_request(aida, "nobody")


async def test_double_request_keeps_single_row(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = FriendshipService(db)

    first = await service.send_friend_request(aida, timur.user_id)
    second = await service.send_friend_request(aida, timur.user_id)

    assert first.id == second.id
    assert len(await service.get_friend_requests(timur)) == 1


async def test_crossed_requests_reuse_pending_row(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = FriendshipService(db)

    first = await service.send_friend_request(aida, timur.user_id)
    reverse = await service.send_friend_request(timur, aida.user_id)

    assert reverse.id == first.id
    assert await service.get_friend_requests(aida) == []


async def test_only_receiver_resolves_once(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    service = FriendshipService(db)
    request = await service.send_friend_request(aida, timur.user_id)

    assert await service.accept_request(aida, request.id) is False
    assert await service.decline_request(timur, request.id) is True
    # Already resolved: neither accept nor a second decline changes it
    assert await service.accept_request(timur, request.id) is False
    assert await service.decline_request(timur, request.id) is False
    assert await service.get_friendship_status(aida, timur.user_id) == FriendshipStatus.rejected


async def test_remove_friendship(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    jibek = await make_user("Jibek")
    service = FriendshipService(db)
    request = await service.send_friend_request(aida, timur.user_id)
    await service.accept_request(timur, request.id)

    assert await service.remove_friendship(jibek, request.id) is False
    assert await service.remove_friendship(timur, request.id) is True
    assert await service.get_my_friends(aida) == []
    assert await service.get_friendship_status(aida, timur.user_id) is None


async def test_search_users(db, make_user):
    aida = await make_user("Aida")
    await make_user("Aidana")
    await make_user("Timur")
    service = FriendshipService(db)

    names = [u.name for u in await service.search_users(aida, "aid")]

    assert names == ["Aidana"]
    assert await service.search_users(aida, "   ") == []
    assert len(await service.search_users(aida, "a", limit=1)) == 1


async def test_statuses_batch(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    jibek = await make_user("Jibek")
    max_ = await make_user("Max")
    service = FriendshipService(db)

    pending = await service.send_friend_request(aida, timur.user_id)
    accepted = await service.send_friend_request(jibek, aida.user_id)
    await service.accept_request(aida, accepted.id)

    statuses = await service.get_friendship_statuses(aida, [timur.user_id, jibek.user_id, max_.user_id, aida.user_id])

    assert statuses == {timur.user_id: FriendshipStatus.pending, jibek.user_id: FriendshipStatus.accepted}
    assert pending.requester_id == aida.user_id


async def test_concurrent_duplicate_requests_leave_one_row(db, make_user, session_factory):
    aida = await make_user("Aida")
    timur = await make_user("Timur")

    async def send():
        async with session_factory() as session:
            return await FriendshipService(session).send_friend_request(aida, timur.user_id)

    first, second = await asyncio.gather(send(), send())

    assert first.id == second.id
    assert first.status == FriendshipStatus.pending
    incoming = await FriendshipService(db).get_friend_requests(timur)
    assert [r.id for r in incoming] == [first.id]


async def test_accept_racing_decline_has_one_winner(db, make_user, session_factory):
    aida = await make_user("Aida")
    timur = await make_user("Timur")
    request = await FriendshipService(db).send_friend_request(aida, timur.user_id)

    async def resolve(accept: bool):
        async with session_factory() as session:
            service = FriendshipService(session)
            if accept:
                return await service.accept_request(timur, request.id)
            return await service.decline_request(timur, request.id)

    results = await asyncio.gather(resolve(True), resolve(False))

    assert sorted(results) == [False, True]
    expected = FriendshipStatus.accepted if results[0] else FriendshipStatus.rejected
    assert await FriendshipService(db).get_friendship_status(aida, timur.user_id) == expected
