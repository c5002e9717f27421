from datetime import datetime, timedelta

from sqlalchemy import update

from app.users.models import Profile
from app.users.presence import PresenceService
from app.users.schemas import PrivacySettings, ProfileUpdate
from app.users.services import ProfileService


async def test_nearby_users(db, make_user):
    me = await make_user("Nurlan")
    aida = await make_user("Aida")
    ghost = await make_user("Ghost")
    stale = await make_user("Stale")
    await make_user("NoLocation")
    presence = PresenceService(db)

    for caller in (me, aida, ghost, stale):
        await presence.update_my_location(caller, 42.87, 74.59)
    await ProfileService(db).update_profile(ghost, ProfileUpdate(privacy=PrivacySettings(ghostMode=True)))
    await db.execute(
        update(Profile).where(Profile.id == stale.user_id).values(last_seen=datetime.utcnow() - timedelta(hours=25))
    )
    await db.commit()

    nearby = await presence.get_nearby_users(me)

    assert [u.id for u in nearby] == [aida.user_id]
    assert nearby[0].latitude == 42.87
    assert nearby[0].longitude == 74.59


async def test_ghost_location_update_keeps_coordinates_null(db, make_user):
    ghost = await make_user("Ghost")
    await ProfileService(db).update_profile(ghost, ProfileUpdate(privacy=PrivacySettings(ghostMode=True)))

    await PresenceService(db).update_my_location(ghost, 42.87, 74.59)

    profile = await ProfileService(db).get_profile(ghost.user_id)
    assert profile.latitude is None
    assert profile.longitude is None
    assert profile.last_seen is not None


async def test_going_ghost_clears_stored_location(db, make_user):
    aida = await make_user("Aida")
    await PresenceService(db).update_my_location(aida, 42.87, 74.59)

    profile = await ProfileService(db).update_profile(aida, ProfileUpdate(privacy=PrivacySettings(ghostMode=True)))

    assert profile.is_ghost is True
    assert profile.latitude is None


async def test_custom_window(db, make_user):
    me = await make_user("Nurlan")
    aida = await make_user("Aida")
    await PresenceService(db).update_my_location(aida, 42.87, 74.59)
    await db.execute(
        update(Profile).where(Profile.id == aida.user_id).values(last_seen=datetime.utcnow() - timedelta(hours=3))
    )
    await db.commit()

    assert await PresenceService(db, window_hours=2).get_nearby_users(me) == []
    assert len(await PresenceService(db, window_hours=4).get_nearby_users(me)) == 1
