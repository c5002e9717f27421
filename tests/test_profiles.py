import pytest
from pydantic import ValidationError

from app.auth.schemas import CallerIdentity
from app.users.schemas import FavoriteSpot, ProfileUpdate, ProfileUpsert
from app.users.services import ProfileService


async def test_ensure_profile_creates_once(db):
    caller = CallerIdentity(user_id="u-1", name="Aida")
    service = ProfileService(db)

    await service.ensure_profile(caller)
    await service.ensure_profile(CallerIdentity(user_id="u-1", name="Renamed"))

    profile = await service.get_profile("u-1")
    assert profile.name == "Aida"
    assert profile.avatar_url.startswith("https://ui-avatars.com/api/?name=Aida")
    assert profile.languages == ["ru"]
    assert profile.privacy.ghostMode is False
    assert profile.location == "Бишкек, Кыргызстан"


async def test_ensure_profile_without_name(db):
    service = ProfileService(db)
    await service.ensure_profile(CallerIdentity(user_id="u-2"))
    assert (await service.get_profile("u-2")).name == "User"


async def test_upsert_profile(db, make_user):
    aida = await make_user("Aida")
    service = ProfileService(db)

    profile = await service.upsert_profile(aida, ProfileUpsert(name="  Aida K. ", vibe="  ", bio="Designer"))

    assert profile.name == "Aida K."
    assert profile.vibe is None
    assert profile.bio == "Designer"


async def test_update_profile_partial(db, make_user):
    aida = await make_user("Aida")
    service = ProfileService(db)

    profile = await service.update_profile(
        aida,
        ProfileUpdate(
            age=27,
            vibe="language-practice",
            interests=["hiking", "coffee"],
            favorite_spots=[FavoriteSpot(id="s1", name="Sierra", lat=42.87, lng=74.6)],
        ),
    )

    assert profile.age == 27
    assert profile.vibe == "language-practice"
    assert profile.interests == ["hiking", "coffee"]
    assert profile.favorite_spots[0].name == "Sierra"
    assert profile.name == "Aida"


async def test_update_missing_profile(db):
    assert await ProfileService(db).update_profile(CallerIdentity(user_id="nobody"), ProfileUpdate(age=30)) is None


async def test_has_complete_profile(db, make_user):
    aida = await make_user("Aida")
    service = ProfileService(db)
    assert await service.has_complete_profile(aida) is True
    assert await service.has_complete_profile(CallerIdentity(user_id="nobody")) is False


async def test_summaries_batch(db, make_user):
    aida = await make_user("Aida")
    timur = await make_user("Timur")

    summaries = await ProfileService(db).get_summaries([aida.user_id, timur.user_id, "missing"])

    assert set(summaries) == {aida.user_id, timur.user_id}
    assert summaries[timur.user_id].name == "Timur"


async def test_upsert_vibe_is_an_intent(db, make_user):
    aida = await make_user("Aida")

    profile = await ProfileService(db).upsert_profile(aida, ProfileUpsert(name="Aida", vibe="networking"))

    assert profile.vibe == "networking"
    with pytest.raises(ValidationError):
        ProfileUpsert(name="Aida", vibe="anything goes")


@pytest.mark.parametrize("field", ["languages", "interests", "conversation_starters", "favorite_spots", "privacy"])
def test_update_rejects_null_for_required_fields(field):
    with pytest.raises(ValidationError):
        ProfileUpdate(**{field: None})
    # Omitting the field is how a client keeps it
    assert field not in ProfileUpdate().model_dump(exclude_unset=True)
