"""Tests for ProfileRepository."""

import pytest

from voiceprint.schemas.message import Channel
from voiceprint.schemas.voice import MessagesByChannel, UserVoiceProfile
from voiceprint.services.profile_repository import ProfileRepository
from voiceprint.services.voice_learning import default_style_record


def _profile(user_id: str = "u1", version: int = 1) -> UserVoiceProfile:
    record = default_style_record(user_id, "Dana Reyes", "dana@northwind.io")
    return UserVoiceProfile(
        user_id=user_id,
        user_name="Dana Reyes",
        user_email="dana@northwind.io",
        style_record=record,
        channel_overrides={Channel.SLACK.value: record.model_copy(update={"uses_contractions": False})},
        messages_analyzed=14,
        messages_by_channel=MessagesByChannel(email=8, slack=6),
        confidence=52,
        is_ready=True,
        version=version,
    )


@pytest.mark.asyncio
async def test_save_and_load(db_session):
    repo = ProfileRepository(db_session)
    profile = _profile()

    await repo.save_profile(profile)
    loaded = await repo.load_profile("u1")

    assert loaded == profile
    assert loaded.channel_overrides["slack"].uses_contractions is False


@pytest.mark.asyncio
async def test_save_overwrites_existing_row(db_session):
    repo = ProfileRepository(db_session)

    await repo.save_profile(_profile(version=1))
    row = await repo.save_profile(_profile(version=2))

    assert row.version == 2
    assert (await repo.load_profile("u1")).version == 2


@pytest.mark.asyncio
async def test_older_version_does_not_overwrite(db_session):
    repo = ProfileRepository(db_session)
    newer = _profile(version=3)
    await repo.save_profile(newer)

    row = await repo.save_profile(_profile(version=2).model_copy(update={"confidence": 10}))

    assert row.version == 3
    loaded = await repo.load_profile("u1")
    assert loaded.version == 3
    assert loaded.confidence == 52


@pytest.mark.asyncio
async def test_load_without_user_id(db_session):
    repo = ProfileRepository(db_session)
    await repo.save_profile(_profile("u1"))

    loaded = await repo.load_profile()

    assert loaded.user_id == "u1"


@pytest.mark.asyncio
async def test_load_missing(db_session):
    repo = ProfileRepository(db_session)

    assert await repo.load_profile("nobody") is None
    assert await repo.load_profile() is None


@pytest.mark.asyncio
async def test_delete(db_session):
    repo = ProfileRepository(db_session)
    await repo.save_profile(_profile())

    assert await repo.delete_profile("u1") is True
    assert await repo.delete_profile("u1") is False
    assert await repo.load_profile("u1") is None
