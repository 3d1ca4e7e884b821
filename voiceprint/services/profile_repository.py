"""Save and restore the user voice profile."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voiceprint.models.voice_profile import VoiceProfileRecord
from voiceprint.schemas.voice import UserVoiceProfile


logger = logging.getLogger(__name__)


class ProfileRepository:
    """Persist UserVoiceProfile objects as JSON rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_profile(self, profile: UserVoiceProfile) -> VoiceProfileRecord:
        """
        Insert or overwrite the row for the profile's user.

        A row already holding a newer version is left untouched.
        """
        result = await self.db.execute(
            select(VoiceProfileRecord).where(VoiceProfileRecord.user_id == profile.user_id)
        )
        row = result.scalar_one_or_none()
        if row is not None and row.version > profile.version:
            logger.info(
                f"Skipped saving voice profile for {profile.user_id}: "
                f"stored version {row.version} is newer than {profile.version}"
            )
            return row

        data = profile.model_dump(mode="json")
        if row is None:
            row = VoiceProfileRecord(user_id=profile.user_id, data=data, version=profile.version)
            self.db.add(row)
        else:
            row.data = data
            row.version = profile.version
            row.updated_at = datetime.utcnow()

        await self.db.commit()
        logger.info(f"Saved voice profile for {profile.user_id} (version {profile.version})")
        return row

    async def load_profile(self, user_id: str | None = None) -> UserVoiceProfile | None:
        """
        Load a saved profile.

        Args:
            user_id: User to load; the most recently updated profile when omitted

        Returns:
            The profile, or None if nothing has been saved
        """
        query = select(VoiceProfileRecord)
        if user_id:
            query = query.where(VoiceProfileRecord.user_id == user_id)
        else:
            query = query.order_by(VoiceProfileRecord.updated_at.desc()).limit(1)

        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return UserVoiceProfile.model_validate(row.data)

    async def delete_profile(self, user_id: str) -> bool:
        result = await self.db.execute(select(VoiceProfileRecord).where(VoiceProfileRecord.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            return False
        await self.db.delete(row)
        await self.db.commit()
        return True
