"""User voice profile schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from voiceprint.schemas.style import StyleRecord


class MessagesByChannel(BaseModel):
    email: int = 0
    slack: int = 0
    teams: int = 0


class UserVoiceProfile(BaseModel):
    """
    Aggregate voice fingerprint for the user.

    ``style_record`` is the master record. ``channel_overrides`` holds a full
    record per channel that had enough messages of its own. ``version`` grows
    by one with every learn run.
    """

    user_id: str
    user_name: str
    user_email: str | None = None
    style_record: StyleRecord
    channel_overrides: dict[str, StyleRecord] = Field(default_factory=dict)
    messages_analyzed: int = 0
    messages_by_channel: MessagesByChannel = Field(default_factory=MessagesByChannel)
    confidence: int = Field(default=0, ge=0, le=98)
    is_ready: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 0


class VoiceSummary(BaseModel):
    """Human-readable summary of the learned voice."""

    is_ready: bool = False
    confidence: int = 0
    messages_analyzed: int = 0
    key_traits: list[str] = Field(default_factory=list)
    channels_covered: list[str] = Field(default_factory=list)


class LearnVoiceRequest(BaseModel):
    user_id: str
    user_name: str
    user_email: str | None = None
    max_messages_per_channel: int | None = Field(default=None, gt=0)
