"""Database models."""

from voiceprint.models.voice_profile import VoiceProfileRecord

__all__ = [
    "VoiceProfileRecord",
]
