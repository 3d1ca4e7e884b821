"""Pydantic schemas for API request/response validation."""

from voiceprint.schemas.style import (
    StyleRecord,
    PunctuationHabits,
    StyleAnalysisSummary,
    ContactStyleSummary,
)
from voiceprint.schemas.message import (
    Channel,
    UnifiedMessage,
    MessageAnalysis,
    GeneratedResponse,
    ResponseConfig,
)
from voiceprint.schemas.voice import UserVoiceProfile, VoiceSummary

__all__ = [
    "StyleRecord",
    "PunctuationHabits",
    "StyleAnalysisSummary",
    "ContactStyleSummary",
    "Channel",
    "UnifiedMessage",
    "MessageAnalysis",
    "GeneratedResponse",
    "ResponseConfig",
    "UserVoiceProfile",
    "VoiceSummary",
]
