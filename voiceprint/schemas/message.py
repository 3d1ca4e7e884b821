"""Message, analysis and generated-response schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Channel(str, Enum):
    """Communication surface a message arrived on."""

    EMAIL = "email"
    SLACK = "slack"
    TEAMS = "teams"


class MessageStatus(str, Enum):
    """Workflow status of an inbox message."""

    PENDING = "pending"
    AI_DRAFTED = "ai_drafted"
    APPROVED = "approved"
    SENT = "sent"
    ESCALATED = "escalated"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MessageIntent(str, Enum):
    """What the sender wants from the recipient."""

    APPROVAL_REQUEST = "approval_request"
    QUESTION = "question"
    INFORMATION_SHARING = "information_sharing"
    ACTION_REQUIRED = "action_required"
    FOLLOW_UP = "follow_up"
    SOCIAL = "social"
    COMPLAINT = "complaint"
    SCHEDULING = "scheduling"
    TECHNICAL_ISSUE = "technical_issue"
    PARTNERSHIP = "partnership"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    URGENT = "urgent"


class Tone(str, Enum):
    FORMAL = "formal"
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    TECHNICAL = "technical"


class StyleSource(str, Enum):
    """Where the style record used for a draft came from."""

    USER_VOICE = "user_voice"
    CONTACT = "contact"
    NONE = "none"


class Attachment(BaseModel):
    """Attachment metadata carried on a message."""

    name: str
    size: str = ""
    mime_type: str | None = None
    url: str | None = None


class ConversationTurn(BaseModel):
    """One earlier turn in the thread."""

    role: str  # user, contact, ai
    content: str
    timestamp: datetime | None = None
    channel: Channel | None = None


class UnifiedMessage(BaseModel):
    """A message from any channel, normalized to one shape."""

    id: str
    external_id: str | None = None
    channel: Channel
    sender: str
    sender_email: str | None = None
    subject: str | None = None
    slack_channel: str | None = None
    teams_channel: str | None = None
    full_message: str
    received_at: datetime = Field(default_factory=datetime.utcnow)
    priority: Priority = Priority.MEDIUM
    status: MessageStatus = MessageStatus.PENDING
    ai_draft: str | None = None
    ai_confidence: int | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def sender_first_name(self) -> str:
        """First token of the sender's display name."""
        parts = self.sender.split()
        return parts[0] if parts else ""


class MessageAnalysis(BaseModel):
    """Structured reading of an incoming message."""

    intent: MessageIntent = MessageIntent.INFORMATION_SHARING
    sentiment: Sentiment = Sentiment.NEUTRAL
    tone: Tone = Tone.PROFESSIONAL
    urgency: int = Field(default=5, ge=0, le=10)
    topics: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    requires_action: bool = False
    suggested_priority: Priority = Priority.MEDIUM
    key_points: list[str] = Field(default_factory=list)
    relationship: str = "unknown"

    @field_validator("urgency", mode="before")
    @classmethod
    def clamp_urgency(cls, value: Any) -> int:
        try:
            return max(0, min(10, int(value)))
        except (TypeError, ValueError):
            return 5


class GeneratedResponse(BaseModel):
    """A drafted reply with its confidence and the steps that produced it."""

    draft_text: str
    confidence: int = Field(ge=50, le=99)
    analysis: MessageAnalysis
    reasoning_trace: list[str] = Field(default_factory=list)
    met_threshold: bool = False
    refinement_attempts: int = 0
    style_source: StyleSource = StyleSource.NONE


class ChannelTones(BaseModel):
    email: Tone = Tone.PROFESSIONAL
    slack: Tone = Tone.CASUAL
    teams: Tone = Tone.PROFESSIONAL


class ResponseConfig(BaseModel):
    """User identity and drafting preferences used when composing replies."""

    user_name: str = "User"
    user_role: str = "Team Member"
    company_name: str = "Our Company"
    channel_tones: ChannelTones = Field(default_factory=ChannelTones)
    custom_instructions: str = ""
    include_signature: bool = True
    max_response_length: int = 200
    org_context: str = ""


class ResponseConfigUpdate(BaseModel):
    """Partial update to the response config."""

    user_name: str | None = None
    user_role: str | None = None
    company_name: str | None = None
    channel_tones: ChannelTones | None = None
    custom_instructions: str | None = None
    include_signature: bool | None = None
    max_response_length: int | None = Field(default=None, gt=0)
    org_context: str | None = None


# API request bodies


class AnalyzeRequest(BaseModel):
    message: UnifiedMessage | None = None


class GenerateRequest(BaseModel):
    message: UnifiedMessage | None = None
    feedback: str | None = None


class AnalyzeStyleRequest(BaseModel):
    messages: list[UnifiedMessage] = Field(default_factory=list)


class DraftRequest(BaseModel):
    feedback: str | None = None


class MessageUpdateRequest(BaseModel):
    status: MessageStatus | None = None
    ai_draft: str | None = None
    priority: Priority | None = None


class SendRequest(BaseModel):
    draft: str | None = None


class ApiResponse(BaseModel):
    """Envelope used by every API endpoint."""

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
