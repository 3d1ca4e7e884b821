"""Incoming message analysis: intent, sentiment, urgency, topics, key points."""

import logging
import re
from typing import Any

from pydantic import ValidationError

from voiceprint.core.exceptions import ExternalServiceError
from voiceprint.core.llm_client import LLMClient
from voiceprint.schemas.message import (
    Channel,
    MessageAnalysis,
    MessageIntent,
    Priority,
    Sentiment,
    Tone,
    UnifiedMessage,
)


logger = logging.getLogger(__name__)


# Intent cascade, checked in order; first hit wins
APPROVAL_KEYWORDS = ["approve", "approval", "sign off"]
QUESTION_PHRASES = re.compile(r"(can you|could you|would you|do you|is there|how|what|when|where|why)")
URGENT_KEYWORDS = ["urgent", "asap", "immediately"]
FOLLOW_UP_KEYWORDS = ["follow", "update", "checking in"]
SOCIAL_KEYWORDS = ["lunch", "happy", "congrat"]
SCHEDULING_PATTERN = re.compile(r"(schedule|meeting|calendar|available|wednesday|thursday|friday)")
TECHNICAL_PATTERN = re.compile(r"(bug|error|fail|broken|crash|issue|pipeline)")
PARTNERSHIP_PATTERN = re.compile(r"(partner|revenue|deal|proposal|collaboration)")

SENTIMENT_URGENT_KEYWORDS = ["urgent", "asap", "critical"]
POSITIVE_PATTERN = re.compile(r"(great|thank|appreciate|excellent|happy|excited)")
NEGATIVE_PATTERN = re.compile(r"(issue|problem|concern|fail|wrong|disappoint)")

# Urgency scale
DEFAULT_URGENCY = 5
URGENCY_RULES = [
    (["asap", "immediately"], 9),
    (["urgent", "critical"], 8),
    (["by friday", "by eod", "deadline"], 7),
    (["when you get a chance", "no rush"], 3),
]
SOCIAL_URGENCY = 1
HIGH_PRIORITY_URGENCY = 7
LOW_PRIORITY_URGENCY = 3

TOPIC_KEYWORDS = {
    "Budget & Finance": ["budget", "cost", "revenue", "price", "allocation", "funding"],
    "Technical": ["pipeline", "deploy", "api", "code", "bug", "error", "server", "database"],
    "HR & Hiring": ["interview", "candidate", "hiring", "resume", "onboarding"],
    "Security": ["security", "audit", "compliance", "soc2", "encryption", "access control"],
    "Product": ["feature", "release", "demo", "launch", "roadmap", "sprint"],
    "Design": ["mockup", "design", "figma", "ui", "ux", "wireframe"],
    "Partnership": ["partner", "integration", "deal", "collaboration", "revenue share"],
    "Social": ["lunch", "team", "fun", "celebration", "birthday"],
    "Scheduling": ["meeting", "schedule", "calendar", "available", "demo"],
}
MAX_TOPICS = 4
DEFAULT_TOPICS = ["General"]

CAPITALIZED_PHRASE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
MENTION = re.compile(r"@\w+")
ENTITY_STOPWORDS = {"The", "This", "That", "Please", "Thank", "Hi", "Hey", "Dear", "Best", "Regards"}
MAX_ENTITIES = 6
MAX_MENTIONS = 3

KEY_POINT_MIN_CHARS = 20
MAX_KEY_POINTS = 4


ANALYSIS_PROMPT = """Analyze this incoming message and return a JSON object.

MESSAGE DETAILS:
- Channel: {channel}
- From: {sender}{sender_email}
- Subject: {subject}
- Channel/Thread: {thread}
- Priority indicators: {priority}
- Has attachments: {has_attachments}

MESSAGE CONTENT:
\"\"\"
{body}
\"\"\"

Return ONLY valid JSON (no markdown, no explanation):
{{
  "intent": one of ["approval_request", "question", "information_sharing", "action_required", "follow_up", "social", "complaint", "scheduling", "technical_issue", "partnership"],
  "sentiment": one of ["positive", "neutral", "negative", "urgent"],
  "tone": one of ["formal", "professional", "casual", "friendly", "technical"],
  "urgency": number 0-10 (10 = most urgent),
  "topics": [2-4 key topics],
  "entities": [names, organizations, tools mentioned],
  "requires_action": boolean,
  "suggested_priority": one of ["high", "medium", "low"],
  "key_points": [2-4 key points the response must address],
  "relationship": one of ["manager", "peer", "direct_report", "external_client", "vendor", "unknown"]
}}"""

ANALYST_SYSTEM_PROMPT = "You are an expert communication analyst. You respond with JSON only."


def _contains_any(text: str, keywords: list[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def extract_topics(text: str) -> list[str]:
    """Topic tags whose keywords appear in the lowercased text."""
    found = [topic for topic, keywords in TOPIC_KEYWORDS.items() if _contains_any(text, keywords)]
    return found[:MAX_TOPICS] if found else list(DEFAULT_TOPICS)


def extract_entities(text: str) -> list[str]:
    """Capitalized phrases (minus greeting and filler words) followed by @mentions."""
    unique: dict[str, None] = {}
    for match in CAPITALIZED_PHRASE.findall(text):
        if match not in ENTITY_STOPWORDS:
            unique.setdefault(match, None)
    entities = list(unique)[:MAX_ENTITIES]
    entities.extend(MENTION.findall(text)[:MAX_MENTIONS])
    return entities


def extract_key_points(body: str) -> list[str]:
    sentences = [s.strip() for s in re.split(r"[.!?\n]+", body)]
    return [s for s in sentences if len(s) > KEY_POINT_MIN_CHARS][:MAX_KEY_POINTS]


def _coerce(enum_type, value: Any, default):
    try:
        return enum_type(str(value).lower())
    except ValueError:
        return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _as_list(value: Any) -> list[str]:
    """List payload values as strings; anything that is not a list is dropped."""
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


class MessageAnalyzer:
    """Read an incoming message into a structured MessageAnalysis."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def analyze(self, message: UnifiedMessage) -> MessageAnalysis:
        """
        Analyze with the generative-text service.

        Falls back to quick_analyze if the service fails or returns
        something that does not validate.
        """
        prompt = ANALYSIS_PROMPT.format(
            channel=message.channel.value,
            sender=message.sender,
            sender_email=f" ({message.sender_email})" if message.sender_email else "",
            subject=message.subject or "N/A",
            thread=message.slack_channel or message.teams_channel or "Direct",
            priority=message.priority.value,
            has_attachments="Yes" if message.attachments else "No",
            body=message.full_message,
        )

        try:
            data = await self.llm.complete_json(ANALYST_SYSTEM_PROMPT, prompt, max_tokens=500)
            return self._from_payload(data)
        except ExternalServiceError as e:
            logger.warning(f"Message analysis failed for {message.id}, using heuristics: {e}")
        except ValidationError as e:
            logger.warning(f"Message analysis payload invalid for {message.id}, using heuristics: {e}")
        return self.quick_analyze(message)

    @staticmethod
    def _from_payload(data: dict[str, Any]) -> MessageAnalysis:
        """Validate a service payload, replacing unknown enum values with defaults."""
        return MessageAnalysis(
            intent=_coerce(MessageIntent, data.get("intent"), MessageIntent.INFORMATION_SHARING),
            sentiment=_coerce(Sentiment, data.get("sentiment"), Sentiment.NEUTRAL),
            tone=_coerce(Tone, data.get("tone"), Tone.PROFESSIONAL),
            urgency=data.get("urgency", DEFAULT_URGENCY),
            topics=_as_list(data.get("topics")),
            entities=_as_list(data.get("entities")),
            requires_action=_as_bool(data.get("requires_action", False)),
            suggested_priority=_coerce(Priority, data.get("suggested_priority"), Priority.MEDIUM),
            key_points=_as_list(data.get("key_points")),
            relationship=str(data.get("relationship") or "unknown"),
        )

    def quick_analyze(self, message: UnifiedMessage) -> MessageAnalysis:
        """Deterministic keyword analysis with no external call."""
        text = f"{message.full_message} {message.subject or ''}".lower()

        intent = self._intent(text)
        sentiment = self._sentiment(text)
        urgency = self._urgency(text, intent)

        if urgency >= HIGH_PRIORITY_URGENCY:
            priority = Priority.HIGH
        elif urgency <= LOW_PRIORITY_URGENCY:
            priority = Priority.LOW
        else:
            priority = Priority.MEDIUM

        return MessageAnalysis(
            intent=intent,
            sentiment=sentiment,
            tone=Tone.CASUAL if message.channel == Channel.SLACK else Tone.PROFESSIONAL,
            urgency=urgency,
            topics=extract_topics(text),
            entities=extract_entities(message.full_message),
            requires_action=intent not in (MessageIntent.INFORMATION_SHARING, MessageIntent.SOCIAL),
            suggested_priority=priority,
            key_points=extract_key_points(message.full_message),
            relationship="peer",
        )

    @staticmethod
    def _intent(text: str) -> MessageIntent:
        if _contains_any(text, APPROVAL_KEYWORDS):
            return MessageIntent.APPROVAL_REQUEST
        if "?" in text and QUESTION_PHRASES.search(text):
            return MessageIntent.QUESTION
        if _contains_any(text, URGENT_KEYWORDS):
            return MessageIntent.ACTION_REQUIRED
        if _contains_any(text, FOLLOW_UP_KEYWORDS):
            return MessageIntent.FOLLOW_UP
        if _contains_any(text, SOCIAL_KEYWORDS):
            return MessageIntent.SOCIAL
        if SCHEDULING_PATTERN.search(text):
            return MessageIntent.SCHEDULING
        if TECHNICAL_PATTERN.search(text):
            return MessageIntent.TECHNICAL_ISSUE
        if PARTNERSHIP_PATTERN.search(text):
            return MessageIntent.PARTNERSHIP
        return MessageIntent.INFORMATION_SHARING

    @staticmethod
    def _sentiment(text: str) -> Sentiment:
        if _contains_any(text, SENTIMENT_URGENT_KEYWORDS):
            return Sentiment.URGENT
        if POSITIVE_PATTERN.search(text):
            return Sentiment.POSITIVE
        if NEGATIVE_PATTERN.search(text):
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL

    @staticmethod
    def _urgency(text: str, intent: MessageIntent) -> int:
        for keywords, level in URGENCY_RULES:
            if _contains_any(text, keywords):
                return level
        if intent == MessageIntent.SOCIAL:
            return SOCIAL_URGENCY
        return DEFAULT_URGENCY
