"""Learn the user's own voice from their sent messages across channels."""

import asyncio
import logging
from datetime import datetime

from voiceprint.config import Settings, get_settings
from voiceprint.schemas.message import Channel, UnifiedMessage
from voiceprint.schemas.style import StyleRecord
from voiceprint.schemas.voice import MessagesByChannel, UserVoiceProfile, VoiceSummary
from voiceprint.services.channels import ChannelAdapter, fetch_from_channel
from voiceprint.services.style_analyzer import analyze_style_batch, render_style_instructions
from voiceprint.services.style_refiner import StyleRefiner


logger = logging.getLogger(__name__)


PLACEHOLDER_CONFIDENCE_SCALE = 30
VOLUME_CONFIDENCE_WEIGHT = 70
CHANNEL_CONFIDENCE_BONUS = 10
MASTER_CONFIDENCE_WEIGHT = 0.2
MAX_PROFILE_CONFIDENCE = 98
MAX_MERGED_PHRASES = 10

CHANNEL_LABELS = {
    Channel.EMAIL: "Email",
    Channel.SLACK: "Slack",
    Channel.TEAMS: "Teams",
}


def default_style_record(user_id: str, user_name: str, user_email: str | None = None) -> StyleRecord:
    """Neutral starting record used before enough messages have been seen."""
    first_name = user_name.split()[0] if user_name.split() else ""
    return StyleRecord(
        contact_id=user_id,
        contact_name=user_name,
        contact_email=user_email,
        sign_off_name=first_name,
    )


def _ordered_union(groups: list[list[str]], limit: int) -> list[str]:
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return list(seen)[:limit]


def merge_records(
    records: list[StyleRecord], user_id: str, user_name: str, user_email: str | None = None
) -> StyleRecord:
    """
    Collapse several style records into one owned by the user.

    Numeric fields are averaged weighted by message count. Formality takes the
    value carrying the most messages (first seen wins a tie). Transitions and
    hedge words are an ordered union capped at MAX_MERGED_PHRASES. Every other
    field comes from the first record.
    """
    identity = {"contact_id": user_id, "contact_name": user_name, "contact_email": user_email}
    if not records:
        return default_style_record(user_id, user_name, user_email)
    if len(records) == 1:
        return records[0].model_copy(update=identity)

    # Records without message counts weigh equally
    weighted = any(r.message_count for r in records)

    def weight(record: StyleRecord) -> int:
        return record.message_count if weighted else 1

    total = sum(weight(r) for r in records)

    formality_weights: dict = {}
    for record in records:
        formality_weights[record.formality] = formality_weights.get(record.formality, 0) + weight(record)
    formality = records[0].formality
    best = 0
    for value, count in formality_weights.items():
        if count > best:
            best = count
            formality = value

    return records[0].model_copy(
        update={
            **identity,
            "formality": formality,
            "avg_words_per_message": round(sum(r.avg_words_per_message * weight(r) for r in records) / total),
            "avg_sentences_per_message": round(
                sum(r.avg_sentences_per_message * weight(r) for r in records) / total, 1
            ),
            "style_confidence": round(sum(r.style_confidence * weight(r) for r in records) / total),
            "message_count": sum(r.message_count for r in records),
            "common_transitions": _ordered_union([r.common_transitions for r in records], MAX_MERGED_PHRASES),
            "hedge_words": _ordered_union([r.hedge_words for r in records], MAX_MERGED_PHRASES),
            "analyzed_at": datetime.utcnow(),
        }
    )


class VoiceLearningService:
    """
    Owns the user's voice profile.

    Learn runs are serialized by a lock so only one run writes at a time; each
    run replaces the whole profile and bumps its version. Reads take no lock
    and always see either the previous or the new profile.
    """

    def __init__(
        self,
        adapters: list[ChannelAdapter] | None = None,
        refiner: StyleRefiner | None = None,
        settings: Settings | None = None,
    ):
        self.adapters = adapters or []
        self.refiner = refiner
        self.settings = settings or get_settings()
        self._profile: UserVoiceProfile | None = None
        self._lock = asyncio.Lock()

    async def learn_user_voice(
        self,
        user_id: str,
        user_name: str,
        user_email: str | None = None,
        max_messages_per_channel: int | None = None,
    ) -> UserVoiceProfile:
        """
        Fetch the user's sent messages from every connected channel and build their voice profile.

        Returns a non-ready placeholder profile when fewer than
        ``min_messages_for_profile`` messages are available.
        """
        max_count = max_messages_per_channel or self.settings.max_messages_per_channel

        async with self._lock:
            logger.info(f"Learning voice for {user_name} (up to {max_count} messages per channel)")
            results = await asyncio.gather(
                *(
                    fetch_from_channel(adapter, max_count, sent=True, timeout=self.settings.channel_timeout_seconds)
                    for adapter in self.adapters
                )
            )

            sent: list[UnifiedMessage] = []
            by_channel: dict[Channel, list[UnifiedMessage]] = {channel: [] for channel in Channel}
            for result in results:
                sent.extend(result.messages)
                by_channel[result.channel].extend(result.messages)

            counts = MessagesByChannel(**{channel.value: len(msgs) for channel, msgs in by_channel.items()})
            previous = self._profile
            created_at = previous.created_at if previous else datetime.utcnow()
            version = (previous.version if previous else 0) + 1

            if len(sent) < self.settings.min_messages_for_profile:
                logger.warning(
                    f"Only {len(sent)} sent messages found, need "
                    f"{self.settings.min_messages_for_profile} for a voice profile"
                )
                self._profile = UserVoiceProfile(
                    user_id=user_id,
                    user_name=user_name,
                    user_email=user_email,
                    style_record=default_style_record(user_id, user_name, user_email),
                    messages_analyzed=len(sent),
                    messages_by_channel=counts,
                    confidence=round(
                        len(sent) / self.settings.min_messages_for_profile * PLACEHOLDER_CONFIDENCE_SCALE
                    ),
                    is_ready=False,
                    created_at=created_at,
                    version=version,
                )
                return self._profile

            master = await self._analyze_as_user(sent, user_id, user_name, user_email)

            overrides: dict[str, StyleRecord] = {}
            for channel, messages in by_channel.items():
                if len(messages) >= self.settings.min_channel_messages:
                    overrides[channel.value] = await self._analyze_as_user(messages, user_id, user_name, user_email)
                    logger.info(f"{CHANNEL_LABELS[channel]} style analyzed ({len(messages)} messages)")

            confidence = min(
                MAX_PROFILE_CONFIDENCE,
                round(
                    len(sent) / self.settings.ideal_messages_for_profile * VOLUME_CONFIDENCE_WEIGHT
                    + len(overrides) * CHANNEL_CONFIDENCE_BONUS
                    + master.style_confidence * MASTER_CONFIDENCE_WEIGHT
                ),
            )

            self._profile = UserVoiceProfile(
                user_id=user_id,
                user_name=user_name,
                user_email=user_email,
                style_record=master,
                channel_overrides=overrides,
                messages_analyzed=len(sent),
                messages_by_channel=counts,
                confidence=confidence,
                is_ready=True,
                created_at=created_at,
                version=version,
            )

            logger.info(
                f"Voice profile ready: confidence={confidence}%, formality={master.formality.value}, "
                f"length={master.average_length.value}, contractions={master.uses_contractions}"
            )
            return self._profile

    async def _analyze_as_user(
        self, messages: list[UnifiedMessage], user_id: str, user_name: str, user_email: str | None
    ) -> StyleRecord:
        authored = [m.model_copy(update={"sender": user_name, "sender_email": user_email}) for m in messages]
        records, _ = await analyze_style_batch(authored, refiner=self.refiner)
        return merge_records(records, user_id, user_name, user_email)

    def get_profile(self) -> UserVoiceProfile | None:
        return self._profile

    def is_ready(self) -> bool:
        return self._profile is not None and self._profile.is_ready

    def restore(self, profile: UserVoiceProfile) -> None:
        """Install a previously saved profile."""
        self._profile = profile

    def effective_record(self, channel: Channel | str | None = None) -> StyleRecord | None:
        """The master record, or the channel's override when one exists. None until ready."""
        if not self.is_ready():
            return None
        key = channel.value if isinstance(channel, Channel) else channel
        if key and key in self._profile.channel_overrides:
            return self._profile.channel_overrides[key]
        return self._profile.style_record

    def get_style_prompt(self, channel: Channel | str | None = None) -> str | None:
        """Rendered style instructions for the channel, or None if no ready profile exists."""
        record = self.effective_record(channel)
        return render_style_instructions(record) if record else None

    def get_voice_summary(self) -> VoiceSummary:
        profile = self._profile
        if profile is None:
            return VoiceSummary()

        record = profile.style_record
        traits = [
            f"{record.formality.value.replace('_', ' ')} tone",
            f"{record.average_length.value} message length",
            "uses contractions" if record.uses_contractions else "formal language (no contractions)",
        ]
        if record.emoji_usage.value != "none":
            traits.append(f"{record.emoji_usage.value} emoji use")
        if record.asks_follow_up_questions:
            traits.append("asks follow-up questions")
        if record.humor_style.value != "none":
            traits.append(f"{record.humor_style.value.replace('_', ' ')} humor")
        if record.ends_with_action_items:
            traits.append("ends with action items")

        counts = profile.messages_by_channel
        covered = [label for channel, label in CHANNEL_LABELS.items() if getattr(counts, channel.value) > 0]

        return VoiceSummary(
            is_ready=profile.is_ready,
            confidence=profile.confidence,
            messages_analyzed=profile.messages_analyzed,
            key_traits=traits,
            channels_covered=covered,
        )

    def clear_profile(self) -> None:
        self._profile = None
        logger.info("User voice profile cleared")
