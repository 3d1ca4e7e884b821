"""Unified inbox: channel sync, drafting, review and sending."""

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from voiceprint.config import Settings, get_settings
from voiceprint.core.exceptions import InvalidInputError
from voiceprint.schemas.message import Channel, MessageStatus, Priority, UnifiedMessage
from voiceprint.services.channels import ChannelAdapter, fetch_from_channel, send_through_channel


if TYPE_CHECKING:
    from voiceprint.core.engine import ResponseEngine


logger = logging.getLogger(__name__)


class ChannelSyncResult(BaseModel):
    channel: Channel
    count: int = 0
    error: str | None = None


class SyncReport(BaseModel):
    results: list[ChannelSyncResult] = Field(default_factory=list)
    total_messages: int = 0
    last_sync: datetime = Field(default_factory=datetime.utcnow)


class DraftItemResult(BaseModel):
    message_id: str
    success: bool
    confidence: int | None = None
    error: str | None = None


class DraftBatchReport(BaseModel):
    processed: int = 0
    successful: int = 0
    results: list[DraftItemResult] = Field(default_factory=list)


class MessageListing(BaseModel):
    messages: list[UnifiedMessage]
    total: int
    channels: dict[str, int]


class SendResult(BaseModel):
    message_id: str
    sent: bool
    status: MessageStatus


class MessageInbox:
    """
    Incoming messages indexed by id.

    Sync pulls from every adapter; a failing channel is reported in the
    sync results and does not stop the others.
    """

    def __init__(
        self,
        engine: "ResponseEngine",
        adapters: list[ChannelAdapter] | None = None,
        settings: Settings | None = None,
    ):
        self.engine = engine
        self.adapters = adapters or []
        self.settings = settings or get_settings()
        self._messages: dict[str, UnifiedMessage] = {}
        self._external_keys: dict[tuple[str, Channel], str] = {}

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: UnifiedMessage) -> bool:
        """
        Add a message unless it is already stored.

        A message is known when its id is stored, or when its external id
        was already seen on the same channel. Known messages keep their
        drafts and status.
        """
        if message.id in self._messages:
            return False
        if message.external_id:
            key = (message.external_id, message.channel)
            if key in self._external_keys:
                return False
            self._external_keys[key] = message.id
        self._messages[message.id] = message
        return True

    def get(self, message_id: str) -> UnifiedMessage | None:
        return self._messages.get(message_id)

    def list_messages(
        self,
        channel: Channel | None = None,
        status: MessageStatus | None = None,
        priority: Priority | None = None,
        search: str | None = None,
        limit: int | None = None,
    ) -> MessageListing:
        """Filtered messages, newest first, with per-channel totals for the whole inbox."""
        messages = list(self._messages.values())
        if channel:
            messages = [m for m in messages if m.channel == channel]
        if status:
            messages = [m for m in messages if m.status == status]
        if priority:
            messages = [m for m in messages if m.priority == priority]
        if search:
            q = search.lower()
            messages = [
                m
                for m in messages
                if q in m.sender.lower() or q in (m.subject or "").lower() or q in m.full_message.lower()
            ]

        messages.sort(key=lambda m: m.received_at, reverse=True)
        if limit:
            messages = messages[:limit]

        counts = {c.value: 0 for c in Channel}
        for message in self._messages.values():
            counts[message.channel.value] += 1

        return MessageListing(messages=messages, total=len(messages), channels=counts)

    async def sync_channels(self) -> SyncReport:
        """Fetch new incoming messages from every adapter and merge them into the inbox."""
        fetched = await asyncio.gather(
            *(
                fetch_from_channel(
                    adapter,
                    self.settings.sync_max_per_channel,
                    sent=False,
                    timeout=self.settings.channel_timeout_seconds,
                )
                for adapter in self.adapters
            )
        )

        report = SyncReport()
        for result in fetched:
            added = sum(1 for message in result.messages if self.add(message))
            report.results.append(ChannelSyncResult(channel=result.channel, count=added, error=result.error))

        report.total_messages = len(self._messages)
        logger.info(f"Synced {len(self.adapters)} channels, inbox holds {report.total_messages} messages")
        return report

    async def draft_message(self, message_id: str, feedback: str | None = None):
        """
        Draft a reply for one stored message and record it on the message.

        Returns None if the id is unknown.
        """
        message = self._messages.get(message_id)
        if message is None:
            return None

        if feedback:
            result = await self.engine.regenerate_with_feedback(message, feedback)
        else:
            result = await self.engine.generate_response(message)

        self._messages[message_id] = message.model_copy(
            update={
                "ai_draft": result.draft_text,
                "ai_confidence": result.confidence,
                "status": MessageStatus.AI_DRAFTED,
            }
        )
        return result

    def update_message(
        self,
        message_id: str,
        status: MessageStatus | None = None,
        ai_draft: str | None = None,
        priority: Priority | None = None,
    ) -> UnifiedMessage | None:
        """Edit a stored message's status, draft or priority. Returns None if the id is unknown."""
        message = self._messages.get(message_id)
        if message is None:
            return None

        changes = {"status": status, "ai_draft": ai_draft, "priority": priority}
        updated = message.model_copy(update={k: v for k, v in changes.items() if v is not None})
        self._messages[message_id] = updated
        return updated

    def _adapter_for(self, channel: Channel) -> ChannelAdapter | None:
        return next((a for a in self.adapters if a.channel == channel), None)

    async def send(self, message_id: str, draft: str | None = None) -> SendResult | None:
        """
        Send a reply through the message's channel.

        Args:
            message_id: Message to answer
            draft: Text to send; the stored draft when omitted

        Returns:
            SendResult, or None if the id is unknown. The message is marked
            sent only when the channel accepted the reply.

        Raises:
            InvalidInputError: If there is no text to send
        """
        message = self._messages.get(message_id)
        if message is None:
            return None

        text = draft or message.ai_draft
        if not text:
            raise InvalidInputError("No draft to send")

        adapter = self._adapter_for(message.channel)
        if adapter is None:
            logger.warning(f"No {message.channel.value} adapter configured, cannot send {message_id}")
            sent = False
        else:
            sent = await send_through_channel(adapter, message, text, self.settings.channel_timeout_seconds)

        if sent:
            message = message.model_copy(update={"status": MessageStatus.SENT})
            self._messages[message_id] = message
            logger.info(f"Sent reply to {message_id} via {message.channel.value}")
        return SendResult(message_id=message_id, sent=sent, status=message.status)

    async def draft_all(self) -> DraftBatchReport:
        """
        Draft every pending message.

        Messages are processed in batches of ``draft_batch_size``. Items in a
        batch run concurrently and fail independently; batches run one after
        another.
        """
        pending = [m.id for m in self._messages.values() if m.status == MessageStatus.PENDING]
        size = self.settings.draft_batch_size
        report = DraftBatchReport()

        for start in range(0, len(pending), size):
            batch = pending[start : start + size]
            outcomes = await asyncio.gather(*(self.draft_message(mid) for mid in batch), return_exceptions=True)
            for message_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, Exception):
                    logger.error(f"Drafting {message_id} failed: {outcome}")
                    report.results.append(DraftItemResult(message_id=message_id, success=False, error=str(outcome)))
                else:
                    report.results.append(
                        DraftItemResult(message_id=message_id, success=True, confidence=outcome.confidence)
                    )

        report.processed = len(report.results)
        report.successful = sum(1 for r in report.results if r.success)
        logger.info(f"Drafted {report.successful}/{report.processed} pending messages")
        return report
