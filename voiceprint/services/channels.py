"""Channel adapter contract and fault-tolerant fetch helpers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from voiceprint.schemas.message import Channel, UnifiedMessage


logger = logging.getLogger(__name__)


class ChannelAdapter(ABC):
    """
    Abstract base class for messaging provider adapters (Gmail, Slack, Teams...).

    Any call may fail; callers treat a failing channel as zero messages.
    """

    # Channel this adapter serves
    channel: Channel

    @abstractmethod
    async def is_connected(self) -> bool:
        """Whether the provider connection is usable."""
        pass

    @abstractmethod
    async def fetch_messages(self, max_count: int) -> list[UnifiedMessage]:
        """
        Fetch recent incoming messages.

        Args:
            max_count: Maximum number of messages to return

        Returns:
            Messages normalized to UnifiedMessage
        """
        pass

    @abstractmethod
    async def fetch_sent_messages(self, max_count: int) -> list[UnifiedMessage]:
        """
        Fetch messages the user wrote.

        Args:
            max_count: Maximum number of messages to return

        Returns:
            Messages normalized to UnifiedMessage
        """
        pass

    @abstractmethod
    async def send_reply(self, message: UnifiedMessage, text: str) -> bool:
        """
        Reply to a message on its own channel and thread.

        Args:
            message: The message being answered
            text: Reply body

        Returns:
            True if the provider accepted the reply
        """
        pass


@dataclass
class ChannelFetchResult:
    """Outcome of fetching from one channel."""

    channel: Channel
    messages: list[UnifiedMessage] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


async def fetch_from_channel(
    adapter: ChannelAdapter, max_count: int, sent: bool, timeout: float
) -> ChannelFetchResult:
    """Fetch from one adapter, turning any failure into an empty, logged result."""
    try:
        if not await asyncio.wait_for(adapter.is_connected(), timeout=timeout):
            return ChannelFetchResult(channel=adapter.channel, error="not connected")
        fetch = adapter.fetch_sent_messages if sent else adapter.fetch_messages
        messages = await asyncio.wait_for(fetch(max_count), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{adapter.channel.value} fetch timed out after {timeout}s")
        return ChannelFetchResult(channel=adapter.channel, error="timed out")
    except Exception as e:
        logger.warning(f"{adapter.channel.value} fetch failed: {e}")
        return ChannelFetchResult(channel=adapter.channel, error=str(e))

    logger.info(f"Fetched {len(messages)} {'sent ' if sent else ''}{adapter.channel.value} messages")
    return ChannelFetchResult(channel=adapter.channel, messages=list(messages))


async def send_through_channel(adapter: ChannelAdapter, message: UnifiedMessage, text: str, timeout: float) -> bool:
    """Send one reply, turning any failure into a logged False."""
    try:
        return bool(await asyncio.wait_for(adapter.send_reply(message, text), timeout=timeout))
    except asyncio.TimeoutError:
        logger.warning(f"{adapter.channel.value} send for {message.id} timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"{adapter.channel.value} send for {message.id} failed: {e}")
    return False
