"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import voiceprint.models  # noqa: F401
from voiceprint.config import Settings
from voiceprint.core.context import VoiceContext, get_voice_context
from voiceprint.core.llm_client import LLMClient
from voiceprint.main import app
from voiceprint.schemas.message import Channel, UnifiedMessage
from voiceprint.services.channels import ChannelAdapter
from voiceprint.services.database import Base, get_db


# Create in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_claude_response(text: str) -> MagicMock:
    """Shape of an Anthropic Messages API response carrying one text block."""
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


class FakeChannelAdapter(ChannelAdapter):
    """In-memory adapter returning canned messages."""

    def __init__(
        self,
        channel: Channel,
        inbox: list[UnifiedMessage] | None = None,
        sent: list[UnifiedMessage] | None = None,
        connected: bool = True,
        error: Exception | None = None,
        delay: float = 0,
        accepts_replies: bool = True,
    ):
        self.channel = channel
        self.inbox = inbox or []
        self.sent = sent or []
        self.connected = connected
        self.error = error
        self.delay = delay
        self.accepts_replies = accepts_replies
        self.replies: list[tuple[str, str]] = []

    async def is_connected(self) -> bool:
        return self.connected

    async def fetch_messages(self, max_count: int) -> list[UnifiedMessage]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.inbox[:max_count]

    async def fetch_sent_messages(self, max_count: int) -> list[UnifiedMessage]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.sent[:max_count]

    async def send_reply(self, message: UnifiedMessage, text: str) -> bool:
        if self.error:
            raise self.error
        if self.accepts_replies:
            self.replies.append((message.id, text))
        return self.accepts_replies


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        persist_profiles=False,
        user_name="Dana Reyes",
        user_role="Engineering Manager",
        company_name="Northwind",
    )


@pytest.fixture
def claude_response():
    return make_claude_response


@pytest.fixture
def claude_client() -> MagicMock:
    """Mock AsyncAnthropic client; tests set return_value or side_effect on messages.create."""
    client = MagicMock()
    client.messages.create = AsyncMock(
        return_value=make_claude_response("Thanks for the note. I'll take a look and get back to you today.")
    )
    return client


@pytest.fixture
def unreachable_claude_client() -> MagicMock:
    """Mock client whose every call fails."""
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=ConnectionError("connection refused"))
    return client


@pytest.fixture
def llm(claude_client) -> LLMClient:
    return LLMClient(claude_client=claude_client, model="claude-test", timeout=5)


@pytest.fixture
def unreachable_llm(unreachable_claude_client) -> LLMClient:
    return LLMClient(claude_client=unreachable_claude_client, model="claude-test", timeout=5)


@pytest.fixture
def make_message():
    """Factory for UnifiedMessage with sensible defaults."""
    counter = {"n": 0}

    def _make(full_message: str = "Can you review the Q3 budget proposal by Friday?", **overrides) -> UnifiedMessage:
        counter["n"] += 1
        fields = {
            "id": f"msg-{counter['n']}",
            "channel": Channel.EMAIL,
            "sender": "Sarah Chen",
            "sender_email": "sarah@example.com",
            "subject": "Q3 budget",
            "full_message": full_message,
            "received_at": datetime(2026, 3, 2, 9, 0) + timedelta(minutes=counter["n"]),
        }
        fields.update(overrides)
        return UnifiedMessage(**fields)

    return _make


@pytest.fixture
def adapter_factory():
    return FakeChannelAdapter


@pytest.fixture
def context(unreachable_llm, settings) -> VoiceContext:
    """A context whose generative-text calls all fail, so every path is deterministic."""
    return VoiceContext(llm=unreachable_llm, settings=settings)


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get a test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(context, db_session) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client bound to the test context and database."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_voice_context] = lambda: context

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
