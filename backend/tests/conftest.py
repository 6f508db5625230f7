"""
Shared test fixtures.

Each test gets a fresh in-memory SQLite database and a fake LLM provider.
"""

from typing import AsyncIterator, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rorie.core.config import Settings
from rorie.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
from rorie.infrastructure.local.database import Base
from rorie.interfaces.llm_provider import ILLMProvider


class FakeLLMProvider(ILLMProvider):
    """Streams canned chunks and records every call."""

    def __init__(self, chunks: Optional[list[str]] = None, error: Optional[Exception] = None):
        self.chunks = chunks if chunks is not None else ["Hello", ", ", "world"]
        self.error = error
        self.calls: list[dict] = []

    def get_model_id(self) -> str:
        return "fake/model"

    def get_model_name(self) -> str:
        return "Fake (fake/model)"

    async def stream_text(self, messages, system_prompt) -> AsyncIterator[str]:
        self.calls.append({"messages": messages, "system_prompt": system_prompt})
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


@pytest.fixture
async def db_setup():
    """Create in-memory database with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield async_session_factory

    await engine.dispose()


@pytest.fixture
def chat_repo(db_setup):
    """Create chat session repository."""
    return SqliteChatSessionRepository(session_factory=db_setup)


@pytest.fixture
def settings():
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        OPENROUTER_API_KEY="test-key",
        OPENROUTER_MODEL="anthropic/claude-3.7-sonnet",
        SESSION_MESSAGE_LIMIT=15,
        MEMORY_MESSAGE_LIMIT=100,
        RATE_LIMIT_MESSAGE="Limit reached.",
        RATE_LIMIT_BOOK_LINK="https://example.com/book",
    )


@pytest.fixture
def fake_llm_factory():
    """Build fake providers with custom chunks or a trailing error."""
    return FakeLLMProvider


@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def session_id():
    return "0123456789abcdef0123456789abcdef"
