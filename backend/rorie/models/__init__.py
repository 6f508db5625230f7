"""Pydantic models for request/response and domain objects."""

from rorie.models.chat import (
    ChatRequest,
    HistoryMessage,
    MessagePart,
    QuotaResponse,
    RateLimitedResponse,
    UIMessage,
)
from rorie.models.chat_session import (
    ChatMessage,
    ChatSession,
    RateLimit,
    RateLimitStatus,
)
from rorie.models.enums import MessageRole

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatSession",
    "HistoryMessage",
    "MessagePart",
    "MessageRole",
    "QuotaResponse",
    "RateLimit",
    "RateLimitStatus",
    "RateLimitedResponse",
    "UIMessage",
]
