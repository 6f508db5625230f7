"""
Chat session, quota and message models.

These models persist conversation memory and the per-session message quota.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from rorie.models.enums import MessageRole


class ChatSession(BaseModel):
    """Chat session model."""

    session_id: str = Field(..., max_length=64, description="Opaque session token")
    message_count: int = Field(0, ge=0, description="Accepted user messages")
    created_at: datetime


class RateLimit(BaseModel):
    """Message quota attached to a session."""

    session_id: str = Field(..., max_length=64)
    limit: int = Field(..., ge=0)
    used_count: int = Field(0, ge=0)


class RateLimitStatus(BaseModel):
    """Quota snapshot exposed to the client."""

    limit: int
    used: int
    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    @classmethod
    def from_record(cls, record: RateLimit) -> "RateLimitStatus":
        return cls(
            limit=record.limit,
            used=record.used_count,
            remaining=max(record.limit - record.used_count, 0),
        )


class ChatMessageBase(BaseModel):
    """Base chat message fields."""

    session_id: str = Field(..., max_length=64, description="Chat session ID")
    role: MessageRole = Field(..., description="Message role")
    content: str = Field("", description="Message content")


class ChatMessage(ChatMessageBase):
    """Chat message model."""

    id: int
    created_at: datetime
