"""
Chat session repository interface.

Defines the contract for session, quota and message persistence.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from rorie.models.chat_session import ChatMessage, ChatSession, RateLimit
from rorie.models.enums import MessageRole


class IChatSessionRepository(ABC):
    """Abstract interface for chat session persistence."""

    @abstractmethod
    async def ensure_session(self, session_id: str, default_limit: int) -> ChatSession:
        """
        Get a session, creating it together with its rate limit record.

        Both rows are written in one transaction, so a session never exists
        without its quota.

        Args:
            session_id: Session token
            default_limit: Limit stored on a newly created rate limit record

        Returns:
            ChatSession
        """
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Get a session by token."""
        pass

    @abstractmethod
    async def get_rate_limit(self, session_id: str) -> Optional[RateLimit]:
        """Get the rate limit record for a session."""
        pass

    @abstractmethod
    async def add_user_message_within_limit(
        self,
        session_id: str,
        content: str,
    ) -> Optional[ChatMessage]:
        """
        Consume one unit of quota and store a user message atomically.

        The used count is incremented only while it is below the limit. On
        success the message is stored and the session message count bumped in
        the same transaction.

        Args:
            session_id: Session token
            content: User message text

        Returns:
            The stored message, or None when the quota is exhausted
        """
        pass

    @abstractmethod
    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        """
        Add a message to a session without touching the quota.

        Args:
            session_id: Session token
            role: Message role
            content: Message content

        Returns:
            ChatMessage
        """
        pass

    @abstractmethod
    async def list_messages(
        self,
        session_id: str,
        limit: int = 100,
        offset: int = 0,
        exclude_roles: Iterable[MessageRole] = (),
    ) -> list[ChatMessage]:
        """
        List messages for a session, oldest first.

        Args:
            session_id: Session token
            limit: Max messages
            offset: Pagination offset
            exclude_roles: Roles filtered out before the limit is applied

        Returns:
            List of chat messages
        """
        pass
