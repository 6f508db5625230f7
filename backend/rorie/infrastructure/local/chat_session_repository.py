"""
SQLite implementation of Chat session repository.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError

from rorie.core.logger import logger
from rorie.infrastructure.local.database import (
    ChatMessageORM,
    ChatSessionORM,
    RateLimitORM,
    get_session_factory,
)
from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.models.chat_session import ChatMessage, ChatSession, RateLimit
from rorie.models.enums import MessageRole


class SqliteChatSessionRepository(IChatSessionRepository):
    """SQLite implementation of chat session repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _session_orm_to_model(self, orm: ChatSessionORM) -> ChatSession:
        """Convert session ORM object to Pydantic model."""
        return ChatSession(
            session_id=orm.session_id,
            message_count=orm.message_count or 0,
            created_at=orm.created_at,
        )

    def _rate_limit_orm_to_model(self, orm: RateLimitORM) -> RateLimit:
        return RateLimit(
            session_id=orm.session_id,
            limit=orm.limit,
            used_count=orm.used_count or 0,
        )

    def _message_orm_to_model(self, orm: ChatMessageORM) -> ChatMessage:
        """Convert message ORM object to Pydantic model."""
        return ChatMessage(
            id=orm.id,
            session_id=orm.session_id,
            role=MessageRole(orm.role),
            content=orm.content,
            created_at=orm.created_at,
        )

    async def ensure_session(self, session_id: str, default_limit: int) -> ChatSession:
        """Get a session, creating it together with its rate limit record."""
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            if orm is not None:
                rate_orm = await session.get(RateLimitORM, session_id)
                if rate_orm is None:
                    # Session predates quota tracking
                    session.add(RateLimitORM(session_id=session_id, limit=default_limit, used_count=0))
                    await session.commit()
                return self._session_orm_to_model(orm)

            orm = ChatSessionORM(session_id=session_id, message_count=0)
            session.add(orm)
            session.add(RateLimitORM(session_id=session_id, limit=default_limit, used_count=0))
            try:
                await session.commit()
            except IntegrityError:
                # Another request created the same session first
                await session.rollback()
                orm = await session.get(ChatSessionORM, session_id)
                if orm is None:
                    raise
                logger.info(f"Session {session_id[:8]}... created concurrently, reusing it")
                return self._session_orm_to_model(orm)

            await session.refresh(orm)
            logger.info(f"Created session {session_id[:8]}... with limit {default_limit}")
            return self._session_orm_to_model(orm)

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Get a session by token."""
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            return self._session_orm_to_model(orm) if orm else None

    async def get_rate_limit(self, session_id: str) -> Optional[RateLimit]:
        """Get the rate limit record for a session."""
        async with self._session_factory() as session:
            orm = await session.get(RateLimitORM, session_id)
            return self._rate_limit_orm_to_model(orm) if orm else None

    async def add_user_message_within_limit(
        self,
        session_id: str,
        content: str,
    ) -> Optional[ChatMessage]:
        """Consume one unit of quota and store a user message atomically."""
        async with self._session_factory() as session:
            consumed = await session.execute(
                update(RateLimitORM)
                .where(
                    and_(
                        RateLimitORM.session_id == session_id,
                        RateLimitORM.used_count < RateLimitORM.limit,
                    )
                )
                .values(used_count=RateLimitORM.used_count + 1)
                .execution_options(synchronize_session=False)
            )
            if consumed.rowcount != 1:
                await session.rollback()
                return None

            await session.execute(
                update(ChatSessionORM)
                .where(ChatSessionORM.session_id == session_id)
                .values(message_count=ChatSessionORM.message_count + 1)
                .execution_options(synchronize_session=False)
            )

            message_orm = ChatMessageORM(
                session_id=session_id,
                role=MessageRole.USER.value,
                content=content or "",
            )
            session.add(message_orm)

            await session.commit()
            await session.refresh(message_orm)
            return self._message_orm_to_model(message_orm)

    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        """Add a message to a session without touching the quota."""
        async with self._session_factory() as session:
            message_orm = ChatMessageORM(
                session_id=session_id,
                role=MessageRole(role).value,
                content=content or "",
            )
            session.add(message_orm)

            await session.commit()
            await session.refresh(message_orm)
            return self._message_orm_to_model(message_orm)

    async def list_messages(
        self,
        session_id: str,
        limit: int = 100,
        offset: int = 0,
        exclude_roles: Iterable[MessageRole] = (),
    ) -> list[ChatMessage]:
        """List messages for a session, oldest first."""
        async with self._session_factory() as session:
            conditions = [ChatMessageORM.session_id == session_id]
            excluded = [MessageRole(role).value for role in exclude_roles]
            if excluded:
                conditions.append(ChatMessageORM.role.not_in(excluded))

            query = (
                select(ChatMessageORM)
                .where(and_(*conditions))
                .order_by(ChatMessageORM.created_at.asc(), ChatMessageORM.id.asc())
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(query)
            return [self._message_orm_to_model(orm) for orm in result.scalars().all()]
