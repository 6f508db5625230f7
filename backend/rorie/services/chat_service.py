"""
Chat Service.

Runs one chat turn: session bookkeeping, quota, memory, then the streamed
model reply and its persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import SQLAlchemyError

from rorie.agents.prompts.persona_prompt import build_system_prompt
from rorie.core.config import Settings, get_settings
from rorie.core.exceptions import InfrastructureError, ValidationError
from rorie.core.logger import logger
from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.interfaces.llm_provider import ILLMProvider
from rorie.models.chat import ChatRequest, UIMessage
from rorie.models.chat_session import ChatMessage, RateLimitStatus
from rorie.models.enums import MessageRole
from rorie.services.memory_assembler import ConversationMemoryAssembler
from rorie.services.rate_limiter import RateLimiter


@dataclass
class ChatTurn:
    """Everything needed to stream the reply for one request."""

    session_id: str
    system_prompt: str
    model_messages: list[dict[str, str]]
    user_message: Optional[ChatMessage] = None


def to_model_messages(messages: list[UIMessage]) -> list[dict[str, str]]:
    """Convert UI messages to provider chat messages, dropping ones without text."""
    converted = []
    for message in messages:
        text = message.text_content()
        if not text:
            continue
        converted.append({"role": message.role.value, "content": text})
    return converted


class ChatService:
    """Service for the session-scoped chat proxy."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        chat_repo: IChatSessionRepository,
        settings: Optional[Settings] = None,
    ):
        self.llm_provider = llm_provider
        self.chat_repo = chat_repo
        self.settings = settings or get_settings()
        self.rate_limiter = RateLimiter(chat_repo, self.settings.SESSION_MESSAGE_LIMIT)
        self.memory = ConversationMemoryAssembler(chat_repo, self.settings.MEMORY_MESSAGE_LIMIT)

    def validate_user_text(self, text: str) -> str:
        """Reject user messages that carry no text or exceed MAX_MESSAGE_CHARS."""
        if not text:
            raise ValidationError("Message has no text content")
        limit = self.settings.MAX_MESSAGE_CHARS
        if len(text) > limit:
            raise ValidationError(
                f"Message is too long ({len(text)} > {limit} characters)",
                details={"max_chars": limit, "chars": len(text)},
            )
        return text

    async def prepare_turn(self, session_id: str, request: ChatRequest) -> ChatTurn:
        """
        Do the bookkeeping that must succeed before the model is called.

        The quota-consuming write is the last store call, so a failure
        anywhere earlier leaves the quota untouched.

        Raises:
            ValidationError: If the user message is empty or too long
            RateLimitExceededError: If the session has no quota left
            InfrastructureError: If the store is unavailable
        """
        last_message = request.last_message
        user_text = None
        if last_message.role == MessageRole.USER:
            user_text = self.validate_user_text(last_message.text_content())

        try:
            await self.chat_repo.ensure_session(session_id, self.settings.SESSION_MESSAGE_LIMIT)
            status = await self.rate_limiter.check(session_id)
            history = await self.memory.load_messages(session_id)

            user_message = None
            if user_text is not None:
                user_message = await self.rate_limiter.record_user_message(session_id, user_text)
                logger.info(
                    f"Session {session_id[:8]}... stored user message {user_message.id} "
                    f"({status.used + 1}/{status.limit})"
                )
            else:
                logger.info(
                    f"Session {session_id[:8]}... last message is from {last_message.role.value}, "
                    "nothing stored"
                )
        except SQLAlchemyError as e:
            logger.error(f"Store unavailable while preparing chat turn: {e}")
            raise InfrastructureError("Chat storage is unavailable") from e

        return ChatTurn(
            session_id=session_id,
            system_prompt=build_system_prompt(
                self.settings.PERSONA_PROMPT,
                self.memory.render(history, pending=user_message),
                status.limit,
            ),
            model_messages=to_model_messages(request.messages),
            user_message=user_message,
        )

    async def stream_reply(self, turn: ChatTurn) -> AsyncGenerator[str, None]:
        """
        Stream the model reply, then store it.

        Provider errors propagate to the caller; nothing is stored for a
        failed reply.
        """
        parts: list[str] = []
        async for delta in self.llm_provider.stream_text(turn.model_messages, turn.system_prompt):
            parts.append(delta)
            yield delta

        await self._record_assistant_message(turn.session_id, "".join(parts))

    async def _record_assistant_message(self, session_id: str, content: str) -> None:
        """Store the finished reply. Failures are logged, never raised."""
        if not content.strip():
            logger.warning(f"Session {session_id[:8]}... got an empty reply, not stored")
            return
        try:
            message = await self.chat_repo.add_message(
                session_id=session_id,
                role=MessageRole.ASSISTANT,
                content=content,
            )
            logger.info(f"Session {session_id[:8]}... stored assistant message {message.id}")
        except Exception as e:
            logger.error(f"Failed to store assistant reply for {session_id[:8]}...: {e}", exc_info=True)

    async def get_quota(self, session_id: str) -> RateLimitStatus:
        """Quota of a session, creating the session on first contact."""
        try:
            await self.chat_repo.ensure_session(session_id, self.settings.SESSION_MESSAGE_LIMIT)
            return await self.rate_limiter.get_status(session_id)
        except SQLAlchemyError as e:
            raise InfrastructureError("Chat storage is unavailable") from e

    async def list_history(self, session_id: str, limit: int = 100, offset: int = 0) -> list[ChatMessage]:
        """Stored user/assistant messages, oldest first."""
        try:
            return await self.chat_repo.list_messages(
                session_id=session_id,
                limit=limit,
                offset=offset,
                exclude_roles=(MessageRole.SYSTEM,),
            )
        except SQLAlchemyError as e:
            raise InfrastructureError("Chat storage is unavailable") from e
