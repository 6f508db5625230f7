"""
Conversation memory for the system prompt.
"""

from typing import Optional

from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.models.chat_session import ChatMessage
from rorie.models.enums import MessageRole

NO_PRIOR_MESSAGES = "(no prior messages)"


def render_memory_block(messages: list[ChatMessage]) -> str:
    """Render messages as ``ROLE: content`` lines."""
    if not messages:
        return NO_PRIOR_MESSAGES
    return "\n".join(f"{message.role.value.upper()}: {message.content}" for message in messages)


class ConversationMemoryAssembler:
    """Loads a session's stored messages and renders them for the model."""

    def __init__(self, chat_repo: IChatSessionRepository, max_messages: int = 100):
        self._chat_repo = chat_repo
        self._max_messages = max_messages

    async def load_messages(self, session_id: str) -> list[ChatMessage]:
        """Oldest-first messages, system messages excluded, capped."""
        return await self._chat_repo.list_messages(
            session_id=session_id,
            limit=self._max_messages,
            exclude_roles=(MessageRole.SYSTEM,),
        )

    def render(self, messages: list[ChatMessage], pending: Optional[ChatMessage] = None) -> str:
        """Render loaded messages plus one stored after they were loaded."""
        if pending is not None:
            messages = [*messages, pending][: self._max_messages]
        return render_memory_block(messages)

    async def build_memory_block(self, session_id: str) -> str:
        messages = await self.load_messages(session_id)
        return self.render(messages)
