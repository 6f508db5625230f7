"""
Per-session message quota.

A session may send ``limit`` user messages in total. The used count only ever
goes up; there is no reset or time window.
"""

from rorie.core.exceptions import RateLimitExceededError
from rorie.core.logger import logger
from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.models.chat_session import ChatMessage, RateLimitStatus


class RateLimiter:
    """Checks and consumes the message quota of a session."""

    def __init__(self, chat_repo: IChatSessionRepository, default_limit: int):
        self._chat_repo = chat_repo
        self._default_limit = default_limit

    async def get_status(self, session_id: str) -> RateLimitStatus:
        """Current quota, creating the session and its record if needed."""
        record = await self._chat_repo.get_rate_limit(session_id)
        if record is None:
            await self._chat_repo.ensure_session(session_id, self._default_limit)
            record = await self._chat_repo.get_rate_limit(session_id)
        return RateLimitStatus.from_record(record)

    async def check(self, session_id: str) -> RateLimitStatus:
        """
        Reject the request if the quota is used up.

        Raises:
            RateLimitExceededError: When used >= limit
        """
        status = await self.get_status(session_id)
        if status.exhausted:
            logger.warning(
                f"Session {session_id[:8]}... is rate limited ({status.used}/{status.limit})"
            )
            raise RateLimitExceededError(limit=status.limit, used=status.used)
        return status

    async def record_user_message(self, session_id: str, content: str) -> ChatMessage:
        """
        Store a user message and consume one unit of quota in one step.

        Raises:
            RateLimitExceededError: When a concurrent request used the last unit
        """
        message = await self._chat_repo.add_user_message_within_limit(session_id, content)
        if message is None:
            status = await self.get_status(session_id)
            logger.warning(
                f"Session {session_id[:8]}... lost the race for its last message "
                f"({status.used}/{status.limit})"
            )
            raise RateLimitExceededError(limit=status.limit, used=status.used)
        return message
