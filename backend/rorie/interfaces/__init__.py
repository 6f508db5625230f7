"""Abstract interfaces for infrastructure abstraction."""

from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.interfaces.llm_provider import ILLMProvider

__all__ = [
    "IChatSessionRepository",
    "ILLMProvider",
]
