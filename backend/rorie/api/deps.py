"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the configured
infrastructure implementations.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from rorie.core.config import Settings, get_settings
from rorie.core.session_cookie import SessionCookie, resolve_session
from rorie.interfaces.chat_session_repository import IChatSessionRepository
from rorie.interfaces.llm_provider import ILLMProvider
from rorie.services.chat_service import ChatService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_chat_session_repository() -> IChatSessionRepository:
    """Get chat session repository instance."""
    from rorie.infrastructure.local.chat_session_repository import SqliteChatSessionRepository

    return SqliteChatSessionRepository()


# ===========================================
# Provider Dependencies
# ===========================================


@lru_cache()
def get_llm_provider() -> ILLMProvider:
    """Get the LiteLLM provider configured for OpenRouter."""
    from rorie.infrastructure.local.litellm_provider import LiteLLMProvider

    settings = get_settings()
    return LiteLLMProvider(settings.OPENROUTER_MODEL)


# ===========================================
# Session Identity
# ===========================================


def get_session_cookie(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> SessionCookie:
    """Resolve the browser session token from the request cookies."""
    return resolve_session(request, settings)


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

ChatRepo = Annotated[IChatSessionRepository, Depends(get_chat_session_repository)]
LLMProvider = Annotated[ILLMProvider, Depends(get_llm_provider)]
AppSettings = Annotated[Settings, Depends(get_settings)]
CurrentSession = Annotated[SessionCookie, Depends(get_session_cookie)]


def get_chat_service(
    llm_provider: LLMProvider,
    chat_repo: ChatRepo,
    settings: AppSettings,
) -> ChatService:
    """Build the chat service for a request."""
    return ChatService(llm_provider=llm_provider, chat_repo=chat_repo, settings=settings)


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
