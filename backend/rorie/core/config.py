"""
Application configuration using Pydantic Settings.

Provider, quota and cookie behaviour are all driven by environment variables.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./rorie.db"

    # ===========================================
    # LLM Configuration (OpenRouter, OpenAI-compatible)
    # ===========================================
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_API_KEY: str = ""

    # Optional identification headers: https://openrouter.ai/docs#identification
    OPENROUTER_SITE_URL: str = ""
    OPENROUTER_SITE_NAME: str = ""

    OPENROUTER_MODEL: str = "anthropic/claude-3.7-sonnet"

    # Upper bound for a single streamed reply
    STREAM_MAX_DURATION_SECONDS: float = 30.0

    # Replaces the built-in persona when set
    PERSONA_PROMPT: str = ""

    # ===========================================
    # Session quota
    # ===========================================
    SESSION_MESSAGE_LIMIT: int = Field(default=15, ge=0)
    MEMORY_MESSAGE_LIMIT: int = Field(default=100, ge=1)
    # Longest accepted user message, in characters
    MAX_MESSAGE_CHARS: int = Field(default=100000, ge=1)

    RATE_LIMIT_MESSAGE: str = (
        "You've reached the message limit for this session. "
        "Book a call to keep the conversation going."
    )
    RATE_LIMIT_BOOK_LINK: str = "https://calendly.com/"

    # ===========================================
    # Session cookie
    # ===========================================
    SESSION_COOKIE_NAME: str = "gc_session_id"
    SESSION_COOKIE_MAX_AGE_DAYS: int = 30
    # Turn off only for plain-HTTP local development
    SESSION_COOKIE_SECURE: bool = True

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def session_cookie_max_age(self) -> int:
        """Cookie lifetime in seconds."""
        return self.SESSION_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
