"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class RorieError(Exception):
    """Base exception for rorie."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(RorieError):
    """Validation error."""

    pass


class RateLimitExceededError(RorieError):
    """Session has used up its message quota."""

    def __init__(self, limit: int, used: int):
        super().__init__(
            f"Message limit reached ({used}/{limit})",
            details={"limit": limit, "used": used},
        )
        self.limit = limit
        self.used = used


class LLMError(RorieError):
    """LLM-related error."""

    pass


class InfrastructureError(RorieError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass
