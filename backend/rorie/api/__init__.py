"""API routers."""

from rorie.api import chat

__all__ = [
    "chat",
]
