"""Rorie - session-scoped chat proxy for OpenRouter models."""

__version__ = "0.1.0"
