"""
LLM provider interface.

Defines the contract for LLM (Large Language Model) access.
Implementations: LiteLLM (OpenRouter and other OpenAI-compatible gateways)
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator


class ILLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def get_model_id(self) -> str:
        """
        Get the raw model identifier sent to the provider.

        Returns:
            Model identifier (e.g., "anthropic/claude-3.7-sonnet")
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Get the human-readable model name.

        Returns:
            Model name string for logging/display
        """
        pass

    @abstractmethod
    def stream_text(
        self,
        messages: list[dict[str, str]],
        system_prompt: str,
    ) -> AsyncIterator[str]:
        """
        Stream a reply as text deltas.

        Args:
            messages: Conversation history as {"role", "content"} dicts
            system_prompt: System instructions for this turn

        Yields:
            Text deltas in arrival order

        Raises:
            LLMError: If the provider call fails
        """
        pass
