"""
LiteLLM provider implementation.

Talks to OpenRouter (or any OpenAI-compatible endpoint) through LiteLLM.
Includes support for custom endpoints (api_base) and OpenRouter
identification headers.
"""

import os
from typing import Any, AsyncIterator, Optional

import litellm

from rorie.core.config import Settings, get_settings
from rorie.core.exceptions import LLMError
from rorie.core.logger import logger
from rorie.interfaces.llm_provider import ILLMProvider

# LiteLLM route for generic OpenAI-compatible chat endpoints
_OPENAI_COMPATIBLE_PREFIX = "openai/"


class LiteLLMProvider(ILLMProvider):
    """LiteLLM provider with custom endpoint support."""

    def __init__(
        self,
        model_name: str,
        api_base: Optional[str] = None,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize LiteLLM provider.

        Args:
            model_name: Provider model identifier (e.g., "anthropic/claude-3.7-sonnet")
            api_base: OpenAI-compatible base URL, including the /v1 suffix
            api_key: Bearer credential for the endpoint
        """
        self._model_name = model_name
        self._settings = settings or get_settings()
        self._api_base = api_base or self._settings.OPENROUTER_BASE_URL or None
        self._api_key = api_key or self._settings.OPENROUTER_API_KEY or None
        self._timeout = self._settings.STREAM_MAX_DURATION_SECONDS

        # Enable debug logging if DEBUG is set
        if self._settings.DEBUG:
            os.environ["LITELLM_LOG"] = "DEBUG"

    def get_model_id(self) -> str:
        """Get the raw model identifier."""
        return self._model_name

    def get_api_base(self) -> Optional[str]:
        """Get the configured API base, if any."""
        return self._api_base

    def get_model_name(self) -> str:
        """Get human-readable model name."""
        if self._api_base:
            return f"LiteLLM ({self._model_name} @ {self._api_base})"
        return f"LiteLLM ({self._model_name})"

    def get_extra_headers(self) -> dict[str, str]:
        """OpenRouter attribution headers, only those that are configured."""
        headers: dict[str, str] = {}
        if self._settings.OPENROUTER_SITE_URL:
            headers["HTTP-Referer"] = self._settings.OPENROUTER_SITE_URL
        if self._settings.OPENROUTER_SITE_NAME:
            headers["X-Title"] = self._settings.OPENROUTER_SITE_NAME
        return headers

    def build_completion_kwargs(
        self,
        messages: list[dict[str, str]],
        system_prompt: str,
    ) -> dict[str, Any]:
        """Build the keyword arguments for ``litellm.acompletion``."""
        payload = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend(messages)

        kwargs: dict[str, Any] = {
            "model": f"{_OPENAI_COMPATIBLE_PREFIX}{self._model_name}",
            "messages": payload,
            "stream": True,
            "timeout": self._timeout,
        }
        if self._api_base:
            kwargs["api_base"] = self._api_base
        # Sent as "Authorization: Bearer <key>", empty when unset
        kwargs["api_key"] = self._api_key or ""
        extra_headers = self.get_extra_headers()
        if extra_headers:
            kwargs["extra_headers"] = extra_headers
        return kwargs

    async def stream_text(
        self,
        messages: list[dict[str, str]],
        system_prompt: str,
    ) -> AsyncIterator[str]:
        """Stream text deltas from the model."""
        kwargs = self.build_completion_kwargs(messages, system_prompt)
        logger.info(f"Calling model: {self.get_model_name()} ({len(messages)} messages)")

        try:
            response = await litellm.acompletion(**kwargs)
            async for chunk in response:
                choices = getattr(chunk, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0], "delta", None)
                text = getattr(delta, "content", None) if delta is not None else None
                if text:
                    yield text
        except LLMError:
            raise
        except Exception as e:
            logger.error(f"Model streaming failed: {e}")
            raise LLMError(f"Model call failed: {e}") from e
