"""
OpenAI-Compatible Adapter

Chat-completions adapter built on the official OpenAI Python SDK. Serves
both OpenAI itself and OpenAI-compatible vendors such as Groq, selected
by the provider's endpoint.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from quorum.providers.base import BaseAdapter
from quorum.providers.interfaces import (
    ChatMessage,
    ProviderConfig,
    ProviderMalformedResponseError,
)

DEFAULT_TIMEOUT_SECONDS = 30.0


class OpenAICompatibleAdapter(BaseAdapter):
    """Adapter for OpenAI-style ``/chat/completions`` backends."""

    def __init__(self, temperature: float = 0.7):
        try:
            import openai
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise ImportError(
                "openai package not installed. Install it with: pip install openai"
            ) from exc

        self._openai_module = openai
        self.temperature = temperature

    def _call_impl(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        client_kwargs: Dict[str, Any] = {
            "api_key": config.credential,
            "max_retries": 0,
            "timeout": config.timeout_seconds or DEFAULT_TIMEOUT_SECONDS,
        }
        if config.endpoint:
            client_kwargs["base_url"] = config.endpoint

        client = self._openai_module.OpenAI(**client_kwargs)
        try:
            completion = client.chat.completions.create(
                model=config.model,
                messages=[{"role": m.role, "content": m.content} for m in conversation],
                max_tokens=max_tokens,
                temperature=self.temperature,
            )
        finally:
            client.close()

        if not completion.choices:
            raise ProviderMalformedResponseError(
                config.name, f"{config.name} returned no choices"
            )
        return completion.choices[0].message.content or ""


__all__ = ["OpenAICompatibleAdapter"]
