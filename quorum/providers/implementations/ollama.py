"""
Ollama Adapter

Minimal adapter for a local Ollama server (``/api/generate``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import httpx

from quorum.providers.base import BaseAdapter
from quorum.providers.interfaces import (
    ChatMessage,
    ProviderConfig,
    ProviderMalformedResponseError,
)

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_TIMEOUT_SECONDS = 30.0


def flatten_conversation(conversation: Sequence[ChatMessage]) -> str:
    """Render messages as ``role: content`` lines for a plain-prompt API."""
    return "\n".join(f"{m.role}: {m.content}" for m in conversation)


class OllamaAdapter(BaseAdapter):
    """Adapter for Ollama's non-streaming generate endpoint."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self._transport = transport

    def _call_impl(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        base_url = (config.endpoint or DEFAULT_ENDPOINT).rstrip("/")
        payload: Dict[str, Any] = {
            "model": config.model,
            "prompt": flatten_conversation(conversation),
            "stream": False,
            "options": {"num_predict": max_tokens},
        }

        timeout = config.timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            resp = client.post(f"{base_url}/api/generate", json=payload)
            resp.raise_for_status()
            data = resp.json()

        if not isinstance(data, dict):
            raise ProviderMalformedResponseError(
                config.name, "Ollama returned a non-object payload"
            )
        text = data.get("response")
        if not isinstance(text, str):
            raise ProviderMalformedResponseError(
                config.name, "Ollama payload has no response text"
            )
        return text


__all__ = ["OllamaAdapter", "flatten_conversation"]
