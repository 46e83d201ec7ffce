"""
Claude Adapter

Direct adapter for Anthropic Claude using the official Anthropic Python SDK.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from quorum.providers.base import BaseAdapter
from quorum.providers.interfaces import ChatMessage, ProviderConfig

DEFAULT_TIMEOUT_SECONDS = 30.0


class ClaudeAdapter(BaseAdapter):
    """Adapter for the Anthropic messages API."""

    def __init__(self):
        try:
            import anthropic
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise ImportError(
                "anthropic package not installed. Install it with: pip install anthropic"
            ) from exc

        self._anthropic_module = anthropic

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

        params: Dict[str, Any] = {
            "model": config.model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in conversation
                if m.role != "system"
            ],
        }
        # The messages API takes system instructions out of band
        system = "\n".join(m.content for m in conversation if m.role == "system")
        if system:
            params["system"] = system

        client = self._anthropic_module.Anthropic(**client_kwargs)
        try:
            response = client.messages.create(**params)
        finally:
            client.close()

        return response.content[0].text if response.content else ""


__all__ = ["ClaudeAdapter"]
