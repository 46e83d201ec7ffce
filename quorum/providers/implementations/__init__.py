"""
Built-in backend adapters.

``default_adapters`` wires the vendors shipped in the default provider set.
"""

from quorum.providers.implementations.claude import ClaudeAdapter
from quorum.providers.implementations.ollama import OllamaAdapter
from quorum.providers.implementations.openai_compatible import OpenAICompatibleAdapter
from quorum.providers.implementations.static import StaticAdapter
from quorum.providers.registry import AdapterRegistry


def default_adapters() -> AdapterRegistry:
    """Adapter table for groq, ollama, openai and claude."""
    openai_compatible = OpenAICompatibleAdapter()
    return AdapterRegistry(
        {
            "groq": openai_compatible,
            "ollama": OllamaAdapter(),
            "openai": openai_compatible,
            "claude": ClaudeAdapter(),
        }
    )


__all__ = [
    "ClaudeAdapter",
    "OllamaAdapter",
    "OpenAICompatibleAdapter",
    "StaticAdapter",
    "default_adapters",
]
