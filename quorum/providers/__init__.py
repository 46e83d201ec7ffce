"""
Provider Abstraction Layer

Uniform access to independently-configured AI backends.

Key Components:
    - ProviderConfig: Immutable per-provider configuration
    - ProviderRegistry: Copy-on-write store of configured providers
    - BackendAdapter: Protocol every vendor adapter implements
    - AdapterRegistry: Provider name -> adapter table
    - ProviderError: Failure of a single adapter call

Example:
    >>> from quorum.providers import ProviderRegistry, build_conversation
    >>> registry = ProviderRegistry.with_defaults()
    >>> registry.set_credential("groq", "gsk-...")
    >>> config = registry.get("groq")
    >>> text = await adapter.call(config, build_conversation("Hi"), 200)
"""

from quorum.providers.interfaces import (
    BackendAdapter,
    ChatMessage,
    ErrorCode,
    ProviderAuthenticationError,
    ProviderConfig,
    ProviderConfigurationError,
    ProviderError,
    ProviderMalformedResponseError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderResponse,
    ProviderTimeoutError,
    build_conversation,
)
from quorum.providers.registry import (
    DEFAULT_PROVIDERS,
    AdapterRegistry,
    ProviderRegistry,
)
from quorum.providers.base import BaseAdapter

__all__ = [
    "BackendAdapter",
    "ChatMessage",
    "ErrorCode",
    "ProviderAuthenticationError",
    "ProviderConfig",
    "ProviderConfigurationError",
    "ProviderError",
    "ProviderMalformedResponseError",
    "ProviderNetworkError",
    "ProviderRateLimitError",
    "ProviderResponse",
    "ProviderTimeoutError",
    "build_conversation",
    "DEFAULT_PROVIDERS",
    "AdapterRegistry",
    "ProviderRegistry",
    "BaseAdapter",
]
