"""
Provider Registry

Holds the configured backends and the adapter table used to reach them.
"""

import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

from quorum.errors import NotFoundError
from quorum.providers.interfaces import BackendAdapter, ProviderConfig


DEFAULT_PROVIDERS: Tuple[ProviderConfig, ...] = (
    ProviderConfig(
        name="groq",
        model="llama3-8b-8192",
        priority=1,
        enabled=True,
        endpoint="https://api.groq.com/openai/v1",
    ),
    ProviderConfig(
        name="ollama",
        model="llama3.2",
        priority=2,
        enabled=True,
        endpoint="http://localhost:11434",
        requires_credential=False,
    ),
    ProviderConfig(
        name="openai",
        model="gpt-3.5-turbo",
        priority=3,
        enabled=False,
        endpoint="https://api.openai.com/v1",
    ),
    ProviderConfig(
        name="claude",
        model="claude-3-haiku-20240307",
        priority=4,
        enabled=False,
        endpoint="https://api.anthropic.com",
    ),
)


class ProviderRegistry:
    """
    Registry of configured backends.

    Pure state container with no network state. Configs are immutable and
    kept in a tuple that is replaced wholesale under a lock on every
    mutation, so readers always observe a consistent snapshot even while
    a configuration UI writes concurrently.

    Providers are never deleted; disabling is the deletion substitute.

    Example:
        >>> registry = ProviderRegistry.with_defaults()
        >>> registry.set_credential("groq", "gsk-...")
        >>> [p.name for p in registry.list_enabled()]
        ['groq', 'ollama']
    """

    def __init__(self, configs: Iterable[ProviderConfig] = ()):
        """
        Initialize registry.

        Args:
            configs: Initial provider configurations, in insertion order

        Raises:
            ValueError: If two configs share a name
            TypeError: If an entry is not a ProviderConfig
        """
        providers: List[ProviderConfig] = []
        seen = set()
        for config in configs:
            if not isinstance(config, ProviderConfig):
                raise TypeError(
                    f"config must be an instance of ProviderConfig, got {type(config).__name__}"
                )
            if config.name in seen:
                raise ValueError(f"Provider already registered: {config.name}")
            seen.add(config.name)
            providers.append(config)

        self._providers: Tuple[ProviderConfig, ...] = tuple(providers)
        self._lock = threading.Lock()

    @classmethod
    def with_defaults(cls) -> "ProviderRegistry":
        """Build a registry holding the built-in provider set."""
        return cls(DEFAULT_PROVIDERS)

    def snapshot(self) -> Tuple[ProviderConfig, ...]:
        """Current provider tuple (insertion order). Safe to iterate."""
        return self._providers

    def list_all(self) -> List[ProviderConfig]:
        """All providers in insertion order."""
        return list(self._providers)

    def list_enabled(self) -> List[ProviderConfig]:
        """
        Enabled providers sorted by priority.

        ``sorted`` is stable, so equal priorities keep insertion order.
        """
        return sorted(
            (p for p in self._providers if p.enabled),
            key=lambda p: p.priority,
        )

    def get(self, name: str) -> Optional[ProviderConfig]:
        for config in self._providers:
            if config.name == name:
                return config
        return None

    def set_enabled(self, name: str, enabled: bool) -> ProviderConfig:
        """
        Enable or disable a provider.

        Raises:
            NotFoundError: If the provider is unknown
        """
        return self.reconfigure(name, enabled=enabled)

    def set_credential(self, name: str, secret: Optional[str]) -> ProviderConfig:
        """
        Set (or clear with None) a provider credential.

        Raises:
            NotFoundError: If the provider is unknown
        """
        return self.reconfigure(name, credential=secret)

    def reconfigure(self, name: str, **changes: Any) -> ProviderConfig:
        """
        Apply a partial configuration update.

        The update is validated by rebuilding the config, so invalid
        values (e.g. ``priority=0``) and unknown field names raise
        ``pydantic.ValidationError`` and leave the registry untouched.

        Args:
            name: Provider name
            **changes: Fields to replace

        Returns:
            The new configuration

        Raises:
            NotFoundError: If the provider is unknown
            ValueError: If ``changes`` tries to rename the provider

        Example:
            >>> registry.reconfigure("ollama", model="mistral", priority=1)
        """
        if "name" in changes and changes["name"] != name:
            raise ValueError("Provider name cannot be changed")

        with self._lock:
            providers = list(self._providers)
            for index, current in enumerate(providers):
                if current.name == name:
                    data: Dict[str, Any] = current.model_dump()
                    data.update(changes)
                    updated = ProviderConfig.model_validate(data)
                    providers[index] = updated
                    self._providers = tuple(providers)
                    return updated

        raise NotFoundError(name)


class AdapterRegistry:
    """
    Mapping from provider name to adapter instance.

    Replaces string-switch dispatch: the dispatcher looks adapters up by
    provider name and treats a missing entry as a configuration error.

    Example:
        >>> adapters = AdapterRegistry()
        >>> adapters.register("groq", OpenAICompatibleAdapter())
        >>> adapters.get("groq")
    """

    def __init__(self, adapters: Optional[Dict[str, BackendAdapter]] = None):
        self._adapters: Dict[str, BackendAdapter] = {}
        self._lock = threading.Lock()
        for name, adapter in (adapters or {}).items():
            self.register(name, adapter)

    def register(self, name: str, adapter: BackendAdapter) -> None:
        """
        Register (or replace) the adapter for a provider.

        Raises:
            ValueError: If name is empty
            TypeError: If adapter has no ``call`` method
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Provider name must be a non-empty string")
        if not callable(getattr(adapter, "call", None)):
            raise TypeError("adapter must implement BackendAdapter.call")
        with self._lock:
            self._adapters = {**self._adapters, name: adapter}

    def get(self, name: str) -> Optional[BackendAdapter]:
        return self._adapters.get(name)

    def has(self, name: str) -> bool:
        return name in self._adapters

    def names(self) -> List[str]:
        return sorted(self._adapters)
