"""
Quorum Exception Hierarchy

Systemic error conditions raised to callers of the consensus engine.
Single-provider failures are modelled by :class:`quorum.providers.ProviderError`
and are captured as data by the dispatcher rather than propagated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from quorum.providers.interfaces import ProviderResponse


class QuorumError(Exception):
    """Base exception for all quorum errors."""


class NotFoundError(QuorumError, KeyError):
    """
    Raised when a registry mutation names an unknown provider.

    Attributes:
        provider_name: Name that could not be resolved
    """

    def __init__(self, provider_name: str):
        super().__init__(f"Provider not found: {provider_name}")
        self.provider_name = provider_name

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class NoProvidersEnabledError(QuorumError):
    """Raised when fan-out dispatch is attempted with zero enabled providers."""

    def __init__(self, message: str = "No AI providers enabled"):
        super().__init__(message)


class AllProvidersFailedError(QuorumError):
    """
    Raised when fallback dispatch exhausts every enabled provider.

    Attributes:
        failures: Errored responses collected from each attempted provider
    """

    def __init__(
        self,
        failures: Optional[Sequence["ProviderResponse"]] = None,
        message: str = "All AI providers failed",
    ):
        self.failures: List["ProviderResponse"] = list(failures or [])
        if self.failures:
            attempted = ", ".join(f.provider_name for f in self.failures)
            message = f"{message}: {attempted}"
        super().__init__(message)


class ConfigError(QuorumError):
    """Raised when configuration cannot be loaded or validated."""


__all__ = [
    "QuorumError",
    "NotFoundError",
    "NoProvidersEnabledError",
    "AllProvidersFailedError",
    "ConfigError",
]
