"""
Quorum: multi-provider AI response consensus.

Sends one prompt to several independently-configured AI backends and
selects a single trusted answer by weighted voting over answer agreement,
provider priority and latency. A sequential fallback mode returns the
first provider that answers.

Example:
    >>> from quorum import ConsensusService
    >>> service = ConsensusService()
    >>> service.set_provider_credential("groq", "gsk-...")
    >>> result = service.generate_consensus("What is the capital of France?")
    >>> print(result.consensus_text, result.reasoning)
"""

__version__ = "0.1.0"

from quorum.errors import (
    AllProvidersFailedError,
    ConfigError,
    NoProvidersEnabledError,
    NotFoundError,
    QuorumError,
)
from quorum.providers import (
    AdapterRegistry,
    ProviderConfig,
    ProviderRegistry,
    ProviderResponse,
)
from quorum.consensus import ConsensusEngine, ConsensusResult, VoteWeight
from quorum.dispatch import DispatchConfig, Dispatcher
from quorum.tracking import PerformanceTracker, ProviderStats
from quorum.config import QuorumConfig, load_config
from quorum.service import ConsensusService

__all__ = [
    "__version__",
    "AllProvidersFailedError",
    "ConfigError",
    "NoProvidersEnabledError",
    "NotFoundError",
    "QuorumError",
    "AdapterRegistry",
    "ProviderConfig",
    "ProviderRegistry",
    "ProviderResponse",
    "ConsensusEngine",
    "ConsensusResult",
    "VoteWeight",
    "DispatchConfig",
    "Dispatcher",
    "PerformanceTracker",
    "ProviderStats",
    "QuorumConfig",
    "load_config",
    "ConsensusService",
]
