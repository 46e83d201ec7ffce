"""
High-level service that coordinates the registry, dispatcher, consensus
engine and performance tracker.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, List, Optional, TypeVar

from quorum.config import QuorumConfig
from quorum.consensus.engine import ConsensusEngine, ConsensusResult
from quorum.dispatch.dispatcher import DispatchConfig, Dispatcher
from quorum.observability.logging import (
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)
from quorum.observability.metrics import increment_counter, record_histogram
from quorum.providers import (
    AdapterRegistry,
    ProviderConfig,
    ProviderRegistry,
    ProviderResponse,
    build_conversation,
)
from quorum.providers.implementations import default_adapters
from quorum.tracking.performance import PerformanceTracker, ProviderStats

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 200

T = TypeVar("T")


class ConsensusService:
    """
    Facade over one provider registry and everything that reads it.

    Dispatch, configuration changes and feedback may run concurrently;
    each dispatch works from a single snapshot of the enabled providers.

    Example:
        >>> service = ConsensusService()
        >>> service.set_provider_credential("groq", "gsk-...")
        >>> result = await service.dispatch_consensus("What is the capital of France?")
        >>> print(result.consensus_text, result.confidence)
    """

    def __init__(
        self,
        *,
        registry: Optional[ProviderRegistry] = None,
        adapters: Optional[AdapterRegistry] = None,
        tracker: Optional[PerformanceTracker] = None,
        config: Optional[DispatchConfig] = None,
        consensus_engine: Optional[ConsensusEngine] = None,
    ) -> None:
        self.registry = registry if registry is not None else ProviderRegistry.with_defaults()
        self.adapters = adapters if adapters is not None else default_adapters()
        self.tracker = tracker if tracker is not None else PerformanceTracker()
        self.dispatcher = Dispatcher(
            self.registry, self.adapters, self.tracker, config
        )
        self._consensus_engine = consensus_engine or ConsensusEngine(self.registry)

    @classmethod
    def from_config(
        cls,
        config: QuorumConfig,
        *,
        adapters: Optional[AdapterRegistry] = None,
    ) -> "ConsensusService":
        """Build a service from a loaded :class:`QuorumConfig`, applying its logging settings."""

        configure_logging(level=config.log_level, format=config.log_format)
        return cls(
            registry=ProviderRegistry(config.providers),
            adapters=adapters,
            tracker=PerformanceTracker(max_ratings=config.max_ratings),
            config=config.dispatch,
        )

    # ------------------------------------------------------------------
    # Provider configuration
    # ------------------------------------------------------------------

    def list_providers(self) -> List[ProviderConfig]:
        return self.registry.list_all()

    def set_provider_enabled(self, name: str, enabled: bool) -> ProviderConfig:
        config = self.registry.set_enabled(name, enabled)
        logger.info("provider_enabled_changed", provider=name, enabled=enabled)
        return config

    def set_provider_credential(self, name: str, secret: Optional[str]) -> ProviderConfig:
        config = self.registry.set_credential(name, secret)
        logger.info("provider_credential_changed", provider=name, has_credential=config.has_credential)
        return config

    def reconfigure_provider(self, name: str, **changes: Any) -> ProviderConfig:
        config = self.registry.reconfigure(name, **changes)
        logger.info("provider_reconfigured", provider=name, fields=sorted(changes))
        return config

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch_consensus(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ConsensusResult:
        """
        Query every enabled provider and select a consensus answer.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            max_tokens: Maximum output size per provider

        Returns:
            ConsensusResult (the failure sentinel when every provider failed)

        Raises:
            NoProvidersEnabledError: If no provider is enabled
            ValueError: If the prompt is blank
        """
        conversation = build_conversation(prompt, system_prompt)
        set_correlation_id()
        try:
            responses = await self.dispatcher.fan_out(conversation, max_tokens)
            result = self._consensus_engine.build(responses)

            increment_counter("consensus_total", labels={"agreement": result.agreement_level})
            record_histogram("consensus_confidence", result.confidence)
            logger.info(
                "consensus_completed",
                selected_provider=result.selected_provider,
                confidence=round(result.confidence, 4),
                agreement=result.agreement_level,
                responses=len(responses),
            )
            return result
        finally:
            clear_correlation_id()

    async def dispatch_fallback(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """
        Query enabled providers in priority order and return the first answer.

        Raises:
            AllProvidersFailedError: If every provider failed
            ValueError: If the prompt is blank
        """
        response = await self.dispatch_fallback_response(prompt, system_prompt, max_tokens)
        return response.response_text

    async def dispatch_fallback_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ProviderResponse:
        """Like :meth:`dispatch_fallback` but returns the full response."""

        conversation = build_conversation(prompt, system_prompt)
        set_correlation_id()
        try:
            return await self.dispatcher.fallback(conversation, max_tokens)
        finally:
            clear_correlation_id()

    def generate_consensus(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ConsensusResult:
        """Synchronous wrapper for :meth:`dispatch_consensus`."""

        return _run_sync(self.dispatch_consensus(prompt, system_prompt, max_tokens))

    def query_with_fallback(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Synchronous wrapper for :meth:`dispatch_fallback`."""

        return _run_sync(self.dispatch_fallback(prompt, system_prompt, max_tokens))

    # ------------------------------------------------------------------
    # Feedback and statistics
    # ------------------------------------------------------------------

    def record_feedback(
        self,
        provider_name: str,
        success: bool,
        latency_ms: float,
        rating: Optional[int] = None,
    ) -> ProviderStats:
        return self.tracker.record(provider_name, success, latency_ms, rating)

    def get_provider_stats(self) -> List[ProviderStats]:
        return self.tracker.get_stats()

    def get_average_rating(self, provider_name: str) -> Optional[float]:
        return self.tracker.get_average_rating(provider_name)


def _run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a dispatch coroutine on a private event loop.

    Blocking adapters run on this loop's worker threads. A worker whose
    call already hit its deadline may still be busy when the dispatch
    returns, so the executor is shut down without joining it
    (``asyncio.run`` would wait for every worker).
    """
    loop = asyncio.new_event_loop()
    executor = ThreadPoolExecutor(thread_name_prefix="quorum-adapter")
    loop.set_default_executor(executor)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            executor.shutdown(wait=False)
            loop.close()


__all__ = ["ConsensusService", "DEFAULT_MAX_TOKENS"]
