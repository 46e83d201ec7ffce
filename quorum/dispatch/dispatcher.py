"""
Provider Dispatcher

Fans a conversation out to every enabled provider concurrently, or walks
them in priority order until one answers. Individual provider failures
are captured as data; only systemic conditions raise.
"""

import asyncio
import time
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from quorum.errors import AllProvidersFailedError, NoProvidersEnabledError
from quorum.observability.logging import get_logger
from quorum.observability.metrics import increment_counter, record_histogram
from quorum.providers.interfaces import (
    ChatMessage,
    ErrorCode,
    ProviderConfig,
    ProviderConfigurationError,
    ProviderError,
    ProviderResponse,
    ProviderTimeoutError,
)
from quorum.providers.registry import AdapterRegistry, ProviderRegistry
from quorum.tracking.performance import PerformanceTracker

logger = get_logger(__name__)


class DispatchConfig(BaseModel):
    """
    Configuration for provider dispatch.

    Attributes:
        timeout_seconds: Default per-call deadline (a provider's own
            ``timeout_seconds`` takes precedence)
        max_attempts: Tries per provider within one dispatch (1 = no retry)
        retry_delay: Initial retry delay in seconds
        backoff_multiplier: Multiplier for exponential backoff
        max_retry_delay: Upper bound for a single retry delay
        retry_on: Failure categories that trigger a retry

    Example:
        >>> config = DispatchConfig(timeout_seconds=20.0, max_attempts=3)
    """

    timeout_seconds: float = Field(
        default=30.0,
        description="Per-call deadline seconds",
        gt=0.0,
        le=600.0,
    )
    max_attempts: int = Field(
        default=1,
        description="Attempts per provider",
        ge=1,
        le=10,
    )
    retry_delay: float = Field(
        default=0.5,
        description="Initial retry delay seconds",
        ge=0.0,
        le=10.0,
    )
    backoff_multiplier: float = Field(
        default=2.0,
        description="Backoff multiplier",
        ge=1.0,
        le=5.0,
    )
    max_retry_delay: float = Field(
        default=10.0,
        description="Max retry delay seconds",
        ge=0.0,
        le=300.0,
    )
    retry_on: List[ErrorCode] = Field(
        default_factory=lambda: [
            ErrorCode.RATE_LIMIT,
            ErrorCode.TIMEOUT,
            ErrorCode.NETWORK,
        ],
        description="Failure categories that trigger retry",
    )


class Dispatcher:
    """
    Concurrent (fan-out) and sequential (fallback) provider dispatch.

    Both modes read one enabled-provider snapshot from the registry and
    record every finished attempt in the performance tracker.

    Example:
        >>> dispatcher = Dispatcher(registry, adapters, tracker)
        >>> responses = await dispatcher.fan_out(build_conversation("Hi"), 200)
        >>> answer = await dispatcher.fallback(build_conversation("Hi"), 200)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        adapters: AdapterRegistry,
        tracker: Optional[PerformanceTracker] = None,
        config: Optional[DispatchConfig] = None,
    ):
        self._registry = registry
        self._adapters = adapters
        self._tracker = tracker
        self.config = config if config is not None else DispatchConfig()

    async def fan_out(
        self,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> List[ProviderResponse]:
        """
        Query every enabled provider concurrently and wait for all of them.

        Args:
            conversation: Messages sent to every provider
            max_tokens: Maximum output size

        Returns:
            One response per enabled provider, in provider (priority)
            order regardless of completion order

        Raises:
            NoProvidersEnabledError: If no provider is enabled (nothing
                is launched)
        """
        providers = self._registry.list_enabled()
        if not providers:
            increment_counter("dispatch_total", labels={"mode": "fan_out", "result": "no_providers"})
            raise NoProvidersEnabledError()

        logger.info(
            "dispatch_started",
            mode="fan_out",
            providers=[p.name for p in providers],
        )

        responses = await asyncio.gather(
            *(self._query_provider(p, conversation, max_tokens) for p in providers)
        )

        succeeded = sum(1 for r in responses if r.is_valid)
        increment_counter(
            "dispatch_total",
            labels={"mode": "fan_out", "result": "ok" if succeeded else "all_failed"},
        )
        logger.info(
            "dispatch_finished",
            mode="fan_out",
            succeeded=succeeded,
            failed=len(responses) - succeeded,
        )
        return list(responses)

    async def fallback(
        self,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> ProviderResponse:
        """
        Try enabled providers one at a time in priority order.

        Returns the first usable response; providers after it are never
        called. Never runs two providers concurrently.

        Returns:
            The first valid ProviderResponse

        Raises:
            AllProvidersFailedError: If every provider failed (or none
                is enabled)
        """
        providers = self._registry.list_enabled()
        failures: List[ProviderResponse] = []

        logger.info(
            "dispatch_started",
            mode="fallback",
            providers=[p.name for p in providers],
        )

        for provider in providers:
            response = await self._query_provider(provider, conversation, max_tokens)
            if response.is_valid:
                increment_counter("dispatch_total", labels={"mode": "fallback", "result": "ok"})
                logger.info(
                    "dispatch_finished",
                    mode="fallback",
                    provider=provider.name,
                    skipped=[f.provider_name for f in failures],
                )
                return response
            failures.append(response)

        increment_counter("dispatch_total", labels={"mode": "fallback", "result": "all_failed"})
        logger.warning(
            "dispatch_exhausted",
            mode="fallback",
            failed=[f.provider_name for f in failures],
        )
        raise AllProvidersFailedError(failures)

    async def _query_provider(
        self,
        provider: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> ProviderResponse:
        """
        Call one provider, timing it, and capture any failure as data.

        Always returns exactly one response. Cancellation propagates.
        """
        start = time.perf_counter()
        text: Optional[str] = None
        error: Optional[ProviderError] = None

        adapter = self._adapters.get(provider.name)
        if adapter is None:
            error = ProviderConfigurationError(
                provider.name, f"Unknown provider: {provider.name}"
            )
        else:
            timeout = provider.timeout_seconds or self.config.timeout_seconds
            # adapters size their client timeouts from the config they receive
            call_config = provider.model_copy(update={"timeout_seconds": timeout})
            for attempt in range(self.config.max_attempts):
                try:
                    text = await asyncio.wait_for(
                        adapter.call(call_config, conversation, max_tokens),
                        timeout=timeout,
                    )
                    error = None
                    break
                except asyncio.TimeoutError:
                    error = ProviderTimeoutError(
                        provider.name, f"{provider.name} timed out after {timeout}s"
                    )
                except ProviderError as exc:
                    error = exc
                except Exception as exc:
                    logger.exception("provider_adapter_crashed", provider=provider.name)
                    error = ProviderError(provider.name, str(exc) or type(exc).__name__)

                if error.code not in self.config.retry_on:
                    break
                if attempt < self.config.max_attempts - 1:
                    delay = self._calculate_delay(attempt)
                    logger.info(
                        "provider_call_retry",
                        provider=provider.name,
                        attempt=attempt + 1,
                        error_code=error.code.value,
                        delay_seconds=delay,
                    )
                    await asyncio.sleep(delay)

        latency_ms = max(0, int(round((time.perf_counter() - start) * 1000)))

        if error is not None:
            response = ProviderResponse(
                provider_name=provider.name,
                model=provider.model,
                latency_ms=latency_ms,
                error=str(error) or error.code.value,
                error_code=error.code,
            )
        else:
            response = ProviderResponse(
                provider_name=provider.name,
                model=provider.model,
                response_text=text or "",
                latency_ms=latency_ms,
            )

        self._record(response)
        return response

    def _record(self, response: ProviderResponse) -> None:
        outcome = "success" if response.is_valid else (
            response.error_code.value if response.failed else "empty"
        )
        increment_counter(
            "provider_requests_total",
            labels={"provider": response.provider_name, "outcome": outcome},
        )
        record_histogram(
            "provider_latency_seconds",
            response.latency_ms / 1000,
            labels={"provider": response.provider_name},
        )
        log = logger.info if response.is_valid else logger.warning
        log(
            "provider_call_finished",
            provider=response.provider_name,
            model=response.model,
            outcome=outcome,
            latency_ms=response.latency_ms,
            error=response.error,
        )

        if self._tracker is not None:
            self._tracker.record(
                response.provider_name, response.is_valid, response.latency_ms
            )

    def _calculate_delay(self, attempt: int) -> float:
        delay = self.config.retry_delay * (self.config.backoff_multiplier ** attempt)
        return min(delay, self.config.max_retry_delay)


__all__ = ["Dispatcher", "DispatchConfig"]
