"""
Base Adapter Implementation

Abstract base class providing common functionality for backend adapters.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Sequence

from quorum.providers.interfaces import (
    ChatMessage,
    ErrorCode,
    ProviderAuthenticationError,
    ProviderConfig,
    ProviderConfigurationError,
    ProviderError,
    ProviderMalformedResponseError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)


_ERROR_CLASSES = {
    ErrorCode.AUTHENTICATION: ProviderAuthenticationError,
    ErrorCode.RATE_LIMIT: ProviderRateLimitError,
    ErrorCode.TIMEOUT: ProviderTimeoutError,
    ErrorCode.NETWORK: ProviderNetworkError,
    ErrorCode.MALFORMED_RESPONSE: ProviderMalformedResponseError,
    ErrorCode.CONFIGURATION: ProviderConfigurationError,
}


class BaseAdapter(ABC):
    """
    Abstract base adapter providing common functionality.

    Handles credential checks, error categorization and offloading of
    blocking SDK calls to a worker thread. Subclasses only implement
    ``_call_impl`` (blocking) or override ``_call_async`` (native async).

    Example:
        >>> class MyAdapter(BaseAdapter):
        ...     def _call_impl(self, config, conversation, max_tokens):
        ...         return "hello"
    """

    async def call(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        """
        Execute the call and normalize every failure into a ProviderError.

        A missing required credential is rejected before any I/O so the
        failure is attributed a near-zero latency.

        Args:
            config: Provider configuration snapshot
            conversation: Ordered chat messages
            max_tokens: Maximum output size

        Returns:
            Response text

        Raises:
            ProviderError: On any failure
        """
        self._validate(config, conversation, max_tokens)

        try:
            text = await self._call_async(config, conversation, max_tokens)
        except ProviderError:
            raise
        except Exception as exc:
            raise self._wrap_error(config.name, exc) from exc

        if not isinstance(text, str):
            raise ProviderMalformedResponseError(
                config.name,
                f"Expected text from {config.name}, got {type(text).__name__}",
            )
        return text

    async def _call_async(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        """
        Run the blocking implementation in a background thread.

        Adapters with a native async client override this.
        """
        return await asyncio.to_thread(self._call_impl, config, conversation, max_tokens)

    @abstractmethod
    def _call_impl(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        """
        Provider-specific blocking call.

        Raises:
            Exception: On failure (categorized by the caller)
        """
        raise NotImplementedError

    def _validate(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> None:
        if config.requires_credential and not config.credential:
            raise ProviderAuthenticationError(
                config.name, f"{config.name} API key not set"
            )
        if not conversation:
            raise ProviderConfigurationError(config.name, "Conversation cannot be empty")
        if max_tokens <= 0:
            raise ProviderConfigurationError(config.name, "max_tokens must be positive")

    def _wrap_error(self, provider_name: str, error: Exception) -> ProviderError:
        code = self._categorize_error(error)
        error_class = _ERROR_CLASSES.get(code)
        message = str(error) or type(error).__name__
        if error_class is None:
            return ProviderError(provider_name, message, code)
        return error_class(provider_name, message)

    def _categorize_error(self, error: Exception) -> ErrorCode:
        """
        Categorize an arbitrary exception.

        Uses HTTP status codes when the exception exposes one, then the
        exception type, then message heuristics.

        Args:
            error: Exception raised by an SDK or HTTP client

        Returns:
            Matching ErrorCode
        """
        if isinstance(error, ProviderError):
            return error.code

        status_code = getattr(error, "status_code", None)
        if status_code is None:
            status_code = getattr(getattr(error, "response", None), "status_code", None)
        if isinstance(status_code, int):
            if status_code == 429:
                return ErrorCode.RATE_LIMIT
            if status_code in (401, 403):
                return ErrorCode.AUTHENTICATION
            if status_code == 408:
                return ErrorCode.TIMEOUT
            if status_code >= 400:
                return ErrorCode.NETWORK

        if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
            return ErrorCode.TIMEOUT
        if isinstance(error, (json.JSONDecodeError, KeyError, IndexError, TypeError)):
            return ErrorCode.MALFORMED_RESPONSE
        if isinstance(error, (ConnectionError, OSError)):
            return ErrorCode.NETWORK

        error_type = type(error).__name__
        if "RateLimit" in error_type:
            return ErrorCode.RATE_LIMIT
        if "Timeout" in error_type:
            return ErrorCode.TIMEOUT
        if "Authentication" in error_type or "Unauthorized" in error_type:
            return ErrorCode.AUTHENTICATION
        if "Connect" in error_type or "Network" in error_type:
            return ErrorCode.NETWORK

        error_str = str(error).lower()
        if "rate limit" in error_str or "429" in error_str:
            return ErrorCode.RATE_LIMIT
        if "timeout" in error_str or "timed out" in error_str:
            return ErrorCode.TIMEOUT
        if "auth" in error_str or "401" in error_str or "403" in error_str:
            return ErrorCode.AUTHENTICATION

        return ErrorCode.EXECUTION
