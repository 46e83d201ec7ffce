"""
Provider Interface Definitions

Defines the core protocol and data models for backend abstraction.
Every backend must satisfy the BackendAdapter protocol to take part in
fan-out or fallback dispatch.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from quorum.errors import QuorumError


class ErrorCode(str, Enum):
    """
    Failure categorization for a single provider call.

    Used to decide whether a failed call should be retried and to
    label failures in logs and metrics.
    """

    NONE = "none"
    AUTHENTICATION = "authentication_error"
    NETWORK = "network_error"
    MALFORMED_RESPONSE = "malformed_response"
    RATE_LIMIT = "rate_limit_error"
    TIMEOUT = "timeout_error"
    CONFIGURATION = "configuration_error"
    EXECUTION = "execution_error"


# ============================================================================
# Provider Exception Hierarchy
# ============================================================================


class ProviderError(QuorumError):
    """
    A single adapter call failed.

    The underlying cause, when there is one, is chained via ``raise ... from``
    and is available as ``__cause__``.

    Attributes:
        provider_name: Provider whose call failed
        code: Failure category
    """

    def __init__(
        self,
        provider_name: str,
        message: str,
        code: ErrorCode = ErrorCode.EXECUTION,
    ):
        super().__init__(message)
        self.provider_name = provider_name
        self.code = code


class ProviderAuthenticationError(ProviderError):
    """Missing or rejected credential. Not retried."""

    def __init__(self, provider_name: str, message: str = "Authentication failed"):
        super().__init__(provider_name, message, ErrorCode.AUTHENTICATION)


class ProviderRateLimitError(ProviderError):
    """Provider rate limit exceeded (HTTP 429 or explicit message)."""

    def __init__(self, provider_name: str, message: str = "Rate limit exceeded"):
        super().__init__(provider_name, message, ErrorCode.RATE_LIMIT)


class ProviderTimeoutError(ProviderError):
    """Call exceeded its deadline."""

    def __init__(self, provider_name: str, message: str = "Request timeout"):
        super().__init__(provider_name, message, ErrorCode.TIMEOUT)


class ProviderNetworkError(ProviderError):
    """Connection-level failure or non-success HTTP status."""

    def __init__(self, provider_name: str, message: str = "Network failure"):
        super().__init__(provider_name, message, ErrorCode.NETWORK)


class ProviderMalformedResponseError(ProviderError):
    """Provider answered but the payload could not be interpreted."""

    def __init__(self, provider_name: str, message: str = "Malformed response"):
        super().__init__(provider_name, message, ErrorCode.MALFORMED_RESPONSE)


class ProviderConfigurationError(ProviderError):
    """No adapter is registered for the provider, or its config is unusable."""

    def __init__(self, provider_name: str, message: str = "Provider misconfigured"):
        super().__init__(provider_name, message, ErrorCode.CONFIGURATION)


# ============================================================================
# Data Models
# ============================================================================


class ChatMessage(BaseModel):
    """
    Provider-agnostic chat message.

    An ordered sequence of messages forms a conversation. The engine only
    builds an optional system message followed by one user message.
    """

    role: Literal["system", "user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message text")

    model_config = ConfigDict(frozen=True)

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be an empty string")
        return value


def build_conversation(
    prompt: str, system_prompt: Optional[str] = None
) -> List[ChatMessage]:
    """
    Build the conversation sent to every backend.

    Args:
        prompt: User prompt
        system_prompt: Optional system instructions (skipped when blank)

    Returns:
        ``[system?, user]`` message list

    Example:
        >>> messages = build_conversation("Summarize my day", "Be brief")
        >>> [m.role for m in messages]
        ['system', 'user']
    """
    messages: List[ChatMessage] = []
    if system_prompt and system_prompt.strip():
        messages.append(ChatMessage(role="system", content=system_prompt))
    messages.append(ChatMessage(role="user", content=prompt))
    return messages


class ProviderConfig(BaseModel):
    """
    Configuration for a single backend.

    Instances are immutable; the registry replaces them wholesale on
    every mutation.

    Attributes:
        name: Unique provider name (e.g., 'groq', 'ollama', 'claude')
        model: Backend-specific model identifier
        priority: Positive priority, 1 = highest
        enabled: Whether the provider takes part in dispatch
        credential: Opaque secret (API key), may be absent
        endpoint: Opaque backend address
        requires_credential: Whether calls fail without a credential
        timeout_seconds: Per-call deadline

    Example:
        >>> config = ProviderConfig(
        ...     name="groq",
        ...     model="llama3-8b-8192",
        ...     priority=1,
        ...     enabled=True,
        ... )
    """

    name: str = Field(..., description="Provider name", min_length=1)
    model: str = Field(..., description="Model identifier", min_length=1)
    priority: int = Field(1, description="Priority (1 = highest)", ge=1)
    enabled: bool = Field(True, description="Whether provider is enabled")
    credential: Optional[str] = Field(None, description="API key", repr=False)
    endpoint: Optional[str] = Field(None, description="Backend address")
    requires_credential: bool = Field(
        True, description="Whether a credential is mandatory"
    )
    timeout_seconds: Optional[float] = Field(
        None,
        description="Per-call deadline (None = dispatcher default)",
        gt=0.0,
        le=600.0,
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "name": "groq",
                "model": "llama3-8b-8192",
                "priority": 1,
                "enabled": True,
                "endpoint": "https://api.groq.com/openai/v1",
            }
        },
    )

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def public_view(self) -> dict:
        """Serializable view that never exposes the credential."""
        data = self.model_dump(exclude={"credential"})
        data["has_credential"] = self.has_credential
        return data


class ProviderResponse(BaseModel):
    """
    Outcome of one dispatch attempt against one provider.

    ``error`` is present exactly when the call failed; a failed response
    never carries text.

    Attributes:
        provider_name: Provider that was called
        model: Model the provider was configured with
        response_text: Generated text (empty on failure)
        latency_ms: Wall-clock from dispatch to completion
        error: Error message if the call failed
        error_code: Failure category (NONE on success)
    """

    provider_name: str = Field(..., description="Provider name", min_length=1)
    model: str = Field("", description="Model used")
    response_text: str = Field("", description="Generated text")
    latency_ms: int = Field(..., description="Latency in milliseconds", ge=0)
    error: Optional[str] = Field(None, description="Error message if failed")
    error_code: ErrorCode = Field(ErrorCode.NONE, description="Failure category")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _error_excludes_text(self) -> "ProviderResponse":
        if self.error is not None and self.response_text:
            raise ValueError("a failed response must not carry response_text")
        return self

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_valid(self) -> bool:
        """Usable for consensus: no error and non-blank text."""
        return self.error is None and bool(self.response_text.strip())


class BackendAdapter(Protocol):
    """
    Uniform capability interface for one provider family.

    Implementations are stateless: no call depends on a prior call.
    Credentials and endpoint are read from the ``config`` snapshot passed
    with every call.

    Example Implementation:
        >>> class EchoAdapter:
        ...     async def call(self, config, conversation, max_tokens):
        ...         return conversation[-1].content
    """

    async def call(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        """
        Send the conversation and return the generated text.

        Args:
            config: Provider configuration snapshot
            conversation: Ordered messages
            max_tokens: Maximum output size

        Returns:
            Response text

        Raises:
            ProviderError: On any failure (auth, network, malformed
                response, rate limit)
        """
        ...
