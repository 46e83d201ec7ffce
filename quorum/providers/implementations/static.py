"""
Static Adapter

Deterministic adapter that answers with fixed text or a fixed failure.
Useful for demos, dry runs and tests.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from quorum.providers.interfaces import (
    ChatMessage,
    ErrorCode,
    ProviderConfig,
    ProviderError,
)


class StaticAdapter:
    """
    Adapter returning a canned answer.

    Attributes:
        text: Text returned on success
        error: If set, every call fails with this message
        error_code: Category attached to the failure
        delay_seconds: Simulated network latency
        calls: Number of calls received
    """

    def __init__(
        self,
        text: str = "",
        *,
        error: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EXECUTION,
        delay_seconds: float = 0.0,
    ):
        self.text = text
        self.error = error
        self.error_code = error_code
        self.delay_seconds = delay_seconds
        self.calls = 0

    async def call(
        self,
        config: ProviderConfig,
        conversation: Sequence[ChatMessage],
        max_tokens: int,
    ) -> str:
        self.calls += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise ProviderError(config.name, self.error, self.error_code)
        return self.text


__all__ = ["StaticAdapter"]
