"""
Dispatch Module

Concurrent fan-out and sequential fallback execution across providers.
"""

from quorum.dispatch.dispatcher import DispatchConfig, Dispatcher

__all__ = ["Dispatcher", "DispatchConfig"]
