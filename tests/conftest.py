"""
Global pytest configuration for the Quorum test suite.

This file provides shared fixtures and enforces Python version requirements.
"""

from __future__ import annotations

import sys
from typing import Callable, Dict

import pytest

from quorum.providers import AdapterRegistry, ProviderConfig, ProviderRegistry
from quorum.providers.implementations import StaticAdapter
from quorum.tracking import PerformanceTracker

_MIN_PY_VERSION = (3, 11)


def _verify_python_version() -> str:
    """Return the interpreter version string or exit if <3.11."""
    version_info = sys.version_info
    version_str = ".".join(map(str, version_info[:3]))
    if version_info < _MIN_PY_VERSION:
        pytest.exit(
            f"ERROR: pytest must run on Python 3.11+ (detected {version_str}).",
            returncode=1,
        )
    return version_str


def pytest_report_header(config: pytest.Config) -> str:
    version_str = _verify_python_version()
    return f"Python interpreter verified for pytest: {version_str}"


def pytest_configure(config: pytest.Config) -> None:
    """Register project markers to prevent unknown marker warnings."""
    markers = {
        "unit": "Unit tests that should execute quickly.",
        "integration": "Integration tests hitting multiple components.",
        "slow": "Slow or high-cost tests.",
    }
    for name, description in markers.items():
        config.addinivalue_line("markers", f"{name}: {description}")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and config files out of every test."""
    for var in (
        "GROQ_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "QUORUM_CONFIG_FILE",
        "QUORUM_MAX_RATINGS",
        "QUORUM_LOG_LEVEL",
        "QUORUM_LOG_FORMAT",
        "QUORUM_TIMEOUT_SECONDS",
        "QUORUM_MAX_ATTEMPTS",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_provider() -> Callable[..., ProviderConfig]:
    """Factory for provider configs that need no credential."""

    def _make(name: str, priority: int = 1, **kwargs) -> ProviderConfig:
        kwargs.setdefault("model", f"{name}-model")
        kwargs.setdefault("requires_credential", False)
        return ProviderConfig(name=name, priority=priority, **kwargs)

    return _make


@pytest.fixture
def registry(make_provider) -> ProviderRegistry:
    """Three enabled providers: alpha (1), beta (2), gamma (3)."""
    return ProviderRegistry(
        [
            make_provider("alpha", 1),
            make_provider("beta", 2),
            make_provider("gamma", 3),
        ]
    )


@pytest.fixture
def static_adapters() -> Dict[str, StaticAdapter]:
    return {
        "alpha": StaticAdapter("Paris is the capital of France"),
        "beta": StaticAdapter("The capital of France is Paris"),
        "gamma": StaticAdapter("France has Paris as its capital city"),
    }


@pytest.fixture
def adapters(static_adapters) -> AdapterRegistry:
    return AdapterRegistry(dict(static_adapters))


@pytest.fixture
def tracker() -> PerformanceTracker:
    return PerformanceTracker()
