"""HTTP API for the consensus engine.

Exposes provider configuration, consensus and fallback dispatch,
feedback and Prometheus metrics over FastAPI.
"""

from quorum.api.server import app, create_app

__all__ = ["app", "create_app"]
