"""FastAPI server for the consensus engine.

This module provides HTTP endpoints for:
- Provider configuration (/providers)
- Consensus and fallback dispatch (/consensus, /fallback)
- Performance feedback and statistics (/feedback, /stats)
- Prometheus metrics (/metrics) and a liveness check (/healthz)

Credentials can be written but are never returned; provider listings
only report ``has_credential``.

Usage:
    # Run with Uvicorn
    uvicorn quorum.api.server:app --host 0.0.0.0 --port 8000

Example Consensus Response:
    {
        "consensus_text": "Paris is the capital of France.",
        "confidence": 0.87,
        "reasoning": "2 providers responded with high agreement. ...",
        "selected_provider": "groq",
        "agreement_level": "high",
        "vote_breakdown": [{"provider_name": "groq", "weight": 0.58}, ...],
        "responses": [...]
    }
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from quorum import __version__
from quorum.config import load_config
from quorum.errors import (
    AllProvidersFailedError,
    NoProvidersEnabledError,
    NotFoundError,
)
from quorum.observability.logging import get_logger
from quorum.observability.metrics import (
    get_metrics_content_type,
    get_metrics_output,
)
from quorum.service import DEFAULT_MAX_TOKENS, ConsensusService

logger = get_logger(__name__)


# ============================================================================
# Request Models
# ============================================================================


class PromptRequest(BaseModel):
    """Body for /consensus and /fallback."""

    prompt: str = Field(..., description="User prompt", min_length=1)
    system_prompt: Optional[str] = Field(None, description="System instruction")
    max_tokens: int = Field(
        DEFAULT_MAX_TOKENS, description="Maximum output tokens", ge=1, le=32000
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt cannot be blank")
        return value


class EnabledUpdate(BaseModel):
    enabled: bool


class CredentialUpdate(BaseModel):
    credential: Optional[str] = Field(None, description="Secret, null to clear")


class FeedbackRequest(BaseModel):
    """Body for /feedback."""

    provider_name: str = Field(..., min_length=1)
    success: bool
    latency_ms: float = Field(..., ge=0.0)
    rating: Optional[int] = Field(None, ge=1, le=5)


# ============================================================================
# Application Factory
# ============================================================================


def create_app(service: Optional[ConsensusService] = None) -> FastAPI:
    """
    Build the HTTP application around a consensus service.

    Args:
        service: Service to expose (built from ``load_config()`` if None)

    Returns:
        Configured FastAPI application
    """
    if service is None:
        service = ConsensusService.from_config(load_config())

    started_at = datetime.now(timezone.utc)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info(
            "quorum_api_server_started",
            providers=[p.name for p in service.list_providers()],
        )
        yield
        logger.info("quorum_api_server_shutdown")

    app = FastAPI(
        title="Quorum Consensus API",
        description="Multi-provider AI response consensus",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NoProvidersEnabledError)
    async def no_providers_handler(
        request: Request, exc: NoProvidersEnabledError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(AllProvidersFailedError)
    async def all_failed_handler(
        request: Request, exc: AllProvidersFailedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={
                "detail": str(exc),
                "failures": [
                    {
                        "provider_name": f.provider_name,
                        "error": f.error,
                        "error_code": f.error_code.value,
                    }
                    for f in exc.failures
                ],
            },
        )

    @app.get("/")
    async def root() -> Dict[str, Any]:
        """API information."""
        return {
            "service": "Quorum Consensus API",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "providers": "/providers",
                "consensus": "/consensus",
                "fallback": "/fallback",
                "feedback": "/feedback",
                "stats": "/stats",
                "metrics": "/metrics",
                "health": "/healthz",
            },
        }

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        enabled = service.registry.list_enabled()
        return {
            "status": "ok",
            "enabled_providers": len(enabled),
            "uptime_seconds": (datetime.now(timezone.utc) - started_at).total_seconds(),
        }

    @app.get("/providers")
    async def list_providers() -> List[Dict[str, Any]]:
        return [config.public_view() for config in service.list_providers()]

    @app.put("/providers/{name}/enabled")
    async def set_enabled(name: str, body: EnabledUpdate) -> Dict[str, Any]:
        return service.set_provider_enabled(name, body.enabled).public_view()

    @app.put("/providers/{name}/credential")
    async def set_credential(name: str, body: CredentialUpdate) -> Dict[str, Any]:
        return service.set_provider_credential(name, body.credential).public_view()

    @app.post("/consensus")
    async def consensus(body: PromptRequest) -> Dict[str, Any]:
        """
        Query every enabled provider and return the consensus result.

        Response Codes:
            200: Result produced (possibly the all-failed sentinel)
            409: No provider enabled
        """
        result = await service.dispatch_consensus(
            body.prompt, body.system_prompt, body.max_tokens
        )
        return result.model_dump(mode="json")

    @app.post("/fallback")
    async def fallback(body: PromptRequest) -> Dict[str, Any]:
        """
        Return the first successful answer in priority order.

        Response Codes:
            200: A provider answered
            503: Every provider failed
        """
        response = await service.dispatch_fallback_response(
            body.prompt, body.system_prompt, body.max_tokens
        )
        return response.model_dump(mode="json")

    @app.post("/feedback")
    async def feedback(body: FeedbackRequest) -> Dict[str, Any]:
        stats = service.record_feedback(
            body.provider_name, body.success, body.latency_ms, body.rating
        )
        return stats.model_dump(mode="json")

    @app.get("/stats")
    async def stats() -> List[Dict[str, Any]]:
        result = []
        for entry in service.get_provider_stats():
            data = entry.model_dump(mode="json")
            data["success_rate"] = entry.success_rate
            data["average_rating"] = service.get_average_rating(entry.provider_name)
            result.append(data)
        return result

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics_output(),
            media_type=get_metrics_content_type(),
        )

    return app


app = create_app()


__all__ = ["app", "create_app"]
