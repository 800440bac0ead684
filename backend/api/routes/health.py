"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.config import get_settings
from shared.exceptions import TransientStoreFailureError
from shared.resilience import retry_async

from ..dependencies import get_store, get_subscription_updater

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    store: str
    subscription_updater: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    store=Depends(get_store),
    updater=Depends(get_subscription_updater),
):
    """
    Readiness check endpoint.

    Probes the store with a cheap lookup and reports whether the
    subscription writer is running. Returns 503 when either is down.
    """
    try:
        await retry_async(lambda: store.get_tenant("__readiness__"), operation="readiness")
        store_state = "connected"
    except TransientStoreFailureError:
        store_state = "unavailable"

    updater_state = "running" if updater.running else "stopped"
    ready = store_state == "connected" and updater.running
    body = ReadinessResponse(
        status="ready" if ready else "not_ready",
        store=store_state,
        subscription_updater=updater_state,
    )
    return JSONResponse(content=body.model_dump(), status_code=200 if ready else 503)
