"""Health and credential statistics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from models.request import HealthResponse
from services.container import ServiceContainer, get_container

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health(container: ServiceContainer = Depends(get_container)):
    """Liveness plus backend names, key availability and queue depth."""
    rotation = container.rotation
    return HealthResponse(
        backends=container.executor.backend_names,
        credentials_available=rotation.size == 0 or rotation.has_available(),
        pending_tasks=container.queue.pending,
    )


@router.get("/credentials/stats")
async def credential_stats(container: ServiceContainer = Depends(get_container)):
    """Masked per-key usage snapshot."""
    rotation = container.rotation
    return {
        "rateLimit": rotation.rate_limit,
        "windowSeconds": rotation.window_seconds,
        "estimatedWaitMs": rotation.estimated_wait_ms(),
        "keys": rotation.stats(),
    }
