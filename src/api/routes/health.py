"""
Health Check Routes
Service health monitoring endpoints
Source: https://microservices.io/patterns/observability/health-check-api.html
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from src.api.config import settings
from src.api.deps import get_repository
from src.services.claims_repository import ClaimsRepository
from src.services.persistence import RedisClaimStore
from src.utils.errors import PersistenceError
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/health/detailed")
async def detailed_health_check(
    request: Request,
    repository: ClaimsRepository = Depends(get_repository),
) -> dict[str, Any]:
    """
    Detailed health check with repository and store status.

    A degraded repository (running from the local cache) reports "degraded".
    """
    checks: dict[str, Any] = {
        "repository": {
            "initialized": repository.is_initialized,
            "degraded": repository.is_degraded,
            "claims": repository.claim_count,
            "last_error": repository.error_message,
        },
    }

    store = getattr(request.app.state, "claim_store", None)
    store_healthy = True
    if isinstance(store, RedisClaimStore):
        try:
            store_healthy = await store.ping()
        except PersistenceError as e:
            logger.warning(f"Redis health check failed: {e.message}")
            store_healthy = False
        checks["redis"] = "healthy" if store_healthy else "unhealthy"

    if not store_healthy:
        overall_status = "unhealthy"
    elif repository.is_degraded:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "service": settings.APP_NAME,
        "checks": checks,
    }
