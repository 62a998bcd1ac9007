"""
FastAPI Main Application
Entry point for the claims ledger API server
Source: https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.config import settings
from src.api.routes import analytics, claims, health
from src.core.config import get_claims_settings
from src.services.claims_repository import ClaimsRepository
from src.services.persistence import build_claim_store, build_local_cache
from src.utils.logging import get_logger, setup_logging

# Setup logging
setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.json_logs,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    """
    Application lifespan manager.

    Builds the claim store, local cache and repository, and waits for the
    first claim snapshot before serving requests.
    Source: https://fastapi.tiangolo.com/advanced/events/
    """
    claims_settings = get_claims_settings()
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    logger.info(f"Claim store backend: {claims_settings.STORAGE_BACKEND.value}")

    store = build_claim_store(claims_settings, settings.redis_url)
    repository = ClaimsRepository(
        store=store,
        local_cache=build_local_cache(claims_settings),
        settings=claims_settings,
    )
    await repository.start()
    if repository.is_degraded:
        logger.warning(f"Serving from local claim cache: {repository.error_message}")

    app.state.claim_store = store
    app.state.repository = repository

    yield

    # Shutdown
    logger.info("Shutting down application")
    await repository.close()
    await store.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Hospital insurance claims with bills, payments and an approval workflow",
    version=settings.APP_VERSION,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Include routers
app.include_router(health.router)
app.include_router(claims.router)
app.include_router(analytics.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if not settings.is_production else "disabled",
    }
