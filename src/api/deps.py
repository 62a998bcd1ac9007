"""
FastAPI Dependencies
Dependency injection for the claims repository and settings
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from fastapi import Request

from src.core.config import ClaimsSettings, get_claims_settings
from src.services.claims_repository import ClaimsRepository


def get_repository(request: Request) -> ClaimsRepository:
    """
    Get the repository built by the application lifespan.

    Tests replace this dependency through ``app.dependency_overrides``.
    """
    return request.app.state.repository


def get_ledger_settings() -> ClaimsSettings:
    """Get the claims ledger settings."""
    return get_claims_settings()
