"""
Services Layer for the Hospital Claims Ledger.

Exports the claims repository and analytics.
"""

from src.services.claim_analytics import analyze
from src.services.claims_repository import ClaimsRepository, RepositoryResult

__all__ = [
    # Repository
    "ClaimsRepository",
    "RepositoryResult",
    # Analytics
    "analyze",
]
