"""
Pydantic Schemas for the Hospital Claims Ledger.

This module exports the domain models and the API request/response schemas.
"""

from src.schemas.analytics import AnalyticsSnapshot, AnalyticsSummary, StatusShare
from src.schemas.claim import (
    AmountChange,
    Bill,
    BillCreate,
    BillResponse,
    Claim,
    ClaimCreate,
    ClaimListResponse,
    ClaimMutationResponse,
    ClaimResponse,
    ClaimUpdate,
    StatusChange,
)

__all__ = [
    # Domain
    "Bill",
    "Claim",
    "AnalyticsSnapshot",
    "AnalyticsSummary",
    "StatusShare",
    # API
    "AmountChange",
    "BillCreate",
    "BillResponse",
    "ClaimCreate",
    "ClaimListResponse",
    "ClaimMutationResponse",
    "ClaimResponse",
    "ClaimUpdate",
    "StatusChange",
]
