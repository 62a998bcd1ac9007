"""
Analytics and Export Endpoints.

Provides:
- Dashboard statistics over the current claim collection
- Display-formatted headline figures
- CSV and JSON exports of all claims
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from src.api.deps import get_ledger_settings, get_repository
from src.core.config import ClaimsSettings
from src.core.enums import ClaimStatus, ExportFormat
from src.schemas.analytics import AnalyticsSnapshot, AnalyticsSummary
from src.services.claim_analytics import analyze
from src.services.claims_repository import ClaimsRepository
from src.utils.export_formatters import (
    format_claims_as_csv,
    format_claims_as_json,
    generate_filename,
    get_content_type,
)
from src.utils.formatters import format_compact_currency, format_currency, format_datetime

router = APIRouter(prefix="/api/v1", tags=["analytics"])


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def get_analytics(
    repository: ClaimsRepository = Depends(get_repository),
    ledger_settings: ClaimsSettings = Depends(get_ledger_settings),
) -> AnalyticsSnapshot:
    """Statistics for the dashboard, recomputed on every request."""
    return analyze(
        repository.claims,
        recent_window_days=ledger_settings.RECENT_WINDOW_DAYS,
        trend_months=ledger_settings.TREND_MONTHS,
    )


@router.get("/analytics/summary", response_model=AnalyticsSummary)
async def get_analytics_summary(
    repository: ClaimsRepository = Depends(get_repository),
    ledger_settings: ClaimsSettings = Depends(get_ledger_settings),
) -> AnalyticsSummary:
    """Headline figures formatted for display (₹ with Indian digit grouping)."""
    now = datetime.now()
    snapshot = analyze(
        repository.claims,
        now=now,
        recent_window_days=ledger_settings.RECENT_WINDOW_DAYS,
        trend_months=ledger_settings.TREND_MONTHS,
    )
    symbol = ledger_settings.CURRENCY_SYMBOL
    return AnalyticsSummary(
        total_claims=snapshot.total_claims,
        total_bill_amount=format_currency(snapshot.total_bill_amount, symbol),
        total_pending_amount=format_currency(snapshot.total_pending_amount, symbol),
        total_settled_amount=format_currency(snapshot.total_settled_amount, symbol),
        average_claim_value=format_compact_currency(snapshot.average_claim_value, symbol),
        approval_rate=f"{snapshot.approval_rate:.1f}%",
        settlement_rate=f"{snapshot.settlement_rate:.1f}%",
        generated_on=format_datetime(now),
    )


def _export(format: ExportFormat, content: str) -> Response:
    filename = generate_filename(format)
    return Response(
        content=content,
        media_type=get_content_type(format),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/exports/claims.csv")
async def export_claims_csv(
    claim_status: Optional[ClaimStatus] = Query(None, alias="status"),
    repository: ClaimsRepository = Depends(get_repository),
) -> Response:
    """Export claims as CSV, optionally limited to one status."""
    claims = repository.filter(status=claim_status)
    return _export(ExportFormat.CSV, format_claims_as_csv(claims))


@router.get("/exports/claims.json")
async def export_claims_json(
    claim_status: Optional[ClaimStatus] = Query(None, alias="status"),
    repository: ClaimsRepository = Depends(get_repository),
) -> Response:
    """Export claims as a JSON array of stored records."""
    claims = repository.filter(status=claim_status)
    return _export(ExportFormat.JSON, format_claims_as_json(claims))
