"""
Claim Analytics.

Pure aggregation over a claim collection for the dashboard. Nothing is
cached; call ``analyze`` again whenever the collection changes.
"""

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from src.core.enums import APPROVED_STATUSES, ClaimStatus
from src.schemas.analytics import AnalyticsSnapshot, StatusShare
from src.schemas.claim import Claim

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

ZERO = Decimal("0")


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def _month_key(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def _trailing_months(now: datetime, months: int) -> list[tuple[int, int]]:
    """(year, month) pairs for the last ``months`` months, oldest first, ending at ``now``."""
    result = []
    for offset in range(months - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - offset
        result.append((index // 12, index % 12 + 1))
    return result


def monthly_trend(
    claims: Iterable[Claim],
    now: Optional[datetime] = None,
    months: int = 6,
) -> dict[str, int]:
    """Claims created per calendar month over the trailing window, in chronological order."""
    now = now or datetime.now()
    created = Counter((c.created_at.year, c.created_at.month) for c in claims)
    return {
        _month_key(year, month): created.get((year, month), 0)
        for year, month in _trailing_months(now, months)
    }


def analyze(
    claims: Iterable[Claim],
    now: Optional[datetime] = None,
    recent_window_days: int = 7,
    trend_months: int = 6,
) -> AnalyticsSnapshot:
    """
    Compute dashboard statistics.

    Args:
        claims: Claims to aggregate
        now: Reference time for the recent count and monthly trend
        recent_window_days: Trailing window for ``recent_claims_count``
        trend_months: Number of months in ``monthly_trend``

    Returns:
        AnalyticsSnapshot; every rate is 0 when its population is empty
    """
    claims = list(claims)
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)

    total = len(claims)
    counts = Counter(c.status for c in claims)
    counts_by_status = {status: counts.get(status, 0) for status in ClaimStatus}

    totals = [c.total_bill_amount for c in claims]
    total_bill_amount = sum(totals, ZERO)
    non_zero = [amount for amount in totals if amount > ZERO]

    non_draft = total - counts_by_status[ClaimStatus.DRAFT]
    approved = sum(counts_by_status[s] for s in APPROVED_STATUSES)
    rejected = counts_by_status[ClaimStatus.REJECTED]
    settled = counts_by_status[ClaimStatus.SETTLED]

    window_start = now - timedelta(days=recent_window_days)

    return AnalyticsSnapshot(
        total_claims=total,
        counts_by_status=counts_by_status,
        total_bill_amount=total_bill_amount,
        total_pending_amount=sum((c.pending_amount for c in claims), ZERO),
        total_settled_amount=sum((c.settlement_amount for c in claims), ZERO),
        average_claim_value=total_bill_amount / total if total else ZERO,
        highest_claim_value=max(totals, default=ZERO),
        lowest_claim_value=min(non_zero, default=ZERO),
        approval_rate=_percentage(approved, non_draft),
        rejection_rate=_percentage(rejected, non_draft),
        settlement_rate=_percentage(settled, approved),
        recent_claims_count=sum(1 for c in claims if c.created_at > window_start),
        monthly_trend=monthly_trend(claims, now=now, months=trend_months),
        status_distribution=[
            StatusShare(
                status=status,
                display_name=status.display_name,
                count=count,
                percentage=_percentage(count, total),
            )
            for status, count in counts_by_status.items()
            if count > 0
        ],
    )
