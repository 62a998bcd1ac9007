"""
Pydantic Schemas for claim analytics.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import ClaimStatus


class StatusShare(BaseModel):
    """One slice of the status distribution."""

    model_config = ConfigDict(frozen=True)

    status: ClaimStatus
    display_name: str
    count: int
    percentage: float


class AnalyticsSnapshot(BaseModel):
    """Aggregate figures over a claim collection."""

    model_config = ConfigDict(frozen=True)

    total_claims: int = 0
    counts_by_status: dict[ClaimStatus, int] = Field(default_factory=dict)

    total_bill_amount: Decimal = Decimal("0")
    total_pending_amount: Decimal = Decimal("0")
    total_settled_amount: Decimal = Decimal("0")
    average_claim_value: Decimal = Decimal("0")
    highest_claim_value: Decimal = Decimal("0")
    lowest_claim_value: Decimal = Decimal("0")

    approval_rate: float = Field(default=0.0, description="Percentage, 0-100")
    rejection_rate: float = Field(default=0.0, description="Percentage, 0-100")
    settlement_rate: float = Field(default=0.0, description="Percentage, 0-100")

    recent_claims_count: int = 0
    monthly_trend: dict[str, int] = Field(
        default_factory=dict,
        description="Claims created per month keyed 'Mon YYYY', oldest first",
    )
    status_distribution: list[StatusShare] = Field(default_factory=list)

    def count_for(self, status: ClaimStatus) -> int:
        return self.counts_by_status.get(status, 0)


class AnalyticsSummary(BaseModel):
    """Dashboard figures formatted for display."""

    total_claims: int
    total_bill_amount: str
    total_pending_amount: str
    total_settled_amount: str
    average_claim_value: str
    approval_rate: str
    settlement_rate: str
    generated_on: str
