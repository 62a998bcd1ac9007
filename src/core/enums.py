"""
Core Enumerations for the Hospital Claims Ledger.

State Diagram:
    DRAFT -> SUBMITTED
    SUBMITTED -> APPROVED | REJECTED
    APPROVED -> PARTIALLY_SETTLED
    PARTIALLY_SETTLED -> SETTLED
    REJECTED, SETTLED are terminal
"""

from enum import Enum
from typing import Optional


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Claim workflow status.

    Values are the persisted wire names and must not change.
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PARTIALLY_SETTLED = "partiallysettled"
    SETTLED = "settled"

    @property
    def display_name(self) -> str:
        """Human-readable status name."""
        return _DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        """What this status means for the claim."""
        return _DESCRIPTIONS[self]

    @property
    def valid_transitions(self) -> list["ClaimStatus"]:
        """Statuses reachable from this one, in workflow order."""
        return list(_TRANSITIONS[self])

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    @property
    def is_editable(self) -> bool:
        """Only drafts accept changes to bills, payments and identity fields."""
        return self is ClaimStatus.DRAFT

    @property
    def workflow_order(self) -> int:
        return list(ClaimStatus).index(self)

    def can_transition_to(self, target: "ClaimStatus") -> bool:
        return target in _TRANSITIONS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClaimStatus":
        """Read a stored status, falling back to DRAFT for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.DRAFT


_TRANSITIONS: dict[ClaimStatus, tuple[ClaimStatus, ...]] = {
    ClaimStatus.DRAFT: (ClaimStatus.SUBMITTED,),
    ClaimStatus.SUBMITTED: (ClaimStatus.APPROVED, ClaimStatus.REJECTED),
    ClaimStatus.APPROVED: (ClaimStatus.PARTIALLY_SETTLED,),
    ClaimStatus.REJECTED: (),
    ClaimStatus.PARTIALLY_SETTLED: (ClaimStatus.SETTLED,),
    ClaimStatus.SETTLED: (),
}

_DISPLAY_NAMES: dict[ClaimStatus, str] = {
    ClaimStatus.DRAFT: "Draft",
    ClaimStatus.SUBMITTED: "Submitted",
    ClaimStatus.APPROVED: "Approved",
    ClaimStatus.REJECTED: "Rejected",
    ClaimStatus.PARTIALLY_SETTLED: "Partially Settled",
    ClaimStatus.SETTLED: "Settled",
}

_DESCRIPTIONS: dict[ClaimStatus, str] = {
    ClaimStatus.DRAFT: "Claim is being prepared and can be edited",
    ClaimStatus.SUBMITTED: "Claim has been submitted for review",
    ClaimStatus.APPROVED: "Claim has been approved for settlement",
    ClaimStatus.REJECTED: "Claim has been rejected",
    ClaimStatus.PARTIALLY_SETTLED: "Partial payment has been made",
    ClaimStatus.SETTLED: "Claim has been fully settled",
}

# Statuses in which the insurer may still record settlement payments
SETTLEMENT_EDITABLE_STATUSES = frozenset(
    {ClaimStatus.DRAFT, ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_SETTLED}
)

# Statuses counted as "approved" by analytics
APPROVED_STATUSES = frozenset(
    {ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_SETTLED, ClaimStatus.SETTLED}
)


class ClaimSortField(str, Enum):
    """Fields the claim list can be ordered by."""

    PATIENT_NAME = "patient_name"
    CLAIM_DATE = "claim_date"
    TOTAL_AMOUNT = "total_amount"
    PENDING_AMOUNT = "pending_amount"
    STATUS = "status"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


# =============================================================================
# Infrastructure Enums
# =============================================================================


class StorageBackend(str, Enum):
    """Primary claim store implementations."""

    MEMORY = "memory"  # In-process store, demo and tests
    REDIS = "redis"  # Shared document store


class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    CSV = "csv"
    TEXT = "text"
