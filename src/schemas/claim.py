"""
Pydantic Schemas for Hospital Claims.

Bill and Claim are immutable values. Every mutator returns a new instance
with a refreshed ``updated_at``; whether a mutation is allowed is decided by
the claims repository, not here.

Derived amounts (total, pending, ...) are properties and are never stored or
serialized.
"""

import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.enums import ClaimStatus
from src.utils.errors import ValidationError

PATIENT_NAME_MIN_LENGTH = 2
POLICY_NUMBER_MIN_LENGTH = 5
BILL_DESCRIPTION_MIN_LENGTH = 3
DEFAULT_MIN_CLAIM_DATE = date(2000, 1, 1)

_PATIENT_NAME_RE = re.compile(r"^[A-Za-z\s]+$")
_POLICY_NUMBER_RE = re.compile(r"^[A-Za-z0-9]+$")

ZERO = Decimal("0")


def _now() -> datetime:
    return datetime.now()


def _new_id() -> str:
    return str(uuid4())


def _as_local(value: datetime) -> datetime:
    """Timestamps are naive local time; an offset is converted and dropped."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def format_timestamp(value: datetime) -> str:
    """
    ISO 8601 without an offset, with milliseconds.

    Sub-millisecond precision is written out in full so it survives a reload.
    """
    if value.microsecond % 1000:
        return value.isoformat(timespec="microseconds")
    return value.isoformat(timespec="milliseconds")


def _expect_object(record: Any, label: str) -> dict[str, Any]:
    if not isinstance(record, dict):
        raise ValidationError(f"{label} record must be an object")
    return record


def _error_messages(exc: PydanticValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        ctx_error = err.get("ctx", {}).get("error")
        if ctx_error is not None:
            messages.append(str(ctx_error))
        else:
            location = ".".join(str(part) for part in err.get("loc", ()))
            messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return messages


def _build(model: type[BaseModel], data: dict[str, Any]) -> Any:
    """Validate ``data`` into ``model``, raising the ledger's ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        messages = _error_messages(exc)
        raise ValidationError(messages[0], errors=messages) from exc


def _non_negative(value: Decimal, label: str) -> Decimal:
    if value < ZERO:
        raise ValueError(f"{label} cannot be negative")
    return value


# =============================================================================
# Bill
# =============================================================================


class Bill(BaseModel):
    """A single billable line item attached to a claim."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    description: str = Field(..., description="e.g. Consultation Fee, X-Ray")
    amount: Decimal = Field(..., description="Amount in currency units")
    created_at: datetime = Field(default_factory=_now)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Description is required")
        if len(v) < BILL_DESCRIPTION_MIN_LENGTH:
            raise ValueError(
                f"Description must be at least {BILL_DESCRIPTION_MIN_LENGTH} characters"
            )
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return _non_negative(v, "Amount")

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return _as_local(v)

    @classmethod
    def create(
        cls,
        description: str,
        amount: Decimal | float | int | str,
        *,
        bill_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "Bill":
        """Create a bill, raising ValidationError for bad input."""
        data: dict[str, Any] = {"description": description, "amount": amount}
        if bill_id is not None:
            data["id"] = bill_id
        if created_at is not None:
            data["created_at"] = created_at
        return _build(cls, data)

    def with_changes(self, **changes: Any) -> "Bill":
        """Return a re-validated copy; id and created_at are kept unless given."""
        return _build(type(self), {**dict(self), **changes})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bill):
            return NotImplemented
        return (self.id, self.description, self.amount) == (
            other.id,
            other.description,
            other.amount,
        )

    def __hash__(self) -> int:
        return hash((self.id, self.description, self.amount))

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "amount": float(self.amount),
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Bill":
        record = _expect_object(record, "Bill")
        return _build(
            cls,
            {
                "id": record.get("id"),
                "description": record.get("description"),
                "amount": record.get("amount"),
                "created_at": record.get("createdAt"),
            },
        )


# =============================================================================
# Claim
# =============================================================================


class Claim(BaseModel):
    """
    Insurance claim aggregate for one patient and policy.

    Field rules (name, policy number, non-negative amounts) are enforced on
    every construction. Creation rules that depend on the clock or on other
    fields (claim date window, payment limits) are checked by ``create`` and
    by ``creation_errors`` so that stored claims always load.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    patient_name: str
    policy_number: str
    claim_date: datetime
    bills: tuple[Bill, ...] = ()
    advance_paid: Decimal = ZERO
    settlement_amount: Decimal = ZERO
    status: ClaimStatus = ClaimStatus.DRAFT
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator("patient_name")
    @classmethod
    def validate_patient_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Patient name is required")
        if len(v) < PATIENT_NAME_MIN_LENGTH:
            raise ValueError(
                f"Patient name must be at least {PATIENT_NAME_MIN_LENGTH} characters"
            )
        if not _PATIENT_NAME_RE.match(v):
            raise ValueError("Patient name can only contain letters and spaces")
        return v

    @field_validator("policy_number")
    @classmethod
    def validate_policy_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Policy number is required")
        if len(v) < POLICY_NUMBER_MIN_LENGTH:
            raise ValueError(
                f"Policy number must be at least {POLICY_NUMBER_MIN_LENGTH} characters"
            )
        if not _POLICY_NUMBER_RE.match(v):
            raise ValueError("Policy number must be alphanumeric")
        return v.upper()

    @field_validator("claim_date", mode="before")
    @classmethod
    def coerce_claim_date(cls, v: Any) -> Any:
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time())
        return v

    @field_validator("claim_date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return _as_local(v)

    @field_validator("advance_paid")
    @classmethod
    def validate_advance_paid(cls, v: Decimal) -> Decimal:
        return _non_negative(v, "Advance paid")

    @field_validator("settlement_amount")
    @classmethod
    def validate_settlement_amount(cls, v: Decimal) -> Decimal:
        return _non_negative(v, "Settlement amount")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> ClaimStatus:
        return ClaimStatus.parse(v)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        patient_name: str,
        policy_number: str,
        claim_date: date | datetime,
        bills: Iterable[Bill] = (),
        advance_paid: Decimal | float | int = ZERO,
        settlement_amount: Decimal | float | int = ZERO,
        *,
        min_claim_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> "Claim":
        """
        Create a new Draft claim.

        Raises:
            ValidationError: if any field or creation rule is violated
        """
        now = _as_local(now) if now else _now()
        claim = _build(
            cls,
            {
                "patient_name": patient_name,
                "policy_number": policy_number,
                "claim_date": claim_date,
                "bills": tuple(bills),
                "advance_paid": advance_paid,
                "settlement_amount": settlement_amount,
                "status": ClaimStatus.DRAFT,
                "created_at": now,
                "updated_at": now,
            },
        )
        errors = claim.creation_errors(min_claim_date=min_claim_date, today=now.date())
        if errors:
            raise ValidationError(errors[0], errors=errors)
        return claim

    def creation_errors(
        self,
        min_claim_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> list[str]:
        """Check the date window and payment limits that apply when saving a draft."""
        min_claim_date = min_claim_date or DEFAULT_MIN_CLAIM_DATE
        today = today or _now().date()
        errors = []

        claim_day = self.claim_date.date()
        if claim_day > today:
            errors.append("Claim date cannot be in the future")
        if claim_day < min_claim_date:
            errors.append(f"Claim date cannot be before {min_claim_date.isoformat()}")

        errors.extend(self.payment_errors())
        return errors

    def payment_errors(self) -> list[str]:
        """Advance and settlement must fit within the billed total."""
        total = self.total_bill_amount
        if self.advance_paid > total:
            return ["Advance cannot exceed total bill amount"]
        if self.settlement_amount > total - self.advance_paid:
            return ["Settlement cannot exceed pending amount"]
        return []

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def total_bill_amount(self) -> Decimal:
        return sum((bill.amount for bill in self.bills), ZERO)

    @property
    def pending_amount(self) -> Decimal:
        """Total billed minus advance and settlement, never below zero."""
        pending = self.total_bill_amount - self.advance_paid - self.settlement_amount
        return pending if pending > ZERO else ZERO

    @property
    def bill_count(self) -> int:
        return len(self.bills)

    @property
    def has_bills(self) -> bool:
        return bool(self.bills)

    @property
    def is_fully_settled(self) -> bool:
        return self.pending_amount == ZERO and self.total_bill_amount > ZERO

    @property
    def is_editable(self) -> bool:
        return self.status.is_editable

    @property
    def valid_next_statuses(self) -> list[ClaimStatus]:
        return self.status.valid_transitions

    def can_transition_to(self, status: ClaimStatus) -> bool:
        return self.status.can_transition_to(status)

    def get_bill(self, bill_id: str) -> Optional[Bill]:
        for bill in self.bills:
            if bill.id == bill_id:
                return bill
        return None

    # -------------------------------------------------------------------------
    # Copy-on-write mutators
    # -------------------------------------------------------------------------

    def _touched(self, **update: Any) -> "Claim":
        update.setdefault("updated_at", _now())
        return self.model_copy(update=update)

    def add_bill(self, bill: Bill) -> "Claim":
        return self._touched(bills=(*self.bills, bill))

    def update_bill(self, bill: Bill) -> "Claim":
        """Replace the bill with the same id; an unknown id leaves bills as they are."""
        bills = tuple(bill if existing.id == bill.id else existing for existing in self.bills)
        return self._touched(bills=bills)

    def remove_bill(self, bill_id: str) -> "Claim":
        return self._touched(bills=tuple(b for b in self.bills if b.id != bill_id))

    def with_advance_paid(self, amount: Decimal) -> "Claim":
        return self._touched(advance_paid=Decimal(amount))

    def with_settlement_amount(self, amount: Decimal) -> "Claim":
        return self._touched(settlement_amount=Decimal(amount))

    def with_status(self, status: ClaimStatus) -> "Claim":
        return self._touched(status=status)

    def with_changes(self, **changes: Any) -> "Claim":
        """Return a re-validated copy with ``changes`` applied and a fresh updated_at."""
        changes.setdefault("updated_at", _now())
        return _build(type(self), {**dict(self), **changes})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Claim):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return (
            f"Claim(id: {self.id}, patient: {self.patient_name}, "
            f"status: {self.status.display_name}, total: {self.total_bill_amount}, "
            f"pending: {self.pending_amount})"
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Wire/storage shape. Field names are part of the persisted contract."""
        return {
            "id": self.id,
            "patientName": self.patient_name,
            "policyNumber": self.policy_number,
            "claimDate": format_timestamp(self.claim_date),
            "bills": [bill.to_record() for bill in self.bills],
            "advancePaid": float(self.advance_paid),
            "settlementAmount": float(self.settlement_amount),
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Claim":
        """Parse a stored record. Unknown or missing status reads as draft."""
        record = _expect_object(record, "Claim")
        bills = record.get("bills") or []
        if not isinstance(bills, list):
            raise ValidationError("Claim bills must be a list")
        return _build(
            cls,
            {
                "id": record.get("id"),
                "patient_name": record.get("patientName"),
                "policy_number": record.get("policyNumber"),
                "claim_date": record.get("claimDate"),
                "bills": tuple(Bill.from_record(b) for b in bills),
                "advance_paid": record.get("advancePaid", 0),
                "settlement_amount": record.get("settlementAmount", 0),
                "status": record.get("status"),
                "created_at": record.get("createdAt"),
                "updated_at": record.get("updatedAt"),
            },
        )


# =============================================================================
# API Schemas
# =============================================================================


class BillCreate(BaseModel):
    """Schema for adding a bill to a claim."""

    description: str = Field(..., description="Bill description")
    amount: Decimal = Field(..., description="Bill amount")


class ClaimCreate(BaseModel):
    """Schema for creating a claim."""

    patient_name: str
    policy_number: str
    claim_date: date
    bills: list[BillCreate] = Field(default_factory=list)
    advance_paid: Decimal = ZERO
    settlement_amount: Decimal = ZERO


class ClaimUpdate(BaseModel):
    """Schema for editing a draft claim's identity and payment fields."""

    patient_name: Optional[str] = None
    policy_number: Optional[str] = None
    claim_date: Optional[date] = None
    advance_paid: Optional[Decimal] = None
    settlement_amount: Optional[Decimal] = None


class StatusChange(BaseModel):
    """Schema for a status transition request."""

    status: ClaimStatus


class AmountChange(BaseModel):
    """Schema for an advance or settlement amount update."""

    amount: Decimal


class BillResponse(BaseModel):
    """Schema for bill response."""

    id: str
    description: str
    amount: Decimal
    created_at: datetime

    @classmethod
    def from_bill(cls, bill: Bill) -> "BillResponse":
        return cls(
            id=bill.id,
            description=bill.description,
            amount=bill.amount,
            created_at=bill.created_at,
        )


class ClaimResponse(BaseModel):
    """Schema for claim response, including derived amounts."""

    id: str
    patient_name: str
    policy_number: str
    claim_date: datetime
    bills: list[BillResponse]
    advance_paid: Decimal
    settlement_amount: Decimal
    total_bill_amount: Decimal
    pending_amount: Decimal
    bill_count: int
    is_fully_settled: bool
    status: ClaimStatus
    status_display: str
    is_editable: bool
    valid_next_statuses: list[ClaimStatus]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_claim(cls, claim: Claim) -> "ClaimResponse":
        return cls(
            id=claim.id,
            patient_name=claim.patient_name,
            policy_number=claim.policy_number,
            claim_date=claim.claim_date,
            bills=[BillResponse.from_bill(b) for b in claim.bills],
            advance_paid=claim.advance_paid,
            settlement_amount=claim.settlement_amount,
            total_bill_amount=claim.total_bill_amount,
            pending_amount=claim.pending_amount,
            bill_count=claim.bill_count,
            is_fully_settled=claim.is_fully_settled,
            status=claim.status,
            status_display=claim.status.display_name,
            is_editable=claim.is_editable,
            valid_next_statuses=claim.valid_next_statuses,
            created_at=claim.created_at,
            updated_at=claim.updated_at,
        )


class ClaimMutationResponse(BaseModel):
    """Schema for command responses that may carry a degraded-storage warning."""

    claim: Optional[ClaimResponse] = None
    degraded: bool = False
    warning: Optional[str] = None


class ClaimListResponse(BaseModel):
    """Schema for claim list responses."""

    items: list[ClaimResponse]
    total: int
