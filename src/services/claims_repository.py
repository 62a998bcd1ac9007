"""
Claims Repository.

Provides:
- Claim create/update/delete with draft-only editing rules
- Status transitions checked against the ClaimStatus table
- Bill and payment mutations
- Search, filter and sort over the canonical collection
- Store subscription with local-cache fallback

Every command persists first and updates the in-memory collection only after
the store accepted the write. Commands never raise domain errors; they return
a RepositoryResult and record the error in ``last_error``.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

from src.core.config import ClaimsSettings, get_claims_settings
from src.core.enums import SETTLEMENT_EDITABLE_STATUSES, ClaimSortField, ClaimStatus
from src.schemas.claim import Bill, Claim
from src.services.persistence.base import ClaimStore, LocalClaimCache, Subscription
from src.services.sample_data import generate_sample_claims
from src.utils.errors import (
    ClaimsError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

ClaimsListener = Callable[[tuple[Claim, ...]], None]

ZERO = Decimal("0")


@dataclass
class RepositoryResult:
    """Outcome of a repository command."""

    success: bool
    claim: Optional[Claim] = None
    error: Optional[ClaimsError] = None
    degraded: bool = False

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


def _to_amount(value: Decimal | float | int | str, label: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{label} must be a number") from e
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a finite number")
    return amount


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _within_payments(claim: Claim) -> Claim:
    """Reject a bill change that leaves the advance or settlement above the bills."""
    errors = claim.payment_errors()
    if errors:
        raise ValidationError(errors[0], errors=errors)
    return claim


_SORT_KEYS: dict[ClaimSortField, Callable[[Claim], object]] = {
    ClaimSortField.PATIENT_NAME: lambda c: c.patient_name,
    ClaimSortField.CLAIM_DATE: lambda c: c.claim_date,
    ClaimSortField.TOTAL_AMOUNT: lambda c: c.total_bill_amount,
    ClaimSortField.PENDING_AMOUNT: lambda c: c.pending_amount,
    ClaimSortField.STATUS: lambda c: c.status.workflow_order,
    ClaimSortField.CREATED_AT: lambda c: c.created_at,
    ClaimSortField.UPDATED_AT: lambda c: c.updated_at,
}


class ClaimsRepository:
    """
    Sole authority over claim mutations.

    Owns the canonical, newest-first claim collection mirrored from the
    ClaimStore and notifies listeners whenever it changes.
    """

    def __init__(
        self,
        store: ClaimStore,
        local_cache: Optional[LocalClaimCache] = None,
        settings: Optional[ClaimsSettings] = None,
    ):
        self._store = store
        self._local_cache = local_cache
        self._settings = settings or get_claims_settings()

        self._claims: list[Claim] = []
        self._listeners: list[ClaimsListener] = []
        self._subscription: Optional[Subscription] = None

        self.is_initialized = False
        self.is_loading = False
        self.is_degraded = False
        self.last_error: Optional[ClaimsError] = None

    # =========================================================================
    # Error slot and listeners
    # =========================================================================

    @property
    def error_message(self) -> Optional[str]:
        return self.last_error.message if self.last_error else None

    def _clear_error(self) -> None:
        self.last_error = None

    def _fail(self, action: str, error: ClaimsError) -> RepositoryResult:
        self.last_error = error
        if isinstance(error, PersistenceError):
            logger.error(f"Failed to {action}: {error.message}")
        else:
            logger.warning(f"Rejected {action}: {error.message}")
        return RepositoryResult(success=False, error=error)

    def add_listener(self, listener: ClaimsListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.claims
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Claims listener error: {e}")

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def claims(self) -> tuple[Claim, ...]:
        """All claims, newest first."""
        return tuple(self._claims)

    @property
    def claim_count(self) -> int:
        return len(self._claims)

    @property
    def is_empty(self) -> bool:
        return not self._claims

    def get_by_id(self, claim_id: str) -> Optional[Claim]:
        for claim in self._claims:
            if claim.id == claim_id:
                return claim
        return None

    def get_by_status(self, status: ClaimStatus) -> list[Claim]:
        return [c for c in self._claims if c.status == status]

    def count_by_status(self) -> dict[ClaimStatus, int]:
        counts = {status: 0 for status in ClaimStatus}
        for claim in self._claims:
            counts[claim.status] += 1
        return counts

    @property
    def total_claims_value(self) -> Decimal:
        return sum((c.total_bill_amount for c in self._claims), ZERO)

    @property
    def total_pending_amount(self) -> Decimal:
        return sum((c.pending_amount for c in self._claims), ZERO)

    @property
    def total_settled_amount(self) -> Decimal:
        return sum((c.settlement_amount for c in self._claims), ZERO)

    def search(self, text: str) -> list[Claim]:
        """Case-insensitive match on patient name or policy number."""
        if not text:
            return list(self._claims)
        needle = text.lower()
        return [
            c
            for c in self._claims
            if needle in c.patient_name.lower() or needle in c.policy_number.lower()
        ]

    def filter(
        self,
        status: Optional[ClaimStatus] = None,
        from_date: Optional[date | datetime] = None,
        to_date: Optional[date | datetime] = None,
        min_amount: Optional[Decimal | float | int] = None,
        max_amount: Optional[Decimal | float | int] = None,
    ) -> list[Claim]:
        """
        Claims matching every given criterion.

        Date bounds compare calendar dates and amount bounds compare the total
        bill amount; all bounds are inclusive.
        """
        start = _as_date(from_date) if from_date is not None else None
        end = _as_date(to_date) if to_date is not None else None
        low = Decimal(str(min_amount)) if min_amount is not None else None
        high = Decimal(str(max_amount)) if max_amount is not None else None

        result = []
        for claim in self._claims:
            claim_day = claim.claim_date.date()
            total = claim.total_bill_amount
            if status is not None and claim.status != status:
                continue
            if start is not None and claim_day < start:
                continue
            if end is not None and claim_day > end:
                continue
            if low is not None and total < low:
                continue
            if high is not None and total > high:
                continue
            result.append(claim)
        return result

    def sorted_by(
        self,
        field: ClaimSortField,
        ascending: bool = True,
        claims: Optional[Iterable[Claim]] = None,
    ) -> list[Claim]:
        """Sort ``claims`` (default: the whole collection). Status sorts in workflow order."""
        source = self._claims if claims is None else claims
        return sorted(source, key=_SORT_KEYS[field], reverse=not ascending)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _require(self, claim_id: str) -> Claim:
        claim = self.get_by_id(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")
        return claim

    def _require_editable(self, claim_id: str, message: str) -> Claim:
        claim = self._require(claim_id)
        if not claim.is_editable:
            raise InvalidStateError(message)
        return claim

    async def _save(self, claim: Claim, action: str) -> None:
        try:
            await self._store.put_claim(claim)
        except PersistenceError as e:
            raise PersistenceError(f"Failed to {action}: {e.message}") from e

    def _apply(self, claim: Claim, front: bool = False) -> None:
        for index, existing in enumerate(self._claims):
            if existing.id == claim.id:
                self._claims[index] = claim
                break
        else:
            if front:
                self._claims.insert(0, claim)
            else:
                self._claims.append(claim)
        self._notify()

    def _replace_all(self, claims: Iterable[Claim]) -> None:
        self._claims = sorted(claims, key=lambda c: c.created_at, reverse=True)
        self._notify()

    async def _commit(self, claim: Claim, action: str) -> RepositoryResult:
        """Persist ``claim`` then apply it locally. Raises PersistenceError."""
        await self._save(claim, action)
        self._apply(claim)
        logger.info(f"Claim {claim.id}: {action} committed")
        return RepositoryResult(success=True, claim=claim)

    # =========================================================================
    # Claim commands
    # =========================================================================

    async def create(
        self,
        patient_name: str,
        policy_number: str,
        claim_date: date | datetime,
        bills: Iterable[Bill] = (),
        advance_paid: Decimal | float | int = ZERO,
        settlement_amount: Decimal | float | int = ZERO,
    ) -> RepositoryResult:
        """
        Create a Draft claim.

        When the store write fails and the local fallback is enabled, the
        claim is kept locally and the result is successful but degraded.
        """
        self._clear_error()
        try:
            claim = Claim.create(
                patient_name=patient_name,
                policy_number=policy_number,
                claim_date=claim_date,
                bills=bills,
                advance_paid=_to_amount(advance_paid, "Advance amount"),
                settlement_amount=_to_amount(settlement_amount, "Settlement amount"),
                min_claim_date=self._settings.MIN_CLAIM_DATE,
            )
        except ValidationError as e:
            return self._fail("create claim", e)

        try:
            await self._save(claim, "create claim")
        except PersistenceError as e:
            if not self._settings.CREATE_LOCAL_FALLBACK:
                return self._fail("create claim", e)
            return await self._keep_locally(claim, e)

        self._apply(claim, front=True)
        logger.info(f"Claim created: {claim.id} for {claim.patient_name}")
        return RepositoryResult(success=True, claim=claim)

    async def _keep_locally(self, claim: Claim, error: PersistenceError) -> RepositoryResult:
        self.last_error = error
        self.is_degraded = True
        logger.warning(f"Store write failed, keeping claim {claim.id} locally: {error.message}")
        self._claims.insert(0, claim)
        await self._save_local(self._claims)
        self._notify()
        return RepositoryResult(success=True, claim=claim, error=error, degraded=True)

    async def update(self, claim: Claim) -> RepositoryResult:
        """
        Replace an editable claim's fields.

        Status, id and created_at always come from the stored claim.
        """
        self._clear_error()
        try:
            current = self._require_editable(
                claim.id, "Cannot edit claim that is not in draft status"
            )
            updated = current.with_changes(
                patient_name=claim.patient_name,
                policy_number=claim.policy_number,
                claim_date=claim.claim_date,
                bills=claim.bills,
                advance_paid=claim.advance_paid,
                settlement_amount=claim.settlement_amount,
            )
            errors = updated.creation_errors(min_claim_date=self._settings.MIN_CLAIM_DATE)
            if errors:
                raise ValidationError(errors[0], errors=errors)
            return await self._commit(updated, "update claim")
        except ClaimsError as e:
            return self._fail("update claim", e)

    async def delete(self, claim_id: str) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require_editable(
                claim_id, "Cannot delete claim that is not in draft status"
            )
            try:
                await self._store.delete_claim(claim_id)
            except PersistenceError as e:
                raise PersistenceError(f"Failed to delete claim: {e.message}") from e
        except ClaimsError as e:
            return self._fail("delete claim", e)

        self._claims = [c for c in self._claims if c.id != claim_id]
        self._notify()
        logger.info(f"Claim deleted: {claim_id}")
        return RepositoryResult(success=True, claim=claim)

    async def transition_status(self, claim_id: str, status: ClaimStatus) -> RepositoryResult:
        """Move a claim to ``status`` if the transition table allows it."""
        self._clear_error()
        try:
            claim = self._require(claim_id)
            if not claim.can_transition_to(status):
                raise InvalidTransitionError(
                    f"Invalid status transition from {claim.status.display_name} "
                    f"to {status.display_name}"
                )
            result = await self._commit(claim.with_status(status), "update status")
        except ClaimsError as e:
            return self._fail("update status", e)

        logger.info(f"Claim {claim_id} transitioned: {claim.status.value} -> {status.value}")
        return result

    # =========================================================================
    # Bill commands
    # =========================================================================

    async def add_bill(self, claim_id: str, bill: Bill) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require_editable(
                claim_id, "Cannot add bills to a claim that is not in draft status"
            )
            return await self._commit(claim.add_bill(bill), "add bill")
        except ClaimsError as e:
            return self._fail("add bill", e)

    async def update_bill(self, claim_id: str, bill: Bill) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require_editable(
                claim_id, "Cannot update bills in a claim that is not in draft status"
            )
            return await self._commit(_within_payments(claim.update_bill(bill)), "update bill")
        except ClaimsError as e:
            return self._fail("update bill", e)

    async def remove_bill(self, claim_id: str, bill_id: str) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require_editable(
                claim_id, "Cannot remove bills from a claim that is not in draft status"
            )
            return await self._commit(_within_payments(claim.remove_bill(bill_id)), "remove bill")
        except ClaimsError as e:
            return self._fail("remove bill", e)

    # =========================================================================
    # Payment commands
    # =========================================================================

    async def update_advance_paid(
        self, claim_id: str, amount: Decimal | float | int
    ) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require_editable(
                claim_id, "Cannot update advance in a claim that is not in draft status"
            )
            amount = _to_amount(amount, "Advance amount")
            if amount < ZERO:
                raise ValidationError("Advance amount cannot be negative")
            if amount > claim.total_bill_amount:
                raise ValidationError("Advance amount cannot exceed total bill amount")
            return await self._commit(claim.with_advance_paid(amount), "update advance")
        except ClaimsError as e:
            return self._fail("update advance", e)

    async def update_settlement_amount(
        self, claim_id: str, amount: Decimal | float | int
    ) -> RepositoryResult:
        self._clear_error()
        try:
            claim = self._require(claim_id)
            if claim.status not in SETTLEMENT_EDITABLE_STATUSES:
                raise InvalidStateError("Cannot update settlement in current claim status")
            amount = _to_amount(amount, "Settlement amount")
            if amount < ZERO:
                raise ValidationError("Settlement amount cannot be negative")
            if amount > claim.total_bill_amount - claim.advance_paid:
                raise ValidationError("Settlement amount cannot exceed pending amount")
            return await self._commit(
                claim.with_settlement_amount(amount), "update settlement"
            )
        except ClaimsError as e:
            return self._fail("update settlement", e)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def clear_all(self) -> RepositoryResult:
        """Delete every claim from the store."""
        self._clear_error()
        try:
            await self._store.delete_all()
        except PersistenceError as e:
            return self._fail("clear claims", PersistenceError(f"Failed to clear claims: {e.message}"))
        self._replace_all([])
        logger.info("All claims cleared")
        return RepositoryResult(success=True)

    async def add_sample_data(self) -> RepositoryResult:
        """Seed demonstration claims when the ledger is empty."""
        self._clear_error()
        if self._claims:
            return RepositoryResult(success=True)
        samples = generate_sample_claims()
        try:
            await self._store.put_many(samples)
        except PersistenceError as e:
            return self._fail(
                "add sample data", PersistenceError(f"Failed to add sample data: {e.message}")
            )
        if not self._claims:
            self._replace_all(samples)
        logger.info(f"Sample data added ({len(samples)} claims)")
        return RepositoryResult(success=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """
        Subscribe to the store and load the first snapshot.

        Falls back to the local cache when the store cannot be reached within
        STARTUP_TIMEOUT_SECONDS.
        """
        if self._subscription is not None:
            return
        self.is_loading = True
        try:
            self._subscription = await asyncio.wait_for(
                self._store.subscribe(self._on_snapshot, self._on_store_error),
                timeout=self._settings.STARTUP_TIMEOUT_SECONDS,
            )
        except PersistenceError as e:
            await self._fall_back_to_local(e)
            return
        except asyncio.TimeoutError:
            await self._fall_back_to_local(
                PersistenceError("Timed out waiting for the claim store")
            )
            return
        finally:
            self.is_loading = False

        if not self._claims and self._settings.SEED_SAMPLE_DATA:
            result = await self.add_sample_data()
            if not result.success:
                logger.warning(f"Could not seed sample data: {result.error_message}")

    async def close(self) -> None:
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None
        self._listeners.clear()
        logger.info("Claims repository closed")

    async def _on_snapshot(self, claims: list[Claim]) -> None:
        if self.is_degraded:
            logger.info("Claim store reachable again, leaving local fallback")
        self.is_degraded = False
        self.is_initialized = True
        self._replace_all(claims)
        logger.debug(f"Claim snapshot received ({len(claims)} claims)")

    async def _on_store_error(self, error: PersistenceError) -> None:
        await self._fall_back_to_local(error)

    async def _fall_back_to_local(self, error: PersistenceError) -> None:
        self.last_error = PersistenceError(f"Failed to load claims from store: {error.message}")
        self.is_degraded = True
        logger.error(f"Claim store unavailable, using local cache: {error.message}")

        claims: list[Claim] = []
        if self._local_cache is not None:
            try:
                claims = await self._local_cache.load_all()
            except PersistenceError as e:
                logger.error(f"Local claim cache unusable: {e.message}")

        if not claims and self._settings.SEED_SAMPLE_DATA:
            claims = generate_sample_claims()
            await self._save_local(claims)

        self.is_initialized = True
        self._replace_all(claims)

    async def _save_local(self, claims: Iterable[Claim]) -> None:
        if self._local_cache is None:
            return
        try:
            await self._local_cache.save_all(claims)
        except PersistenceError as e:
            logger.error(f"Could not update local claim cache: {e.message}")
