"""
Claims API Endpoints.

Provides:
- Claim CRUD operations (draft-only editing)
- Status transitions
- Bill management
- Advance and settlement payments
- Single-claim text report

Repository errors map to HTTP through ``to_http_exception``.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from src.api.deps import get_ledger_settings, get_repository
from src.core.config import ClaimsSettings
from src.core.enums import ClaimSortField, ClaimStatus, ExportFormat
from src.schemas.claim import (
    AmountChange,
    Bill,
    BillCreate,
    Claim,
    ClaimCreate,
    ClaimListResponse,
    ClaimMutationResponse,
    ClaimResponse,
    ClaimUpdate,
    StatusChange,
)
from src.services.claims_repository import ClaimsRepository, RepositoryResult
from src.utils.errors import ClaimsError, NotFoundError, to_http_exception
from src.utils.export_formatters import (
    format_claim_report,
    generate_filename,
    get_content_type,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


# =============================================================================
# Helpers
# =============================================================================


def _require_claim(repository: ClaimsRepository, claim_id: str) -> Claim:
    claim = repository.get_by_id(claim_id)
    if claim is None:
        raise to_http_exception(NotFoundError(f"Claim not found: {claim_id}"))
    return claim


def _mutation_response(result: RepositoryResult) -> ClaimMutationResponse:
    if not result.success:
        raise to_http_exception(result.error)
    return ClaimMutationResponse(
        claim=ClaimResponse.from_claim(result.claim) if result.claim else None,
        degraded=result.degraded,
        warning=result.error_message if result.degraded else None,
    )


# =============================================================================
# Query Endpoints
# =============================================================================


@router.get("", response_model=ClaimListResponse)
async def list_claims(
    search: Optional[str] = Query(None, description="Patient name or policy number"),
    claim_status: Optional[ClaimStatus] = Query(None, alias="status"),
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    sort_by: ClaimSortField = ClaimSortField.CREATED_AT,
    ascending: bool = False,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimListResponse:
    """List claims with optional search, filters and sorting."""
    claims = repository.filter(
        status=claim_status,
        from_date=from_date,
        to_date=to_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    if search:
        matched = {c.id for c in repository.search(search)}
        claims = [c for c in claims if c.id in matched]

    claims = repository.sorted_by(sort_by, ascending=ascending, claims=claims)
    return ClaimListResponse(
        items=[ClaimResponse.from_claim(c) for c in claims],
        total=len(claims),
    )


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: str,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimResponse:
    """Get a claim by ID."""
    return ClaimResponse.from_claim(_require_claim(repository, claim_id))


# =============================================================================
# CRUD Endpoints
# =============================================================================


@router.post(
    "",
    response_model=ClaimMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_claim(
    claim_data: ClaimCreate,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """
    Create a new claim in DRAFT status.

    If the store is unavailable the claim may still be kept locally; the
    response then has ``degraded`` set and carries the storage warning.
    """
    try:
        bills = [Bill.create(b.description, b.amount) for b in claim_data.bills]
    except ClaimsError as e:
        raise to_http_exception(e)

    result = await repository.create(
        patient_name=claim_data.patient_name,
        policy_number=claim_data.policy_number,
        claim_date=claim_data.claim_date,
        bills=bills,
        advance_paid=claim_data.advance_paid,
        settlement_amount=claim_data.settlement_amount,
    )
    return _mutation_response(result)


@router.put("/{claim_id}", response_model=ClaimMutationResponse)
async def update_claim(
    claim_id: str,
    update_data: ClaimUpdate,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Update a draft claim's patient, policy, date or payment fields."""
    current = _require_claim(repository, claim_id)
    changes = update_data.model_dump(exclude_none=True)
    try:
        candidate = current.with_changes(**changes)
    except ClaimsError as e:
        raise to_http_exception(e)

    return _mutation_response(await repository.update(candidate))


@router.delete("/{claim_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_claim(
    claim_id: str,
    repository: ClaimsRepository = Depends(get_repository),
) -> Response:
    """Delete a claim (only allowed for DRAFT status)."""
    _mutation_response(await repository.delete(claim_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Workflow Endpoints
# =============================================================================


@router.post("/{claim_id}/status", response_model=ClaimMutationResponse)
async def change_status(
    claim_id: str,
    change: StatusChange,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Move a claim to a new status along the approval workflow."""
    return _mutation_response(await repository.transition_status(claim_id, change.status))


@router.get("/{claim_id}/transitions", response_model=list[ClaimStatus])
async def get_valid_transitions(
    claim_id: str,
    repository: ClaimsRepository = Depends(get_repository),
) -> list[ClaimStatus]:
    """Statuses the claim can move to next."""
    return _require_claim(repository, claim_id).valid_next_statuses


# =============================================================================
# Bill Endpoints
# =============================================================================


@router.post(
    "/{claim_id}/bills",
    response_model=ClaimMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_bill(
    claim_id: str,
    bill_data: BillCreate,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Add a bill to a draft claim."""
    try:
        bill = Bill.create(bill_data.description, bill_data.amount)
    except ClaimsError as e:
        raise to_http_exception(e)
    return _mutation_response(await repository.add_bill(claim_id, bill))


@router.put("/{claim_id}/bills/{bill_id}", response_model=ClaimMutationResponse)
async def update_bill(
    claim_id: str,
    bill_id: str,
    bill_data: BillCreate,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Replace a bill's description and amount."""
    existing = _require_claim(repository, claim_id).get_bill(bill_id)
    if existing is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bill not found: {bill_id}",
        )
    try:
        bill = existing.with_changes(description=bill_data.description, amount=bill_data.amount)
    except ClaimsError as e:
        raise to_http_exception(e)
    return _mutation_response(await repository.update_bill(claim_id, bill))


@router.delete("/{claim_id}/bills/{bill_id}", response_model=ClaimMutationResponse)
async def remove_bill(
    claim_id: str,
    bill_id: str,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Remove a bill from a draft claim. Unknown bill ids are ignored."""
    return _mutation_response(await repository.remove_bill(claim_id, bill_id))


# =============================================================================
# Payment Endpoints
# =============================================================================


@router.put("/{claim_id}/advance", response_model=ClaimMutationResponse)
async def update_advance(
    claim_id: str,
    change: AmountChange,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Set the advance paid on a draft claim."""
    return _mutation_response(await repository.update_advance_paid(claim_id, change.amount))


@router.put("/{claim_id}/settlement", response_model=ClaimMutationResponse)
async def update_settlement(
    claim_id: str,
    change: AmountChange,
    repository: ClaimsRepository = Depends(get_repository),
) -> ClaimMutationResponse:
    """Set the settlement amount (Draft, Approved or Partially Settled claims)."""
    return _mutation_response(
        await repository.update_settlement_amount(claim_id, change.amount)
    )


# =============================================================================
# Report Endpoint
# =============================================================================


@router.get("/{claim_id}/report")
async def get_claim_report(
    claim_id: str,
    repository: ClaimsRepository = Depends(get_repository),
    ledger_settings: ClaimsSettings = Depends(get_ledger_settings),
) -> Response:
    """Download a plain-text report for one claim."""
    claim = _require_claim(repository, claim_id)
    content = format_claim_report(claim, currency_symbol=ledger_settings.CURRENCY_SYMBOL)
    filename = generate_filename(ExportFormat.TEXT, claim=claim)
    return Response(
        content=content,
        media_type=f"{get_content_type(ExportFormat.TEXT)}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
