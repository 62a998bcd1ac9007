"""
Unit tests for demonstration claims.
"""

from datetime import date
from decimal import Decimal

from src.core.enums import ClaimStatus
from src.services.sample_data import SAMPLE_CLAIMS, generate_sample_claims


def test_every_sample_is_built(now):
    claims = generate_sample_claims(now=now)
    assert len(claims) == len(SAMPLE_CLAIMS) == 13


def test_newest_first(now):
    claims = generate_sample_claims(now=now)
    created = [c.created_at for c in claims]
    assert created == sorted(created, reverse=True)
    assert claims[0].patient_name == "Arjun Reddy"


def test_samples_cover_every_status(now):
    statuses = {c.status for c in generate_sample_claims(now=now)}
    assert statuses == set(ClaimStatus)


def test_samples_pass_creation_rules(now):
    """Dates are in the past and payments stay within the bills."""
    for claim in generate_sample_claims(now=now):
        assert claim.creation_errors(min_claim_date=date(2000, 1, 1), today=now.date()) == []


def test_settled_sample_is_fully_paid(now):
    vikram = next(c for c in generate_sample_claims(now=now) if c.patient_name == "Vikram Singh")
    assert vikram.total_bill_amount == Decimal("48000")
    assert vikram.is_fully_settled
