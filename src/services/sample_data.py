"""
Demonstration claims seeded into an empty ledger.

Claim dates are relative to ``now`` so the dashboard always shows recent
activity. Each sample's ``created_at`` is its claim date.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from src.core.enums import ClaimStatus
from src.schemas.claim import Bill, Claim

# (patient, policy, days ago, bills, advance, settlement, status)
SAMPLE_CLAIMS: list[tuple] = [
    (
        "Rajesh Kumar", "POL123456", 5,
        [("Consultation Fee", 500), ("Blood Tests", 1200), ("X-Ray", 800)],
        500, 0, ClaimStatus.DRAFT,
    ),
    (
        "Priya Sharma", "POL789012", 10,
        [("Surgery", 50000), ("Hospital Stay (3 days)", 15000), ("Medications", 5000)],
        20000, 0, ClaimStatus.SUBMITTED,
    ),
    (
        "Amit Patel", "POL345678", 15,
        [("Emergency Treatment", 25000), ("ICU Charges", 30000)],
        10000, 0, ClaimStatus.APPROVED,
    ),
    (
        "Sunita Verma", "POL901234", 20,
        [
            ("Chemotherapy Session 1", 40000),
            ("Chemotherapy Session 2", 40000),
            ("Supportive Care", 10000),
        ],
        30000, 30000, ClaimStatus.PARTIALLY_SETTLED,
    ),
    (
        "Vikram Singh", "POL567890", 30,
        [("Appendix Surgery", 35000), ("Hospital Stay", 10000), ("Post-op Medications", 3000)],
        15000, 33000, ClaimStatus.SETTLED,
    ),
    (
        "Meera Nair", "POL234567", 25,
        [("Cosmetic Procedure", 75000)],
        0, 0, ClaimStatus.REJECTED,
    ),
    (
        "Arjun Reddy", "POL112233", 2,
        [
            ("MRI Scan", 8500),
            ("Neurologist Consultation", 1500),
            ("Prescription Medicines", 2200),
        ],
        3000, 0, ClaimStatus.DRAFT,
    ),
    (
        "Kavita Gupta", "POL445566", 8,
        [
            ("Cardiac Surgery", 150000),
            ("ICU Stay (5 days)", 75000),
            ("Post-Surgery Care", 25000),
            ("Medications", 15000),
        ],
        100000, 0, ClaimStatus.SUBMITTED,
    ),
    (
        "Rahul Mehta", "POL778899", 12,
        [
            ("Knee Replacement Surgery", 200000),
            ("Hospital Stay (7 days)", 35000),
            ("Physiotherapy (10 sessions)", 15000),
        ],
        80000, 120000, ClaimStatus.PARTIALLY_SETTLED,
    ),
    (
        "Ananya Krishnan", "POL334455", 18,
        [
            ("Maternity - Delivery", 45000),
            ("Hospital Stay (3 days)", 18000),
            ("Newborn Care", 8000),
        ],
        20000, 51000, ClaimStatus.SETTLED,
    ),
    (
        "Deepak Joshi", "POL667788", 3,
        [
            ("Diabetes Checkup", 3500),
            ("Blood Sugar Tests", 800),
            ("Eye Examination", 1200),
            ("Monthly Insulin Supply", 2500),
        ],
        0, 0, ClaimStatus.APPROVED,
    ),
    (
        "Sneha Agarwal", "POL990011", 35,
        [("Dental Implants (4 units)", 120000), ("Bone Grafting", 25000)],
        50000, 0, ClaimStatus.REJECTED,
    ),
    (
        "Mohammed Farooq", "POL223344", 7,
        [
            ("Dialysis Session 1", 5000),
            ("Dialysis Session 2", 5000),
            ("Dialysis Session 3", 5000),
            ("Nephrologist Consultation", 2000),
            ("Lab Tests", 3500),
        ],
        8000, 0, ClaimStatus.SUBMITTED,
    ),
]


def generate_sample_claims(now: Optional[datetime] = None) -> list[Claim]:
    """Build the demonstration claims, newest first."""
    now = now or datetime.now()
    claims = []
    for patient, policy, days_ago, bills, advance, settlement, status in SAMPLE_CLAIMS:
        claim_date = now - timedelta(days=days_ago)
        claims.append(
            Claim(
                patient_name=patient,
                policy_number=policy,
                claim_date=claim_date,
                bills=tuple(
                    Bill(description=description, amount=Decimal(amount), created_at=claim_date)
                    for description, amount in bills
                ),
                advance_paid=Decimal(advance),
                settlement_amount=Decimal(settlement),
                status=status,
                created_at=claim_date,
                updated_at=claim_date,
            )
        )
    claims.sort(key=lambda c: c.created_at, reverse=True)
    return claims
