"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

# Make the project root importable as ``src``
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.config import ClaimsSettings  # noqa: E402
from src.core.enums import ClaimStatus  # noqa: E402
from src.schemas.claim import Bill, Claim  # noqa: E402
from src.services.claims_repository import ClaimsRepository  # noqa: E402
from src.services.persistence import InMemoryClaimStore, JsonFileClaimCache  # noqa: E402


@pytest.fixture
def now():
    """A fixed reference time for deterministic claims."""
    return datetime(2026, 3, 15, 10, 30)


@pytest.fixture
def claims_settings(tmp_path):
    """Ledger settings for tests: no seeding, cache in a temp directory."""
    return ClaimsSettings(
        SEED_SAMPLE_DATA=False,
        LOCAL_CACHE_PATH=str(tmp_path / "claims_cache.json"),
        STARTUP_TIMEOUT_SECONDS=2.0,
    )


@pytest.fixture
def memory_store():
    """Empty in-memory claim store."""
    return InMemoryClaimStore()


@pytest.fixture
def local_cache(claims_settings):
    """JSON file cache at the configured temp path."""
    return JsonFileClaimCache(claims_settings.LOCAL_CACHE_PATH)


@pytest.fixture
def repository(memory_store, local_cache, claims_settings):
    """Repository over the in-memory store (not started)."""
    return ClaimsRepository(
        store=memory_store,
        local_cache=local_cache,
        settings=claims_settings,
    )


@pytest.fixture
def make_claim(now):
    """Factory for claims in any status, bypassing creation rules."""

    def _make(
        patient_name: str = "Rajesh Kumar",
        policy_number: str = "POL123456",
        amounts=(500, 1200, 800),
        advance_paid=0,
        settlement_amount=0,
        status: ClaimStatus = ClaimStatus.DRAFT,
        days_ago: int = 5,
        **overrides,
    ) -> Claim:
        created = now - timedelta(days=days_ago)
        data = dict(
            patient_name=patient_name,
            policy_number=policy_number,
            claim_date=created,
            bills=tuple(
                Bill(description=f"Bill item {i + 1}", amount=Decimal(str(a)))
                for i, a in enumerate(amounts)
            ),
            advance_paid=Decimal(str(advance_paid)),
            settlement_amount=Decimal(str(settlement_amount)),
            status=status,
            created_at=created,
            updated_at=created,
        )
        data.update(overrides)
        return Claim(**data)

    return _make


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
