"""
Claim persistence backends.

Provides:
- ClaimStore / LocalClaimCache contracts
- In-memory and Redis claim stores
- JSON file fallback cache
"""

from typing import Optional

from src.core.config import ClaimsSettings
from src.core.enums import StorageBackend
from src.services.persistence.base import (
    ClaimStore,
    ErrorHandler,
    LocalClaimCache,
    SnapshotHandler,
    Subscription,
)
from src.services.persistence.local_file import JsonFileClaimCache
from src.services.persistence.memory import InMemoryClaimStore
from src.services.persistence.redis_store import RedisClaimStore


def build_claim_store(claims_settings: ClaimsSettings, redis_url: str) -> ClaimStore:
    """Create the configured primary store."""
    if claims_settings.STORAGE_BACKEND == StorageBackend.REDIS:
        return RedisClaimStore.from_url(
            redis_url,
            key=claims_settings.REDIS_KEY,
            channel=claims_settings.REDIS_CHANNEL,
        )
    return InMemoryClaimStore()


def build_local_cache(claims_settings: ClaimsSettings) -> Optional[LocalClaimCache]:
    """Create the fallback cache, or None when it is disabled."""
    if not claims_settings.local_cache_enabled:
        return None
    return JsonFileClaimCache(claims_settings.LOCAL_CACHE_PATH)


__all__ = [
    "ClaimStore",
    "ErrorHandler",
    "InMemoryClaimStore",
    "JsonFileClaimCache",
    "LocalClaimCache",
    "RedisClaimStore",
    "SnapshotHandler",
    "Subscription",
    "build_claim_store",
    "build_local_cache",
]
