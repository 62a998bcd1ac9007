"""
Claims Ledger Configuration
Domain and storage settings for the hospital claims ledger.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from datetime import date
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import StorageBackend


class ClaimsSettings(BaseSettings):
    """
    Claims ledger configuration settings.

    All values can be overridden with CLAIMS_-prefixed environment variables,
    e.g. CLAIMS_STORAGE_BACKEND=redis.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="CLAIMS_",
    )

    # =========================================================================
    # Storage Configuration
    # =========================================================================
    STORAGE_BACKEND: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Primary claim store: memory (in-process) or redis",
    )
    REDIS_KEY: str = Field(
        default="claims",
        description="Redis hash holding one JSON document per claim",
    )
    REDIS_CHANNEL: str = Field(
        default="claims:changes",
        description="Redis pub/sub channel announcing claim writes",
    )
    LOCAL_CACHE_PATH: Optional[str] = Field(
        default="data/claims_cache.json",
        description="Local JSON fallback file; empty disables the local cache",
    )
    STARTUP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="How long to wait for the first store snapshot",
    )

    # =========================================================================
    # Repository Behaviour
    # =========================================================================
    CREATE_LOCAL_FALLBACK: bool = Field(
        default=True,
        description="Keep a newly created claim locally when the store write fails",
    )
    SEED_SAMPLE_DATA: bool = Field(
        default=True,
        description="Seed demonstration claims into an empty store",
    )

    # =========================================================================
    # Validation
    # =========================================================================
    MIN_CLAIM_DATE: date = Field(
        default=date(2000, 1, 1),
        description="Earliest accepted claim date",
    )

    # =========================================================================
    # Analytics and Display
    # =========================================================================
    RECENT_WINDOW_DAYS: int = Field(
        default=7,
        ge=1,
        description="Trailing window for the recent-claims count",
    )
    TREND_MONTHS: int = Field(
        default=6,
        ge=1,
        le=24,
        description="Months covered by the creation trend histogram",
    )
    CURRENCY_SYMBOL: str = Field(default="₹", description="Display currency symbol")

    @field_validator("LOCAL_CACHE_PATH")
    @classmethod
    def empty_path_disables_cache(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty path as no local cache."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def local_cache_enabled(self) -> bool:
        return self.LOCAL_CACHE_PATH is not None


# Singleton instance
_claims_settings: Optional[ClaimsSettings] = None


def get_claims_settings() -> ClaimsSettings:
    """
    Get cached claims settings instance.

    Returns:
        ClaimsSettings instance
    """
    global _claims_settings
    if _claims_settings is None:
        _claims_settings = ClaimsSettings()
    return _claims_settings
