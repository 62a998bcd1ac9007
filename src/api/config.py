"""
Service Configuration
Environment-driven settings for the claims ledger HTTP service. Ledger
behaviour (storage backend, fallbacks, analytics windows) lives in
``src.core.config``.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import json
from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    HTTP service settings.

    Read from the process environment and an optional ``.env`` file; unknown
    keys are ignored so the same file can carry CLAIMS_ ledger settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # Service Identity
    # ============================================================================
    APP_NAME: str = Field(default="Hospital Claims Ledger API", description="Service title")
    APP_VERSION: str = Field(default="1.0.0", description="Reported service version")
    ENVIRONMENT: Literal["development", "staging", "production", "testing"] = Field(
        default="development",
        description="Deployment stage; production hides the interactive docs",
    )

    # ============================================================================
    # Logging
    # ============================================================================
    LOG_LEVEL: str = Field(default="INFO", description="Minimum level written to the sinks")
    LOG_FILE: Optional[str] = Field(default=None, description="Rotating log file, if any")
    LOG_JSON: Optional[bool] = Field(
        default=None,
        description="Serialize log records; defaults to on in production",
    )

    # ============================================================================
    # Redis (claim store backend)
    # ============================================================================
    REDIS_HOST: str = Field(default="redis", description="Redis host")
    REDIS_PORT: int = Field(default=6379, description="Redis port")
    REDIS_DB: int = Field(default=0, description="Redis logical database")
    REDIS_PASSWORD: Optional[str] = Field(default=None, description="Redis password")
    REDIS_URL: Optional[str] = Field(default=None, description="Full URL; overrides the parts")

    # ============================================================================
    # CORS (dashboard front ends)
    # ============================================================================
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:8501", "http://localhost:3000"],
        description="Origins allowed to call the API",
    )
    CORS_CREDENTIALS: bool = Field(default=True, description="Allow cookies and auth headers")
    CORS_METHODS: list[str] = Field(default=["*"], description="Allowed HTTP methods")
    CORS_HEADERS: list[str] = Field(default=["*"], description="Allowed request headers")

    @field_validator("CORS_ORIGINS", "CORS_METHODS", "CORS_HEADERS", mode="before")
    @classmethod
    def split_list_setting(cls, v: Any) -> Any:
        """Accept a JSON array or a comma-separated string."""
        if not isinstance(v, str):
            return v
        text = v.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return parsed
        return [item.strip() for item in text.split(",") if item.strip()]

    @property
    def redis_url(self) -> str:
        """REDIS_URL, or a URL assembled from host, port, db and password."""
        if self.REDIS_URL:
            return self.REDIS_URL
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def json_logs(self) -> bool:
        return self.is_production if self.LOG_JSON is None else self.LOG_JSON


@lru_cache
def get_settings() -> Settings:
    """Settings for the running service, read once."""
    return Settings()


settings = get_settings()
