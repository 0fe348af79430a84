"""Configuration management for Courier."""

import logging
import warnings
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Courier configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the COURIER_ prefix. For example:
        COURIER_QDRANT_URL=http://localhost:6333
        COURIER_WEBHOOK_TIMEOUT_SECONDS=5

    Security Notes:
        - In production (COURIER_ENV=production), an encryption key is required
        - A missing cron secret in production leaves the cron endpoints open
          and logs a warning
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Storage
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant connection URL",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        description="Qdrant API key (for cloud)",
    )
    collection_prefix: str = Field(
        default="courier",
        description="Prefix for Qdrant collection names",
    )

    # Secrets at rest
    encryption_key: str | None = Field(
        default=None,
        description=(
            "Fernet key used to encrypt webhook signing secrets at rest. "
            "Generate with: python -c "
            '"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
        ),
    )

    # Dispatch
    webhook_providers: list[str] = Field(
        default_factory=lambda: ["zapier", "make"],
        description="Providers checked for a connected receiver on every dispatch",
    )
    webhook_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Hard timeout for a single delivery attempt",
    )
    max_concurrent_deliveries: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum concurrent HTTP attempts per dispatcher",
    )

    # Retries
    retry_delays_seconds: list[int] = Field(
        default_factory=lambda: [5, 30, 120],
        description=(
            "Backoff table indexed by attempt number. The last value repeats "
            "beyond the table; max attempts is 1 + len(table)."
        ),
    )
    retry_batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum retrying logs processed per tenant per sweep",
    )

    # Housekeeping
    log_retention_days: int = Field(
        default=30,
        ge=1,
        description="Delivery logs older than this are purged",
    )
    cleanup_batch_size: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Maximum logs deleted per tenant per cleanup run",
    )

    # Worker
    retry_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="Seconds between retry sweeps in the worker loop",
    )
    cleanup_interval_seconds: int = Field(
        default=86400,
        ge=60,
        description="Seconds between housekeeping runs in the worker loop",
    )

    # Cron endpoints
    cron_secret: str | None = Field(
        default=None,
        description="Bearer token required by the cron endpoints",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    model_config = {
        "env_prefix": "COURIER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @field_validator("retry_delays_seconds")
    @classmethod
    def validate_retry_delays(cls, value: list[int]) -> list[int]:
        """Backoff table must be non-empty and strictly positive."""
        if not value:
            raise ValueError("retry_delays_seconds must contain at least one delay")
        if any(delay <= 0 for delay in value):
            raise ValueError("retry_delays_seconds values must be positive")
        return value

    @field_validator("webhook_providers")
    @classmethod
    def validate_providers(cls, value: list[str]) -> list[str]:
        """Drop duplicates while keeping the configured order."""
        return list(dict.fromkeys(p.strip() for p in value if p.strip()))

    @model_validator(mode="after")
    def validate_security_settings(self) -> "Settings":
        """Validate security settings based on environment."""
        if self.env != "production":
            return self

        if self.encryption_key is None:
            raise ValueError(
                "COURIER_ENCRYPTION_KEY must be set in production. "
                "Generate one with: python -c "
                '"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
            )

        if self.cron_secret is None:
            warnings.warn(
                "COURIER_CRON_SECRET is not set in production. "
                "Cron endpoints will accept unauthenticated requests.",
                UserWarning,
                stacklevel=2,
            )
            logger.warning("Cron endpoints are unauthenticated in production")

        return self

    @property
    def max_attempts(self) -> int:
        """Initial attempt plus one retry per backoff slot."""
        return 1 + len(self.retry_delays_seconds)


# Global settings instance
settings = Settings()
