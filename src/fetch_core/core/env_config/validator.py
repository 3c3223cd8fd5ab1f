"""
Pydantic settings model for environment configuration.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetchSettings(BaseSettings):
    """
    fetch-core configuration from environment variables.

    Reads from:
    1. Environment variables (FETCH_CORE_*)
    2. .env file
    3. Defaults

    Example .env file:
        FETCH_CORE_RETRY_MAX_RETRIES=5
        FETCH_CORE_RETRY_MIN_TIMEOUT=10
        FETCH_CORE_MAX_REDIRECTS=5
        FETCH_CORE_DNS_CACHE=true
        FETCH_CORE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix='FETCH_CORE_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    user_agent: str = Field(default='curl/8.9.1 (https://github.com/SukkaW/Surge)')

    # Timeouts
    timeout_connect: float = Field(default=10.0, gt=0)
    timeout_read: float = Field(default=30.0, gt=0)
    timeout_pool: Optional[float] = Field(default=None, gt=0)

    # Retry
    retry_max_retries: int = Field(default=5, ge=0, le=20)
    retry_min_timeout: float = Field(default=10.0, ge=0)
    retry_max_timeout: float = Field(default=30.0, ge=0)
    retry_timeout_factor: float = Field(default=2.0, ge=1.0)
    retry_methods: str = Field(
        default='GET,HEAD,OPTIONS,PUT,DELETE,TRACE',
        description="Comma separated list of retryable methods",
    )

    # Redirects / DNS / network
    max_redirects: int = Field(default=5, ge=0)
    dns_cache: bool = Field(default=True)
    dns_max_ttl: Optional[float] = Field(default=None, ge=0)
    dns_fallback_duration: float = Field(default=3600.0, ge=0)
    trust_env: bool = Field(default=True)
    verify_ssl: bool = Field(default=True)

    # Logging
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text", "colored"] = Field(default="colored")
    log_file_path: Optional[str] = None

    @field_validator('retry_methods')
    @classmethod
    def validate_methods(cls, v: str) -> str:
        """Validate that at least one method is given."""
        methods = [m.strip() for m in v.split(',') if m.strip()]
        if not methods:
            raise ValueError("retry_methods must list at least one method")
        return ','.join(m.upper() for m in methods)

    @field_validator('retry_max_timeout')
    @classmethod
    def validate_max_timeout(cls, v: float, info) -> float:
        """Validate max_timeout >= min_timeout."""
        min_timeout = info.data.get('retry_min_timeout', 0)
        if v < min_timeout:
            raise ValueError(
                f"retry_max_timeout ({v}) must be >= retry_min_timeout ({min_timeout})"
            )
        return v
