"""
Configuration loader from environment variables and .env files.
"""

from typing import Any, Optional

from pydantic import ValidationError

from ..config import FetchClientConfig, ResolverConfig, RetryOptions, TimeoutConfig
from ..exceptions import ConfigurationError
from ..logging.config import LoggingConfig
from .validator import FetchSettings


def load_from_env(env_file: Optional[str] = None, **overrides: Any) -> FetchClientConfig:
    """
    Load FetchClientConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters (same names as FetchSettings fields)
    2. Environment variables (FETCH_CORE_*)
    3. .env file
    4. Defaults

    Raises:
        ConfigurationError: Invalid values in environment, .env or overrides

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.ci", retry_max_retries=2)
    """
    try:
        if env_file is not None:
            settings = FetchSettings(_env_file=env_file, **overrides)
        else:
            settings = FetchSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid fetch-core settings: {e}") from e

    retry = RetryOptions(
        max_retries=settings.retry_max_retries,
        min_timeout=settings.retry_min_timeout,
        max_timeout=settings.retry_max_timeout,
        timeout_factor=settings.retry_timeout_factor,
        methods=frozenset(settings.retry_methods.split(',')),
    )

    resolver = ResolverConfig(
        enabled=settings.dns_cache,
        max_ttl=settings.dns_max_ttl,
        fallback_duration=settings.dns_fallback_duration,
    )

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_file=settings.log_file_path is not None,
            file_path=settings.log_file_path,
        )

    return FetchClientConfig(
        headers={'User-Agent': settings.user_agent},
        timeout=TimeoutConfig(
            connect=settings.timeout_connect,
            read=settings.timeout_read,
            pool=settings.timeout_pool,
        ),
        retry=retry,
        max_redirects=settings.max_redirects,
        resolver=resolver,
        trust_env=settings.trust_env,
        verify_ssl=settings.verify_ssl,
        logging=logging_config,
    )
