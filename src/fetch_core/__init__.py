"""fetch-core - resilient outbound HTTP fetch layer: DNS cache, retry, redirects."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.http_client import HttpClient
from .core.fetch import fetch_with_log, RequestOptions, DEFAULT_REQUEST_OPTIONS
from .core.config import (
    DEFAULT_USER_AGENT,
    FetchClientConfig,
    TimeoutConfig,
    RetryOptions,
    ResolverConfig,
)
from .core.exceptions import (
    FetchCoreException,
    ErrorKind,
    TransportError,
    FetchError,
    TooManyRedirectsError,
    ConfigurationError,
)
from .core.middleware import Middleware, RetryMiddleware, RedirectMiddleware
from .core.resolver import ResolverCache, ResolvedAddress

# Set up logging - add NullHandler to prevent "No handler found" warnings
# Users can configure logging themselves using logging.getLogger('fetch_core')
logging.getLogger('fetch_core').addHandler(logging.NullHandler())

# Version info - read from package metadata (single source of truth in pyproject.toml)
try:
    __version__ = version("fetch-core")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    # Core
    "HttpClient",
    "fetch_with_log",
    "RequestOptions",
    "DEFAULT_REQUEST_OPTIONS",

    # Config
    "DEFAULT_USER_AGENT",
    "FetchClientConfig",
    "TimeoutConfig",
    "RetryOptions",
    "ResolverConfig",

    # Exceptions
    "FetchCoreException",
    "ErrorKind",
    "TransportError",
    "FetchError",
    "TooManyRedirectsError",
    "ConfigurationError",

    # Pipeline
    "Middleware",
    "RetryMiddleware",
    "RedirectMiddleware",
    "ResolverCache",
    "ResolvedAddress",

    # Version
    "__version__",
]
