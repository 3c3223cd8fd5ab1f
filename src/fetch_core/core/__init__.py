"""Core fetch-core модули."""

from .config import (
    DEFAULT_USER_AGENT,
    TimeoutConfig,
    RetryOptions,
    ResolverConfig,
    FetchClientConfig,
)
from .retry_engine import RetryEngine, RetryState
from .exceptions import (
    FetchCoreException,
    ErrorKind,
    TransportError,
    FetchError,
    TooManyRedirectsError,
    ConfigurationError,
    classify_httpx_exception,
)
from .resolver import ResolverCache, ResolvedAddress, CachedLookupBackend
from .proxy import EnvProxyConfig
from .middleware import Middleware, RetryMiddleware, RedirectMiddleware, compose
from .transport import ConnectionTransport, DispatchTransport
from .http_client import HttpClient
from .fetch import fetch_with_log, RequestOptions, DEFAULT_REQUEST_OPTIONS

__all__ = [
    # Config
    "DEFAULT_USER_AGENT",
    "TimeoutConfig",
    "RetryOptions",
    "ResolverConfig",
    "FetchClientConfig",
    # Retry
    "RetryEngine",
    "RetryState",
    # Pipeline
    "ResolverCache",
    "ResolvedAddress",
    "CachedLookupBackend",
    "EnvProxyConfig",
    "Middleware",
    "RetryMiddleware",
    "RedirectMiddleware",
    "compose",
    "ConnectionTransport",
    "DispatchTransport",
    # Core
    "HttpClient",
    "fetch_with_log",
    "RequestOptions",
    "DEFAULT_REQUEST_OPTIONS",
    # Exceptions
    "FetchCoreException",
    "ErrorKind",
    "TransportError",
    "FetchError",
    "TooManyRedirectsError",
    "ConfigurationError",
    "classify_httpx_exception",
]
