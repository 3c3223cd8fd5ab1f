"""
Structured logging for fetch-core.

Example:
    >>> from fetch_core.core.logging import LoggingConfig
    >>> config = FetchClientConfig(logging=LoggingConfig.create(level="DEBUG", format="json"))
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import FetchLogger
from .formatters import JSONFormatter, TextFormatter, ColoredFormatter, get_formatter
from .filters import (
    RequestIdFilter,
    ExtraFieldsFilter,
    set_request_id,
    get_request_id,
    reset_request_id,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "FetchLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "ColoredFormatter",
    "get_formatter",
    # Filters
    "RequestIdFilter",
    "ExtraFieldsFilter",
    "set_request_id",
    "get_request_id",
    "reset_request_id",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
