"""
Structured logger used by HttpClient when LoggingConfig is provided.
"""

import logging
from typing import Any, Optional

from .config import LoggingConfig, LogLevel
from .formatters import get_formatter
from .filters import ExtraFieldsFilter, RequestIdFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data


class FetchLogger:
    """
    Logger with its own handlers, formatter and filters.

    Extra keyword arguments become record fields after masking.

    Example:
        >>> logger = FetchLogger(LoggingConfig.create(level="DEBUG"))
        >>> logger.warning("[fetch fail]", url="https://example.com/list.txt")
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = "fetch_core.client"):
        """
        Args:
            config: Logging configuration (defaults if None)
            name: Logger name
        """
        self.config = config or LoggingConfig()
        self.name = name
        self._closed = False

        self._logger = logging.getLogger(name)
        self._logger.setLevel(self._get_level(self.config.level))
        self._logger.propagate = False
        self._logger.handlers.clear()

        filters = []
        if self.config.enable_request_id:
            filters.append(RequestIdFilter())
        if self.config.extra_fields:
            filters.append(ExtraFieldsFilter(self.config.extra_fields))

        formatter = get_formatter(self.config.format.value)
        level = self._get_level(self.config.level)

        if self.config.enable_console:
            self._logger.addHandler(
                create_console_handler(level=level, formatter=formatter, filters=filters)
            )

        if self.config.enable_file and self.config.file_path:
            self._logger.addHandler(
                create_file_handler(
                    file_path=self.config.file_path,
                    level=level,
                    formatter=formatter,
                    max_bytes=self.config.max_bytes,
                    backup_count=self.config.backup_count,
                    filters=filters,
                )
            )

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    def log(self, level: int, message: str, **kwargs: Any) -> None:
        self._logger.log(level, message, extra=mask_sensitive_data(kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)

    def close(self) -> None:
        """
        Flush and close all handlers. Idempotent.
        """
        if self._closed:
            return

        for handler in self._logger.handlers[:]:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
