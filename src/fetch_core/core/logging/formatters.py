"""
Log formatters: JSON, plain text and colored terminal output.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# Standard LogRecord attributes, never treated as extra fields
_RESERVED_FIELDS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'asctime', 'taskName',
})


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_FIELDS and not key.startswith('_')
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Example output:
        {"timestamp": "2024-01-15T10:30:45.123000+00:00", "level": "WARNING",
         "logger": "fetch_core.client", "message": "[fetch fail]",
         "url": "https://ruleset.skk.moe/List/domainset/cdn.conf"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_extra_fields(record))

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """
    Plain text: ``[timestamp] [level] [logger] message key=value ...``
    """

    def __init__(self):
        super().__init__(
            fmt='[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        base_msg = super().format(record)

        extra = _extra_fields(record)
        if extra:
            base_msg += " " + " ".join(f"{k}={v}" for k, v in extra.items())

        return base_msg


class ColoredFormatter(TextFormatter):
    """
    Colored terminal output.

    Log levels are colorized; fetch abort lines are rendered gray so that
    cancelled downloads do not look like failures.
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[1;31m', # Bold Red
    }
    GRAY = '\033[90m'
    RESET = '\033[0m'

    MUTED_PREFIXES = ('[fetch abort]',)

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            line = super().format(record)
        finally:
            record.levelname = levelname

        if record.getMessage().startswith(self.MUTED_PREFIXES):
            line = f"{self.GRAY}{line}{self.RESET}"
        return line


def get_formatter(format_type: str) -> logging.Formatter:
    """
    Get formatter by type name.

    Raises:
        ValueError: If format_type is unknown
    """
    formatters = {
        "json": JSONFormatter,
        "text": TextFormatter,
        "colored": ColoredFormatter,
    }

    formatter_class = formatters.get(format_type.lower())
    if not formatter_class:
        raise ValueError(
            f"Unknown format type: {format_type}. "
            f"Available: {', '.join(formatters.keys())}"
        )

    return formatter_class()
