"""
Logging configuration for fetch-core.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""
    JSON = "json"
    TEXT = "text"
    COLORED = "colored"


@dataclass(frozen=True)
class LoggingConfig:
    """
    Configuration for fetch logging.

    Attributes:
        level: Log level
        format: Output format (json, text, colored)
        enable_console: Log to stderr
        enable_file: Log to a rotating file
        file_path: Path to log file (required if enable_file=True)
        max_bytes: Max log file size before rotation (default: 10MB)
        backup_count: Number of rotated files to keep
        enable_request_id: Add the current logical request id to records
        extra_fields: Static fields added to every record

    Example:
        >>> config = LoggingConfig.create(level="DEBUG", format="colored")
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    enable_console: bool = True
    enable_file: bool = False
    file_path: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_request_id: bool = True
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.enable_file and not self.file_path:
            raise ConfigurationError("file_path is required when enable_file=True")

    @classmethod
    def create(
        cls,
        level: str = "INFO",
        format: str = "colored",
        enable_console: bool = True,
        enable_file: bool = False,
        file_path: Optional[str] = None,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        enable_request_id: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None
    ) -> "LoggingConfig":
        """
        Create LoggingConfig from plain strings.

        Example:
            >>> LoggingConfig.create(level="debug", format="json")
        """
        return cls(
            level=LogLevel(level.upper()),
            format=LogFormat(format.lower()),
            enable_console=enable_console,
            enable_file=enable_file,
            file_path=file_path,
            max_bytes=max_bytes,
            backup_count=backup_count,
            enable_request_id=enable_request_id,
            extra_fields=extra_fields or {}
        )
