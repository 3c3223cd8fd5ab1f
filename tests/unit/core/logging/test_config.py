"""
Tests for LoggingConfig.
"""

import pytest

from src.fetch_core.core.exceptions import ConfigurationError
from src.fetch_core.core.logging.config import LogFormat, LoggingConfig, LogLevel


class TestLoggingConfig:

    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.COLORED
        assert config.enable_console is True
        assert config.enable_file is False
        assert config.enable_request_id is True

    def test_create_normalizes_case(self):
        config = LoggingConfig.create(level="debug", format="JSON")
        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.JSON

    def test_file_requires_path(self):
        with pytest.raises(ConfigurationError, match="file_path is required"):
            LoggingConfig.create(enable_file=True)

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig.create(level="VERBOSE")

    def test_frozen(self):
        with pytest.raises(AttributeError):
            LoggingConfig().level = LogLevel.DEBUG
