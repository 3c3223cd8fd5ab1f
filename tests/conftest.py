"""
Pytest configuration and fixtures for fetch-core tests.
"""

import httpx
import pytest

from src.fetch_core.core.config import FetchClientConfig, ResolverConfig
from src.fetch_core.core.http_client import HttpClient
from src.fetch_core.core.logging.config import LoggingConfig


class SleepRecorder:
    """Fake asyncio.sleep: records requested delays, never waits."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://ruleset.example.com"


@pytest.fixture
def sleep_recorder():
    """Recorder substituted for asyncio.sleep in retry tests."""
    return SleepRecorder()


@pytest.fixture
def offline_config():
    """Config without DNS cache and environment proxies."""
    return FetchClientConfig(
        resolver=ResolverConfig(enabled=False),
        trust_env=False,
    )


@pytest.fixture
def make_client(offline_config, sleep_recorder):
    """
    Factory for HttpClient backed by httpx.MockTransport.

    Example:
        def test_something(make_client):
            client = make_client(lambda request: httpx.Response(200))
    """
    def factory(handler, config=None, **kwargs):
        kwargs.setdefault('sleep', sleep_recorder)
        return HttpClient(
            config or offline_config,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return factory


@pytest.fixture
def logging_config():
    """Console LoggingConfig for tests that need structured logging."""
    return LoggingConfig.create(
        level="DEBUG",
        enable_console=True,
        enable_file=False
    )


@pytest.fixture
def logging_config_with_file(tmp_path):
    """
    LoggingConfig fixture with file logging enabled.

    Uses temporary directory for log files to avoid cleanup issues.
    """
    log_file = tmp_path / "fetch.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )
