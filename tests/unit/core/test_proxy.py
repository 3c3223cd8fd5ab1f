"""
Tests for environment proxy detection.
"""

import httpx
import pytest

from src.fetch_core.core.proxy import EnvProxyConfig

PROXY_VARS = ('HTTP_PROXY', 'HTTPS_PROXY', 'ALL_PROXY', 'NO_PROXY',
              'http_proxy', 'https_proxy', 'all_proxy', 'no_proxy')


@pytest.fixture
def clean_env(monkeypatch):
    for name in PROXY_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvProxyConfig:
    """EnvProxyConfig.from_env and proxy_for."""

    def test_no_proxy_env(self, clean_env):
        config = EnvProxyConfig.from_env()
        assert not config
        assert config.proxy_for(httpx.URL("https://example.com")) is None

    def test_scheme_specific(self, clean_env):
        clean_env.setenv('HTTPS_PROXY', 'http://proxy.local:3128')

        config = EnvProxyConfig.from_env()

        assert config
        assert config.proxy_for(httpx.URL("https://example.com")) == 'http://proxy.local:3128'
        assert config.proxy_for(httpx.URL("http://example.com")) is None

    def test_all_proxy_fallback(self, clean_env):
        clean_env.setenv('all_proxy', 'socks5://127.0.0.1:1080')

        config = EnvProxyConfig.from_env()

        assert config.proxy_for(httpx.URL("http://example.com")) == 'socks5://127.0.0.1:1080'

    def test_no_proxy_bypass(self, clean_env):
        clean_env.setenv('HTTPS_PROXY', 'http://proxy.local:3128')
        clean_env.setenv('NO_PROXY', 'internal.example.com,.corp')

        config = EnvProxyConfig.from_env()

        assert config.no_proxy == 'internal.example.com,.corp'
        assert config.proxy_for(httpx.URL("https://internal.example.com/list")) is None
        assert config.proxy_for(httpx.URL("https://git.corp/list")) is None
        assert config.proxy_for(httpx.URL("https://example.com/list")) == 'http://proxy.local:3128'

    def test_no_proxy_wildcard(self, clean_env):
        clean_env.setenv('HTTP_PROXY', 'http://proxy.local:3128')
        clean_env.setenv('NO_PROXY', '*')

        config = EnvProxyConfig.from_env()

        assert config.proxy_for(httpx.URL("http://example.com")) is None

    def test_explicit_config(self):
        config = EnvProxyConfig(proxies={'http': 'http://proxy.local:8080'})
        assert config.proxy_for(httpx.URL("http://example.com:8000/")) == 'http://proxy.local:8080'
