"""
Определение прокси из переменных окружения.

Поддерживает HTTP_PROXY / HTTPS_PROXY / ALL_PROXY / NO_PROXY в любом
регистре, как curl и большинство HTTP клиентов.
"""

import urllib.request
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

import httpx


@dataclass(frozen=True)
class EnvProxyConfig:
    """
    Прокси по схеме URL.

    Args:
        proxies: {"http": "...", "https": "...", "all": "..."}
        no_proxy: Значение NO_PROXY (через запятую, "*" = без прокси)

    Examples:
        >>> cfg = EnvProxyConfig.from_env()
        >>> cfg.proxy_for(httpx.URL("https://example.com"))
        'http://proxy.local:3128'
    """
    proxies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    no_proxy: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'EnvProxyConfig':
        """Прочитать конфигурацию из окружения процесса."""
        env = urllib.request.getproxies_environment()
        no_proxy = env.pop('no', None)
        proxies = {k: v for k, v in env.items() if k in ('http', 'https', 'all') and v}
        return cls(proxies=MappingProxyType(proxies), no_proxy=no_proxy)

    def proxy_for(self, url: httpx.URL) -> Optional[str]:
        """
        Вернуть URL прокси для запроса или None для прямого соединения.
        """
        proxy = self.proxies.get(url.scheme) or self.proxies.get('all')
        if not proxy:
            return None

        if self.no_proxy:
            host = url.host
            if url.port:
                host = f"{host}:{url.port}"
            if urllib.request.proxy_bypass_environment(host, {'no': self.no_proxy}):
                return None

        return proxy

    def __bool__(self) -> bool:
        return bool(self.proxies)
