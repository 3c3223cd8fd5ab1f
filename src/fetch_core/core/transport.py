"""
Транспорты httpx: базовое соединение и цепочка middleware.

ConnectionTransport - граница, на которой исключения httpx получают тег
ErrorKind; DispatchTransport - точка входа всех исходящих запросов.
"""

import logging
from typing import Dict, List, Optional, Sequence

import httpx

from .config import FetchClientConfig
from .exceptions import classify_httpx_exception
from .middleware import Middleware, compose
from .proxy import EnvProxyConfig
from .resolver import CachedLookupBackend, ResolverCache

logger = logging.getLogger(__name__)


class ConnectionTransport(httpx.AsyncBaseTransport):
    """
    Физическая попытка: прокси из окружения, DNS кеш, тегирование ошибок.

    Args:
        config: Конфигурация клиента
        resolver: ResolverCache (None = системный резолвер httpcore)
        proxy_config: Прокси по схемам (None = всегда напрямую)
        inner: Готовый транспорт вместо реальных соединений (для тестов)
    """

    def __init__(
        self,
        config: FetchClientConfig,
        *,
        resolver: Optional[ResolverCache] = None,
        proxy_config: Optional[EnvProxyConfig] = None,
        inner: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._proxy_config = proxy_config
        self._backend = CachedLookupBackend(resolver) if resolver is not None else None
        self._inner = inner
        self._proxied: Dict[str, httpx.AsyncBaseTransport] = {}
        self._direct = inner if inner is not None else self._create_transport(None)

    def _create_transport(self, proxy: Optional[str]) -> httpx.AsyncHTTPTransport:
        transport = httpx.AsyncHTTPTransport(
            verify=self._config.verify_ssl,
            proxy=proxy,
            trust_env=False,
        )
        if self._backend is not None:
            # httpx не принимает network_backend в конструкторе транспорта;
            # пул читает его при создании каждого нового соединения
            transport._pool._network_backend = self._backend
        return transport

    def transport_for(self, url: httpx.URL) -> httpx.AsyncBaseTransport:
        """Выбрать прямой или проксированный транспорт для URL."""
        if self._inner is not None or not self._proxy_config:
            return self._direct

        proxy = self._proxy_config.proxy_for(url)
        if proxy is None:
            return self._direct

        transport = self._proxied.get(proxy)
        if transport is None:
            logger.debug("Using proxy %s for %s://%s", proxy, url.scheme, url.host)
            transport = self._create_transport(proxy)
            self._proxied[proxy] = transport
        return transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        transport = self.transport_for(request.url)
        try:
            return await transport.handle_async_request(request)
        except httpx.TransportError as exc:
            raise classify_httpx_exception(exc, str(request.url)) from exc

    async def aclose(self) -> None:
        await self._direct.aclose()
        for transport in self._proxied.values():
            await transport.aclose()
        self._proxied.clear()


class DispatchTransport(httpx.AsyncBaseTransport):
    """
    Цепочка middleware поверх базового транспорта.

    Example:
        >>> transport = DispatchTransport(base, [RetryMiddleware(options), RedirectMiddleware()])
        >>> client = httpx.AsyncClient(transport=transport)
    """

    def __init__(self, base: httpx.AsyncBaseTransport, middlewares: Sequence[Middleware]):
        self._base = base
        self._middlewares: List[Middleware] = list(middlewares)
        self._dispatch = compose(self._middlewares, base.handle_async_request)

    @property
    def middlewares(self) -> List[Middleware]:
        return list(self._middlewares)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._dispatch(request)

    async def aclose(self) -> None:
        await self._base.aclose()
