"""
HttpClient: владелец DNS кеша, цепочки middleware и httpx.AsyncClient.

Один клиент разделяется всеми конкурентными запросами процесса;
состояние отдельного запроса (RetryState) живёт только внутри него.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

import httpx

from .config import FetchClientConfig, RetryOptions
from .exceptions import classify_httpx_exception
from .fetch import DEFAULT_REQUEST_OPTIONS, RequestOptions, fetch_with_log
from .logging import FetchLogger
from .middleware import (
    EFFECTIVE_REQUEST_EXTENSION,
    RETRY_OPTIONS_EXTENSION,
    Middleware,
    RedirectMiddleware,
    RetryMiddleware,
)
from .proxy import EnvProxyConfig
from .resolver import ResolverCache
from .transport import ConnectionTransport, DispatchTransport


class HttpClient:
    """
    Асинхронный HTTP клиент с DNS кешем, retry и редиректами.

    Example:
        >>> async with HttpClient() as client:
        ...     response = await client.fetch_with_log("https://ruleset.skk.moe/List/non_ip/cdn.conf")
        ...     print(response.text[:100])

        >>> # Изолированный клиент для тестов
        >>> client = HttpClient(transport=httpx.MockTransport(handler), sleep=fake_sleep)

    Features:
        - DNS кеш с учётом TTL (ResolverCache)
        - Retry с backoff по Retry-After или экспоненте
        - Редиректы с собственным бюджетом retry на каждый хоп
        - Прокси из HTTP_PROXY / HTTPS_PROXY / NO_PROXY
    """

    def __init__(
        self,
        config: Optional[FetchClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[ResolverCache] = None,
        middlewares: Optional[List[Middleware]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: FetchClientConfig (по умолчанию FetchClientConfig())
            transport: Транспорт вместо реальной сети (httpx.MockTransport в тестах)
            resolver: Готовый ResolverCache (по умолчанию создаётся из config.resolver)
            middlewares: Цепочка вместо стандартной [retry, redirect]
            sleep: Функция ожидания backoff
            clock: Часы для Retry-After HTTP-date
        """
        self._config = config or FetchClientConfig()

        if resolver is None and self._config.resolver.enabled and transport is None:
            resolver = ResolverCache(self._config.resolver)
        self._resolver = resolver

        proxy_config = EnvProxyConfig.from_env() if self._config.trust_env else None
        base = ConnectionTransport(
            self._config,
            resolver=self._resolver,
            proxy_config=proxy_config,
            inner=transport,
        )

        if middlewares is None:
            middlewares = [
                RetryMiddleware(self._config.retry, sleep=sleep, clock=clock),
                RedirectMiddleware(self._config.max_redirects),
            ]
        self._transport = DispatchTransport(base, middlewares)

        timeout = self._config.timeout
        self._client = httpx.AsyncClient(
            transport=self._transport,
            headers=dict(self._config.headers),
            timeout=httpx.Timeout(
                timeout.read,
                connect=timeout.connect,
                pool=timeout.pool,
            ),
            follow_redirects=False,
            trust_env=False,
        )

        self._logger: Optional[FetchLogger] = None
        if self._config.logging:
            self._logger = FetchLogger(self._config.logging)

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Закрыть соединения и логгер."""
        await self._client.aclose()
        if self._logger is not None:
            self._logger.close()

    async def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        *,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[bytes] = None,
        retry_options: Union[RetryOptions, Mapping[str, Any], None] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Выполнить логический запрос через цепочку middleware.

        Статус ответа здесь не проверяется: это делает fetch_with_log.

        Args:
            method: HTTP метод
            url: Абсолютный URL
            headers: Заголовки (поверх заголовков клиента)
            content: Тело запроса
            retry_options: Per-request переопределение RetryOptions
            timeout: Таймаут одной попытки (сек)

        Raises:
            TransportError: Попытка не удалась и retry не помог
            TooManyRedirectsError: Цепочка редиректов длиннее лимита
        """
        extensions = {}
        if retry_options is not None:
            extensions[RETRY_OPTIONS_EXTENSION] = retry_options

        try:
            request = self._client.build_request(
                method,
                url,
                headers=headers,
                content=content,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                extensions=extensions,
            )
            response = await self._client.send(request)
        except (httpx.InvalidURL, httpx.TransportError) as exc:
            # Невалидный URL при сборке запроса или обрыв при чтении тела
            raise classify_httpx_exception(exc, str(url)) from exc

        effective = response.extensions.pop(EFFECTIVE_REQUEST_EXTENSION, None)
        if effective is not None:
            response.request = effective
        return response

    async def fetch_with_log(
        self,
        target: Union[str, httpx.URL],
        options: RequestOptions = DEFAULT_REQUEST_OPTIONS,
    ) -> httpx.Response:
        """Shortcut для fetch_with_log(self, target, options)."""
        return await fetch_with_log(self, target, options)

    def get_middleware_order(self) -> List[Tuple[int, str]]:
        """
        Порядок middleware для отладки: (позиция, имя), 0 = ближайший к сети.
        """
        return [(i, m.__class__.__name__) for i, m in enumerate(self._transport.middlewares)]

    # ==================== Properties ====================

    @property
    def config(self) -> FetchClientConfig:
        return self._config

    @property
    def resolver(self) -> Optional[ResolverCache]:
        """DNS кеш клиента (None если отключён)."""
        return self._resolver

    @property
    def logger(self) -> Optional[FetchLogger]:
        return self._logger
