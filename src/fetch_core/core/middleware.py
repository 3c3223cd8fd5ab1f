"""
Middleware цепочки диспетчеризации.

Каждый middleware реализует ``attempt(request, next)`` и вызывает ``next``
для передачи запроса дальше. Цепочка собирается один раз при создании
клиента функцией compose().
"""

import asyncio
import functools
import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Sequence

import httpx

from .config import RetryOptions
from .exceptions import ErrorKind, TooManyRedirectsError, TransportError
from .retry_engine import RetryEngine
from ..utils.sanitizer import mask_url

logger = logging.getLogger(__name__)

Next = Callable[[httpx.Request], Awaitable[httpx.Response]]

# Ключ в request.extensions для per-request переопределения RetryOptions
RETRY_OPTIONS_EXTENSION = "fetch_core.retry_options"

REDIRECT_STATUS_CODES = frozenset({300, 301, 302, 303, 307, 308})

# Заголовки, которые не уходят на другой origin при редиректе
CROSS_ORIGIN_STRIPPED_HEADERS = ('Authorization', 'Cookie', 'Proxy-Authorization')

BODY_HEADERS = ('Content-Length', 'Content-Type', 'Transfer-Encoding')

# Запрос последнего хопа; httpx перезаписывает response.request исходным запросом
EFFECTIVE_REQUEST_EXTENSION = "fetch_core.effective_request"


class Middleware(ABC):
    """
    Базовый класс middleware.

    Example:
        >>> class TagMiddleware(Middleware):
        ...     async def attempt(self, request, next):
        ...         request.headers['X-Tag'] = 'surge'
        ...         return await next(request)
    """

    @abstractmethod
    async def attempt(self, request: httpx.Request, next: Next) -> httpx.Response:
        """Выполнить запрос, передав его дальше через next."""


def compose(middlewares: Sequence[Middleware], dispatch: Next) -> Next:
    """
    Обернуть dispatch в middleware по порядку списка.

    Каждый следующий middleware оборачивает предыдущий, поэтому последний
    в списке оказывается самым внешним: ``[retry, redirect]`` даёт
    redirect -> retry -> dispatch, и каждый хоп редиректа получает
    собственный бюджет retry.
    """
    for middleware in middlewares:
        dispatch = functools.partial(middleware.attempt, next=dispatch)
    return dispatch


class RetryMiddleware(Middleware):
    """
    Повторяет попытки, которые соединение пометило как retryable.

    Ответ со статусом из ``status_codes`` превращается в
    TransportError(kind=RETRY) и проходит через RetryEngine.
    """

    def __init__(
        self,
        options: RetryOptions,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            options: Глобальные RetryOptions клиента
            sleep: Функция ожидания backoff
            clock: Часы для Retry-After HTTP-date
        """
        self.options = options
        self._sleep = sleep
        self._clock = clock

    async def attempt(self, request: httpx.Request, next: Next) -> httpx.Response:
        options = self.options.merge(request.extensions.get(RETRY_OPTIONS_EXTENSION))
        engine = RetryEngine(options, sleep=self._sleep, clock=self._clock)

        while True:
            try:
                return await self._attempt_once(request, next, options)
            except TransportError as error:
                if not engine.should_retry(error, request.method):
                    raise

                wait_time = await engine.async_wait(error)
                logger.info(
                    "Retried %s %s after %.2fs (attempt %d/%d, %s)",
                    request.method, mask_url(request.url), wait_time,
                    engine.attempt, options.max_retries,
                    error.status_code or error.kind.value,
                )
                engine.increment()

    async def _attempt_once(
        self,
        request: httpx.Request,
        next: Next,
        options: RetryOptions,
    ) -> httpx.Response:
        response = await next(request)

        if response.status_code in options.status_codes:
            await response.aclose()
            raise TransportError(
                ErrorKind.RETRY,
                f"Request failed with status {response.status_code}",
                url=str(request.url),
                status_code=response.status_code,
                headers=response.headers,
            )

        return response


class RedirectMiddleware(Middleware):
    """
    Следует за Location до max_redirects хопов.

    max_redirects=0 отключает следование: 3xx возвращается как есть.
    """

    def __init__(self, max_redirects: int = 5):
        self.max_redirects = max_redirects

    async def attempt(self, request: httpx.Request, next: Next) -> httpx.Response:
        hops = 0

        while True:
            response = await next(request)

            location = response.headers.get('Location')
            if (
                self.max_redirects == 0
                or response.status_code not in REDIRECT_STATUS_CODES
                or not location
            ):
                if hops:
                    response.extensions[EFFECTIVE_REQUEST_EXTENSION] = request
                return response

            await response.aclose()

            if hops >= self.max_redirects:
                raise TooManyRedirectsError(self.max_redirects, str(request.url))

            request = build_redirect_request(request, response, location)
            hops += 1
            logger.debug("Redirect %d -> %s", hops, request.url)


def build_redirect_request(
    request: httpx.Request,
    response: httpx.Response,
    location: str,
) -> httpx.Request:
    """
    Построить запрос для следующего хопа.

    303 (и 301/302 для POST) превращаются в GET без тела; на чужой origin
    не уходят Authorization, Cookie и Proxy-Authorization.
    """
    url = request.url.join(location)
    if not url.fragment and request.url.fragment:
        url = url.copy_with(fragment=request.url.fragment)

    method = request.method
    status = response.status_code
    if (status == 303 and method != 'HEAD') or (status in (301, 302) and method == 'POST'):
        method = 'GET'

    headers = httpx.Headers(request.headers)
    headers['Host'] = url.netloc.decode('ascii')

    stream = request.stream
    if method != request.method:
        stream = None
        for name in BODY_HEADERS:
            headers.pop(name, None)

    if not _same_origin(url, request.url):
        for name in CROSS_ORIGIN_STRIPPED_HEADERS:
            headers.pop(name, None)

    return httpx.Request(
        method,
        url,
        headers=headers,
        stream=stream,
        extensions=request.extensions,
    )


def _same_origin(a: httpx.URL, b: httpx.URL) -> bool:
    return (a.scheme, a.host, a.port) == (b.scheme, b.host, b.port)
