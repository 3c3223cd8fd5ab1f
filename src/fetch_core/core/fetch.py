"""
fetch_with_log: единая точка входа для исходящих запросов.

Повторы и редиректы выполняет цепочка middleware клиента; здесь только
нормализация неуспешных ответов в FetchError и логирование ошибок.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import httpx

from .config import DEFAULT_USER_AGENT, RetryOptions
from .exceptions import FetchError
from .logging.filters import get_request_id, reset_request_id, set_request_id
from ..utils.sanitizer import mask_sensitive_data, mask_url

logger = logging.getLogger(__name__)

ABORT_MESSAGE = "[fetch abort]"
FAIL_MESSAGE = "[fetch fail]"


@dataclass(frozen=True)
class RequestOptions:
    """
    Параметры одного запроса через fetch_with_log.

    Attributes:
        method: HTTP метод
        headers: Заголовки запроса (по умолчанию только User-Agent)
        retry_options: Переопределение RetryOptions клиента для этого запроса
        content: Тело запроса
        timeout: Таймаут одной попытки (сек), None = таймаут клиента
    """
    method: str = 'GET'
    headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({'User-Agent': DEFAULT_USER_AGENT})
    )
    retry_options: Union[RetryOptions, Mapping[str, Any], None] = None
    content: Optional[bytes] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        """Freeze headers."""
        if isinstance(self.headers, dict):
            object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))


DEFAULT_REQUEST_OPTIONS = RequestOptions()


async def fetch_with_log(
    client,
    target: Union[str, httpx.URL],
    options: RequestOptions = DEFAULT_REQUEST_OPTIONS,
) -> httpx.Response:
    """
    Выполнить запрос и вернуть успешный ответ.

    Ответ со статусом >= 400, а также любой не-2xx кроме 304, превращается
    в FetchError. Любая ошибка логируется и пробрасывается дальше без
    изменений; отмена логируется как abort.

    Все записи лога внутри запроса получают request_id. Уже установленный
    вызывающим кодом id сохраняется.

    Args:
        client: HttpClient
        target: URL
        options: RequestOptions

    Returns:
        httpx.Response (2xx или 304)

    Raises:
        FetchError: Неуспешный финальный ответ
        TransportError: Ошибка транспорта, не исправленная retry
        TooManyRedirectsError: Превышен лимит редиректов
        asyncio.CancelledError: Запрос отменён
    """
    token = set_request_id(get_request_id() or uuid.uuid4().hex[:8])
    try:
        response = await client.request(
            options.method,
            target,
            headers=options.headers,
            content=options.content,
            retry_options=options.retry_options,
            timeout=options.timeout,
        )

        status = response.status_code
        if status >= 400 or (not response.is_success and status != 304):
            raise FetchError(response)

        return response
    except asyncio.CancelledError:
        _log(client, logging.WARNING, ABORT_MESSAGE, url=mask_url(str(target)))
        raise
    except Exception as exc:
        _log(
            client,
            logging.WARNING,
            FAIL_MESSAGE,
            url=mask_url(str(target)),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise
    finally:
        reset_request_id(token)


def _log(client, level: int, message: str, **fields: Any) -> None:
    fetch_logger = getattr(client, 'logger', None)
    if fetch_logger is not None:
        fetch_logger.log(level, message, **fields)
    else:
        fields['request_id'] = get_request_id()
        logger.log(level, "%s %s", message, fields["url"], extra=mask_sensitive_data(fields))
