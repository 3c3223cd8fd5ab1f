"""
Иерархия исключений fetch-core.

Классификация:
- TransportError (kind=ErrorKind.*) - ошибка одной физической попытки,
  тег выставляется один раз на границе транспорта
- FetchError - финальный ответ с неуспешным статусом
- TooManyRedirectsError, ConfigurationError - терминальные
"""

from enum import Enum
from typing import Mapping, Optional

import httpx

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FetchCoreException(Exception):
    """Базовое исключение fetch-core."""

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ErrorKind(str, Enum):
    """Тег ошибки физической попытки."""
    RETRY = "retry"            # соединение запросило retry (статус из status_codes)
    ESCAPING = "escaping"      # невалидный путь / неэкранированные символы
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    PROXY = "proxy"
    PROTOCOL = "protocol"
    OTHER = "other"


class TransportError(FetchCoreException):
    """
    Ошибка одной физической попытки.

    Args:
        kind: Тег ошибки
        message: Сообщение
        url: URL попытки
        status_code: HTTP статус (только для kind=RETRY)
        headers: Заголовки ответа (только для kind=RETRY)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.headers = headers if headers is not None else httpx.Headers()

        msg = message
        if url:
            msg += f" (url: {url})"
        super().__init__(msg)

    @property
    def retry_requested(self) -> bool:
        """Соединение явно запросило повтор."""
        return self.kind is ErrorKind.RETRY

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RESPONSE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FetchError(FetchCoreException):
    """
    Неуспешный финальный ответ.

    ``code`` и ``status_code`` совпадают (``code`` оставлен для совместимости).
    Атрибуты read-only после создания.

    Args:
        response: httpx.Response с неуспешным статусом
    """

    def __init__(self, response: httpx.Response):
        self.response = response
        self.code = response.status_code
        self.status_code = response.status_code
        self.url = str(response.url)
        super().__init__(response.reason_phrase)

    def __setattr__(self, name, value):
        if name in self.__dict__ and name in ('response', 'code', 'status_code', 'url'):
            raise AttributeError(f"FetchError.{name} is read-only")
        super().__setattr__(name, value)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TooManyRedirectsError(FetchCoreException):
    """
    Превышен лимит редиректов.

    Args:
        max_redirects: Лимит
        url: Последний URL в цепочке
    """

    def __init__(self, max_redirects: int, url: str):
        self.max_redirects = max_redirects
        self.url = url
        super().__init__(f"Max redirects ({max_redirects}) exceeded for {url}")


class ConfigurationError(FetchCoreException, ValueError):
    """
    Невалидная конфигурация.

    Наследует ValueError: конфиги валидируются в __post_init__.
    """

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_httpx_exception(exc: Exception, url: str) -> TransportError:
    """
    Конвертировать исключения httpx в TransportError с тегом.

    Args:
        exc: Исключение из httpx
        url: URL запроса

    Returns:
        TransportError с правильным ErrorKind

    Examples:
        >>> err = classify_httpx_exception(httpx.ConnectTimeout("boom"), "https://example.com")
        >>> assert err.kind is ErrorKind.TIMEOUT
    """
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)):
        return TransportError(ErrorKind.ESCAPING, f"Invalid request: {exc}", url)

    elif isinstance(exc, httpx.TimeoutException):
        return TransportError(ErrorKind.TIMEOUT, f"Request timeout: {exc}", url)

    elif isinstance(exc, httpx.ProxyError):
        return TransportError(ErrorKind.PROXY, f"Proxy error: {exc}", url)

    elif isinstance(exc, (httpx.ConnectError, httpx.ReadError, httpx.WriteError, httpx.CloseError)):
        return TransportError(ErrorKind.CONNECTION, f"Connection error: {exc}", url)

    elif isinstance(exc, httpx.RemoteProtocolError):
        return TransportError(ErrorKind.PROTOCOL, f"Protocol error: {exc}", url)

    else:
        return TransportError(ErrorKind.OTHER, str(exc) or exc.__class__.__name__, url)
