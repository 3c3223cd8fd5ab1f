"""
Retry engine: классификация неудачной попытки и вычисление backoff.

Включает:
- Классификацию по тегу TransportError (до любых задержек)
- Retry-After header parsing (секунды или HTTP-date)
- Exponential backoff с потолком max_timeout
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Mapping, Optional

from .config import RetryOptions
from .exceptions import ErrorKind, TransportError

logger = logging.getLogger(__name__)

# Статусы, означающие что запрос построен неверно, а не временный сбой
NON_RETRYABLE_STATUS_CODES = frozenset({401, 403, 404, 405})

MAX_RETRY_AFTER_LENGTH = 100


@dataclass
class RetryState:
    """Счётчик попыток одного логического запроса."""
    attempt_count: int = 1


class RetryEngine:
    """
    Механизм retry для одного логического запроса.

    Examples:
        >>> engine = RetryEngine(RetryOptions(max_retries=3))
        >>> if engine.should_retry(error, 'GET'):
        >>>     await engine.async_wait(error)
        >>>     engine.increment()
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
            options: RetryOptions для этого запроса (уже смерженные)
            sleep: Функция ожидания (подменяется в тестах)
            clock: Текущее время в секундах epoch (для Retry-After HTTP-date)
        """
        self.options = options
        self.state = RetryState()
        self._sleep = sleep
        self._clock = clock

    def should_retry(self, error: Exception, method: str) -> bool:
        """
        Решить нужен ли retry.

        Порядок проверок важен: ошибки, которые не исправит повтор,
        отсекаются до любых задержек.

        Args:
            error: Исключение попытки
            method: HTTP метод

        Returns:
            True если нужен retry
        """
        if not isinstance(error, TransportError):
            return False

        if error.kind is ErrorKind.ESCAPING:
            return False

        # Ретраим только то, что соединение явно пометило как retryable
        if not error.retry_requested:
            return False

        if self.state.attempt_count > self.options.max_retries:
            logger.debug(
                "Retry budget exhausted (%d > %d) for %s",
                self.state.attempt_count, self.options.max_retries, error.url,
            )
            return False

        if method.upper() not in self.options.methods:
            return False

        if error.status_code is not None and error.status_code in NON_RETRYABLE_STATUS_CODES:
            return False

        return True

    def get_wait_time(self, error: Optional[TransportError] = None) -> float:
        """
        Вычислить время ожидания перед следующей попыткой.

        Args:
            error: TransportError с заголовками ответа (опционально)

        Returns:
            Секунды для ожидания
        """
        # Приоритет 1: Retry-After header
        if error is not None:
            retry_after = self._parse_retry_after(error.headers)
            if retry_after is not None and retry_after > 0:
                return min(retry_after, self.options.max_timeout)

        # Приоритет 2: Exponential backoff
        wait = self.options.min_timeout * (
            self.options.timeout_factor ** (self.state.attempt_count - 1)
        )
        return min(wait, self.options.max_timeout)

    async def async_wait(self, error: Optional[TransportError] = None) -> float:
        """
        Подождать перед retry, не блокируя event loop.

        Returns:
            Сколько секунд ждали
        """
        wait_time = self.get_wait_time(error)
        await self._sleep(wait_time)
        return wait_time

    def _parse_retry_after(self, headers: Optional[Mapping[str, str]]) -> Optional[float]:
        """
        Распарсить Retry-After header.

        Returns:
            Секунды (может быть <= 0 для даты в прошлом) или None

        Security:
            - Ограничивает длину header для защиты от DoS
        """
        if not headers:
            return None

        retry_after = headers.get('Retry-After')
        if not retry_after:
            return None

        if len(retry_after) > MAX_RETRY_AFTER_LENGTH:
            logger.warning(
                f"Retry-After header too long ({len(retry_after)} chars), ignoring"
            )
            return None

        try:
            # Попытка как число секунд
            return float(retry_after)
        except ValueError:
            pass

        # Попытка как HTTP-date
        try:
            retry_date = parsedate_to_datetime(retry_after)
        except (ValueError, TypeError, IndexError, OverflowError) as e:
            logger.debug(f"Failed to parse Retry-After header '{retry_after}': {e}")
            return None

        if retry_date is None:
            return None
        if retry_date.tzinfo is None:
            retry_date = retry_date.replace(tzinfo=timezone.utc)
        return retry_date.timestamp() - self._clock()

    def increment(self) -> None:
        """Увеличить счётчик попыток."""
        self.state.attempt_count += 1

    @property
    def attempt(self) -> int:
        """Текущий номер неудачной попытки."""
        return self.state.attempt_count
