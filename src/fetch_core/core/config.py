"""
Система конфигурации для fetch-core.

Все конфиги immutable (frozen dataclasses): один HttpClient разделяет их
между всеми конкурентными запросами.
"""

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union, TYPE_CHECKING

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .logging import LoggingConfig

DEFAULT_USER_AGENT = 'curl/8.9.1 (https://github.com/SukkaW/Surge)'

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Конфигурация таймаутов одной физической попытки.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)
        pool: Таймаут ожидания свободного соединения из пула (опционально)

    Examples:
        >>> TimeoutConfig(connect=5, read=30)
    """
    connect: float = 10.0
    read: float = 30.0
    pool: Optional[float] = None

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ConfigurationError("connect timeout must be positive")
        if self.read <= 0:
            raise ConfigurationError("read timeout must be positive")
        if self.pool is not None and self.pool <= 0:
            raise ConfigurationError("pool timeout must be positive")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RETRY OPTIONS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RetryOptions:
    """
    Параметры retry стратегии.

    Args:
        max_retries: Максимум повторов (не считая первую попытку)
        min_timeout: Базовая задержка (сек)
        max_timeout: Максимальная задержка (сек), также потолок для Retry-After
        timeout_factor: Множитель для exponential backoff
        methods: Какие HTTP методы можно ретраить
        status_codes: Статусы, на которые соединение запрашивает retry

    Examples:
        >>> RetryOptions(max_retries=3, min_timeout=1.0)
        >>> RetryOptions().merge({"max_retries": 0})
    """
    max_retries: int = 5
    min_timeout: float = 0.5
    max_timeout: float = 30.0
    timeout_factor: float = 2.0

    methods: FrozenSet[str] = field(
        default_factory=lambda: frozenset({'GET', 'HEAD', 'OPTIONS', 'PUT', 'DELETE', 'TRACE'})
    )

    status_codes: FrozenSet[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )

    def __post_init__(self):
        """Валидация и нормализация коллекций."""
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.min_timeout < 0:
            raise ConfigurationError("min_timeout must be non-negative")
        if self.max_timeout < 0:
            raise ConfigurationError("max_timeout must be non-negative")
        if self.timeout_factor < 1:
            raise ConfigurationError("timeout_factor must be >= 1")

        # Сеты/списки от пользователя -> frozenset с нормализованными методами
        object.__setattr__(
            self, 'methods', frozenset(m.upper() for m in self.methods)
        )
        object.__setattr__(
            self, 'status_codes', frozenset(int(c) for c in self.status_codes)
        )

    def merge(
        self,
        overrides: Union['RetryOptions', Mapping[str, Any], None]
    ) -> 'RetryOptions':
        """
        Наложить per-request переопределения поверх этих опций.

        Args:
            overrides: RetryOptions (заменяет целиком) или mapping отдельных полей

        Returns:
            Новый RetryOptions
        """
        if overrides is None:
            return self
        if isinstance(overrides, RetryOptions):
            return overrides
        return dataclasses.replace(self, **dict(overrides))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RESOLVER CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ResolverConfig:
    """
    Конфигурация DNS кеша.

    Args:
        enabled: Использовать кеширующий резолвер при подключении
        max_ttl: Верхняя граница TTL записи (сек), None = без ограничения
        fallback_duration: Сколько кешировать ответ системного резолвера (сек)
        nameservers: Явные DNS сервера (None = системные из resolv.conf)
    """
    enabled: bool = True
    max_ttl: Optional[float] = None
    fallback_duration: float = 3600.0
    nameservers: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        """Валидация."""
        if self.max_ttl is not None and self.max_ttl < 0:
            raise ConfigurationError("max_ttl must be non-negative")
        if self.fallback_duration < 0:
            raise ConfigurationError("fallback_duration must be non-negative")
        if self.nameservers is not None:
            object.__setattr__(self, 'nameservers', tuple(self.nameservers))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _freeze_dict(d: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Convert dict to immutable MappingProxyType."""
    if d is None:
        return MappingProxyType({})
    return MappingProxyType(dict(d))


def _default_headers() -> Mapping[str, str]:
    return MappingProxyType({'User-Agent': DEFAULT_USER_AGENT})


@dataclass(frozen=True)
class FetchClientConfig:
    """
    Главная конфигурация HttpClient.

    Args:
        headers: Заголовки по умолчанию (User-Agent)
        timeout: Таймауты одной попытки
        retry: Глобальные RetryOptions (min_timeout поднят до 10 сек)
        max_redirects: Максимум редиректов в одной цепочке
        resolver: Конфигурация DNS кеша
        trust_env: Брать прокси из HTTP_PROXY/HTTPS_PROXY/NO_PROXY
        verify_ssl: Проверять SSL сертификаты
        logging: Конфигурация логирования (None = только stdlib logger)

    Examples:
        >>> config = FetchClientConfig()
        >>> config = FetchClientConfig.create(max_retries=2, min_timeout=1.0)
    """
    headers: Mapping[str, str] = field(default_factory=_default_headers)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryOptions = field(default_factory=lambda: RetryOptions(min_timeout=10.0))
    max_redirects: int = 5
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    trust_env: bool = True
    verify_ssl: bool = True
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Freeze mutable dicts, validate."""
        if isinstance(self.headers, dict):
            object.__setattr__(self, 'headers', _freeze_dict(self.headers))
        if self.max_redirects < 0:
            raise ConfigurationError("max_redirects must be non-negative")

    @classmethod
    def create(
        cls,
        timeout: Union[float, Tuple[float, float], TimeoutConfig] = 30,
        max_retries: Optional[int] = None,
        min_timeout: Optional[float] = None,
        max_timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        max_redirects: int = 5,
        dns_cache: bool = True,
        trust_env: bool = True,
        verify_ssl: bool = True,
        logging: Optional['LoggingConfig'] = None,
    ) -> 'FetchClientConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            timeout: Таймаут (число, (connect, read) или TimeoutConfig)
            max_retries: Количество повторов
            min_timeout: Базовая задержка backoff (сек)
            max_timeout: Потолок задержки (сек)
            headers: Дополнительные заголовки (User-Agent по умолчанию сохраняется)
            max_redirects: Максимум редиректов
            dns_cache: Включить кеширующий резолвер
            trust_env: Прокси из окружения
            verify_ssl: Проверять SSL
            logging: Конфигурация логирования

        Examples:
            >>> FetchClientConfig.create(timeout=(5, 60), max_retries=3)
        """
        if isinstance(timeout, TimeoutConfig):
            timeout_cfg = timeout
        elif isinstance(timeout, tuple):
            timeout_cfg = TimeoutConfig(connect=timeout[0], read=timeout[1])
        else:
            timeout_cfg = TimeoutConfig(read=timeout)

        retry_overrides = {}
        if max_retries is not None:
            retry_overrides['max_retries'] = max_retries
        if min_timeout is not None:
            retry_overrides['min_timeout'] = min_timeout
        if max_timeout is not None:
            retry_overrides['max_timeout'] = max_timeout
        retry_cfg = RetryOptions(min_timeout=10.0).merge(retry_overrides)

        merged_headers = dict(_default_headers())
        merged_headers.update(headers or {})

        return cls(
            headers=merged_headers,
            timeout=timeout_cfg,
            retry=retry_cfg,
            max_redirects=max_redirects,
            resolver=ResolverConfig(enabled=dns_cache),
            trust_env=trust_env,
            verify_ssl=verify_ssl,
            logging=logging,
        )

    def with_retry(self, **overrides: Any) -> 'FetchClientConfig':
        """
        Создать новый конфиг с изменёнными RetryOptions.

        Example:
            >>> new_config = config.with_retry(max_retries=1)
        """
        return dataclasses.replace(self, retry=self.retry.merge(overrides))

    def with_headers(self, headers: Dict[str, str]) -> 'FetchClientConfig':
        """
        Создать новый конфиг с дополнительными заголовками.

        Example:
            >>> new_config = config.with_headers({"Accept": "text/plain"})
        """
        merged = dict(self.headers)
        merged.update(headers)
        return dataclasses.replace(self, headers=merged)
