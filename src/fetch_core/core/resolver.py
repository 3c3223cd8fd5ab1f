"""
Кеширующий DNS резолвер.

ResolverCache хранит ответы DNS до истечения TTL записей, а
CachedLookupBackend подключает его к httpcore как сетевой backend:
каждое новое соединение сначала смотрит в кеш.
"""

import asyncio
import ipaddress
import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

import dns.asyncresolver
import dns.exception
import httpcore

from .config import ResolverConfig

logger = logging.getLogger(__name__)


class ResolvedAddress(NamedTuple):
    """Один адрес хоста."""
    address: str
    family: int


@dataclass(frozen=True)
class _CacheEntry:
    addresses: Tuple[ResolvedAddress, ...]
    expires: float


def _ip_literal(hostname: str) -> Optional[ResolvedAddress]:
    try:
        ip = ipaddress.ip_address(hostname.strip('[]'))
    except ValueError:
        return None
    family = socket.AF_INET6 if ip.version == 6 else socket.AF_INET
    return ResolvedAddress(str(ip), family)


def _sort_and_dedupe(addresses) -> Tuple[ResolvedAddress, ...]:
    seen = {}
    for item in addresses:
        seen.setdefault(item.address, item)
    # IPv4 первым, как у системного резолвера по умолчанию
    return tuple(sorted(seen.values(), key=lambda a: a.family != socket.AF_INET))


class ResolverCache:
    """
    Кеш hostname -> адреса с учётом TTL DNS записей.

    Конкурентные промахи по одному хосту могут резолвить параллельно:
    single-flight не гарантируется.

    Example:
        >>> cache = ResolverCache()
        >>> addresses = await cache.lookup("example.com")
        >>> addresses[0].address
        '93.184.215.14'
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        *,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config: Конфигурация резолвера
            resolver: Готовый dnspython резолвер (подменяется в тестах)
            clock: Монотонные часы для сроков жизни записей
        """
        self.config = config or ResolverConfig()
        self._resolver = resolver
        self._clock = clock
        self._cache: Dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _get_resolver(self) -> Optional[dns.asyncresolver.Resolver]:
        if self._resolver is None:
            try:
                if self.config.nameservers:
                    resolver = dns.asyncresolver.Resolver(configure=False)
                    resolver.nameservers = list(self.config.nameservers)
                else:
                    resolver = dns.asyncresolver.Resolver()
            except dns.exception.DNSException as e:
                # Нет resolv.conf - работаем только через системный резолвер
                logger.debug(f"DNS resolver unavailable, using system lookup only: {e}")
                return None
            self._resolver = resolver
        return self._resolver

    async def lookup(self, hostname: str, family: int = 0) -> List[ResolvedAddress]:
        """
        Вернуть адреса хоста, из кеша или свежим запросом.

        Args:
            hostname: Имя хоста или IP литерал
            family: socket.AF_INET, socket.AF_INET6 или 0 (все)

        Returns:
            Список адресов, IPv4 первыми

        Raises:
            socket.gaierror: Системный резолвер не нашёл хост
        """
        literal = _ip_literal(hostname)
        if literal is not None:
            return [literal]

        key = hostname.lower().rstrip('.')
        entry = self._cache.get(key)

        if entry is not None and entry.expires > self._clock():
            self._hits += 1
            addresses = entry.addresses
        else:
            if entry is not None:
                self._cache.pop(key, None)
            self._misses += 1
            addresses = await self.query_and_cache(key)

        if family:
            addresses = tuple(a for a in addresses if a.family == family)
        if not addresses:
            raise socket.gaierror(socket.EAI_NONAME, f"No address found for {hostname}")
        return list(addresses)

    async def query_and_cache(self, hostname: str) -> Tuple[ResolvedAddress, ...]:
        """
        Запросить адреса и положить их в кеш.

        TTL равен минимальному TTL записей (ограничен max_ttl); ответ
        системного резолвера живёт fallback_duration. TTL 0 не кешируется.
        """
        addresses, ttl = await self._query_dns(hostname)

        if not addresses:
            addresses = await self._query_system(hostname)
            ttl = self.config.fallback_duration

        if self.config.max_ttl is not None:
            ttl = min(ttl, self.config.max_ttl)

        if ttl > 0 and addresses:
            self._cache[hostname] = _CacheEntry(addresses, self._clock() + ttl)
            logger.debug("Cached %d address(es) for %s, ttl=%ss", len(addresses), hostname, ttl)

        return addresses

    async def _query_dns(self, hostname: str) -> Tuple[Tuple[ResolvedAddress, ...], float]:
        resolver = self._get_resolver()
        if resolver is None:
            return (), 0

        results = await asyncio.gather(
            resolver.resolve(hostname, 'A'),
            resolver.resolve(hostname, 'AAAA'),
            return_exceptions=True,
        )

        addresses = []
        ttls = []
        for rdtype_family, result in zip((socket.AF_INET, socket.AF_INET6), results):
            if isinstance(result, dns.exception.DNSException):
                continue
            if isinstance(result, BaseException):
                raise result
            ttls.append(result.rrset.ttl)
            addresses.extend(ResolvedAddress(r.address, rdtype_family) for r in result)

        if not addresses:
            return (), 0
        return _sort_and_dedupe(addresses), float(min(ttls))

    async def _query_system(self, hostname: str) -> Tuple[ResolvedAddress, ...]:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
        return _sort_and_dedupe(
            ResolvedAddress(sockaddr[0], family) for family, _, _, _, sockaddr in infos
        )

    def clear(self, hostname: Optional[str] = None) -> None:
        """Очистить кеш целиком или для одного хоста."""
        if hostname is None:
            self._cache.clear()
        else:
            self._cache.pop(hostname.lower().rstrip('.'), None)

    def stats(self) -> Dict[str, int]:
        """Статистика кеша."""
        return {"size": len(self._cache), "hits": self._hits, "misses": self._misses}

    def __len__(self) -> int:
        return len(self._cache)


class CachedLookupBackend(httpcore.AsyncNetworkBackend):
    """
    Сетевой backend httpcore, резолвящий хосты через ResolverCache.

    TLS SNI по-прежнему использует исходный hostname: httpcore передаёт
    его в start_tls отдельно от адреса подключения.
    """

    def __init__(
        self,
        cache: ResolverCache,
        backend: Optional[httpcore.AsyncNetworkBackend] = None,
    ):
        self._cache = cache
        self._backend = backend if backend is not None else httpcore.AnyIOBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options=None,
    ) -> httpcore.AsyncNetworkStream:
        try:
            addresses = await self._cache.lookup(host)
        except OSError as exc:
            raise httpcore.ConnectError(f"DNS lookup failed for {host}: {exc}") from exc

        last_error: Optional[Exception] = None
        for resolved in addresses:
            try:
                return await self._backend.connect_tcp(
                    resolved.address,
                    port,
                    timeout=timeout,
                    local_address=local_address,
                    socket_options=socket_options,
                )
            except (httpcore.ConnectError, httpcore.ConnectTimeout) as exc:
                logger.debug(f"Connect to {resolved.address}:{port} ({host}) failed: {exc}")
                last_error = exc

        raise last_error

    async def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options=None,
    ) -> httpcore.AsyncNetworkStream:
        return await self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)
