"""
Response caching with version-tag invalidation.

Read results are cached per logical group. A group is invalidated by bumping
an integer version stored under ``{prefix}:v:{group}``; data lives under
``{prefix}:{group}:v{version}[:{suffix}]``, so entries written under an older
version are never read again and simply expire. No backend needs to support
key scans, wildcard deletes or tags.
"""

import asyncio
import copy
import json
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar

import redis.asyncio as redis

from .audit_logger import AuditLogger
from .config import CacheConfig
from .exceptions import ConfigurationError

T = TypeVar("T")


class CacheStore(Protocol):
    """Minimal key/value backend used by VersionedCache."""

    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    async def increment(self, key: str, ttl_seconds: int) -> int:
        ...

    async def expire(self, key: str, ttl_seconds: int) -> None:
        ...

    async def aclose(self) -> None:
        ...


class MemoryCacheStore:
    """In-process store with per-key expiry.

    Orphaned entries are never read again, so expired keys are swept on
    every write instead of only on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[float, Any]] = {}
        self._lock: Optional[asyncio.Lock] = None

    def _read(self, key: str) -> Any:
        item = self._data.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]
        return len(expired)

    async def get(self, key: str) -> Any:
        return copy.deepcopy(self._read(key))

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.purge_expired()
        self._data[key] = (self._clock() + ttl_seconds, copy.deepcopy(value))

    async def increment(self, key: str, ttl_seconds: int) -> int:
        # Created lazily so the lock binds to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            self.purge_expired()
            current = self._read(key)
            value = int(current or 0) + 1
            self._data[key] = (self._clock() + ttl_seconds, value)
            return value

    async def expire(self, key: str, ttl_seconds: int) -> None:
        value = self._read(key)
        if value is not None:
            self._data[key] = (self._clock() + ttl_seconds, value)

    async def aclose(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class NullCacheStore:
    """Store that keeps nothing; every read is a miss."""

    async def get(self, key: str) -> Any:
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        return None

    async def increment(self, key: str, ttl_seconds: int) -> int:
        return 0

    async def expire(self, key: str, ttl_seconds: int) -> None:
        return None

    async def aclose(self) -> None:
        return None


class RedisCacheStore:
    """Redis-backed store; values are JSON encoded."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None) -> None:
        self.redis_url = redis_url
        self.redis = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    async def get(self, key: str) -> Any:
        raw = await self.redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.redis.setex(key, ttl_seconds, json.dumps(value))

    async def increment(self, key: str, ttl_seconds: int) -> int:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            value, _ = await pipe.execute()
        return int(value)

    async def expire(self, key: str, ttl_seconds: int) -> None:
        await self.redis.expire(key, ttl_seconds)

    async def aclose(self) -> None:
        await self.redis.aclose()


def create_cache_store(config: CacheConfig) -> CacheStore:
    """Build the store named by ``config.backend``."""
    backend = config.backend.lower()
    if backend == "memory":
        return MemoryCacheStore()
    if backend == "none":
        return NullCacheStore()
    if backend == "redis":
        if not config.redis_url:
            raise ConfigurationError(
                code="invalid_config",
                message="cache.redis_url is required for the redis backend",
            )
        return RedisCacheStore(config.redis_url)
    raise ConfigurationError(
        code="invalid_config",
        message=f"Unknown cache backend: {config.backend}",
        details={"backend": config.backend},
    )


class VersionedCache:
    """
    Read-through cache keyed by group name and invalidated by version bump.

    ``ttl_seconds <= 0`` disables caching: every ``remember`` calls its
    producer directly and never touches the store.
    """

    COMPONENT = "versioned_cache"

    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: int = 300,
        prefix: str = "cloudflare",
        version_ttl_seconds: int = 86400,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._prefix = prefix
        self._version_ttl = version_ttl_seconds
        self._logger = logger

    @classmethod
    def from_config(
        cls, store: CacheStore, config: CacheConfig, logger: Optional[AuditLogger] = None
    ) -> "VersionedCache":
        return cls(
            store,
            ttl_seconds=config.ttl_seconds,
            prefix=config.prefix,
            version_ttl_seconds=config.version_ttl_seconds,
            logger=logger,
        )

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def version_key(self, group: str) -> str:
        return f"{self._prefix}:v:{group}"

    def key_for(self, group: str, version: int, suffix: str = "") -> str:
        key = f"{self._prefix}:{group}:v{version}"
        if suffix:
            key += f":{suffix}"
        return key

    async def version(self, group: str) -> int:
        value = await self._store.get(self.version_key(group))
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0

    async def remember(
        self,
        group: str,
        producer: Callable[[], Awaitable[T]],
        suffix: str = "",
        ttl_seconds: Optional[int] = None,
    ) -> T:
        """
        Return the cached value for ``group``/``suffix`` or produce and store it.

        Args:
            group: Logical cache group, e.g. ``dns_records:{zone_id}``
            producer: Zero-argument coroutine function called on a miss
            suffix: Distinguishes entries within a group (query parameters)
            ttl_seconds: Overrides the default TTL for this call
        """
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return await producer()
        # A data entry must never outlive the version counter that orphans it
        ttl = min(ttl, self._version_ttl)

        version = await self.version(group)
        key = self.key_for(group, version, suffix)
        cached = await self._store.get(key)
        if cached is not None:
            if self._logger:
                self._logger.debug(self.COMPONENT, "Cache hit", {"key": key})
            return cached

        value = await producer()
        if value is not None:
            await self._store.set(key, value, ttl)
            if version > 0:
                await self._store.expire(self.version_key(group), self._version_ttl)
        return value

    async def invalidate(self, group: str) -> int:
        """Orphan every entry of ``group``; returns the new version."""
        version = await self._store.increment(self.version_key(group), self._version_ttl)
        if self._logger:
            self._logger.debug(self.COMPONENT, "Cache group invalidated", {"group": group, "version": version})
        return version
