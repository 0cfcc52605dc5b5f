"""
Expiring key-value cache with sliding and absolute expiration.

An entry is a miss once it has been idle longer than its sliding window or
has lived longer than its absolute window, whichever comes first. Reads
refresh the sliding window only. Both backends are best-effort: a miss or a
backend failure must always be recoverable by re-reading the database.
"""
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable
from dataclasses import dataclass
import json
import logging
import threading
import time

import redis.asyncio as redis
from redis.asyncio import Redis

from app.core.config import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class ExpiringCache(Protocol):
    """Interface the doctor service depends on"""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(
        self,
        key: str,
        value: Any,
        sliding_expiration: Optional[float] = None,
        absolute_expiration: Optional[float] = None,
    ) -> bool:
        ...

    async def remove(self, key: str) -> bool:
        ...

    async def close(self) -> None:
        ...


@dataclass
class _Entry:
    value: Any
    created_at: float
    last_access: float
    sliding_expiration: float
    absolute_expiration: float

    def is_expired(self, now: float) -> bool:
        return (
            now - self.last_access > self.sliding_expiration
            or now - self.created_at > self.absolute_expiration
        )

    def deadline(self) -> float:
        return min(
            self.last_access + self.sliding_expiration,
            self.created_at + self.absolute_expiration,
        )


class MemoryCache:
    """In-process cache, safe to share across concurrent requests"""

    def __init__(
        self,
        sliding_expiration: float = 300,
        absolute_expiration: float = 600,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sliding_expiration = sliding_expiration
        self.absolute_expiration = absolute_expiration
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            now = self._clock()
            if entry.is_expired(now):
                del self._entries[key]
                return None

            entry.last_access = now
            return entry.value

    async def set(
        self,
        key: str,
        value: Any,
        sliding_expiration: Optional[float] = None,
        absolute_expiration: Optional[float] = None,
    ) -> bool:
        now = self._clock()
        entry = _Entry(
            value=value,
            created_at=now,
            last_access=now,
            sliding_expiration=sliding_expiration or self.sliding_expiration,
            absolute_expiration=absolute_expiration or self.absolute_expiration,
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = entry
        return True

    async def remove(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def close(self) -> None:
        await self.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]

        if len(self._entries) >= self.max_entries:
            victim = min(self._entries, key=lambda k: self._entries[k].deadline())
            del self._entries[victim]
            logger.debug(f"Evicted cache key {victim} (capacity {self.max_entries})")


class RedisCache:
    """
    Redis-backed cache.

    Each value is stored as JSON next to its absolute deadline. The key TTL is
    kept at min(sliding window, time left before the deadline) and refreshed
    on every read, so Redis itself drops idle or over-age entries.

    Redis failures are logged and reported as a miss (get) or False
    (set/remove); they never propagate.
    """

    def __init__(
        self,
        redis_client: Redis,
        sliding_expiration: float = 300,
        absolute_expiration: float = 600,
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis_client
        self.sliding_expiration = sliding_expiration
        self.absolute_expiration = absolute_expiration
        self._clock = clock

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> "RedisCache":
        """Connect with raw bytes replies; json.loads decodes the UTF-8 payload itself"""
        client = redis.from_url(
            redis_url,
            decode_responses=False,
            max_connections=20,
            retry_on_timeout=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            health_check_interval=30
        )
        return cls(client, **kwargs)

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(key)
            if raw is None:
                return None

            payload = json.loads(raw)
            remaining = payload["expires_at"] - self._clock()
            if remaining <= 0:
                await self.redis.delete(key)
                return None

            ttl = min(payload["sliding"], remaining)
            await self.redis.pexpire(key, max(int(ttl * 1000), 1))
            return payload["value"]

        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        sliding_expiration: Optional[float] = None,
        absolute_expiration: Optional[float] = None,
    ) -> bool:
        try:
            sliding = sliding_expiration or self.sliding_expiration
            absolute = absolute_expiration or self.absolute_expiration
            payload = {
                "value": value,
                "sliding": sliding,
                "expires_at": self._clock() + absolute,
            }
            serialized_value = json.dumps(payload, default=str).encode('utf-8')
            result = await self.redis.set(key, serialized_value, px=int(min(sliding, absolute) * 1000))
            return bool(result)

        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def remove(self, key: str) -> bool:
        try:
            result = await self.redis.delete(key)
            return result > 0
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    async def is_healthy(self) -> bool:
        """Check Redis health"""
        try:
            await self.redis.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
        return False

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Redis connection closed")


async def create_cache(settings: Settings) -> ExpiringCache:
    """Build the cache backend selected by CACHE_BACKEND"""
    if settings.CACHE_BACKEND == "redis":
        cache = RedisCache.from_url(
            settings.REDIS_URL,
            sliding_expiration=settings.CACHE_SLIDING_EXPIRATION_SECONDS,
            absolute_expiration=settings.CACHE_ABSOLUTE_EXPIRATION_SECONDS,
        )
        if not await cache.is_healthy():
            await cache.close()
            raise ConnectionError(f"Redis is not reachable at {settings.REDIS_URL}")
        logger.info("Redis cache connected")
        return cache

    logger.info("Using in-memory cache")
    return MemoryCache(
        sliding_expiration=settings.CACHE_SLIDING_EXPIRATION_SECONDS,
        absolute_expiration=settings.CACHE_ABSOLUTE_EXPIRATION_SECONDS,
        max_entries=settings.CACHE_MAX_ENTRIES,
    )
