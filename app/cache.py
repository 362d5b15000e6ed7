import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

# Sentinel key for whole-collection entries (e.g. the full post list).
ALL = "all"


class ResourceKind(str, Enum):
    POST_LIST = "post-list"
    POST = "post"
    USER = "user"
    COMMENT_LIST = "comment-list"


def cache_key(kind: ResourceKind, key: int | str) -> str:
    return f"{kind.value}:{key}"


class CacheBackend(Protocol):
    name: str

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def clear(self) -> None: ...

    def size(self) -> int | None: ...


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class MemoryCacheBackend:
    """
    Process-lifetime dictionary store.  No expiry, no eviction.

    A single ``dict`` assignment is atomic with respect to other coroutines
    on the event loop, so readers never observe a half-written entry.
    """

    name = "memory"

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._store.get(key)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._store[key] = value

    async def clear(self) -> None:
        self._store.clear()

    def size(self) -> int | None:
        return len(self._store)


class RedisCacheBackend:
    """
    Redis-backed store shared across worker processes.

    All public methods are safe to call even when Redis is unavailable:
    reads behave like a miss and writes are silently skipped, so the
    aggregation path falls back to the upstream instead of failing.
    """

    name = "redis"
    _PREFIX = "posts-aggregator:"

    def __init__(self, url: str | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self._url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache reads will miss: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        if not self._redis:
            return None
        try:
            data = await self._redis.get(self._PREFIX + key)
            return json.loads(data) if data is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(self._PREFIX + key, json.dumps(value), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def clear(self) -> None:
        """Delete every key under this service's prefix using SCAN."""
        if not self._redis:
            return
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=self._PREFIX + "*"):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
        except Exception as exc:
            logger.debug("Cache CLEAR error: %s", exc)

    def size(self) -> int | None:
        return None


# ---------------------------------------------------------------------------
# Read-through cache
# ---------------------------------------------------------------------------

class ResourceCache:
    """
    Read-through cache keyed by ``(ResourceKind, key)``.

    Values are the raw JSON payloads returned by the resource client.
    There is no single-flight: two coroutines missing on the same key both
    fetch, the last write wins, and each caller returns its *own* result.
    Failures and absent (``None``) results are never cached.
    """

    def __init__(self, backend: CacheBackend | None = None, ttl: int | None = None) -> None:
        self.backend = backend or MemoryCacheBackend()
        self.ttl = ttl
        self._hits: int = 0
        self._misses: int = 0

    async def get_or_fetch(
        self,
        kind: ResourceKind,
        key: int | str,
        fetch_fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        full_key = cache_key(kind, key)
        cached = await self.backend.get(full_key)
        if cached is not None:
            self._hits += 1
            logger.debug("Cache hit for %s", full_key)
            return cached

        self._misses += 1
        logger.debug("Cache miss for %s", full_key)
        value = await fetch_fn()
        if value is not None:
            await self.backend.set(full_key, value, ttl=self.ttl)
        return value

    async def clear(self) -> None:
        await self.backend.clear()

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the metrics endpoint."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            "entries": self.backend.size(),
        }


def build_cache() -> ResourceCache:
    """Create the cache selected by ``settings.CACHE_BACKEND``."""
    if settings.CACHE_BACKEND == "redis":
        return ResourceCache(RedisCacheBackend(), ttl=settings.CACHE_TTL_SECONDS)
    if settings.CACHE_BACKEND != "memory":
        raise ValueError(f"Unsupported CACHE_BACKEND: {settings.CACHE_BACKEND!r}")
    return ResourceCache(MemoryCacheBackend())
