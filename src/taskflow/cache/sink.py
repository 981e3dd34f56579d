"""Key/value cache backends for precomputed task lists."""

import json
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Callable, Optional

from taskflow.utils.time import utc_now

logger = logging.getLogger(__name__)


class CacheSink(ABC):
    """Minimal cache surface: prefix listing, single-key delete, get/set with TTL."""

    @abstractmethod
    async def keys_matching(self, prefix: str) -> list[str]:
        """All live keys starting with ``prefix``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete one key; ``False`` if it was not there."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Cached value, or ``None`` when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a JSON-serializable value for ``ttl_seconds``."""

    async def close(self) -> None:
        """Release connections."""


class InMemoryCacheSink(CacheSink):
    """Process-local cache for development and tests."""

    def __init__(self, clock: Callable = utc_now):
        self._entries: dict[str, tuple[Any, Any]] = {}
        self.clock = clock

    def _live(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry[1] <= self.clock():
            del self._entries[key]
            return False
        return True

    async def keys_matching(self, prefix: str) -> list[str]:
        return [k for k in list(self._entries) if k.startswith(prefix) and self._live(k)]

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def get(self, key: str) -> Optional[Any]:
        if not self._live(key):
            return None
        return self._entries[key][0]

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (value, self.clock() + timedelta(seconds=ttl_seconds))


def _escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters."""
    for char in ("\\", "*", "?", "[", "]"):
        value = value.replace(char, f"\\{char}")
    return value


class RedisCacheSink(CacheSink):
    """
    Redis-backed cache.

    Values are stored as JSON strings with a native expiry. Prefix listing
    uses SCAN, so it never blocks the server the way KEYS would.

    Requires redis to be installed: pip install redis[hiredis]
    """

    def __init__(self, redis_url: str):
        try:
            import redis.asyncio as aioredis
        except ImportError:
            raise ImportError(
                "redis package required for RedisCacheSink. "
                "Install with: pip install redis[hiredis]"
            )

        self.redis = aioredis.from_url(redis_url, decode_responses=True)
        logger.info(f"Redis cache initialized: {redis_url}")

    async def keys_matching(self, prefix: str) -> list[str]:
        return [key async for key in self.redis.scan_iter(match=f"{_escape_glob(prefix)}*", count=100)]

    async def delete(self, key: str) -> bool:
        return await self.redis.delete(key) > 0

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.redis.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.redis.set(key, json.dumps(value, default=str), ex=ttl_seconds)

    async def close(self) -> None:
        await self.redis.aclose()
