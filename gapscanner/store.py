"""
Durable key-value store backends.

RedisStore wraps one redis.asyncio connection with an explicit lifecycle:
constructed by the caller, opened lazily on first use (or via open()), and
closed by its owner. If Redis cannot be reached the store degrades: every
read is a miss and every write is a no-op. A scan never fails because of it.
"""

import asyncio
import time
from typing import Dict, Optional, Protocol, Tuple
import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger


class KeyValueStore(Protocol):
    """Minimal string key-value store with expiry."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def close(self) -> None:
        ...


class RedisStore:
    """Redis-backed KeyValueStore that degrades to a no-op when unreachable."""

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        self.url = url
        self._client: Optional[redis.Redis] = client
        self._opened = client is not None
        self.available = client is not None
        self._open_lock = asyncio.Lock()

    async def __aenter__(self) -> "RedisStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> bool:
        """Connect and ping once. Returns True if Redis is usable."""
        if self._opened:
            return self.available

        # One ping per open; concurrent first callers wait for its outcome
        async with self._open_lock:
            if self._opened:
                return self.available

            client = redis.from_url(self.url, decode_responses=True)
            try:
                await client.ping()
            except (RedisError, OSError) as e:
                logger.warning(f"Redis unavailable at {self._safe_url()}: {e} - durable cache disabled")
                await client.aclose()
                self.available = False
                self._opened = True
                return False

            self._client = client
            self.available = True
            self._opened = True
            logger.info(f"Redis connected at {self._safe_url()}")
            return True

    async def close(self) -> None:
        """Close the connection; the store may be reopened afterwards."""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._opened = False
        self.available = False

    async def get(self, key: str) -> Optional[str]:
        if not await self.open():
            return None
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis GET {key} failed: {e}")
            return None

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        if not await self.open():
            return
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            logger.error(f"Redis SET {key} failed: {e}")

    def _safe_url(self) -> str:
        # Hide credentials embedded in the URL
        if "@" in self.url:
            scheme, _, rest = self.url.partition("://")
            return f"{scheme}://***@{rest.split('@', 1)[1]}"
        return self.url


class InMemoryStore:
    """Process-local KeyValueStore, used when Redis is disabled and in tests."""

    def __init__(self, clock=time.time):
        self._data: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if self._clock() >= expiry:
            del self._data[key]
            return None
        return value

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def close(self) -> None:
        self._data.clear()


def create_store(settings) -> KeyValueStore:
    """Build the durable store configured in settings."""
    if settings.use_redis:
        return RedisStore(settings.redis_url)
    logger.info("Redis disabled - using in-process store")
    return InMemoryStore()
