"""
Rate-limit counter stores using Strategy Pattern.
Allows switching between different key-value backends (Redis, In-Memory, Null).

The counters never touch the relational store: they need per-key expiry,
which Redis has natively and the in-memory store emulates.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    """
    Abstract base class for counter stores.

    All methods are async because the production backend is a network hop.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[int]:
        """
        Read a counter.

        Args:
            key: Counter key

        Returns:
            Current count, or None if the key is absent or expired
        """
        pass

    @abstractmethod
    async def put(self, key: str, count: int, ttl: int) -> bool:
        """
        Write a counter with a time to live.

        Args:
            key: Counter key
            count: New value
            ttl: Seconds until the key disappears on its own

        Returns:
            True if successful, False otherwise
        """
        pass


class RedisRateLimitStore(RateLimitStore):
    """
    Redis-backed counters.

    - Shared by every process instance
    - SETEX gives each key its own expiry, so no cleanup job exists

    Backend errors are logged and reported as "no counter" / "not written";
    a Redis outage degrades to not limiting rather than failing requests.
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[int]:
        try:
            value = self.redis.get(key)
            return int(value) if value is not None else None
        except Exception as e:
            logger.error("Redis get error for %s: %s", key, e)
            return None

    async def put(self, key: str, count: int, ttl: int) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, count))
        except Exception as e:
            logger.error("Redis set error for %s: %s", key, e)
            return False


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local counters for development and tests.

    Not shared between processes and lost on restart. Expiry is checked
    lazily on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._counters: Dict[str, Tuple[int, float]] = {}

    async def get(self, key: str) -> Optional[int]:
        entry = self._counters.get(key)
        if entry is None:
            return None

        count, expires_at = entry
        if self._clock() >= expires_at:
            del self._counters[key]
            return None
        return count

    async def put(self, key: str, count: int, ttl: int) -> bool:
        self._counters[key] = (count, self._clock() + ttl)
        return True


class NullRateLimitStore(RateLimitStore):
    """
    Null Object Pattern - remembers nothing, so nothing is ever limited.

    Used when rate limiting is switched off by configuration.
    """

    async def get(self, key: str) -> Optional[int]:
        """Always reports no counter"""
        return None

    async def put(self, key: str, count: int, ttl: int) -> bool:
        """Pretends to write but does nothing"""
        return True
