"""
Factory for creating rate-limit stores from settings.

Called once by the application factory; the instance lives on app.state.
"""

import logging
from enum import Enum

from shortlink_app.config import Settings
from .strategies import InMemoryRateLimitStore, NullRateLimitStore, RateLimitStore, RedisRateLimitStore

logger = logging.getLogger(__name__)


class RateLimitBackend(Enum):
    """Available counter backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


def create_rate_limit_store(settings: Settings) -> RateLimitStore:
    """
    Build the store named by settings.rate_limit_backend.

    Redis is pinged up front; if it is unreachable the process falls back
    to in-memory counters (per-process limits) and says so in the log.

    Raises:
        ValueError: Unknown backend name
    """
    backend = RateLimitBackend(settings.rate_limit_backend)

    if backend == RateLimitBackend.REDIS:
        import redis

        try:
            redis_client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            redis_client.ping()
            logger.info("Redis rate-limit store initialized")
            return RedisRateLimitStore(redis_client)

        except Exception as e:
            logger.warning("Redis connection failed (%s); falling back to in-memory rate limits", e)
            return InMemoryRateLimitStore()

    if backend == RateLimitBackend.MEMORY:
        logger.info("In-memory rate-limit store initialized")
        return InMemoryRateLimitStore()

    logger.info("Rate limiting disabled (null store)")
    return NullRateLimitStore()
