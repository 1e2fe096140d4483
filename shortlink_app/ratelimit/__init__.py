"""
Rate limiting for anonymous creation.
Implements Strategy Pattern for flexible counter backends.
"""

from .strategies import RateLimitStore, RedisRateLimitStore, InMemoryRateLimitStore, NullRateLimitStore
from .factory import RateLimitBackend, create_rate_limit_store
from .limiter import RateLimitDecision, RateLimiter

__all__ = [
    "RateLimitStore",
    "RedisRateLimitStore",
    "InMemoryRateLimitStore",
    "NullRateLimitStore",
    "RateLimitBackend",
    "create_rate_limit_store",
    "RateLimitDecision",
    "RateLimiter",
]
