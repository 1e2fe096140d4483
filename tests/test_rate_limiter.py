"""
Tests for the anonymous-creation rate limiter and its counter stores.
"""
import asyncio
from datetime import date

from shortlink_app.config import Settings
from shortlink_app.ratelimit import (
    InMemoryRateLimitStore,
    NullRateLimitStore,
    RateLimiter,
    RedisRateLimitStore,
    create_rate_limit_store,
)

LIMIT_MESSAGE = (
    "Daily limit reached (5 URLs per day). "
    "Sign up for a free account to get 10 permanent URLs."
)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeRedis:
    """Just enough of redis.Redis for the store: GET and SETEX"""

    def __init__(self, fail=False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    def setex(self, key, ttl, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = str(value)
        self.ttls[key] = ttl
        return True


class TestRateLimiter:
    """Test daily per-source limits"""

    def test_key_format(self):
        limiter = RateLimiter(InMemoryRateLimitStore(), today=lambda: date(2026, 2, 13))
        assert limiter.build_key("203.0.113.45") == "ratelimit:203.0.113.45:2026-02-13"

    def test_counts_down_then_blocks(self):
        """Test remaining goes 4, 3, 2, 1, 0 and the sixth check is refused"""
        limiter = RateLimiter(InMemoryRateLimitStore())

        remaining = []
        for _ in range(5):
            assert asyncio.run(limiter.check("1.2.3.4")).allowed
            remaining.append(asyncio.run(limiter.increment("1.2.3.4")))

        assert remaining == [4, 3, 2, 1, 0]

        decision = asyncio.run(limiter.check("1.2.3.4"))
        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.error == LIMIT_MESSAGE

    def test_check_does_not_count(self):
        limiter = RateLimiter(InMemoryRateLimitStore())

        for _ in range(10):
            asyncio.run(limiter.check("1.2.3.4"))

        assert asyncio.run(limiter.check("1.2.3.4")).remaining == 5

    def test_blocked_check_does_not_mutate(self):
        store = InMemoryRateLimitStore()
        limiter = RateLimiter(store)
        for _ in range(5):
            asyncio.run(limiter.increment("1.2.3.4"))

        asyncio.run(limiter.check("1.2.3.4"))

        assert asyncio.run(store.get(limiter.build_key("1.2.3.4"))) == 5

    def test_sources_are_independent(self):
        limiter = RateLimiter(InMemoryRateLimitStore())
        for _ in range(5):
            asyncio.run(limiter.increment("1.1.1.1"))

        assert asyncio.run(limiter.check("2.2.2.2")).allowed

    def test_new_day_new_counter(self):
        """Test the UTC date in the key resets the limit at midnight"""
        day = {"value": date(2026, 2, 13)}
        limiter = RateLimiter(InMemoryRateLimitStore(), today=lambda: day["value"])
        for _ in range(5):
            asyncio.run(limiter.increment("1.2.3.4"))
        assert not asyncio.run(limiter.check("1.2.3.4")).allowed

        day["value"] = date(2026, 2, 14)

        assert asyncio.run(limiter.check("1.2.3.4")).remaining == 5

    def test_increment_writes_ttl(self):
        redis_client = FakeRedis()
        limiter = RateLimiter(RedisRateLimitStore(redis_client), today=lambda: date(2026, 2, 13))

        asyncio.run(limiter.increment("1.2.3.4"))

        assert redis_client.data == {"ratelimit:1.2.3.4:2026-02-13": "1"}
        assert redis_client.ttls["ratelimit:1.2.3.4:2026-02-13"] == 90000


class TestStores:
    """Test counter store strategies"""

    def test_in_memory_expiry(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore(clock=clock)
        asyncio.run(store.put("k", 3, ttl=10))

        clock.now = 9.9
        assert asyncio.run(store.get("k")) == 3

        clock.now = 10.0
        assert asyncio.run(store.get("k")) is None

    def test_redis_round_trip(self):
        store = RedisRateLimitStore(FakeRedis())

        assert asyncio.run(store.get("k")) is None
        assert asyncio.run(store.put("k", 2, ttl=60)) is True
        assert asyncio.run(store.get("k")) == 2

    def test_redis_errors_fail_open(self):
        """Test a Redis outage never blocks creation"""
        limiter = RateLimiter(RedisRateLimitStore(FakeRedis(fail=True)))

        assert asyncio.run(limiter.check("1.2.3.4")).allowed
        assert asyncio.run(limiter.increment("1.2.3.4")) == 4

    def test_null_store_never_limits(self):
        limiter = RateLimiter(NullRateLimitStore())
        for _ in range(20):
            asyncio.run(limiter.increment("1.2.3.4"))

        assert asyncio.run(limiter.check("1.2.3.4")).allowed


class TestFactory:
    """Test store construction from settings"""

    def test_memory_backend(self):
        assert isinstance(create_rate_limit_store(Settings(rate_limit_backend="memory")), InMemoryRateLimitStore)

    def test_null_backend(self):
        assert isinstance(create_rate_limit_store(Settings(rate_limit_backend="null")), NullRateLimitStore)

    def test_unreachable_redis_falls_back_to_memory(self):
        settings = Settings(rate_limit_backend="redis", redis_url="redis://127.0.0.1:1/0")
        assert isinstance(create_rate_limit_store(settings), InMemoryRateLimitStore)
