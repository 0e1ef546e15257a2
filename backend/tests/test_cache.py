"""Tests for the Redis response cache."""

from datetime import date

import pytest
import pytest_asyncio
import redis.asyncio as redis

from conftest import JANUARY_2024
from estatebook.config import settings
from estatebook.utils import cache as cache_module
from estatebook.utils.cache import (
    cache_key, cached, close_redis, endpoint_key, get_redis, invalidate_cache,
)


@pytest_asyncio.fixture
async def redis_client(monkeypatch):
    """Redis with caching switched on; skips when Redis is not running."""
    monkeypatch.setattr(settings, "cache_enabled", True)
    cache_module._redis_client = None

    client = await get_redis()
    try:
        await client.ping()
    except (redis.RedisError, OSError):
        await close_redis()
        pytest.skip("Redis not reachable")

    await client.flushdb()
    yield client

    await client.flushdb()
    await close_redis()


@pytest.mark.unit
@pytest.mark.asyncio
class TestCacheWithoutRedis:

    async def test_cache_key_generation(self):
        key1 = cache_key(limit=50, offset=0)
        key2 = cache_key(offset=0, limit=50)
        key3 = cache_key(limit=100, offset=0)

        assert key1 == key2
        assert key1 != key3
        assert cache_key() == "default"

    async def test_endpoint_key_changes_with_the_date(self):
        kwargs = {"start": None, "end": None, "preset": "month", "field_id": None}
        jan31 = endpoint_key("ledger", "get_ledger", kwargs, today=date(2024, 1, 31))
        feb1 = endpoint_key("ledger", "get_ledger", kwargs, today=date(2024, 2, 1))

        assert jan31.startswith("ledger:get_ledger:")
        assert jan31 != feb1
        assert jan31 == endpoint_key("ledger", "get_ledger", kwargs, today=date(2024, 1, 31))

    async def test_endpoint_key_ignores_injected_objects(self):
        plain = endpoint_key("reports", "get_report", {"preset": "year"}, today=date(2024, 1, 31))
        with_store = endpoint_key(
            "reports", "get_report", {"preset": "year", "store": object()}, today=date(2024, 1, 31)
        )
        assert plain == with_store

    async def test_disabled_cache_calls_through(self):
        calls = 0

        @cached(ttl=10, prefix="test")
        async def compute(x: int):
            nonlocal calls
            calls += 1
            return {"x": x}

        assert await compute(x=1) == {"x": 1}
        assert await compute(x=1) == {"x": 1}
        assert calls == 2


@pytest.mark.cache
@pytest.mark.asyncio
class TestCacheUtility:

    async def test_cached_decorator(self, redis_client):
        calls = 0

        @cached(ttl=10, prefix="test")
        async def expensive_function(arg1: int, arg2: str):
            nonlocal calls
            calls += 1
            return {"result": arg1 + len(arg2)}

        assert await expensive_function(arg1=10, arg2="hello") == {"result": 15}
        assert await expensive_function(arg1=10, arg2="hello") == {"result": 15}
        assert calls == 1

        assert await expensive_function(arg1=20, arg2="world") == {"result": 25}
        assert calls == 2

    async def test_cache_invalidation(self, redis_client):
        await redis_client.set("ledger:get_ledger:abc123", "value1")
        await redis_client.set("reports:get_report:def456", "value2")
        await redis_client.set("other:func:xyz789", "value3")

        await cache_module.invalidate_derived()

        keys = [key async for key in redis_client.scan_iter(match="*")]
        assert keys == ["other:func:xyz789"]

        await invalidate_cache("other:*")
        assert await redis_client.get("other:func:xyz789") is None

    async def test_cache_ttl(self, redis_client):
        @cached(ttl=1, prefix="test_ttl")
        async def fast_expiring():
            return {"value": "expires soon"}

        assert await fast_expiring() == {"value": "expires soon"}

        keys = [key async for key in redis_client.scan_iter(match="test_ttl:*")]
        assert len(keys) == 1
        ttl = await redis_client.ttl(keys[0])
        assert 0 < ttl <= 1

    async def test_rate_change_drops_cached_ledger(self, redis_client, client, estate):
        first = await client.get("/api/ledger/", params=JANUARY_2024)
        assert first.json()["estate"]["total_income"] == 4000
        assert [k async for k in redis_client.scan_iter(match="ledger:*")]

        await client.post(
            "/api/collectors/rates",
            json={"collector_id": 1, "month": 1, "year": 2024, "rate": 50},
        )
        assert not [k async for k in redis_client.scan_iter(match="ledger:*")]

        second = await client.get("/api/ledger/", params=JANUARY_2024)
        assert second.json()["estate"]["total_income"] == 5000
