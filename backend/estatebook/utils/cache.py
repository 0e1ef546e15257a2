"""Redis response cache for derived ledgers and reports.

Ledger and report endpoints recompute everything from raw records, so
their responses are cached for a short TTL.  Any write that can change
a derived figure (a harvest, an expense, a collector rate) drops the
``ledger:*`` and ``reports:*`` keys; the next read re-resolves rates.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from estatebook.config import settings

logger = logging.getLogger(__name__)

DERIVED_PREFIXES = ("ledger", "reports")

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(**kwargs) -> str:
    """Deterministic hash of the simple keyword arguments."""
    if not kwargs:
        return "default"
    key_data = json.dumps(kwargs, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def endpoint_key(prefix: str, name: str, kwargs: dict, today: Optional[date] = None) -> str:
    """Key for one call of a cached endpoint.

    Preset periods and the missing-rate advisory are relative to the
    current date, so the date is always part of the key.
    """
    cache_kwargs = {}
    for k, v in kwargs.items():
        if k.startswith("_"):
            continue
        if isinstance(v, (int, str, bool, float, type(None))):
            cache_kwargs[k] = v
        elif isinstance(v, (date, datetime)):
            cache_kwargs[k] = v.isoformat()
    cache_kwargs["_as_of"] = (today or date.today()).isoformat()
    return f"{prefix}:{name}:{cache_key(**cache_kwargs)}"


def _serialize(result):
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    if isinstance(result, list) and result and hasattr(result[0], "model_dump"):
        return [item.model_dump(mode="json") for item in result]
    return result


def cached(ttl: int = 300, prefix: str = "cache"):
    """Cache an endpoint's result in Redis.

    Keys are ``{prefix}:{function_name}:{kwargs_hash}``.  Only simple
    keyword arguments (numbers, strings, dates) go into the hash, so
    injected dependencies such as the record store are ignored.

    Example:
        @router.get("/")
        @cached(ttl=120, prefix="ledger")
        async def get_ledger(start: date | None = None, store=Depends(get_store)):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.cache_enabled:
                return await func(*args, **kwargs)

            key = endpoint_key(prefix, func.__name__, kwargs)

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            if cached_value:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(cached_value)

            logger.debug(f"Cache MISS: {key}")
            result = await func(*args, **kwargs)

            try:
                await redis_client.setex(key, ttl, json.dumps(_serialize(result)))
            except redis.RedisError as e:
                logger.warning(f"Failed to cache {key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Invalidate cache keys matching a pattern, e.g. ``"ledger:*"``."""
    if not settings.cache_enabled:
        return
    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")


async def invalidate_derived():
    """Drop every cached ledger and report."""
    for prefix in DERIVED_PREFIXES:
        await invalidate_cache(f"{prefix}:*")
