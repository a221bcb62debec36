"""
Company Lens: Redis Connection
────────────────────────────────
Lazily connects to Redis and re-checks the connection on every use.
When Redis is unreachable the caller gets None and the engine runs
on the in-memory tier alone.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from research_engine.config import REDIS_URL

log = logging.getLogger("cl.cache.redis")

redis_client: Optional[aioredis.Redis] = None


async def get_redis() -> Optional[aioredis.Redis]:
    global redis_client
    if redis_client:
        try:
            await redis_client.ping()
            return redis_client
        except (RedisError, OSError):
            redis_client = None
    try:
        client = aioredis.from_url(REDIS_URL, decode_responses=True, socket_timeout=2)
        await client.ping()
        redis_client = client
        log.info("Redis connected")
        return redis_client
    except (RedisError, OSError) as e:
        log.warning(f"Redis unavailable ({e}) - using in-memory cache only")
        return None


async def close_redis():
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
