import logging
from typing import Optional
from redis.asyncio import Redis
from portal.core.config import settings
from portal.core.metrics import redis_connected

logger = logging.getLogger(__name__)

redis: Optional[Redis] = None

async def init_redis() -> Optional[Redis]:
    """Connect to Redis. Caching, rate limits and idempotency stay off if this fails."""
    global redis
    try:
        client = Redis.from_url(settings.REDIS_URL, decode_responses=False)
        await client.ping()
        redis = client
        redis_connected.set(1)
        logger.info("Connected to Redis")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        redis = None
        redis_connected.set(0)
    return redis

async def close_redis():
    global redis
    if redis:
        await redis.aclose()
        redis = None
    redis_connected.set(0)

def get_redis() -> Optional[Redis]:
    return redis
