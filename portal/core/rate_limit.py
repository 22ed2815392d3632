import logging

from portal.core.redis import get_redis
from portal.core.config import settings
from portal.core.errors import RateLimited
from portal.core.metrics import rate_limit_exceeded

logger = logging.getLogger(__name__)

async def check_rate_limit(caller_id: str):
    redis = get_redis()
    if redis is None:
        return
    key = f"rl:{caller_id}"
    current = await redis.get(key)
    if current is None:
        await redis.set(key, "1", ex=settings.RATE_LIMIT_WINDOW)
        return
    count = int(current)
    if count >= settings.RATE_LIMIT:
        rate_limit_exceeded.labels(caller_id=caller_id).inc()
        logger.warning(f"Rate limit exceeded for caller {caller_id}")
        raise RateLimited()
    await redis.incr(key)
