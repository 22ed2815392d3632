import json
from portal.core.redis import get_redis
from portal.core.config import settings

def _key(caller_id: str, key: str) -> str:
    # Keys are scoped per caller so two customers cannot collide.
    return f"idemp:{caller_id}:{key}"

async def get_idempotent(caller_id: str, key: str):
    redis = get_redis()
    if not key or redis is None:
        return None
    v = await redis.get(_key(caller_id, key))
    return json.loads(v) if v else None

async def set_idempotent(caller_id: str, key: str, value: dict):
    redis = get_redis()
    if not key or redis is None:
        return
    await redis.set(_key(caller_id, key), json.dumps(value, default=str), ex=settings.IDEMPOTENCY_TTL)
