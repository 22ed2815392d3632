"""Public price quote endpoints with Redis caching"""
import json
import hashlib
import logging
from fastapi import APIRouter

from portal.schemas.quote import QuoteRequest, QuoteResponse
from portal.services.pricing import calculate_price, price_list
from portal.core.redis import get_redis
from portal.core.config import settings
from portal.core.metrics import cache_hits, cache_misses, quotes_calculated

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


def _generate_cache_key(req: QuoteRequest) -> str:
    params_str = json.dumps(req.model_dump(), sort_keys=True)
    return f"price:{hashlib.sha256(params_str.encode()).hexdigest()}"


@router.post("/calc", response_model=QuoteResponse)
async def calc_quote(req: QuoteRequest):

    cache_key = _generate_cache_key(req)
    redis = get_redis()

    if redis is not None:
        try:
            cached = await redis.get(cache_key)
            if cached:
                cache_hits.labels(cache_key="price").inc()
                return QuoteResponse.model_validate_json(cached)
            cache_misses.labels(cache_key="price").inc()
        except Exception as e:
            logger.warning(f"Cache retrieval failed: {e}")

    result = calculate_price(req)
    quotes_calculated.labels(service_type=req.service_type).inc()

    if redis is not None:
        try:
            await redis.set(cache_key, result.model_dump_json(), ex=settings.PRICE_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Cache write failed: {e}")

    return result


@router.get("/price-list")
async def get_price_list():
    return {"success": True, "data": price_list()}
