"""Outbound order-status notifications and inbound payment callback checks."""
import hashlib
import hmac
import httpx
import asyncio
import logging
from typing import Optional

from portal.core.config import settings
from portal.core.metrics import webhook_deliveries

logger = logging.getLogger(__name__)


async def send_webhook(payload: dict, retries: int | None = None) -> bool:
    """POST a status change to ``WEBHOOK_URL`` with exponential backoff. Never raises."""
    if not settings.WEBHOOK_URL:
        return False

    if retries is None:
        retries = settings.WEBHOOK_RETRIES

    backoff = 1.0
    order_id = payload.get("order_id")

    for attempt in range(1, retries + 1):
        try:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT) as client:
                response = await client.post(settings.WEBHOOK_URL, json=payload)

                if 200 <= response.status_code < 300:
                    webhook_deliveries.labels(status="success", retry_count=str(attempt - 1)).inc()
                    logger.info(f"Status webhook delivered for order {order_id}")
                    return True
                logger.warning(
                    f"Status webhook failed (attempt {attempt}/{retries}): "
                    f"HTTP {response.status_code} for order {order_id}"
                )
        except httpx.TimeoutException:
            logger.warning(f"Status webhook timeout (attempt {attempt}/{retries}) for order {order_id}")
        except Exception as e:
            logger.warning(f"Status webhook error (attempt {attempt}/{retries}): {e} for order {order_id}")

        if attempt < retries:
            await asyncio.sleep(backoff)
            backoff *= 2.0

    webhook_deliveries.labels(status="failed", retry_count=str(retries)).inc()
    logger.error(f"Status webhook failed after {retries} attempts for order {order_id}")
    return False


def sign_payload(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check a provider's hex HMAC-SHA256 signature of the raw request body."""
    if not secret:
        # Unsigned callbacks are accepted only when no secret is configured.
        return True
    if not signature:
        return False
    return hmac.compare_digest(sign_payload(body, secret), signature)
