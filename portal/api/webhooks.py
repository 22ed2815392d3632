"""Inbound payment provider and Notion callbacks"""
import json
import logging
from dataclasses import dataclass
from typing import FrozenSet

from fastapi import APIRouter, Depends, Request

from portal.core.config import settings
from portal.core.clients import get_order_service
from portal.core.enums import PaymentMethod
from portal.core.metrics import notion_events
from portal.core.errors import NotFound, Unauthenticated, ValidationFailure
from portal.services.orders import OrderService
from portal.services.webhook import verify_signature

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])

NOTION_SIGNATURE_HEADER = "x-notion-signature"


@dataclass(frozen=True)
class PaymentProvider:
    method: PaymentMethod
    signature_header: str
    secret: str
    success_statuses: FrozenSet[str]


def _providers() -> dict:
    return {
        "zaincash": PaymentProvider(
            PaymentMethod.ZAINCASH, "x-zaincash-signature",
            settings.ZAINCASH_WEBHOOK_SECRET, frozenset({"success", "completed"}),
        ),
        "qicard": PaymentProvider(
            PaymentMethod.QI_CARD, "x-qicard-signature",
            settings.QICARD_WEBHOOK_SECRET, frozenset({"success", "approved"}),
        ),
    }


def _json_body(body: bytes) -> dict:
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationFailure("Invalid JSON body", "صيغة البيانات غير صالحة")
    if not isinstance(payload, dict):
        raise ValidationFailure("Invalid JSON body", "صيغة البيانات غير صالحة")
    return payload


@router.post("/payment/{provider}")
async def payment_webhook(
    provider: str,
    request: Request,
    service: OrderService = Depends(get_order_service),
):
    config = _providers().get(provider.lower())
    if config is None:
        raise NotFound(f"Unknown payment provider: {provider}", "مزود الدفع غير معروف")

    body = await request.body()
    if not verify_signature(body, request.headers.get(config.signature_header), config.secret):
        logger.warning(f"Rejected {provider} webhook with invalid signature")
        raise Unauthenticated("Invalid signature", "التوقيع غير صالح")

    payload = _json_body(body)

    order_id = payload.get("orderId")
    status = str(payload.get("status", "")).lower()
    logger.info(f"{provider} webhook received for order {order_id} with status {status}")

    if status in config.success_statuses:
        if not order_id:
            raise ValidationFailure("Order ID required", "رقم الطلب مطلوب")
        await service.record_payment(
            order_id,
            config.method,
            transaction_id=payload.get("transactionId"),
            amount=payload.get("amount"),
        )
        logger.info(f"Order {order_id} marked as paid via {config.method.value}")

    return {"received": True}


@router.post("/notion")
async def notion_webhook(request: Request):
    """Acknowledge Notion change events; the portal reads orders on demand, so nothing is synced."""
    body = await request.body()
    signature = request.headers.get(NOTION_SIGNATURE_HEADER, "").removeprefix("sha256=")
    if not verify_signature(body, signature, settings.NOTION_WEBHOOK_SECRET):
        logger.warning("Rejected Notion webhook with invalid signature")
        raise Unauthenticated("Invalid signature", "التوقيع غير صالح")

    payload = _json_body(body)
    if "verification_token" in payload:
        # Sent once when the subscription is created; it becomes NOTION_WEBHOOK_SECRET.
        logger.warning(f"Notion webhook verification token received: {payload['verification_token']}")
        return {"received": True}

    event_type = str(payload.get("type") or "unknown")
    entity = payload.get("entity")
    if not isinstance(entity, dict):
        entity = {}
    notion_events.labels(event_type=event_type).inc()
    logger.info(f"Notion {event_type} event for {entity.get('type', 'entity')} {entity.get('id')}")
    return {"received": True}
