import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from portal.schemas.order import (
    CancelRequest,
    OrderCreate,
    OrderCreatedOut,
    OrderOut,
    OrderPage,
    OrderUpdate,
    StatusTimelineOut,
)
from portal.schemas.quote import QuoteRequest, QuoteResponse
from portal.core.security import Caller, get_current_caller
from portal.core.clients import get_order_service
from portal.core.rate_limit import check_rate_limit
from portal.services import lifecycle
from portal.services.orders import OrderService
from portal.utils.idempotency import get_idempotent, set_idempotent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


def parse_update(body: Dict[str, Any], is_admin: bool) -> OrderUpdate:
    """Drop the fields the caller's role may not write, then validate the rest."""
    by_name = {}
    for name, field in OrderUpdate.model_fields.items():
        for key in (field.alias, name):
            if key in body:
                by_name[name] = body[key]
                break

    allowed = lifecycle.filter_update(by_name, is_admin)
    if len(allowed) < len(by_name):
        logger.info(f"Ignoring fields {sorted(set(by_name) - set(allowed))} in order update")
    try:
        return OrderUpdate.model_validate(allowed)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


@router.get("/", response_model=OrderPage)
async def list_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_for_caller(caller, status=status, page=page, limit=limit)


@router.post("/", response_model=OrderCreatedOut, status_code=201)
async def create_order(
    payload: OrderCreate,
    idempotency_key: Optional[str] = Header(None),
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    await check_rate_limit(caller.caller_id)

    if idempotency_key:
        prev = await get_idempotent(caller.caller_id, idempotency_key)
        if prev:
            return prev

    order, quote = await service.create(payload, caller)
    out = OrderCreatedOut(order=order, pricing=quote)
    if idempotency_key:
        await set_idempotent(caller.caller_id, idempotency_key, out.model_dump(mode="json"))
    return out


@router.post("/calculate-price", response_model=QuoteResponse)
async def calculate_order_price(
    payload: QuoteRequest,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    return service.price_check(payload)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: str,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    return await service.get(order_id, caller)


@router.put("/{order_id}", response_model=OrderOut)
async def update_order(
    order_id: str,
    payload: Dict[str, Any] = Body(...),
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    """Customers may only change notes and payment method; other fields are ignored."""
    await check_rate_limit(caller.caller_id)
    return await service.update(order_id, parse_update(payload, caller.is_admin), caller)


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    payload: Optional[CancelRequest] = None,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    await check_rate_limit(caller.caller_id)
    order = await service.cancel(order_id, caller, reason=payload.reason if payload else None)
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "message_ar": "تم إلغاء الطلب بنجاح",
        "order": order,
    }


@router.get("/{order_id}/status", response_model=StatusTimelineOut)
async def get_order_status(
    order_id: str,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    return await service.timeline(order_id, caller)
