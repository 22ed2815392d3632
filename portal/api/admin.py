from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal.schemas.order import OrderFilter, OrderOut, OrderPage, OrderUpdate, PaymentUpdate, StatusUpdate
from portal.schemas.quote import DiscountOut, DiscountRequest
from portal.core.security import Caller, require_admin
from portal.core.clients import get_order_service, get_store
from portal.core.enums import OrderStatus, PaymentStatus
from portal.core.errors import ValidationFailure
from portal.services.collaborators import OrderStore
from portal.services.orders import OrderService
from portal.services.pricing import apply_discount, price_list
from portal.services import statistics

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _filter_value(enum_cls, value: Optional[str], what: str):
    if not value:
        return None
    member = enum_cls.parse(value)
    if member is None:
        raise ValidationFailure(f"Invalid {what}: {value}", "قيمة الفلتر غير صالحة")
    return member


@router.get("/dashboard")
async def dashboard(store: OrderStore = Depends(get_store)):
    now = datetime.now(timezone.utc)
    month_orders = await statistics.collect_orders(store, OrderFilter(date_from=statistics.month_start(now)))
    today_start = statistics.day_start(now)
    today_orders = [o for o in month_orders if o.created_at and o.created_at >= today_start]
    recent = await store.query_orders(OrderFilter(), page_size=100)

    month_stats = statistics.compute_statistics(month_orders)
    today_stats = statistics.compute_statistics(today_orders)
    return {
        "success": True,
        "data": {
            "today": {"orders": today_stats["total_orders"], "revenue": today_stats["total_revenue"]},
            "this_month": {"orders": month_stats["total_orders"], "revenue": month_stats["total_revenue"]},
            "overview": statistics.compute_overview(recent.items),
            "breakdown": {
                "by_status": month_stats["by_status"],
                "by_service": month_stats["by_service"],
                "by_channel": month_stats["by_channel"],
            },
        },
    }


@router.get("/orders", response_model=OrderPage)
async def list_orders(
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    cursor: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    caller: Caller = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    filters = OrderFilter(
        status=_filter_value(OrderStatus, status, "status"),
        payment_status=_filter_value(PaymentStatus, payment_status, "payment status"),
        date_from=date_from,
        date_to=date_to,
    )
    return await service.list_all(caller, filters, cursor=cursor, page_size=limit)


@router.put("/orders/{order_id}", response_model=OrderOut)
async def update_order(
    order_id: str,
    payload: OrderUpdate,
    caller: Caller = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return await service.update(order_id, payload, caller)


@router.post("/orders/{order_id}/status")
async def set_status(
    order_id: str,
    payload: StatusUpdate,
    caller: Caller = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order = await service.set_status(order_id, payload.status, caller)
    return {"success": True, "message": "Status updated", "message_ar": "تم تحديث الحالة", "order": order}


@router.post("/orders/{order_id}/payment")
async def set_payment(
    order_id: str,
    payload: PaymentUpdate,
    caller: Caller = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order = await service.set_payment(
        order_id, caller, payment_status=payload.payment_status, payment_method=payload.payment_method,
    )
    return {"success": True, "message": "Payment updated", "message_ar": "تم تحديث الدفع", "order": order}


@router.post("/orders/{order_id}/reprice")
async def reprice_order(
    order_id: str,
    caller: Caller = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order, quote = await service.reprice(order_id, caller)
    return {"success": True, "order": order, "pricing": quote}


@router.get("/statistics")
async def get_statistics(
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    store: OrderStore = Depends(get_store),
):
    date_to = date_to or datetime.now(timezone.utc)
    date_from = date_from or date_to - timedelta(days=30)
    orders = await statistics.collect_orders(store, OrderFilter(date_from=date_from, date_to=date_to))
    return {
        "success": True,
        "data": {
            "period": {"from": date_from, "to": date_to},
            "statistics": statistics.compute_statistics(orders),
        },
    }


@router.get("/pricing")
async def get_pricing():
    return {"success": True, "data": price_list()}


@router.post("/pricing/discount", response_model=DiscountOut)
async def calculate_discount(payload: DiscountRequest):
    return apply_discount(payload.total, payload.discount_type, payload.discount_value)


@router.get("/customers")
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    store: OrderStore = Depends(get_store),
):
    orders = await statistics.collect_orders(store, OrderFilter())
    customers = statistics.summarize_customers(orders)
    start = (page - 1) * limit
    return {
        "success": True,
        "data": {
            "customers": customers[start:start + limit],
            "pagination": {
                "total": len(customers),
                "page": page,
                "limit": limit,
                "pages": -(-len(customers) // limit),
            },
        },
    }


@router.get("/customers/{phone}")
async def get_customer(phone: str, store: OrderStore = Depends(get_store)):
    orders = await store.get_orders_by_owner(phone)
    return {
        "success": True,
        "data": {
            "customer": statistics.customer_detail(phone, orders),
            "orders": orders,
        },
    }
