"""Aggregates for the staff dashboard, computed from order lists."""
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from portal.core.enums import OrderStatus, PaymentStatus
from portal.schemas.order import OrderFilter, OrderOut
from portal.services.collaborators import OrderStore

UNKNOWN = "Unknown"
MAX_SCAN_PAGES = 20


async def collect_orders(store: OrderStore, filters: OrderFilter, max_pages: int = MAX_SCAN_PAGES) -> List[OrderOut]:
    """Follow the store cursor until exhausted or ``max_pages`` pages were read."""
    orders: List[OrderOut] = []
    cursor: Optional[str] = None
    for _ in range(max_pages):
        page = await store.query_orders(filters, cursor=cursor, page_size=100)
        orders.extend(page.items)
        if not page.has_more or not page.next_cursor:
            break
        cursor = page.next_cursor
    return orders


def _label(value) -> str:
    return value.value if value is not None else UNKNOWN


def compute_statistics(orders: List[OrderOut]) -> dict:
    return {
        "total_orders": len(orders),
        "total_revenue": sum(o.final_quotation or 0 for o in orders),
        "by_status": dict(Counter(_label(o.status) for o in orders)),
        "by_payment_status": dict(Counter(_label(o.payment_status) for o in orders)),
        "by_service": dict(Counter(_label(o.service_type) for o in orders)),
        "by_channel": dict(Counter(o.channel or UNKNOWN for o in orders)),
    }


def compute_overview(orders: List[OrderOut]) -> Dict[str, int]:
    pending_payments = sum(1 for o in orders if o.payment_status == PaymentStatus.NOT_PAID)
    in_progress = sum(1 for o in orders if o.status == OrderStatus.TRANSLATION)
    awaiting_delivery = sum(1 for o in orders if o.status == OrderStatus.DELIVERY_AND_PAYMENT)
    return {
        "pending_payments": pending_payments,
        "in_progress": in_progress,
        "awaiting_delivery": awaiting_delivery,
        "total_active": pending_payments + in_progress + awaiting_delivery,
    }


def summarize_customers(orders: List[OrderOut]) -> List[dict]:
    """Group orders by phone, most frequent customers first."""
    customers: Dict[str, dict] = {}
    for order in orders:
        if not order.phone:
            continue
        customer = customers.setdefault(order.phone, {
            "phone": order.phone,
            "name": order.customer_name,
            "status": order.customer_status,
            "total_orders": 0,
            "total_spent": 0,
            "last_order": order.created_at,
        })
        customer["total_orders"] += 1
        customer["total_spent"] += order.final_quotation or 0
        if order.created_at and (customer["last_order"] is None or order.created_at > customer["last_order"]):
            customer["last_order"] = order.created_at

    return sorted(customers.values(), key=lambda c: c["total_orders"], reverse=True)


def customer_detail(phone: str, orders: List[OrderOut]) -> dict:
    first = orders[0] if orders else None
    return {
        "phone": phone,
        "name": first.customer_name if first else phone,
        "status": first.customer_status if first else None,
        "total_orders": len(orders),
        "total_spent": sum(o.final_quotation or 0 for o in orders),
    }


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
