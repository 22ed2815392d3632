"""Order workflow policy.

Tickets move along a fixed linear pipeline. ``Lost`` sits off the pipeline and
can be entered from any non-terminal state. Nothing here touches storage; every
function maps its inputs to a fresh decision or view.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from portal.core.enums import OrderStatus
from portal.core.errors import ErrorCategory

STATUS_SEQUENCE = (
    OrderStatus.NEW_TICKET,
    OrderStatus.TRANSLATION,
    OrderStatus.DELIVERY_AND_PAYMENT,
    OrderStatus.AFTER_SALE_SERVICE,
    OrderStatus.ARCHIVE,
)
TERMINAL_STATUSES = frozenset({OrderStatus.ARCHIVE, OrderStatus.LOST})
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.NEW_TICKET})

CUSTOMER_UPDATABLE_FIELDS = frozenset({"notes", "payment_method"})
ADMIN_UPDATABLE_FIELDS = frozenset({
    "status",
    "payment_status",
    "payment_method",
    "final_quotation",
    "notes",
    "deadline",
    "translation_time",
})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    category: Optional[ErrorCategory] = None
    reason: str = ""
    reason_ar: str = ""


ALLOWED = Decision(allowed=True)


def _index(status: Optional[OrderStatus]) -> Optional[int]:
    try:
        return STATUS_SEQUENCE.index(status)
    except ValueError:
        return None


def is_terminal(status: Optional[OrderStatus]) -> bool:
    return status in TERMINAL_STATUSES


def authorize_status_change(current: Optional[OrderStatus], target: OrderStatus, is_admin: bool) -> Decision:
    """Decide whether an explicit status-set request may be applied."""
    if not is_admin:
        return Decision(
            allowed=False,
            category=ErrorCategory.FORBIDDEN,
            reason="Admin access required to change order status",
            reason_ar="يتطلب صلاحيات المدير",
        )
    if current == target:
        return ALLOWED
    if is_terminal(current):
        return Decision(
            allowed=False,
            category=ErrorCategory.LIFECYCLE_VIOLATION,
            reason=f"Order is already closed ({current}) and cannot change status",
            reason_ar="الطلب مغلق ولا يمكن تغيير حالته",
        )
    if target is OrderStatus.LOST:
        return ALLOWED

    current_index, target_index = _index(current), _index(target)
    if current_index is not None and target_index <= current_index:
        return Decision(
            allowed=False,
            category=ErrorCategory.LIFECYCLE_VIOLATION,
            reason=f"Order cannot move back from {current} to {target}",
            reason_ar="لا يمكن إرجاع الطلب إلى مرحلة سابقة",
        )
    return ALLOWED


def authorize_cancel(current: Optional[OrderStatus], is_admin: bool) -> Decision:
    if is_admin and not is_terminal(current):
        return ALLOWED
    if not is_admin and current in CUSTOMER_CANCELLABLE:
        return ALLOWED
    return Decision(
        allowed=False,
        category=ErrorCategory.LIFECYCLE_VIOLATION,
        reason="Order cannot be cancelled at this stage",
        reason_ar="لا يمكن إلغاء الطلب في هذه المرحلة",
    )


def build_timeline(current: Optional[OrderStatus]) -> List[Dict]:
    """Classify every pipeline state relative to ``current``.

    ``Lost`` (or a status the portal does not recognise) has no position on the
    pipeline, so every entry is reported as ``not_applicable``.
    """
    current_index = _index(current)
    timeline = []
    for index, status in enumerate(STATUS_SEQUENCE):
        if current_index is None:
            phase, completed, is_current, pending = "not_applicable", None, None, None
        else:
            completed = index < current_index
            is_current = index == current_index
            pending = index > current_index
            phase = "completed" if completed else "current" if is_current else "pending"
        timeline.append({
            "status": status.value,
            "status_ar": status.label_ar,
            "phase": phase,
            "completed": completed,
            "current": is_current,
            "pending": pending,
        })
    return timeline


def filter_update(changes: Dict, is_admin: bool) -> Dict:
    """Drop every field the caller's role may not write. Never raises."""
    allowed = ADMIN_UPDATABLE_FIELDS if is_admin else CUSTOMER_UPDATABLE_FIELDS
    return {key: value for key, value in changes.items() if key in allowed}
