"""Order orchestration.

``OrderService`` composes the price engine and the lifecycle policy into the
create/update/cancel operations and hands the result to the order store. The
store, drive and notifier are injected so the service can run without any
network access.
"""
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from portal.core.audit_log import log_audit
from portal.core.auth_utils import check_ownership
from portal.core.enums import (
    AuditAction,
    DeliveryMethod,
    DocumentType,
    InsuranceTier,
    LanguagePair,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ServiceType,
)
from portal.core.errors import (
    AuthorizationFailure,
    CollaboratorFailure,
    ErrorCategory,
    LifecycleViolation,
    ValidationFailure,
)
from portal.core.metrics import quotes_calculated, side_effect_failures, status_transitions
from portal.core.security import Caller
from portal.schemas.document import FileRef
from portal.schemas.order import (
    NewOrder,
    OrderCreate,
    OrderDocument,
    OrderFilter,
    OrderOut,
    OrderPage,
    OrderUpdate,
    StatusTimelineOut,
    TimelineEntry,
)
from portal.schemas.quote import QuoteRequest, QuoteResponse
from portal.services import lifecycle
from portal.services.collaborators import DriveService, OrderStore
from portal.services.pricing import RateTable, calculate_price

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = [LanguagePair.EN_AR]
NO_REASON = "No reason provided"
UNKNOWN_SERVICE = "unknown"

Notifier = Callable[[dict], Awaitable[bool]]


def append_note(existing: Optional[str], note: str) -> str:
    existing = (existing or "").rstrip()
    return f"{existing}\n\n{note}" if existing else note


def quote_request_from_order(order: OrderOut) -> QuoteRequest:
    """Rebuild the pricing input from a stored order.

    An order whose service type is not in the vocabulary is priced with the
    fallback page rate, the same way it was quoted at creation.
    """
    return QuoteRequest(
        service_type=order.service_type.value if order.service_type else UNKNOWN_SERVICE,
        pages=order.pages,
        words=order.words,
        certification=order.certification,
        num_docs=order.num_docs,
        insurance=order.insurance.value if order.insurance else None,
        insurance_count=order.insurance_count or 1,
        additional_copies=order.additional_copies,
        delivery_method=(order.delivery_method or DeliveryMethod.PICKUP).value,
        rush_translation=order.rush_translation,
    )


def parse_status(value) -> OrderStatus:
    status = OrderStatus.parse(value)
    if status is None:
        raise ValidationFailure(f"Invalid status: {value}", "الحالة غير صالحة")
    return status


def raise_for_decision(decision: lifecycle.Decision) -> None:
    if decision.allowed:
        return
    if decision.category is ErrorCategory.FORBIDDEN:
        raise AuthorizationFailure(decision.reason, decision.reason_ar)
    raise LifecycleViolation(decision.reason, decision.reason_ar)


def _parse_all(enum_cls, values, what: str, what_ar: str) -> list:
    parsed = []
    for value in values or []:
        member = enum_cls.parse(value)
        if member is None:
            raise ValidationFailure(f"Unknown {what}: {value}", f"{what_ar} غير معروف")
        parsed.append(member)
    return parsed


class OrderService:

    def __init__(
        self,
        store: OrderStore,
        drive: Optional[DriveService] = None,
        rates: Optional[RateTable] = None,
        strict: Optional[bool] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.drive = drive
        self.rates = rates or RateTable.from_settings()
        self.strict = strict
        self.notifier = notifier

    def price_check(self, request: QuoteRequest) -> QuoteResponse:
        quote = calculate_price(request, self.rates, self.strict)
        quotes_calculated.labels(service_type=request.service_type).inc()
        return quote

    async def create(self, payload: OrderCreate, caller: Caller) -> Tuple[OrderOut, QuoteResponse]:
        if not payload.service_type:
            raise ValidationFailure("Service type required", "نوع الخدمة مطلوب")

        service_type = ServiceType.parse(payload.service_type)
        insurance = InsuranceTier.parse(payload.insurance) if payload.insurance else None
        delivery_method = DeliveryMethod.parse(payload.delivery_method) or DeliveryMethod.PICKUP

        # The quotation is fixed before anything is written, from the same
        # values that get stored. Unrecognised raw values are priced as given.
        quote = self.price_check(payload.to_quote_request().model_copy(update={
            "service_type": service_type.value if service_type else payload.service_type,
            "insurance": insurance.value if insurance else payload.insurance,
            "delivery_method": delivery_method.value,
        }))
        if insurance is InsuranceTier.NONE:
            insurance = None

        document_types = _parse_all(DocumentType, payload.document_types, "document type", "نوع الوثيقة")
        languages = _parse_all(LanguagePair, payload.languages, "language pair", "زوج اللغات") or list(DEFAULT_LANGUAGES)

        phone = payload.phone if caller.is_admin and payload.phone else caller.phone
        customer_name = payload.customer_name or payload.request_name or caller.name or phone or caller.caller_id
        notes = payload.notes or ""
        if payload.address:
            notes = append_note(notes, f"Address: {payload.address}")

        profile_id = caller.profile_id
        if caller.is_admin:
            profile_id = await self._customer_profile(phone, customer_name)

        new_order = NewOrder(
            customer_name=customer_name,
            phone=phone,
            vip_profile_id=profile_id,
            service_type=service_type,
            document_types=document_types,
            languages=languages,
            pages=payload.pages,
            words=payload.words,
            num_docs=payload.num_docs,
            additional_copies=payload.additional_copies,
            certification=payload.certification,
            insurance=insurance,
            insurance_count=payload.insurance_count if insurance else 0,
            delivery_method=delivery_method,
            rush_translation=payload.rush_translation,
            payment_method=payload.payment_method,
            final_quotation=quote.total,
            status=OrderStatus.NEW_TICKET,
            payment_status=PaymentStatus.NOT_PAID,
            notes=notes,
        )
        order = await self.store.create_order(new_order)
        log_audit(caller.caller_id, AuditAction.CREATE_ORDER, order.id, payload)
        logger.info(f"Order {order.id} created for {phone} with quotation {quote.total} IQD")

        # Folder creation only happens once the order exists.
        order = await self._attach_drive_folder(order)
        return order, quote

    async def _customer_profile(self, phone: Optional[str], name: str) -> Optional[str]:
        """Find or create the profile of the customer a staff member orders for."""
        if not phone:
            return None
        try:
            profile = await self.store.get_or_create_customer_profile(phone, name)
        except CollaboratorFailure as e:
            side_effect_failures.labels(effect="customer_profile").inc()
            logger.error(f"Failed to link customer profile for {phone}: {e.message}")
            return None
        return profile.id

    async def _attach_drive_folder(self, order: OrderOut) -> OrderOut:
        if self.drive is None:
            return order
        try:
            folders = await self.drive.create_customer_folders(order.customer_name, order.id)
            notes = append_note(order.notes, f"Folder: {folders.order.url or folders.order.id}")
            return await self.store.update_order(order.id, {"notes": notes})
        except Exception as e:
            side_effect_failures.labels(effect="drive_folder").inc()
            logger.error(f"Failed to create Drive folders for order {order.id}: {e}")
            return order

    async def get(self, order_id: str, caller: Caller) -> OrderOut:
        order = await self.store.get_order(order_id)
        check_ownership(order, caller)
        return order

    async def list_for_caller(
        self,
        caller: Caller,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> OrderPage:
        orders = await self.store.get_orders_by_owner(caller.phone) if caller.phone else []
        if status:
            wanted = parse_status(status)
            orders = [o for o in orders if o.status == wanted]

        start = (page - 1) * limit
        items = orders[start:start + limit]
        return OrderPage(
            items=items,
            has_more=start + limit < len(orders),
            total=len(orders),
            page=page,
            limit=limit,
        )

    async def list_all(
        self,
        caller: Caller,
        filters: OrderFilter,
        cursor: Optional[str] = None,
        page_size: int = 50,
    ) -> OrderPage:
        self._require_admin(caller)
        return await self.store.query_orders(filters, cursor=cursor, page_size=page_size)

    async def update(self, order_id: str, changes: OrderUpdate, caller: Caller) -> OrderOut:
        order = await self.get(order_id, caller)

        requested = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
        allowed = lifecycle.filter_update(requested, caller.is_admin)
        dropped = set(requested) - set(allowed)
        if dropped:
            logger.info(f"Ignoring fields {sorted(dropped)} in update of order {order_id} by {caller.caller_id}")

        if "status" in allowed:
            target = parse_status(allowed["status"])
            raise_for_decision(lifecycle.authorize_status_change(order.status, target, caller.is_admin))
            if target == order.status:
                del allowed["status"]
            else:
                allowed["status"] = target

        if not allowed:
            return order

        updated = await self.store.update_order(order_id, allowed)
        log_audit(caller.caller_id, AuditAction.UPDATE_ORDER, order_id, allowed)
        if "status" in allowed:
            await self._status_changed(order, updated)
        return updated

    async def set_status(self, order_id: str, raw_status, caller: Caller) -> OrderOut:
        target = parse_status(raw_status)
        order = await self.get(order_id, caller)
        raise_for_decision(lifecycle.authorize_status_change(order.status, target, caller.is_admin))
        if target == order.status:
            return order

        updated = await self.store.update_order(order_id, {"status": target})
        log_audit(caller.caller_id, AuditAction.SET_STATUS, order_id, {"status": target.value})
        await self._status_changed(order, updated)
        return updated

    async def set_payment(
        self,
        order_id: str,
        caller: Caller,
        payment_status: Optional[PaymentStatus] = None,
        payment_method: Optional[PaymentMethod] = None,
    ) -> OrderOut:
        self._require_admin(caller)
        changes = {}
        if payment_status:
            changes["payment_status"] = payment_status
        if payment_method:
            changes["payment_method"] = payment_method
        if not changes:
            raise ValidationFailure("Payment status or method required", "حالة الدفع أو طريقة الدفع مطلوبة")

        await self.store.get_order(order_id)
        updated = await self.store.update_order(order_id, changes)
        log_audit(caller.caller_id, AuditAction.SET_PAYMENT, order_id, changes)
        return updated

    async def cancel(self, order_id: str, caller: Caller, reason: Optional[str] = None) -> OrderOut:
        order = await self.get(order_id, caller)
        raise_for_decision(lifecycle.authorize_cancel(order.status, caller.is_admin))

        notes = append_note(order.notes, f"Cancelled: {reason or NO_REASON}")
        updated = await self.store.update_order(order_id, {"status": OrderStatus.LOST, "notes": notes})
        log_audit(caller.caller_id, AuditAction.CANCEL_ORDER, order_id, {"reason": reason})
        await self._status_changed(order, updated)
        return updated

    async def timeline(self, order_id: str, caller: Caller) -> StatusTimelineOut:
        order = await self.get(order_id, caller)
        return StatusTimelineOut(
            current_status=order.status.value if order.status else None,
            payment_status=order.payment_status.value if order.payment_status else None,
            timeline=[TimelineEntry(**entry) for entry in lifecycle.build_timeline(order.status)],
        )

    async def reprice(self, order_id: str, caller: Caller) -> Tuple[OrderOut, QuoteResponse]:
        """Recompute the final quotation from the stored attributes."""
        self._require_admin(caller)
        order = await self.store.get_order(order_id)
        quote = self.price_check(quote_request_from_order(order))
        if quote.total == order.final_quotation:
            return order, quote

        updated = await self.store.update_order(order_id, {"final_quotation": quote.total})
        log_audit(caller.caller_id, AuditAction.REPRICE_ORDER, order_id, {"final_quotation": quote.total})
        logger.info(f"Order {order_id} repriced from {order.final_quotation} to {quote.total} IQD")
        return updated, quote

    async def attach_documents(self, order_id: str, files: List[FileRef], caller: Caller) -> OrderOut:
        await self.get(order_id, caller)
        documents = [OrderDocument(name=f.name, url=f.direct_url or f.view_url or "") for f in files]
        updated = await self.store.add_documents(order_id, documents)
        log_audit(caller.caller_id, AuditAction.UPLOAD_DOCUMENT, order_id, {"files": [f.id for f in files]})
        return updated

    async def record_payment(
        self,
        order_id: str,
        method: PaymentMethod,
        transaction_id: Optional[str] = None,
        amount=None,
    ) -> OrderOut:
        """Mark an order fully paid after a confirmed provider callback."""
        order = await self.store.get_order(order_id)
        note = f"Payment received via {method.value}\nTransaction: {transaction_id}\nAmount: {amount}"
        updated = await self.store.update_order(order_id, {
            "payment_status": PaymentStatus.FULLY_PAID,
            "payment_method": method,
            "notes": append_note(order.notes, note),
        })
        log_audit(f"webhook:{method.value}", AuditAction.PAYMENT_WEBHOOK, order_id, {"transaction_id": transaction_id})
        return updated

    async def _status_changed(self, before: OrderOut, after: OrderOut) -> None:
        old = before.status.value if before.status else "unknown"
        new = after.status.value if after.status else "unknown"
        status_transitions.labels(from_status=old, to_status=new).inc()
        logger.info(f"Order {after.id} moved from {old} to {new}")
        if self.notifier is None:
            return
        try:
            await self.notifier({
                "order_id": after.id,
                "old_status": old,
                "status": new,
                "final_quotation": after.final_quotation,
            })
        except Exception as e:
            side_effect_failures.labels(effect="status_webhook").inc()
            logger.warning(f"Status notification failed for order {after.id}: {e}")

    @staticmethod
    def _require_admin(caller: Caller) -> None:
        if not caller.is_admin:
            raise AuthorizationFailure("Admin access required", "يتطلب صلاحيات المدير")
