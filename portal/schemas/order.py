from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime

from portal.core.enums import (
    ServiceType,
    DocumentType,
    LanguagePair,
    DeliveryMethod,
    InsuranceTier,
    OrderStatus,
    PaymentStatus,
    PaymentMethod,
)
from portal.schemas.quote import QuoteRequest, QuoteResponse


class OrderDocument(BaseModel):
    name: str
    url: str


class NewOrder(BaseModel):
    """Canonical order payload handed to the order store."""
    customer_name: str
    phone: Optional[str] = None
    vip_profile_id: Optional[str] = None
    customer_status: Optional[str] = "First Time - Reg"
    channel: Optional[str] = "App"

    service_type: Optional[ServiceType] = None
    document_types: List[DocumentType] = Field(default_factory=list)
    languages: List[LanguagePair] = Field(default_factory=list)

    pages: int = 1
    words: int = 0
    num_docs: int = 1
    additional_copies: int = 0
    certification: bool = False
    insurance: Optional[InsuranceTier] = None
    insurance_count: int = 0
    delivery_method: Optional[DeliveryMethod] = DeliveryMethod.PICKUP
    rush_translation: bool = False
    payment_method: Optional[PaymentMethod] = None

    final_quotation: int = 0
    status: Optional[OrderStatus] = OrderStatus.NEW_TICKET
    payment_status: Optional[PaymentStatus] = PaymentStatus.NOT_PAID

    notes: str = ""
    deadline: Optional[datetime] = None
    translation_time: Optional[datetime] = None


class OrderOut(NewOrder):
    id: str
    url: Optional[str] = None
    sequence_id: Optional[int] = None
    documents: List[OrderDocument] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderCreate(QuoteRequest):
    service_type: Optional[str] = None

    customer_name: Optional[str] = None
    request_name: Optional[str] = None
    phone: Optional[str] = None  # honoured for staff-created orders only
    document_types: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    address: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    def to_quote_request(self) -> QuoteRequest:
        return QuoteRequest(**self.model_dump(include=set(QuoteRequest.model_fields)))


class OrderUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    status: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    final_quotation: Optional[int] = None
    notes: Optional[str] = None
    deadline: Optional[datetime] = None
    translation_time: Optional[datetime] = None


class StatusUpdate(BaseModel):
    status: str


class PaymentUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class OrderFilter(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    owner_phone: Optional[str] = None


class OrderPage(BaseModel):
    items: List[OrderOut]
    has_more: bool = False
    next_cursor: Optional[str] = None
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None


class OrderCreatedOut(BaseModel):
    success: bool = True
    message: str = "Order created successfully"
    message_ar: str = "تم إنشاء الطلب بنجاح"
    order: OrderOut
    pricing: QuoteResponse


class TimelineEntry(BaseModel):
    status: str
    status_ar: str
    phase: str
    completed: Optional[bool] = None
    current: Optional[bool] = None
    pending: Optional[bool] = None


class StatusTimelineOut(BaseModel):
    current_status: Optional[str] = None
    payment_status: Optional[str] = None
    timeline: List[TimelineEntry]
