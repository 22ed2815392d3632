from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from portal.core.enums import ServiceType, DeliveryMethod


class QuoteRequest(BaseModel):
    """Pricing-relevant order attributes.

    Values are not range-checked here; the engine is a plain calculator and
    explicit zeros pass through. An absent or null field takes its default.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_type: str = ServiceType.FULL_SERVICE.value
    pages: int = 1
    words: int = 0
    certification: bool = False
    num_docs: int = 1
    insurance: Optional[str] = None
    insurance_count: int = 1
    additional_copies: int = 0
    delivery_method: str = DeliveryMethod.PICKUP.value
    rush_translation: bool = False

    @field_validator(
        "service_type", "pages", "words", "certification", "num_docs",
        "insurance_count", "additional_copies", "delivery_method", "rush_translation",
        mode="before",
    )
    @classmethod
    def _null_means_default(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class QuoteLine(BaseModel):
    key: str
    description: str
    description_ar: str
    amount: int


class QuoteSummary(BaseModel):
    service_type: str
    service_type_ar: str
    pages: int
    words: Optional[int] = None
    certification: bool
    insurance: Optional[str] = None
    additional_copies: int
    delivery_method: str
    rush_translation: bool


class QuoteResponse(BaseModel):
    subtotal: int
    total: int
    currency: str = "IQD"
    currency_ar: str = "دينار عراقي"
    breakdown: List[QuoteLine]
    summary: QuoteSummary


class DiscountRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int
    discount_type: str
    discount_value: int


class DiscountOut(BaseModel):
    original_total: int
    discount: int
    discounted_total: int
    discount_description: Optional[str] = None
