"""Translation price calculation.

The engine is a pure calculator: it never performs I/O and returns a fresh
value on every call. Amounts are whole IQD.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from portal.core.config import settings
from portal.core.enums import ServiceType, InsuranceTier, DeliveryMethod
from portal.core.errors import ValidationFailure
from portal.schemas.quote import QuoteRequest, QuoteResponse, QuoteLine, QuoteSummary, DiscountOut

SERVICE_NAMES = {
    ServiceType.FULL_SERVICE: "Full service translation",
    ServiceType.SELF_TRANSLATION: "Self translation review",
    ServiceType.AI_TRANSLATION: "AI-powered translation",
}
FALLBACK_SERVICE_NAME = ("Translation service", "خدمة الترجمة")

INSURANCE_NAMES = {
    InsuranceTier.DAYS_31: "31 days assurance",
    InsuranceTier.DAYS_45: "45 days assurance",
    InsuranceTier.DAYS_90: "90 days assurance",
    InsuranceTier.ONE_YEAR: "1 year assurance",
}


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class RateTable:
    per_page: Dict[ServiceType, int] = field(default_factory=lambda: {
        ServiceType.FULL_SERVICE: 15000,
        ServiceType.SELF_TRANSLATION: 5000,
        ServiceType.AI_TRANSLATION: 10000,
    })
    per_word: int = 66
    certification_per_doc: int = 5000
    additional_copy: int = 2500
    delivery: int = 5000
    insurance: Dict[InsuranceTier, int] = field(default_factory=lambda: {
        InsuranceTier.DAYS_31: 5000,
        InsuranceTier.DAYS_45: 7500,
        InsuranceTier.DAYS_90: 12500,
        InsuranceTier.ONE_YEAR: 25000,
    })
    rush_multiplier: Decimal = Decimal("1.5")

    @classmethod
    def from_settings(cls, s=settings) -> "RateTable":
        return cls(
            per_page={
                ServiceType.FULL_SERVICE: s.PRICE_FULL_SERVICE_PER_PAGE,
                ServiceType.SELF_TRANSLATION: s.PRICE_SELF_TRANSLATION_PER_PAGE,
                ServiceType.AI_TRANSLATION: s.PRICE_AI_TRANSLATION_PER_PAGE,
            },
            per_word=s.PRICE_PER_WORD,
            certification_per_doc=s.PRICE_CERTIFICATION_PER_DOC,
            additional_copy=s.PRICE_ADDITIONAL_COPY,
            delivery=s.PRICE_DELIVERY,
            insurance={
                InsuranceTier.DAYS_31: s.PRICE_INSURANCE_31_DAYS,
                InsuranceTier.DAYS_45: s.PRICE_INSURANCE_45_DAYS,
                InsuranceTier.DAYS_90: s.PRICE_INSURANCE_90_DAYS,
                InsuranceTier.ONE_YEAR: s.PRICE_INSURANCE_1_YEAR,
            },
            rush_multiplier=Decimal(str(s.PRICE_RUSH_MULTIPLIER)),
        )

    @property
    def rush_percent(self) -> int:
        return _round_half_up((self.rush_multiplier - 1) * 100)


def _service_line(req: QuoteRequest, rates: RateTable, strict: bool) -> QuoteLine:
    service = ServiceType.lookup(req.service_type)
    if service is None:
        if strict:
            raise ValidationFailure(
                f"Unknown service type: {req.service_type}",
                "نوع الخدمة غير معروف",
            )
        rate = rates.per_page[ServiceType.FULL_SERVICE]
        name, name_ar = FALLBACK_SERVICE_NAME
    else:
        rate = rates.per_page[service]
        name, name_ar = SERVICE_NAMES[service], service.label_ar

    # Word count only replaces page pricing for full service.
    if service is ServiceType.FULL_SERVICE and req.words > 0:
        return QuoteLine(
            key="service",
            description=f"{name} ({req.words:,} words x {rates.per_word} IQD)",
            description_ar=f"{name_ar} ({req.words:,} كلمة × {rates.per_word} د.ع)",
            amount=req.words * rates.per_word,
        )
    return QuoteLine(
        key="service",
        description=f"{name} ({req.pages} pages x {rate:,} IQD)",
        description_ar=f"{name_ar} ({req.pages} صفحة × {rate:,} د.ع)",
        amount=req.pages * rate,
    )


def _certification_line(req: QuoteRequest, rates: RateTable) -> QuoteLine:
    amount = req.num_docs * rates.certification_per_doc if req.certification else 0
    return QuoteLine(
        key="certification",
        description=f"Official certification ({req.num_docs} documents x {rates.certification_per_doc:,} IQD)",
        description_ar=f"مصادقة رسمية ({req.num_docs} وثيقة × {rates.certification_per_doc:,} د.ع)",
        amount=amount,
    )


def _insurance_line(req: QuoteRequest, rates: RateTable, strict: bool) -> QuoteLine:
    tier = InsuranceTier.lookup(req.insurance) if req.insurance else None
    if req.insurance and tier is None and strict:
        raise ValidationFailure(
            f"Unknown insurance tier: {req.insurance}",
            "نوع الضمان غير معروف",
        )
    price = rates.insurance.get(tier, 0) if tier is not None else 0
    if not price:
        return QuoteLine(key="insurance", description="", description_ar="", amount=0)
    return QuoteLine(
        key="insurance",
        description=f"{INSURANCE_NAMES[tier]} ({req.insurance_count} x {price:,} IQD)",
        description_ar=f"{tier.label_ar} ({req.insurance_count} × {price:,} د.ع)",
        amount=req.insurance_count * price,
    )


def _copies_line(req: QuoteRequest, rates: RateTable) -> QuoteLine:
    return QuoteLine(
        key="copies",
        description=(
            f"Additional copies ({req.additional_copies} copies x {req.pages} pages"
            f" x {rates.additional_copy:,} IQD)"
        ),
        description_ar=(
            f"نسخ إضافية ({req.additional_copies} نسخة × {req.pages} صفحة"
            f" × {rates.additional_copy:,} د.ع)"
        ),
        amount=req.additional_copies * req.pages * rates.additional_copy,
    )


def _delivery_line(req: QuoteRequest, rates: RateTable) -> QuoteLine:
    amount = rates.delivery if req.delivery_method == DeliveryMethod.DELIVERY.value else 0
    return QuoteLine(
        key="delivery",
        description=f"Delivery ({rates.delivery:,} IQD)",
        description_ar=f"توصيل ({rates.delivery:,} د.ع)",
        amount=amount,
    )


def calculate_price(req: QuoteRequest, rates: Optional[RateTable] = None, strict: Optional[bool] = None) -> QuoteResponse:
    rates = rates or RateTable.from_settings()
    strict = settings.PRICING_STRICT if strict is None else strict

    service = _service_line(req, rates, strict)
    base_lines: List[QuoteLine] = [
        service,
        _certification_line(req, rates),
        _insurance_line(req, rates, strict),
        _copies_line(req, rates),
        _delivery_line(req, rates),
    ]
    subtotal = sum(line.amount for line in base_lines)

    # Rush applies to the service line only, after the subtotal.
    rush_amount = 0
    if req.rush_translation:
        rush_amount = _round_half_up(Decimal(service.amount) * (rates.rush_multiplier - 1))
    rush = QuoteLine(
        key="rush",
        description=f"Rush translation fee (+{rates.rush_percent}%)",
        description_ar=f"رسوم الترجمة العاجلة (+{rates.rush_percent}%)",
        amount=rush_amount,
    )
    total = subtotal + rush.amount

    known_service = ServiceType.lookup(req.service_type)
    summary = QuoteSummary(
        service_type=req.service_type,
        service_type_ar=known_service.label_ar if known_service else FALLBACK_SERVICE_NAME[1],
        pages=req.pages,
        words=req.words or None,
        certification=req.certification,
        insurance=req.insurance or None,
        additional_copies=req.additional_copies,
        delivery_method=req.delivery_method,
        rush_translation=req.rush_translation,
    )
    return QuoteResponse(
        subtotal=subtotal,
        total=total,
        breakdown=[line for line in base_lines + [rush] if line.amount != 0],
        summary=summary,
    )


def price_list(rates: Optional[RateTable] = None) -> dict:
    """Public catalogue of services, add-ons and their current prices."""
    rates = rates or RateTable.from_settings()
    services = []
    for service in ServiceType:
        entry = {
            "id": service.value,
            "name": SERVICE_NAMES[service],
            "name_ar": service.label_ar,
            "price_per_page": rates.per_page[service],
        }
        if service is ServiceType.FULL_SERVICE:
            entry["price_per_word"] = rates.per_word
        services.append(entry)

    return {
        "services": services,
        "addons": {
            "certification": {
                "name": "Official Certification",
                "name_ar": "المصادقة الرسمية",
                "price": rates.certification_per_doc,
                "unit": "document",
            },
            "additional_copy": {
                "name": "Additional Copy",
                "name_ar": "نسخة إضافية",
                "price": rates.additional_copy,
                "unit": "copy per page",
            },
            "delivery": {
                "name": "Delivery",
                "name_ar": "توصيل",
                "price": rates.delivery,
                "unit": "flat rate",
            },
            "rush": {
                "name": "Rush Translation",
                "name_ar": "ترجمة عاجلة",
                "multiplier": str(rates.rush_multiplier),
                "description": f"{rates.rush_percent}% surcharge on the service line",
            },
        },
        "insurance": [
            {"id": tier.value, "name": INSURANCE_NAMES[tier], "name_ar": tier.label_ar, "price": price}
            for tier, price in rates.insurance.items()
        ],
        "delivery_methods": [
            {
                "id": method.value,
                "name": method.to_store(),
                "name_ar": method.label_ar,
                "price": rates.delivery if method is DeliveryMethod.DELIVERY else 0,
            }
            for method in DeliveryMethod
        ],
        "currency": "IQD",
        "currency_symbol": "د.ع",
    }


def apply_discount(total: int, discount_type: str, discount_value: int) -> DiscountOut:
    if discount_type == "percentage":
        discount = _round_half_up(Decimal(total) * Decimal(discount_value) / 100)
        return DiscountOut(
            original_total=total,
            discount=discount,
            discounted_total=total - discount,
            discount_description=f"{discount_value}% discount",
        )
    if discount_type == "fixed":
        return DiscountOut(
            original_total=total,
            discount=discount_value,
            discounted_total=max(0, total - discount_value),
            discount_description=f"{discount_value:,} IQD discount",
        )
    return DiscountOut(original_total=total, discount=0, discounted_total=total)
