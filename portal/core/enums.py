"""Closed vocabularies used by the portal.

Every enum that is persisted in Notion has an explicit mapping between the
portal value (what clients send) and the option name stored in the external
database. ``to_store`` / ``from_store`` are the only places the two
vocabularies meet.
"""
import re
from enum import Enum
from typing import Optional


def _normalise(value: str) -> str:
    return re.sub(r"[^0-9a-z]", "", str(value).lower())


class StoreVocabulary(str, Enum):

    def __str__(self):
        return self.value

    def to_store(self) -> Optional[str]:
        return _STORE_LABELS.get(type(self), {}).get(self, self.value)

    @property
    def label_ar(self) -> str:
        return _ARABIC_LABELS.get(type(self), {}).get(self, self.value)

    @classmethod
    def from_store(cls, name: Optional[str]):
        """Map an external option name back to a member, or None if unknown."""
        if name is None:
            return None
        for member in cls:
            if member.to_store() == name or member.value == name:
                return member
        return None

    @classmethod
    def lookup(cls, value):
        """Exact lookup by portal value, or None."""
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def parse(cls, value):
        """Lenient lookup by portal value or store label, ignoring case and punctuation."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        key = _normalise(value)
        for member in cls:
            if key == _normalise(member.value):
                return member
            label = member.to_store()
            if label is not None and key == _normalise(label):
                return member
        return None


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"

    def __str__(self):
        return self.value


class ServiceType(StoreVocabulary):
    FULL_SERVICE = "full-service"
    SELF_TRANSLATION = "self-translation"
    AI_TRANSLATION = "ai-translation"


class DocumentType(StoreVocabulary):
    ID_DOCUMENTS = "id-documents"
    CERTIFICATES = "certificates"
    OFFICIAL_LETTERS = "official-letters"
    POWER_OF_ATTORNEY = "power-of-attorney"
    COURT_DOCUMENTS = "court-documents"
    MEDICAL_REPORTS = "medical-reports"
    COMPANY_DOCUMENTS = "company-documents"


class DeliveryMethod(StoreVocabulary):
    DIGITAL = "digital"
    PICKUP = "pickup"
    DELIVERY = "delivery"


class InsuranceTier(StoreVocabulary):
    NONE = "none"
    DAYS_31 = "31days"
    DAYS_45 = "45days"
    DAYS_90 = "90days"
    ONE_YEAR = "1year"


class LanguagePair(StoreVocabulary):
    EN_AR = "en-ar"
    KR_AR = "kr-ar"
    KR_EN = "kr-en"
    FR_AR = "fr-ar"
    DE_AR = "de-ar"
    ES_AR = "es-ar"
    TR_AR = "tr-ar"
    RU_AR = "ru-ar"
    RU_EN = "ru-en"
    FA_AR = "fa-ar"
    ZH_AR = "zh-ar"
    IT_AR = "it-ar"
    NL_AR = "nl-ar"
    PT_AR = "pt-ar"
    UK_AR = "uk-ar"


class OrderStatus(StoreVocabulary):
    NEW_TICKET = "New Ticket"
    TRANSLATION = "Translation"
    DELIVERY_AND_PAYMENT = "Delivery and Payment"
    AFTER_SALE_SERVICE = "After Sale Service"
    ARCHIVE = "Archive"
    LOST = "Lost"

    @classmethod
    def parse(cls, value):
        # Workflow values are matched exactly; no normalisation.
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        return None


class PaymentStatus(StoreVocabulary):
    NOT_PAID = "Not Paid"
    PARTIALLY_PAID = "Partially Paid"
    FULLY_PAID = "Fully Paid"


class PaymentMethod(StoreVocabulary):
    CASH = "Cash"
    ZAINCASH = "ZainCash"
    QI_CARD = "Qi Card"
    BANK_TRANSFER = "Bank Transfer"


class AuditAction(str, Enum):
    CREATE_ORDER = "create_order"
    UPDATE_ORDER = "update_order"
    SET_STATUS = "set_status"
    SET_PAYMENT = "set_payment"
    CANCEL_ORDER = "cancel_order"
    REPRICE_ORDER = "reprice_order"
    UPLOAD_DOCUMENT = "upload_document"
    DELETE_DOCUMENT = "delete_document"
    PAYMENT_WEBHOOK = "payment_webhook"
    LOGIN = "login"

    def __str__(self):
        return self.value


_STORE_LABELS = {
    ServiceType: {
        ServiceType.FULL_SERVICE: "Full Service",
        ServiceType.SELF_TRANSLATION: "Self Translation",
        ServiceType.AI_TRANSLATION: "AI Translation",
    },
    DocumentType: {
        DocumentType.ID_DOCUMENTS: "ID-sized documents",
        DocumentType.CERTIFICATES: "Certificates",
        DocumentType.OFFICIAL_LETTERS: "Official letters statements contracts",
        DocumentType.POWER_OF_ATTORNEY: "General PoAs",
        DocumentType.COURT_DOCUMENTS: "Court rulings and similar documents",
        DocumentType.MEDICAL_REPORTS: "Medical reports and long-format technical reports",
        DocumentType.COMPANY_DOCUMENTS: "Company Documents",
    },
    DeliveryMethod: {
        DeliveryMethod.DIGITAL: "Digital file",
        DeliveryMethod.PICKUP: "Pickup",
        DeliveryMethod.DELIVERY: "Delivery",
    },
    InsuranceTier: {
        InsuranceTier.NONE: None,
        InsuranceTier.DAYS_31: "31 days assurance",
        InsuranceTier.DAYS_45: "45 days assurance",
        InsuranceTier.DAYS_90: "90 days assurance",
        InsuranceTier.ONE_YEAR: "1 year assurance",
    },
    LanguagePair: {
        LanguagePair.EN_AR: "En ⇆ Ar",
        LanguagePair.KR_AR: "Kr ⇆ Ar",
        LanguagePair.KR_EN: "Kr ⇆ En",
        LanguagePair.FR_AR: "Fr ⇆ Ar",
        LanguagePair.DE_AR: "De ⇆ Ar",
        LanguagePair.ES_AR: "Es ⇆ Ar",
        LanguagePair.TR_AR: "Tr ⇆ Ar",
        LanguagePair.RU_AR: "Ru ⇆ Ar",
        LanguagePair.RU_EN: "Ru ⇆ En",
        LanguagePair.FA_AR: "Fa ⇆ Ar",
        LanguagePair.ZH_AR: "Zh ⇆ Ar",
        LanguagePair.IT_AR: "It ⇆ Ar",
        LanguagePair.NL_AR: "NL ⇆ Ar",
        LanguagePair.PT_AR: "Pt ⇆ Ar",
        LanguagePair.UK_AR: "Uk ⇆ Ar",
    },
}

_ARABIC_LABELS = {
    ServiceType: {
        ServiceType.FULL_SERVICE: "ترجمة كاملة الخدمات",
        ServiceType.SELF_TRANSLATION: "مراجعة الترجمة الذاتية",
        ServiceType.AI_TRANSLATION: "ترجمة بالذكاء الاصطناعي",
    },
    DocumentType: {
        DocumentType.ID_DOCUMENTS: "الهوية والوثائق الشخصية",
        DocumentType.CERTIFICATES: "الشهادات",
        DocumentType.OFFICIAL_LETTERS: "الرسائل والعقود الرسمية",
        DocumentType.POWER_OF_ATTORNEY: "الوكالات العامة",
        DocumentType.COURT_DOCUMENTS: "أحكام المحاكم",
        DocumentType.MEDICAL_REPORTS: "التقارير الطبية",
        DocumentType.COMPANY_DOCUMENTS: "وثائق الشركات",
    },
    DeliveryMethod: {
        DeliveryMethod.DIGITAL: "ملف رقمي",
        DeliveryMethod.PICKUP: "استلام من المكتب",
        DeliveryMethod.DELIVERY: "توصيل",
    },
    InsuranceTier: {
        InsuranceTier.NONE: "بدون ضمان",
        InsuranceTier.DAYS_31: "ضمان 31 يوم",
        InsuranceTier.DAYS_45: "ضمان 45 يوم",
        InsuranceTier.DAYS_90: "ضمان 90 يوم",
        InsuranceTier.ONE_YEAR: "ضمان سنة",
    },
    OrderStatus: {
        OrderStatus.NEW_TICKET: "طلب جديد",
        OrderStatus.TRANSLATION: "قيد الترجمة",
        OrderStatus.DELIVERY_AND_PAYMENT: "التسليم والدفع",
        OrderStatus.AFTER_SALE_SERVICE: "خدمة ما بعد البيع",
        OrderStatus.ARCHIVE: "مؤرشف",
        OrderStatus.LOST: "ملغي",
    },
    PaymentStatus: {
        PaymentStatus.NOT_PAID: "غير مدفوع",
        PaymentStatus.PARTIALLY_PAID: "مدفوع جزئياً",
        PaymentStatus.FULLY_PAID: "مدفوع بالكامل",
    },
}
