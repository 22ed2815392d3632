"""Notion-backed order and VIP profile store.

Orders are pages in the customer database; VIP profiles are pages in the VIP
database. Property names must match the Notion schema exactly, including the
trailing spaces and emoji some of them carry.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from portal.core.config import settings
from portal.core.enums import (
    DeliveryMethod,
    DocumentType,
    InsuranceTier,
    LanguagePair,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ServiceType,
)
from portal.core.errors import CollaboratorFailure, not_found
from portal.core.metrics import track_collaborator_call
from portal.schemas.auth import VipProfile
from portal.schemas.order import NewOrder, OrderDocument, OrderFilter, OrderOut, OrderPage

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
RICH_TEXT_CHUNK = 2000

# Order page properties
P_CUSTOMER_NAME = "Customer Name"
P_CUSTOMER_ID = "Customer ID"
P_PHONE = "Phone"
P_CUSTOMER_STATUS = "Customer Status"
P_VIP_PROFILE = "Customer Profile "
P_STATUS = "Status"
P_PAYMENT_STATUS = "Payment Status 💰"
P_SERVICES = "service "
P_SERVICE_TYPE = "Service Type"
P_DOC_TYPES = "Type of Docs"
P_LANGUAGES = "Language 🚩"
P_PAGES = "Page"
P_WORDS = "Words"
P_NUM_DOCS = "N. of Docs"
P_COPIES = "Additional Copies"
P_CERTIFICATION = "Certification"
P_INSURANCE = "Insurance"
P_INSURANCE_COUNT = "Number of Insurance"
P_DELIVERY = "Delivery method"
P_RUSH = "Rush"
P_PAYMENT_METHOD = "Payment Method "
P_FINAL_QUOTATION = "Final Quotation"
P_NOTES = "Notes "
P_DOCUMENTS = "Documents "
P_CHANNEL = "channel "
P_DEADLINE = "Deadline "
P_TRANSLATION_TIME = "Translation Time "

# VIP profile properties
V_NAME = "Name"
V_PROFILE_ID = "Profile ID"
V_PASSWORD = "Password "
V_PHONE = "Phone"
V_EMAIL = "Email"
V_DRIVE_FOLDER = "Drive Folder"


# ---------------------------------------------------------------------------
# Property encoding
# ---------------------------------------------------------------------------

def rich_text(content: Optional[str]) -> List[dict]:
    content = content or ""
    chunks = [content[i:i + RICH_TEXT_CHUNK] for i in range(0, len(content), RICH_TEXT_CHUNK)] or [""]
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunks]


def _names(values) -> List[dict]:
    return [{"name": v} for v in values if v]


def _date(value) -> Optional[dict]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.isoformat()
    return {"start": value}


_ENCODERS = {
    "customer_name": lambda v: (P_CUSTOMER_NAME, {"title": rich_text(v)}),
    "phone": lambda v: (P_PHONE, {"phone_number": v}),
    "customer_status": lambda v: (P_CUSTOMER_STATUS, {"select": {"name": v}}),
    "channel": lambda v: (P_CHANNEL, {"select": {"name": v}}),
    "vip_profile_id": lambda v: (P_VIP_PROFILE, {"relation": [{"id": v}]}),
    "service_type": lambda v: (P_SERVICE_TYPE, {"select": {"name": v.to_store()}}),
    "document_types": lambda v: (P_DOC_TYPES, {"multi_select": _names(d.to_store() for d in v)}),
    "languages": lambda v: (P_LANGUAGES, {"multi_select": _names(lang.to_store() for lang in v)}),
    "pages": lambda v: (P_PAGES, {"number": v}),
    "words": lambda v: (P_WORDS, {"number": v}),
    "num_docs": lambda v: (P_NUM_DOCS, {"number": v}),
    "additional_copies": lambda v: (P_COPIES, {"number": v}),
    "certification": lambda v: (P_CERTIFICATION, {"checkbox": bool(v)}),
    "insurance": lambda v: (P_INSURANCE, {"multi_select": _names([v.to_store()])}),
    "insurance_count": lambda v: (P_INSURANCE_COUNT, {"number": v}),
    "delivery_method": lambda v: (P_DELIVERY, {"multi_select": _names([v.to_store()])}),
    "rush_translation": lambda v: (P_RUSH, {"checkbox": bool(v)}),
    "payment_method": lambda v: (P_PAYMENT_METHOD, {"select": {"name": v.to_store()}}),
    "final_quotation": lambda v: (P_FINAL_QUOTATION, {"number": v}),
    "status": lambda v: (P_STATUS, {"status": {"name": v.to_store()}}),
    "payment_status": lambda v: (P_PAYMENT_STATUS, {"status": {"name": v.to_store()}}),
    "notes": lambda v: (P_NOTES, {"rich_text": rich_text(v)}),
    "deadline": lambda v: (P_DEADLINE, {"date": _date(v)}),
    "translation_time": lambda v: (P_TRANSLATION_TIME, {"date": _date(v)}),
}


def encode_properties(changes: Dict[str, Any]) -> Dict[str, dict]:
    """Turn order fields into Notion page properties. Unknown fields and None are skipped."""
    properties = {}
    for field, value in changes.items():
        encoder = _ENCODERS.get(field)
        if encoder is None or value is None:
            continue
        name, prop = encoder(value)
        properties[name] = prop
    return properties


def encode_new_order(order: NewOrder) -> Dict[str, dict]:
    fields = {field: getattr(order, field) for field in NewOrder.model_fields}
    properties = encode_properties(fields)
    properties[P_SERVICES] = {"multi_select": [{"name": "Translation"}]}
    if order.insurance is None:
        properties.pop(P_INSURANCE_COUNT, None)
    if not order.words:
        properties.pop(P_WORDS, None)
    return properties


# ---------------------------------------------------------------------------
# Property decoding
# ---------------------------------------------------------------------------

def plain_text(items) -> str:
    return "".join(item.get("plain_text") or item.get("text", {}).get("content", "") for item in items or [])


def _prop(props: dict, name: str, kind: str):
    return (props.get(name) or {}).get(kind)


def _option(props: dict, name: str, kind: str) -> Optional[str]:
    value = _prop(props, name, kind)
    return value.get("name") if value else None


def _options(props: dict, name: str) -> List[str]:
    return [o["name"] for o in _prop(props, name, "multi_select") or [] if o.get("name")]


def _date_start(props: dict, name: str) -> Optional[str]:
    value = _prop(props, name, "date")
    return value.get("start") if value else None


def _known(enum_cls, names: List[str]) -> list:
    members = []
    for name in names:
        member = enum_cls.from_store(name)
        if member is None:
            logger.warning(f"Unknown {enum_cls.__name__} option in Notion: {name!r}")
            continue
        members.append(member)
    return members


def _file_url(f: dict) -> str:
    return (f.get("file") or {}).get("url") or (f.get("external") or {}).get("url") or ""


def decode_order(page: dict) -> OrderOut:
    props = page.get("properties", {})
    unique_id = _prop(props, P_CUSTOMER_ID, "unique_id") or {}
    relation = _prop(props, P_VIP_PROFILE, "relation") or []
    insurance = _known(InsuranceTier, _options(props, P_INSURANCE))
    delivery = _known(DeliveryMethod, _options(props, P_DELIVERY))

    return OrderOut(
        id=page["id"],
        url=page.get("url"),
        created_at=page.get("created_time"),
        updated_at=page.get("last_edited_time"),
        sequence_id=unique_id.get("number"),
        customer_name=plain_text(_prop(props, P_CUSTOMER_NAME, "title")),
        phone=_prop(props, P_PHONE, "phone_number"),
        customer_status=_option(props, P_CUSTOMER_STATUS, "select"),
        vip_profile_id=relation[0]["id"] if relation else None,
        channel=_option(props, P_CHANNEL, "select"),
        service_type=ServiceType.from_store(_option(props, P_SERVICE_TYPE, "select")),
        document_types=_known(DocumentType, _options(props, P_DOC_TYPES)),
        languages=_known(LanguagePair, _options(props, P_LANGUAGES)),
        pages=_prop(props, P_PAGES, "number") or 0,
        words=_prop(props, P_WORDS, "number") or 0,
        num_docs=_prop(props, P_NUM_DOCS, "number") or 1,
        additional_copies=_prop(props, P_COPIES, "number") or 0,
        certification=bool(_prop(props, P_CERTIFICATION, "checkbox")),
        insurance=insurance[0] if insurance else None,
        insurance_count=_prop(props, P_INSURANCE_COUNT, "number") or 0,
        delivery_method=delivery[0] if delivery else None,
        rush_translation=bool(_prop(props, P_RUSH, "checkbox")),
        payment_method=PaymentMethod.from_store(_option(props, P_PAYMENT_METHOD, "select")),
        final_quotation=_prop(props, P_FINAL_QUOTATION, "number") or 0,
        status=OrderStatus.from_store(_option(props, P_STATUS, "status")),
        payment_status=PaymentStatus.from_store(_option(props, P_PAYMENT_STATUS, "status")),
        notes=plain_text(_prop(props, P_NOTES, "rich_text")),
        deadline=_date_start(props, P_DEADLINE),
        translation_time=_date_start(props, P_TRANSLATION_TIME),
        documents=[
            OrderDocument(name=f.get("name", ""), url=_file_url(f))
            for f in _prop(props, P_DOCUMENTS, "files") or []
        ],
    )


def decode_vip_profile(page: dict, include_password: bool = False) -> VipProfile:
    props = page.get("properties", {})
    unique_id = _prop(props, V_PROFILE_ID, "unique_id") or {}
    prefix, number = unique_id.get("prefix"), unique_id.get("number")
    profile_id = f"{prefix}-{number}" if prefix else str(number or "")
    return VipProfile(
        id=page["id"],
        profile_id=profile_id,
        name=plain_text(_prop(props, V_NAME, "title")),
        phone=_prop(props, V_PHONE, "phone_number"),
        email=_prop(props, V_EMAIL, "email"),
        drive_folder=_prop(props, V_DRIVE_FOLDER, "url"),
        password=plain_text(_prop(props, V_PASSWORD, "rich_text")) if include_password else None,
    )


def parse_profile_number(profile_id: str, prefix: str) -> Optional[int]:
    match = re.match(rf"^{re.escape(prefix)}-?(\d+)$", profile_id.strip(), re.IGNORECASE)
    return int(match.group(1)) if match else None


def build_query_filter(filters: OrderFilter) -> Optional[dict]:
    conditions = []
    if filters.status:
        conditions.append({"property": P_STATUS, "status": {"equals": filters.status.to_store()}})
    if filters.payment_status:
        conditions.append({"property": P_PAYMENT_STATUS, "status": {"equals": filters.payment_status.to_store()}})
    if filters.owner_phone:
        conditions.append({"property": P_PHONE, "phone_number": {"equals": filters.owner_phone}})
    if filters.date_from:
        conditions.append({"timestamp": "created_time", "created_time": {"on_or_after": filters.date_from.isoformat()}})
    if filters.date_to:
        conditions.append({"timestamp": "created_time", "created_time": {"on_or_before": filters.date_to.isoformat()}})

    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"and": conditions}


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class NotionStore:

    def __init__(
        self,
        api_key: str = settings.NOTION_API_KEY,
        customer_database_id: str = settings.NOTION_CUSTOMER_DATABASE_ID,
        vip_database_id: str = settings.NOTION_VIP_DATABASE_ID,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.customer_database_id = customer_database_id
        self.vip_database_id = vip_database_id
        self.client = client or httpx.AsyncClient(
            base_url=NOTION_API_URL,
            timeout=settings.NOTION_TIMEOUT,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": settings.NOTION_VERSION,
                "Content-Type": "application/json",
            },
        )

    async def aclose(self):
        await self.client.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None, resource: str = "Order") -> dict:
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Notion {method} {path} failed: {e}")
            raise CollaboratorFailure("Database service error", "خطأ في خدمة قاعدة البيانات")

        if response.status_code == 404:
            raise not_found(resource, "الطلب")
        if response.status_code >= 400:
            logger.error(f"Notion {method} {path} returned {response.status_code}: {response.text[:500]}")
            raise CollaboratorFailure("Database service error", "خطأ في خدمة قاعدة البيانات")
        return response.json()

    async def _query(self, database_id: str, body: dict) -> dict:
        return await self._request("POST", f"/databases/{database_id}/query", json=body)

    @track_collaborator_call("notion", "create_order")
    async def create_order(self, order: NewOrder) -> OrderOut:
        page = await self._request("POST", "/pages", json={
            "parent": {"database_id": self.customer_database_id},
            "properties": encode_new_order(order),
        })
        return decode_order(page)

    @track_collaborator_call("notion", "get_order")
    async def get_order(self, order_id: str) -> OrderOut:
        return decode_order(await self._request("GET", f"/pages/{order_id}"))

    @track_collaborator_call("notion", "update_order")
    async def update_order(self, order_id: str, changes: Dict[str, Any]) -> OrderOut:
        page = await self._request("PATCH", f"/pages/{order_id}", json={
            "properties": encode_properties(changes),
        })
        return decode_order(page)

    @track_collaborator_call("notion", "query_orders")
    async def query_orders(self, filters: OrderFilter, cursor: Optional[str] = None, page_size: int = 20) -> OrderPage:
        body = {
            "sorts": [{"timestamp": "created_time", "direction": "descending"}],
            "page_size": min(page_size, 100),
        }
        query_filter = build_query_filter(filters)
        if query_filter:
            body["filter"] = query_filter
        if cursor:
            body["start_cursor"] = cursor

        result = await self._query(self.customer_database_id, body)
        return OrderPage(
            items=[decode_order(page) for page in result.get("results", [])],
            has_more=result.get("has_more", False),
            next_cursor=result.get("next_cursor"),
            limit=page_size,
        )

    async def get_orders_by_owner(self, phone: str) -> List[OrderOut]:
        orders, cursor = [], None
        while True:
            page = await self.query_orders(OrderFilter(owner_phone=phone), cursor=cursor, page_size=100)
            orders.extend(page.items)
            if not page.has_more or not page.next_cursor:
                return orders
            cursor = page.next_cursor

    @track_collaborator_call("notion", "add_documents")
    async def add_documents(self, order_id: str, documents: List[OrderDocument]) -> OrderOut:
        current = decode_order(await self._request("GET", f"/pages/{order_id}"))
        files = [
            {"name": d.name[:100], "type": "external", "external": {"url": d.url}}
            for d in current.documents + documents
        ]
        page = await self._request("PATCH", f"/pages/{order_id}", json={
            "properties": {P_DOCUMENTS: {"files": files}},
        })
        return decode_order(page)

    @track_collaborator_call("notion", "get_vip_profile")
    async def get_vip_profile(self, profile_id: str) -> Optional[VipProfile]:
        number = parse_profile_number(profile_id, settings.VIP_PROFILE_PREFIX)
        if number is None:
            return None
        result = await self._query(self.vip_database_id, {
            "filter": {"property": V_PROFILE_ID, "unique_id": {"equals": number}},
            "page_size": 1,
        })
        pages = result.get("results", [])
        return decode_vip_profile(pages[0], include_password=True) if pages else None

    @track_collaborator_call("notion", "get_or_create_customer_profile")
    async def get_or_create_customer_profile(self, phone: str, name: str) -> VipProfile:
        result = await self._query(self.vip_database_id, {
            "filter": {"property": V_PHONE, "phone_number": {"equals": phone}},
            "page_size": 1,
        })
        pages = result.get("results", [])
        if pages:
            return decode_vip_profile(pages[0])

        page = await self._request("POST", "/pages", json={
            "parent": {"database_id": self.vip_database_id},
            "properties": {
                V_NAME: {"title": rich_text(name)},
                V_PHONE: {"phone_number": phone},
            },
        }, resource="Profile")
        logger.info(f"Created VIP profile for {phone}")
        return decode_vip_profile(page)
