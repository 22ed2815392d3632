import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from httpx import AsyncClient, ASGITransport
from jose import jwt

from portal.main import app
from portal.core import redis as redis_module
from portal.core.clients import get_ai, get_drive, get_store
from portal.core.config import settings
from portal.core.errors import CollaboratorFailure, not_found
from portal.core.security import Caller, JWT_ALGORITHM, create_access_token
from portal.schemas.auth import VipProfile
from portal.schemas.document import CustomerFolders, Extraction, FileRef, FolderRef, TranslationReview
from portal.schemas.order import NewOrder, OrderDocument, OrderFilter, OrderOut, OrderPage
from portal.services.orders import OrderService
from portal.services.pricing import RateTable

CUSTOMER_PHONE = "+9647700000001"
OTHER_PHONE = "+9647700000002"


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class InMemoryOrderStore:
    """Order store double that records every call in ``calls``."""

    def __init__(self):
        self.orders: Dict[str, OrderOut] = {}
        self.profiles: Dict[str, VipProfile] = {}
        self.calls: List[tuple] = []
        self.fail_on: set = set()
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _check(self, operation: str):
        self.calls.append((operation,))
        if operation in self.fail_on:
            raise CollaboratorFailure("Database service error", "خطأ في خدمة قاعدة البيانات")

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def seed(self, **fields) -> OrderOut:
        """Insert an order directly, bypassing the service."""
        order_id = fields.pop("id", f"order-{len(self.orders) + 1}")
        created = fields.pop("created_at", None) or self._tick()
        data = {"customer_name": "Seeded Customer", **fields}
        order = OrderOut(id=order_id, sequence_id=len(self.orders) + 1, created_at=created, **data)
        self.orders[order_id] = order
        return order

    async def create_order(self, order: NewOrder) -> OrderOut:
        self._check("create_order")
        order_id = f"order-{len(self.orders) + 1}"
        out = OrderOut(
            id=order_id,
            sequence_id=len(self.orders) + 1,
            created_at=self._tick(),
            **order.model_dump(),
        )
        self.orders[order_id] = out
        return out

    async def get_order(self, order_id: str) -> OrderOut:
        self._check("get_order")
        if order_id not in self.orders:
            raise not_found("Order", "الطلب", order_id)
        return self.orders[order_id]

    async def update_order(self, order_id: str, changes: Dict[str, Any]) -> OrderOut:
        self._check("update_order")
        if order_id not in self.orders:
            raise not_found("Order", "الطلب", order_id)
        updated = self.orders[order_id].model_copy(update=changes)
        self.orders[order_id] = updated
        return updated

    async def query_orders(self, filters: OrderFilter, cursor: Optional[str] = None, page_size: int = 20) -> OrderPage:
        self._check("query_orders")
        matches = [
            o for o in self.orders.values()
            if (filters.status is None or o.status == filters.status)
            and (filters.payment_status is None or o.payment_status == filters.payment_status)
            and (filters.owner_phone is None or o.phone == filters.owner_phone)
            and (filters.date_from is None or o.created_at >= filters.date_from)
            and (filters.date_to is None or o.created_at <= filters.date_to)
        ]
        matches.sort(key=lambda o: o.created_at, reverse=True)
        start = int(cursor or 0)
        items = matches[start:start + page_size]
        has_more = start + page_size < len(matches)
        return OrderPage(
            items=items,
            has_more=has_more,
            next_cursor=str(start + page_size) if has_more else None,
            limit=page_size,
        )

    async def get_orders_by_owner(self, phone: str) -> List[OrderOut]:
        self._check("get_orders_by_owner")
        orders = [o for o in self.orders.values() if o.phone == phone]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def add_documents(self, order_id: str, documents: List[OrderDocument]) -> OrderOut:
        self._check("add_documents")
        order = await self.get_order(order_id)
        return await self.update_order(order_id, {"documents": order.documents + documents})

    async def get_vip_profile(self, profile_id: str) -> Optional[VipProfile]:
        self._check("get_vip_profile")
        return self.profiles.get(profile_id.strip().upper())

    async def get_or_create_customer_profile(self, phone: str, name: str) -> VipProfile:
        self._check("get_or_create_customer_profile")
        for profile in self.profiles.values():
            if profile.phone == phone:
                return profile
        profile = VipProfile(id=f"profile-{len(self.profiles) + 1}", profile_id=f"NCTV-{len(self.profiles) + 1}",
                             name=name, phone=phone)
        self.profiles[profile.profile_id] = profile
        return profile


class FakeDrive:

    def __init__(self):
        self.folders: List[FolderRef] = []
        self.files: Dict[str, FileRef] = {}
        self.contents: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail = False

    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> FolderRef:
        if self.fail:
            raise CollaboratorFailure("Storage service error", "خطأ في خدمة التخزين")
        folder = FolderRef(id=f"folder-{len(self.folders) + 1}", name=name,
                           url=f"https://drive.google.com/drive/folders/folder-{len(self.folders) + 1}")
        self.folders.append(folder)
        return folder

    async def find_folder(self, name: str, parent_id: Optional[str] = None) -> Optional[FolderRef]:
        return next((f for f in self.folders if f.name == name), None)

    async def create_customer_folders(self, customer_name: str, order_id: str) -> CustomerFolders:
        customer = await self.find_folder(customer_name) or await self.create_folder(customer_name)
        order = await self.create_folder(f"Order_{order_id}", customer.id)
        return CustomerFolders(
            customer=customer,
            order=order,
            uploads=await self.create_folder("Uploads", order.id),
            translated=await self.create_folder("Translated", order.id),
        )

    async def upload_file(self, content: bytes, folder_id: Optional[str], name: str,
                          mime_type: str = "application/octet-stream") -> FileRef:
        if self.fail:
            raise CollaboratorFailure("Storage service error", "خطأ في خدمة التخزين")
        file_id = f"file-{len(self.files) + 1}"
        ref = FileRef(id=file_id, name=name, mime_type=mime_type, size=len(content),
                      view_url=f"https://drive.google.com/file/d/{file_id}/view",
                      direct_url=f"https://drive.google.com/uc?id={file_id}")
        self.files[file_id] = ref
        self.contents[file_id] = content
        return ref

    async def download_file(self, file_id: str) -> bytes:
        return self.contents[file_id]

    async def get_file(self, file_id: str) -> FileRef:
        if file_id not in self.files:
            raise not_found("File")
        return self.files[file_id]

    async def delete_file(self, file_id: str) -> None:
        self.deleted.append(file_id)
        self.files.pop(file_id, None)

    async def list_files(self, folder_id: str) -> List[FileRef]:
        return list(self.files.values())


class FakeAI:

    def __init__(self, text: str = "نص تجريبي", language: str = "ar"):
        self.text = text
        self.language = language
        self.translations: List[tuple] = []
        self.reviews: List[tuple] = []
        self.fields: Optional[Dict[str, Any]] = None

    async def extract_text(self, image: bytes, mime_type: str = "image/jpeg",
                           document_type: Optional[str] = None) -> Extraction:
        return Extraction(raw_text=self.text, fields=self.fields, language=self.language, confidence=0.95)

    async def translate_text(self, text: str, from_lang: str = "ar", to_lang: str = "en") -> str:
        self.translations.append((text, from_lang, to_lang))
        return f"[{to_lang}] {text}"

    async def validate_translation(self, original: str, translation: str,
                                   language: Optional[str] = None) -> TranslationReview:
        self.reviews.append((original, translation, language))
        return TranslationReview(overall_score=0.9, accuracy=0.95, issues=[], suggestions=["Keep dates in ISO form"])


class FakeRedis:
    """Just enough of redis.asyncio.Redis for caching, rate limits and idempotency."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.ttl: Dict[str, int] = {}

    @staticmethod
    def _encode(value) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode()

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = self._encode(value)
        if ex is not None:
            self.ttl[key] = ex
        return True

    async def incr(self, key):
        value = int(self.data.get(key, b"0")) + 1
        self.data[key] = self._encode(value)
        return value

    async def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def ai():
    return FakeAI()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "redis", fake)
    return fake


@pytest.fixture
def rates():
    return RateTable()


@pytest.fixture
def service(store, drive, rates):
    return OrderService(store, drive=drive, rates=rates, strict=False)


@pytest.fixture
def customer():
    return Caller(caller_id="NCTV-1", phone=CUSTOMER_PHONE, name="Ali Hassan", profile_id="profile-1")


@pytest.fixture
def other_customer():
    return Caller(caller_id="NCTV-2", phone=OTHER_PHONE, name="Sara Ahmed", profile_id="profile-2")


@pytest.fixture
def admin():
    return Caller(caller_id="admin:staff", is_admin=True, name="staff")


@pytest.fixture
def customer_token(customer):
    return create_access_token(customer)


@pytest.fixture
def other_customer_token(other_customer):
    return create_access_token(other_customer)


@pytest.fixture
def admin_token(admin):
    return create_access_token(admin)


@pytest.fixture
def expired_token():
    payload = {
        "sub": "NCTV-1",
        "phone": CUSTOMER_PHONE,
        "type": "access",
        "exp": datetime.now(timezone.utc) - timedelta(hours=1),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=JWT_ALGORITHM)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return auth


@pytest.fixture
async def client(store, drive, ai):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_drive] = lambda: drive
    app.dependency_overrides[get_ai] = lambda: ai
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def valid_order_data():
    return {
        "serviceType": "full-service",
        "pages": 2,
        "certification": True,
        "numDocs": 1,
        "deliveryMethod": "pickup",
        "documentTypes": ["certificates"],
        "languages": ["en-ar"],
        "notes": "Please keep the stamps visible",
    }


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "auth: marks tests related to authentication"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "lifecycle: marks tests related to the order workflow"
    )
    config.addinivalue_line(
        "markers", "webhooks: marks tests related to webhooks"
    )
    config.addinivalue_line(
        "markers", "rate_limit: marks tests related to rate limiting"
    )
    config.addinivalue_line(
        "markers", "idempotency: marks tests related to idempotency"
    )
