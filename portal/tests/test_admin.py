import pytest
from datetime import datetime, timedelta, timezone

from portal.core.enums import OrderStatus, PaymentMethod, PaymentStatus, ServiceType

CUSTOMER_PHONE = "+9647700000001"
OTHER_PHONE = "+9647700000002"

pytestmark = pytest.mark.integration


class TestAdminAccess:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/admin/dashboard", "/admin/orders", "/admin/statistics",
                                      "/admin/pricing", "/admin/customers"])
    async def test_customers_forbidden(self, client, customer_token, auth_headers, path):
        response = await client.get(path, headers=auth_headers(customer_token))

        assert response.status_code == 403
        assert response.json()["category"] == "forbidden"

    @pytest.mark.asyncio
    async def test_anonymous_unauthenticated(self, client):
        response = await client.get("/admin/dashboard")

        assert response.status_code == 401


class TestAdminOrders:

    @pytest.mark.asyncio
    async def test_list_all_orders(self, client, store, admin_token, auth_headers):
        store.seed(phone=CUSTOMER_PHONE)
        store.seed(phone=OTHER_PHONE, payment_status=PaymentStatus.FULLY_PAID)

        everything = await client.get("/admin/orders", headers=auth_headers(admin_token))
        paid = await client.get("/admin/orders?paymentStatus=Fully Paid", headers=auth_headers(admin_token))

        assert len(everything.json()["items"]) == 2
        assert [o["phone"] for o in paid.json()["items"]] == [OTHER_PHONE]

    @pytest.mark.asyncio
    async def test_cursor_pagination(self, client, store, admin_token, auth_headers):
        for _ in range(3):
            store.seed(phone=CUSTOMER_PHONE)

        first = await client.get("/admin/orders?limit=2", headers=auth_headers(admin_token))
        cursor = first.json()["next_cursor"]
        second = await client.get(f"/admin/orders?limit=2&cursor={cursor}", headers=auth_headers(admin_token))

        assert first.json()["has_more"] is True
        assert len(second.json()["items"]) == 1
        assert second.json()["has_more"] is False

    @pytest.mark.asyncio
    async def test_invalid_filter(self, client, admin_token, auth_headers):
        response = await client.get("/admin/orders?status=Bogus", headers=auth_headers(admin_token))

        assert response.status_code == 400
        assert response.json()["category"] == "validation_failed"

    @pytest.mark.asyncio
    async def test_set_status_forward(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            f"/admin/orders/{order.id}/status", json={"status": "Translation"}, headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert store.orders[order.id].status is OrderStatus.TRANSLATION

    @pytest.mark.asyncio
    async def test_set_status_backward_rejected(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE, status=OrderStatus.AFTER_SALE_SERVICE)

        response = await client.post(
            f"/admin/orders/{order.id}/status", json={"status": "New Ticket"}, headers=auth_headers(admin_token),
        )

        assert response.status_code == 409
        assert store.orders[order.id].status is OrderStatus.AFTER_SALE_SERVICE

    @pytest.mark.asyncio
    async def test_set_unknown_status(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            f"/admin/orders/{order.id}/status", json={"status": "Bogus"}, headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_update(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.put(
            f"/admin/orders/{order.id}",
            json={"finalQuotation": 40000, "status": "Translation"},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert store.orders[order.id].final_quotation == 40000
        assert store.orders[order.id].status is OrderStatus.TRANSLATION

    @pytest.mark.asyncio
    async def test_set_payment(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            f"/admin/orders/{order.id}/payment",
            json={"paymentStatus": "Partially Paid", "paymentMethod": "Cash"},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert store.orders[order.id].payment_status is PaymentStatus.PARTIALLY_PAID
        assert store.orders[order.id].payment_method is PaymentMethod.CASH

    @pytest.mark.asyncio
    async def test_set_payment_needs_a_field(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(f"/admin/orders/{order.id}/payment", json={}, headers=auth_headers(admin_token))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_reprice(self, client, store, admin_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE, service_type=ServiceType.FULL_SERVICE, pages=3,
                           certification=True, final_quotation=1)

        response = await client.post(f"/admin/orders/{order.id}/reprice", headers=auth_headers(admin_token))

        assert response.json()["pricing"]["total"] == 50000
        assert store.orders[order.id].final_quotation == 50000


class TestAdminReports:

    @pytest.mark.asyncio
    async def test_dashboard(self, client, store, admin_token, auth_headers):
        now = datetime.now(timezone.utc)
        store.seed(phone=CUSTOMER_PHONE, final_quotation=10000, created_at=now)
        store.seed(phone=CUSTOMER_PHONE, final_quotation=5000, status=OrderStatus.TRANSLATION, created_at=now)
        store.seed(phone=OTHER_PHONE, final_quotation=99999, created_at=now - timedelta(days=400))

        response = await client.get("/admin/dashboard", headers=auth_headers(admin_token))

        data = response.json()["data"]
        assert data["today"] == {"orders": 2, "revenue": 15000}
        assert data["this_month"] == {"orders": 2, "revenue": 15000}
        assert data["overview"]["in_progress"] == 1
        assert data["breakdown"]["by_status"] == {"New Ticket": 1, "Translation": 1}

    @pytest.mark.asyncio
    async def test_statistics_window(self, client, store, admin_token, auth_headers):
        store.seed(phone=CUSTOMER_PHONE, final_quotation=10000, created_at=datetime(2024, 3, 5, tzinfo=timezone.utc))
        store.seed(phone=CUSTOMER_PHONE, final_quotation=20000, created_at=datetime(2024, 5, 5, tzinfo=timezone.utc))

        response = await client.get(
            "/admin/statistics?dateFrom=2024-03-01T00:00:00Z&dateTo=2024-03-31T23:59:59Z",
            headers=auth_headers(admin_token),
        )

        stats = response.json()["data"]["statistics"]
        assert stats["total_orders"] == 1
        assert stats["total_revenue"] == 10000

    @pytest.mark.asyncio
    async def test_pricing_and_discount(self, client, admin_token, auth_headers):
        pricing = await client.get("/admin/pricing", headers=auth_headers(admin_token))
        discount = await client.post(
            "/admin/pricing/discount",
            json={"total": 50000, "discountType": "percentage", "discountValue": 10},
            headers=auth_headers(admin_token),
        )

        assert pricing.json()["data"]["currency"] == "IQD"
        assert discount.json()["discounted_total"] == 45000

    @pytest.mark.asyncio
    async def test_customers(self, client, store, admin_token, auth_headers):
        store.seed(phone=CUSTOMER_PHONE, customer_name="Ali", final_quotation=1000)
        store.seed(phone=CUSTOMER_PHONE, customer_name="Ali", final_quotation=2000)
        store.seed(phone=OTHER_PHONE, customer_name="Sara", final_quotation=500)

        listing = await client.get("/admin/customers?limit=1", headers=auth_headers(admin_token))
        detail = await client.get(f"/admin/customers/{CUSTOMER_PHONE}", headers=auth_headers(admin_token))

        data = listing.json()["data"]
        assert data["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
        assert data["customers"][0]["phone"] == CUSTOMER_PHONE
        assert data["customers"][0]["total_spent"] == 3000
        assert detail.json()["data"]["customer"]["total_orders"] == 2
        assert len(detail.json()["data"]["orders"]) == 2
