"""
Tests for the admin customer routes: manual bulk sync from the Shopify
REST API, its status, and stats recalculation.

The Shopify client is replaced through FastAPI's dependency overrides.
"""

from decimal import Decimal

import pytest

from main import app
from src.exceptions import ShopifyAPIError
from src.models.base_model import CustomerStats
from src.models.sync_log import SyncKind, SyncStatus
from src.routers.dependencies import get_shopify_client
from src.shopify_client import ShopifyAdminClient
from payloads import customer_payload, encode, order_payload


class FakeShopifyClient:
    def __init__(self, customers, error=None):
        self.customers = customers
        self.error = error

    async def iter_customers(self):
        for customer in self.customers:
            yield customer
        if self.error is not None:
            raise self.error


@pytest.fixture
def shopify_customers():
    """Customers returned by the fake Shopify client; tests may mutate the list."""
    customers = []
    app.dependency_overrides[get_shopify_client] = lambda: FakeShopifyClient(customers)
    yield customers
    app.dependency_overrides.pop(get_shopify_client, None)


class TestBulkSync:

    @pytest.mark.asyncio
    async def test_counts_added_updated_skipped(self, client, engine, db_manager, shopify_customers):
        await engine.reconcile_customer_notification(SyncKind.CUSTOMER_CREATE, encode(customer_payload(100)))
        shopify_customers.extend([
            customer_payload(100, phone="+5511988887777", updated_at="2025-03-01T00:00:00Z"),
            customer_payload(101, email="c@z.com"),
            {"email": "no-id@x.com"},
        ])

        response = await client.post("/admin/customers/sync")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"]["total"] == 3
        assert data["summary"]["added"] == 1
        assert data["summary"]["updated"] == 1
        assert data["summary"]["skipped"] == 1
        assert data["summary"]["duration"].endswith("s")

        sync_log = await db_manager.get_sync_log(data["syncLogId"])
        assert sync_log.sync_type == SyncKind.MANUAL_BULK
        assert sync_log.status == SyncStatus.COMPLETED
        assert (sync_log.records_total, sync_log.records_added, sync_log.records_updated, sync_log.records_skipped) == (3, 1, 1, 1)
        assert (await db_manager.get_customer("100")).phone == "+5511988887777"

    @pytest.mark.asyncio
    async def test_bulk_sync_recomputes_stats(self, client, engine, db_manager, shopify_customers):
        await engine.reconcile_order_notification(SyncKind.ORDER_CREATE, encode(order_payload("O1", total_price="50.00")))
        shopify_customers.append(customer_payload(100, orders_count=12, total_spent="1200.00"))

        response = await client.post("/admin/customers/sync")

        assert response.status_code == 200
        customer = await db_manager.get_customer("100")
        assert customer.orders_count == 1
        assert customer.total_spent == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_shopify_failure_returns_502_and_fails_the_record(self, client, db_manager):
        app.dependency_overrides[get_shopify_client] = lambda: FakeShopifyClient(
            [customer_payload(100)], error=ShopifyAPIError("Shopify REST API Error: 401 - Unauthorized")
        )
        try:
            response = await client.post("/admin/customers/sync")
        finally:
            app.dependency_overrides.pop(get_shopify_client, None)

        assert response.status_code == 502
        assert "401" in response.json()["details"]
        sync_log = await db_manager.latest_sync_log()
        assert sync_log.status == SyncStatus.FAILED
        assert sync_log.records_total == 1
        assert sync_log.records_added == 1
        assert await db_manager.get_customer("100") is not None


    @pytest.mark.asyncio
    async def test_malformed_record_is_skipped(self, client, db_manager, shopify_customers):
        shopify_customers.extend([customer_payload(100, addresses=["not-an-object"]), customer_payload(101)])

        response = await client.post("/admin/customers/sync")

        assert response.status_code == 200
        assert response.json()["summary"]["skipped"] == 1
        assert response.json()["summary"]["added"] == 1
        sync_log = await db_manager.latest_sync_log()
        assert sync_log.status == SyncStatus.COMPLETED
        assert await db_manager.get_customer("100") is None


class TestSyncStatus:

    @pytest.mark.asyncio
    async def test_empty_cache(self, client):
        response = await client.get("/admin/customers/sync")

        assert response.status_code == 200
        data = response.json()
        assert data["lastSync"] is None
        assert data["stats"] == {"totalCustomers": 0, "activeCustomers": 0, "lastSyncAt": None}

    @pytest.mark.asyncio
    async def test_after_sync(self, client, engine, shopify_customers):
        shopify_customers.extend([customer_payload(100, state="enabled"), customer_payload(101)])
        await client.post("/admin/customers/sync")

        data = (await client.get("/admin/customers/sync")).json()
        assert data["lastSync"]["syncType"] == "manual-bulk"
        assert data["lastSync"]["status"] == "completed"
        assert data["lastSync"]["recordsAdded"] == 2
        assert data["stats"]["totalCustomers"] == 2
        assert data["stats"]["activeCustomers"] == 1
        assert data["stats"]["lastSyncAt"] == data["lastSync"]["completedAt"]


class TestRecalculateStats:

    @pytest.mark.asyncio
    async def test_recalculate(self, client, engine, db_manager):
        await engine.reconcile_order_notification(SyncKind.ORDER_CREATE, encode(order_payload("O1", total_price="50.00")))
        await db_manager.update_customer_stats("100", CustomerStats(orders_count=3))

        response = await client.post("/admin/customers/recalculate-stats")

        assert response.status_code == 200
        assert response.json()["stats"] == {"totalCustomers": 1, "updated": 1, "unchanged": 0}
        assert (await db_manager.get_customer("100")).orders_count == 1


class TestShopifyAdminClient:

    @pytest.mark.asyncio
    async def test_incomplete_configuration(self):
        shopify_client = ShopifyAdminClient("", "", "2025-04")
        with pytest.raises(ShopifyAPIError, match="configuration incomplete"):
            async for _ in shopify_client.iter_customers():
                pass

    def test_url(self):
        shopify_client = ShopifyAdminClient("loja.myshopify.com", "token", "2025-04")
        assert shopify_client._url("customers") == "https://loja.myshopify.com/admin/api/2025-04/customers.json"
