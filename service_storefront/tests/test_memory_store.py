"""
Unit tests for the in-memory catalog/order store.
"""

from datetime import datetime, timedelta, timezone

import pytest

from service_storefront.app.adapters.memory_store import InMemoryCatalogStore
from service_storefront.app.domain.models import CartItem, OrderStatus
from shared.test_helpers import TestDataFactory


class MovingClock:
    """Wall clock that can be moved by tests."""

    def __init__(self):
        self.now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class TestInMemoryCatalogStore:
    """Test cases for InMemoryCatalogStore."""

    @pytest.fixture
    def clock(self):
        return MovingClock()

    @pytest.fixture
    def store(self, clock):
        return InMemoryCatalogStore(products=TestDataFactory.create_test_products(), clock=clock)

    @pytest.mark.asyncio
    async def test_listing_order_and_pagination(self, store):
        await store.create_product({"name": "Almonds", "price": 800.0, "sort_order": 2})

        products = await store.list_products(False, 10, 0)
        assert [p.name for p in products] == ["Basmati Rice", "Almonds", "Toor Dal", "Sunflower Oil"]

        page = await store.list_products(False, 2, 1)
        assert [p.name for p in page] == ["Almonds", "Toor Dal"]

    @pytest.mark.asyncio
    async def test_soft_deleted_products_hidden_by_default(self, store):
        assert await store.soft_delete_product(1) is True

        assert await store.get_product(1) is None
        assert (await store.get_product(1, include_inactive=True)).active is False
        assert 1 not in [p.id for p in await store.list_products(False, 10, 0)]
        assert 1 in [p.id for p in await store.list_products(True, 10, 0)]

    @pytest.mark.asyncio
    async def test_soft_delete_is_not_repeatable(self, store):
        assert await store.soft_delete_product(1) is True
        assert await store.soft_delete_product(1) is False
        assert await store.soft_delete_product(404) is False

    @pytest.mark.asyncio
    async def test_create_and_fetch_round_trip(self, store):
        product_id = await store.create_product({"name": "Ghee", "price": 650.0, "unit": "liter"})

        product = await store.get_product(product_id)
        assert (product.name, product.price, product.unit.value) == ("Ghee", 650.0, "liter")
        assert product.active is True

    @pytest.mark.asyncio
    async def test_update_product(self, store, clock):
        clock.now += timedelta(minutes=5)

        assert await store.update_product(2, {"price": 150.0, "stock_qty": 10}) is True

        product = await store.get_product(2)
        assert product.price == 150.0
        assert product.stock_qty == 10
        assert product.updated_at == clock.now
        assert await store.update_product(404, {"price": 1.0}) is False

    @pytest.mark.asyncio
    async def test_orders_newest_first(self, store, clock):
        cart = [CartItem(id=1, name="Basmati Rice", price=120, qty=2)]
        first = await store.create_order(cart, "+91 9112295256")
        clock.now += timedelta(hours=1)
        second = await store.create_order(cart, None, "leave at gate")

        orders = await store.recent_orders(10, 0)
        assert [o.id for o in orders] == [second, first]
        assert orders[0].status == OrderStatus.PENDING
        assert orders[0].notes == "leave at gate"
        assert orders[1].total_amount == 240.0

    @pytest.mark.asyncio
    async def test_recent_orders_limit_is_clamped(self, store):
        cart = [CartItem(id=1, price=1, qty=1)]
        for _ in range(3):
            await store.create_order(cart)

        assert len(await store.recent_orders(0, 0)) == 1
        assert len(await store.recent_orders(500, 0)) == 3

    @pytest.mark.asyncio
    async def test_analytics(self, store, clock):
        rice = CartItem(id=1, name="Basmati Rice", price=120, qty=2)
        dal = CartItem(id=2, name="Toor Dal", price=140, qty=1)

        clock.now -= timedelta(days=40)
        await store.create_order([rice], "9000000001")
        clock.now += timedelta(days=39)
        await store.create_order([rice, dal], "9000000001")
        clock.now += timedelta(days=1)
        await store.create_order([dal], "9000000002")
        cancelled_id = await store.create_order([dal, dal], "9000000003")
        store._orders[cancelled_id] = store._orders[cancelled_id].model_copy(
            update={"status": OrderStatus.CANCELLED}
        )

        stats = await store.analytics(30, detailed=True)

        assert stats["total_orders"] == 2
        assert stats["total_revenue"] == 520.0
        assert stats["min_order_value"] == 140.0
        assert stats["max_order_value"] == 380.0
        assert stats["avg_order_value"] == 260.0
        assert stats["unique_customers"] == 2
        assert stats["period_days"] == 30
        assert [d["date"] for d in stats["daily_stats"]] == ["2024-06-01", "2024-05-31"]
        assert stats["popular_products"][0] == {
            "product_id": 1, "name": "Basmati Rice", "quantity": 2.0, "revenue": 240.0
        }

    @pytest.mark.asyncio
    async def test_analytics_days_are_clamped(self, store):
        assert (await store.analytics(0))["period_days"] == 1
        assert (await store.analytics(9999))["period_days"] == 365
        assert "daily_stats" not in await store.analytics(7)

    @pytest.mark.asyncio
    async def test_health_check(self, store):
        await store.soft_delete_product(3)

        health = await store.health_check()

        assert health["ready"] is True
        assert health["products_count"] == 2
        assert health["orders_count"] == 0
        assert health["database_writable"] is True
