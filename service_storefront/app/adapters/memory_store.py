"""
In-process catalog/order store.

Used for local development and tests. Semantics match the PostgreSQL store:
listing order, soft delete, the analytics window and cancelled-order
exclusion.
"""

import asyncio
import itertools
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from shared.logging import get_logger
from ..domain.models import CartItem, Order, OrderStatus, Product, cart_total
from .catalog_store import (
    CatalogStore,
    POPULAR_PRODUCTS_LIMIT,
    clamp_days,
    clamp_orders_limit,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCatalogStore(CatalogStore):
    """Dictionary-backed store guarded by an asyncio lock."""

    backend = "memory"

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._products: Dict[int, Product] = {}
        self._orders: Dict[int, Order] = {}
        self._product_ids = itertools.count(1)
        self._order_ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self.logger = get_logger("storefront.store.memory")

        for fields in products or []:
            self._insert_product(fields)

    def _insert_product(self, fields: Dict[str, Any]) -> Product:
        now = self._clock()
        product = Product(
            id=next(self._product_ids),
            created_at=now,
            updated_at=now,
            **{key: value for key, value in fields.items() if key not in ("id", "created_at", "updated_at")}
        )
        self._products[product.id] = product
        return product

    async def start(self) -> None:
        self.logger.info("In-memory store started", products=len(self._products))

    async def list_products(self, include_inactive: bool, limit: int, offset: int) -> List[Product]:
        async with self._lock:
            products = [
                p for p in self._products.values()
                if include_inactive or p.active
            ]
        products.sort(key=lambda p: (p.sort_order, p.name))
        return [p.model_copy() for p in products[offset:offset + limit]]

    async def get_product(self, product_id: int, include_inactive: bool = False) -> Optional[Product]:
        async with self._lock:
            product = self._products.get(product_id)
        if product is None or not (product.active or include_inactive):
            return None
        return product.model_copy()

    async def create_product(self, fields: Dict[str, Any]) -> int:
        async with self._lock:
            product = self._insert_product({**fields, "active": True})
        self.logger.info("Product created", product_id=product.id)
        return product.id

    async def update_product(self, product_id: int, fields: Dict[str, Any]) -> bool:
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return False
            changes = {key: value for key, value in fields.items() if key not in ("id", "active", "created_at")}
            changes["updated_at"] = self._clock()
            # Validate the merged record before replacing the stored one
            self._products[product_id] = Product(**{**product.model_dump(), **changes})
        return True

    async def soft_delete_product(self, product_id: int) -> bool:
        async with self._lock:
            product = self._products.get(product_id)
            if product is None or not product.active:
                return False
            self._products[product_id] = product.model_copy(
                update={"active": False, "updated_at": self._clock()}
            )
        return True

    async def create_order(self, cart: List[CartItem], phone: Optional[str] = None,
                           notes: Optional[str] = None) -> int:
        total = cart_total(cart)
        async with self._lock:
            order = Order(
                id=next(self._order_ids),
                cart=[item.model_copy() for item in cart],
                customer_phone=phone,
                total_amount=total,
                status=OrderStatus.PENDING,
                notes=notes,
                order_date=self._clock(),
            )
            self._orders[order.id] = order
        self.logger.info("Order logged", order_id=order.id, total=total, items=len(cart))
        return order.id

    async def recent_orders(self, limit: int, offset: int) -> List[Order]:
        async with self._lock:
            orders = list(self._orders.values())
        orders.sort(key=lambda o: (o.order_date, o.id), reverse=True)
        offset = max(0, offset)
        return [o.model_copy() for o in orders[offset:offset + clamp_orders_limit(limit)]]

    async def analytics(self, days: int, detailed: bool = False) -> Dict[str, Any]:
        days = clamp_days(days)
        cutoff = self._clock() - timedelta(days=days)

        async with self._lock:
            orders = [
                o for o in self._orders.values()
                if o.order_date >= cutoff and o.status != OrderStatus.CANCELLED
            ]

        totals = [o.total_amount for o in orders]
        analytics: Dict[str, Any] = {
            "total_orders": len(orders),
            "total_revenue": round(sum(totals), 2),
            "avg_order_value": round(sum(totals) / len(totals), 2) if totals else 0.0,
            "min_order_value": round(min(totals), 2) if totals else 0.0,
            "max_order_value": round(max(totals), 2) if totals else 0.0,
            "unique_customers": len({o.customer_phone for o in orders if o.customer_phone}),
            "period_days": days,
        }

        if detailed:
            daily: Dict[str, Dict[str, Any]] = {}
            popular: Dict[int, Dict[str, Any]] = defaultdict(
                lambda: {"name": "", "quantity": 0.0, "revenue": 0.0}
            )
            for order in orders:
                day = order.order_date.date().isoformat()
                stats = daily.setdefault(day, {"date": day, "orders": 0, "revenue": 0.0})
                stats["orders"] += 1
                stats["revenue"] += order.total_amount

                for item in order.cart:
                    entry = popular[item.id]
                    entry["name"] = max(entry["name"], item.name)
                    entry["quantity"] += item.qty
                    entry["revenue"] += item.price * item.qty

            analytics["daily_stats"] = [
                {**stats, "revenue": round(stats["revenue"], 2)}
                for _, stats in sorted(daily.items(), reverse=True)
            ]
            ranked = sorted(popular.items(), key=lambda kv: (-kv[1]["quantity"], kv[0]))
            analytics["popular_products"] = [
                {
                    "product_id": product_id,
                    "name": entry["name"],
                    "quantity": entry["quantity"],
                    "revenue": round(entry["revenue"], 2),
                }
                for product_id, entry in ranked[:POPULAR_PRODUCTS_LIMIT]
            ]

        return analytics

    async def health_check(self) -> Dict[str, Any]:
        async with self._lock:
            products_count = sum(1 for p in self._products.values() if p.active)
            orders_count = len(self._orders)

        return {
            "backend": self.backend,
            "products": True,
            "orders": True,
            "database_writable": True,
            "products_count": products_count,
            "orders_count": orders_count,
            "ready": True,
            "timestamp": self._clock().isoformat(timespec="seconds"),
        }
