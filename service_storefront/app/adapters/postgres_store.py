"""
PostgreSQL catalog/order store.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import asyncpg

from shared.errors import StoreError, StoreUnavailableError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from ..domain.models import CartItem, Order, OrderStatus, Product, cart_total
from .catalog_store import (
    CatalogStore,
    POPULAR_PRODUCTS_LIMIT,
    clamp_days,
    clamp_orders_limit,
)


CONNECT_ERRORS = (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError)
QUERY_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)

PRODUCT_COLUMNS = (
    "id, name, price, description, image_url, unit, stock_qty, "
    "sort_order, active, created_at, updated_at"
)
UPDATABLE_FIELDS = ("name", "price", "description", "image_url", "unit", "stock_qty", "sort_order")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS products (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
        description TEXT NOT NULL DEFAULT '',
        image_url VARCHAR(500) NOT NULL DEFAULT '',
        unit VARCHAR(20) NOT NULL DEFAULT 'kg',
        stock_qty INTEGER NOT NULL DEFAULT 1000 CHECK (stock_qty >= 0),
        active BOOLEAN NOT NULL DEFAULT TRUE,
        sort_order INTEGER NOT NULL DEFAULT 99 CHECK (sort_order >= 1),
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id SERIAL PRIMARY KEY,
        cart JSONB NOT NULL,
        customer_phone VARCHAR(32),
        total_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        order_date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        status VARCHAR(16) NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'confirmed', 'delivered', 'cancelled')),
        notes TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_products_active ON products(active);",
    "CREATE INDEX IF NOT EXISTS idx_products_sort ON products(sort_order);",
    "CREATE INDEX IF NOT EXISTS idx_orders_date ON orders(order_date);",
)


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as ``UPDATE 1``."""
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


def _row_to_product(row: asyncpg.Record) -> Product:
    data = dict(row)
    data["price"] = float(data["price"])
    return Product(**data)


def _row_to_order(row: asyncpg.Record) -> Order:
    data = dict(row)
    data["total_amount"] = float(data["total_amount"])
    data["cart"] = [CartItem(**item) for item in data.pop("cart") or []]
    return Order(**data)


class PostgresCatalogStore(CatalogStore):
    """asyncpg-backed store."""

    backend = "postgres"

    def __init__(self, dsn: str, *, connect_attempts: int = 3, connect_base_delay: float = 2.0,
                 min_size: int = 1, max_size: int = 10, command_timeout: float = 30):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.retry_config = RetryConfig(max_attempts=connect_attempts, base_delay=connect_base_delay)
        self.logger = get_logger("storefront.store.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self) -> None:
        """Connect with bounded exponential backoff; exhaustion is fatal."""
        connect = retry_on_exception(CONNECT_ERRORS, self.retry_config)(self._create_pool)
        try:
            self.pool = await connect()
        except RetryError as e:
            self.logger.error(
                "Store connection could not be established",
                attempts=e.attempts,
                error=str(e.last_exception)
            )
            raise StoreUnavailableError(
                "Store connection could not be established",
                details={"attempts": e.attempts, "error": str(e.last_exception)}
            ) from e

        async with self._connection("create schema") as conn:
            for statement in SCHEMA:
                await conn.execute(statement)

        self.logger.info("PostgreSQL store started")

    async def _create_pool(self) -> asyncpg.Pool:
        pool = await asyncpg.create_pool(
            self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
            init=self._init_connection,
        )
        try:
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except BaseException:
            await pool.close()
            raise
        return pool

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection) -> None:
        await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")

    async def stop(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL store stopped")

    @asynccontextmanager
    async def _connection(self, operation: str):
        """Acquire a pooled connection, translating driver failures into StoreError."""
        if self.pool is None:
            raise StoreError(f"Failed to {operation}", details={"error": "store not started"})

        try:
            async with self.pool.acquire() as conn:
                yield conn
        except QUERY_ERRORS as e:
            self.logger.error("Store operation failed", operation=operation, error=str(e))
            raise StoreError(f"Failed to {operation}", details={"error": str(e)}) from e

    async def list_products(self, include_inactive: bool, limit: int, offset: int) -> List[Product]:
        sql = f"SELECT {PRODUCT_COLUMNS} FROM products"
        if not include_inactive:
            sql += " WHERE active = TRUE"
        sql += " ORDER BY sort_order ASC, name ASC LIMIT $1 OFFSET $2"

        async with self._connection("retrieve products") as conn:
            rows = await conn.fetch(sql, limit, offset)
        return [_row_to_product(row) for row in rows]

    async def get_product(self, product_id: int, include_inactive: bool = False) -> Optional[Product]:
        sql = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = $1"
        if not include_inactive:
            sql += " AND active = TRUE"

        async with self._connection("retrieve product") as conn:
            row = await conn.fetchrow(sql, product_id)
        return _row_to_product(row) if row else None

    async def create_product(self, fields: Dict[str, Any]) -> int:
        async with self._connection("add product") as conn:
            async with conn.transaction():
                product_id = await conn.fetchval(
                    """
                    INSERT INTO products (name, price, description, image_url, unit, stock_qty, sort_order, active)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, TRUE)
                    RETURNING id
                    """,
                    fields["name"],
                    fields["price"],
                    fields.get("description", ""),
                    fields.get("image_url", ""),
                    fields.get("unit", "kg"),
                    fields.get("stock_qty", 1000),
                    fields.get("sort_order", 99),
                )
                # Read back inside the transaction; a failure here rolls the insert back
                row = await conn.fetchrow("SELECT id FROM products WHERE id = $1", product_id)
                if row is None:
                    raise StoreError("Failed to add product", details={"error": "inserted row not readable"})

        self.logger.info("Product created", product_id=product_id)
        return product_id

    async def update_product(self, product_id: int, fields: Dict[str, Any]) -> bool:
        columns = [name for name in UPDATABLE_FIELDS if name in fields]
        if not columns:
            return False

        assignments = ", ".join(f"{name} = ${index}" for index, name in enumerate(columns, start=1))
        params = [fields[name] for name in columns]
        params.append(product_id)
        sql = f"UPDATE products SET {assignments}, updated_at = NOW() WHERE id = ${len(params)}"

        async with self._connection("update product") as conn:
            status = await conn.execute(sql, *params)
        return _affected_rows(status) > 0

    async def soft_delete_product(self, product_id: int) -> bool:
        async with self._connection("delete product") as conn:
            status = await conn.execute(
                "UPDATE products SET active = FALSE, updated_at = NOW() WHERE id = $1 AND active = TRUE",
                product_id,
            )
        return _affected_rows(status) > 0

    async def create_order(self, cart: List[CartItem], phone: Optional[str] = None,
                           notes: Optional[str] = None) -> int:
        payload = [item.model_dump() for item in cart]
        total = cart_total(cart)

        async with self._connection("log order") as conn:
            async with conn.transaction():
                order_id = await conn.fetchval(
                    """
                    INSERT INTO orders (cart, customer_phone, total_amount, notes, status)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id
                    """,
                    payload,
                    phone,
                    total,
                    notes,
                    OrderStatus.PENDING.value,
                )

        self.logger.info("Order logged", order_id=order_id, total=total, items=len(cart))
        return order_id

    async def recent_orders(self, limit: int, offset: int) -> List[Order]:
        async with self._connection("retrieve orders") as conn:
            rows = await conn.fetch(
                """
                SELECT id, cart, customer_phone, total_amount, order_date, status, notes
                FROM orders
                ORDER BY order_date DESC, id DESC
                LIMIT $1 OFFSET $2
                """,
                clamp_orders_limit(limit),
                max(0, offset),
            )
        return [_row_to_order(row) for row in rows]

    async def analytics(self, days: int, detailed: bool = False) -> Dict[str, Any]:
        days = clamp_days(days)

        async with self._connection("retrieve analytics") as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total_orders,
                    COALESCE(SUM(total_amount), 0) AS total_revenue,
                    COALESCE(AVG(total_amount), 0) AS avg_order_value,
                    COALESCE(MIN(total_amount), 0) AS min_order_value,
                    COALESCE(MAX(total_amount), 0) AS max_order_value,
                    COUNT(DISTINCT customer_phone) AS unique_customers
                FROM orders
                WHERE order_date >= NOW() - make_interval(days => $1)
                  AND status != 'cancelled'
                """,
                days,
            )

            analytics: Dict[str, Any] = {
                "total_orders": int(row["total_orders"]),
                "total_revenue": round(float(row["total_revenue"]), 2),
                "avg_order_value": round(float(row["avg_order_value"]), 2),
                "min_order_value": round(float(row["min_order_value"]), 2),
                "max_order_value": round(float(row["max_order_value"]), 2),
                "unique_customers": int(row["unique_customers"]),
                "period_days": days,
            }

            if detailed:
                daily = await conn.fetch(
                    """
                    SELECT order_date::date AS order_day, COUNT(*) AS orders,
                           COALESCE(SUM(total_amount), 0) AS revenue
                    FROM orders
                    WHERE order_date >= NOW() - make_interval(days => $1)
                      AND status != 'cancelled'
                    GROUP BY order_day
                    ORDER BY order_day DESC
                    """,
                    days,
                )
                popular = await conn.fetch(
                    """
                    SELECT (item->>'id')::bigint AS product_id,
                           MAX(item->>'name') AS name,
                           SUM((item->>'qty')::numeric) AS quantity,
                           SUM((item->>'qty')::numeric * (item->>'price')::numeric) AS revenue
                    FROM orders, jsonb_array_elements(orders.cart) AS item
                    WHERE order_date >= NOW() - make_interval(days => $1)
                      AND status != 'cancelled'
                    GROUP BY product_id
                    ORDER BY quantity DESC, product_id ASC
                    LIMIT $2
                    """,
                    days,
                    POPULAR_PRODUCTS_LIMIT,
                )
                analytics["daily_stats"] = [
                    {
                        "date": r["order_day"].isoformat(),
                        "orders": int(r["orders"]),
                        "revenue": round(float(r["revenue"]), 2),
                    }
                    for r in daily
                ]
                analytics["popular_products"] = [
                    {
                        "product_id": r["product_id"],
                        "name": r["name"] or "",
                        "quantity": float(r["quantity"]),
                        "revenue": round(float(r["revenue"]), 2),
                    }
                    for r in popular
                ]

        return analytics

    async def health_check(self) -> Dict[str, Any]:
        checks: Dict[str, Any] = {
            "backend": self.backend,
            "products": False,
            "orders": False,
            "database_writable": False,
            "products_count": 0,
            "orders_count": 0,
        }

        try:
            async with self._connection("check system status") as conn:
                checks["products"] = await conn.fetchval("SELECT to_regclass('public.products') IS NOT NULL")
                checks["orders"] = await conn.fetchval("SELECT to_regclass('public.orders') IS NOT NULL")

                if checks["products"]:
                    checks["products_count"] = await conn.fetchval("SELECT COUNT(*) FROM products WHERE active = TRUE")
                if checks["orders"]:
                    checks["orders_count"] = await conn.fetchval("SELECT COUNT(*) FROM orders")

                try:
                    async with conn.transaction():
                        await conn.execute("CREATE TEMPORARY TABLE storefront_write_probe (id INT) ON COMMIT DROP")
                    checks["database_writable"] = True
                except asyncpg.PostgresError as e:
                    self.logger.warning("Store write probe failed", error=str(e))

                version = conn.get_server_version()
                checks["server_version"] = f"{version.major}.{version.minor}"
        except StoreError as e:
            return {
                "backend": self.backend,
                "ready": False,
                "error": "System check failed",
                "details": e.details.get("error", e.message),
            }

        checks["ready"] = bool(checks["products"] and checks["orders"] and checks["database_writable"])
        checks["timestamp"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        return checks
