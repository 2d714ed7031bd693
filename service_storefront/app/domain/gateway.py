"""
Storefront request gateway.

Every call to ``/api`` passes through :meth:`StorefrontGateway.handle`:
rate check, route resolution, admin authentication, validation, execution
and response formatting. The first failing stage produces the response and
nothing after it runs.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import psutil
from fastapi import Request
from fastapi.responses import JSONResponse

from shared.config import StorefrontConfig
from shared.errors import (
    AuthError,
    NotFoundError,
    RateLimitError,
    ServiceError,
    StoreError,
    StorefrontException,
    utc_timestamp,
)
from shared.logging import get_logger, set_client_context
from shared.metrics import MetricsCollector
from ..adapters.catalog_store import MAX_ORDERS_PAGE, CatalogStore
from ..auth.basic import BasicAuthGuard
from ..catalog.service import CatalogService
from .models import cart_total
from ..messaging.order_message import build_checkout_link, format_order_message
from ..ratelimit.sliding_window import RateDecision, SlidingWindowRateLimiter, get_client_id
from ..validation.sanitizer import (
    MAX_OFFSET,
    normalize_endpoint,
    parse_bool_param,
    parse_int_param,
    parse_json_body,
    parse_positive_id,
    sanitize_phone,
    sanitize_string,
    validate_cart,
    validate_product_fields,
)
from .envelope import apply_security_headers, elapsed_since, error_response, success_response
from .routes import Route, RouteTable


API_VERSION = "1.0"
DEFAULT_ANALYTICS_DAYS = 30
MAX_NOTES_LENGTH = 1000
HIDDEN_PUBLIC_STATUS_FIELDS = ("details", "server_version")
MB = 1024 * 1024


def process_memory() -> Dict[str, float]:
    """Resident and virtual size of this process in MB."""
    info = psutil.Process().memory_info()
    return {"rss_mb": round(info.rss / MB, 1), "vms_mb": round(info.vms / MB, 1)}


@dataclass
class RequestContext:
    """Per-request state handed to route handlers."""

    request: Request
    client_id: str
    started: float

    @property
    def params(self):
        return self.request.query_params

    async def json_body(self) -> Dict[str, Any]:
        return parse_json_body(await self.request.body())


class StorefrontGateway:
    """Composes limiter, auth guard, validation and the catalog/order store per request."""

    def __init__(self, config: StorefrontConfig, store: CatalogStore, catalog: CatalogService,
                 rate_limiter: SlidingWindowRateLimiter, auth_guard: BasicAuthGuard,
                 metrics: Optional[MetricsCollector] = None,
                 uptime: Optional[Callable[[], float]] = None):
        self.config = config
        self.store = store
        self.catalog = catalog
        self.rate_limiter = rate_limiter
        self.auth_guard = auth_guard
        self.metrics = metrics
        self._uptime = uptime
        self.logger = get_logger("storefront.gateway")
        self.routes = RouteTable(self._build_routes())

    def _build_routes(self) -> List[Route]:
        return [
            Route("GET", "products", self.list_products, description="Get all products"),
            Route("GET", "product", self.get_product, description="Get single product (id=X)"),
            Route("POST", "order", self.create_order, description="Create order"),
            Route("GET", "status", self.public_status, description="System status"),
            Route("GET", "admin/products", self.admin_list_products, admin=True,
                  description="Get all products (include_inactive=1 for inactive)"),
            Route("POST", "admin/product", self.admin_create_product, admin=True, status_code=201,
                  description="Create product"),
            Route("PUT", "admin/product", self.admin_update_product, admin=True,
                  description="Update product (id=X)"),
            Route("DELETE", "admin/product", self.admin_delete_product, admin=True,
                  description="Delete product (id=X)"),
            Route("GET", "admin/orders", self.admin_orders, admin=True, description="Get recent orders"),
            Route("GET", "admin/analytics", self.admin_analytics, admin=True, description="Get analytics"),
            Route("GET", "admin/status", self.admin_status, admin=True, description="Admin status"),
        ]

    async def handle(self, request: Request) -> JSONResponse:
        """Run one request through the gateway and return its single response."""
        started = time.perf_counter()
        client_id = get_client_id(request)
        set_client_context(client_id)

        decision = self.rate_limiter.check(client_id)
        try:
            if not decision.allowed:
                self._count("rate_limit_rejections_total")
                raise RateLimitError(
                    "Rate limit exceeded",
                    retry_after=decision.reset_in_seconds,
                    details={"reason": "Too many requests from your IP"}
                )
            response = await self._dispatch(RequestContext(request, client_id, started))
        except StorefrontException as exc:
            response = self._error(exc)
        except Exception as exc:
            self.logger.error("Unhandled gateway error", error=str(exc), exc_info=True)
            if self.metrics:
                self.metrics.record_error(type(exc).__name__)
            response = self._error(ServiceError("Internal server error", details={"error": str(exc)}))

        return self._finish(response, decision)

    async def _dispatch(self, ctx: RequestContext) -> JSONResponse:
        endpoint = normalize_endpoint(ctx.params.get("endpoint"))
        route = self.routes.resolve(ctx.request.method, endpoint)
        if route is None:
            self.logger.info("Unmatched route", method=ctx.request.method, endpoint=endpoint)
            return error_response(
                NotFoundError("Endpoint not found"),
                debug=self.config.debug,
                available_endpoints=self.routes.available_endpoints(),
            )

        if route.admin and not self.auth_guard.check(ctx.request.headers.get(self.auth_guard.header_name)):
            raise AuthError("Authentication required")

        data = await route.handler(ctx)
        return success_response(data, ctx.started, status_code=route.status_code)

    def _error(self, exc: StorefrontException) -> JSONResponse:
        if isinstance(exc, StoreError):
            self.logger.error("Store failure", code=exc.code, message=exc.message, details=exc.details)
            if self.metrics:
                self.metrics.record_error(exc.code)
        elif exc.status_code >= 500:
            self.logger.error("Request failed", code=exc.code, message=exc.message)
        else:
            self.logger.info("Request rejected", code=exc.code, message=exc.message)
        return error_response(exc, debug=self.config.debug)

    def _finish(self, response: JSONResponse, decision: RateDecision) -> JSONResponse:
        apply_security_headers(response)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response

    def _count(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name)

    def _page(self, ctx: RequestContext, default_limit: int, max_limit: int):
        limit = parse_int_param(ctx.params, "limit", default_limit, minimum=1, maximum=max_limit)
        offset = parse_int_param(ctx.params, "offset", 0, minimum=0, maximum=MAX_OFFSET)
        return limit, offset

    @staticmethod
    def _absolute_images(products: List[Dict[str, Any]], ctx: RequestContext) -> List[Dict[str, Any]]:
        base_url = str(ctx.request.base_url)
        for product in products:
            image_url = product.get("image_url") or ""
            if image_url and not image_url.startswith(("http://", "https://")):
                product["image_url"] = base_url.rstrip("/") + "/" + image_url.lstrip("/")
        return products

    # Public operations

    async def list_products(self, ctx: RequestContext) -> Dict[str, Any]:
        max_page = self.config.max_products_per_page
        limit, offset = self._page(ctx, max_page, max_page)
        products = await self.catalog.list_products(False, limit, offset)
        return {
            "products": self._absolute_images(products, ctx),
            "count": len(products),
            "limit": limit,
            "offset": offset,
        }

    async def get_product(self, ctx: RequestContext) -> Dict[str, Any]:
        product_id = parse_positive_id(ctx.params.get("id"))
        product = await self.catalog.get_product(product_id)
        return {"product": self._absolute_images([product], ctx)[0]}

    async def create_order(self, ctx: RequestContext) -> Dict[str, Any]:
        body = await ctx.json_body()
        cart = validate_cart(body.get("cart"))
        phone = sanitize_phone(body.get("phone"))
        notes = sanitize_string(body.get("notes"), "notes", max_length=MAX_NOTES_LENGTH)

        order_id = await self.store.create_order(cart, phone, notes)
        total = cart_total(cart)
        self._count("orders_created_total")

        # The order is committed before the link exists; link delivery is the client's concern
        message = format_order_message(order_id, cart, total, self.config.business_name, phone, notes)
        return {
            "message": "Order logged successfully",
            "order_id": order_id,
            "total": total,
            "checkout_link": build_checkout_link(self.config.whatsapp_number, message),
        }

    async def public_status(self, ctx: RequestContext) -> Dict[str, Any]:
        health = await self.store.health_check()
        for name in HIDDEN_PUBLIC_STATUS_FIELDS:
            health.pop(name, None)
        health["api_version"] = API_VERSION
        health["server_time"] = utc_timestamp()
        return health

    # Admin operations

    async def admin_list_products(self, ctx: RequestContext) -> Dict[str, Any]:
        include_inactive = parse_bool_param(ctx.params, "include_inactive")
        max_page = self.config.max_products_per_page
        limit, offset = self._page(ctx, max_page, max_page)
        products = await self.catalog.list_products(include_inactive, limit, offset)
        return {
            "products": self._absolute_images(products, ctx),
            "count": len(products),
            "include_inactive": include_inactive,
            "limit": limit,
            "offset": offset,
        }

    async def admin_create_product(self, ctx: RequestContext) -> Dict[str, Any]:
        fields = validate_product_fields(await ctx.json_body())
        product = await self.catalog.create_product(fields)
        self.logger.info("Admin created product", product_id=product["id"])
        return {"message": "Product created successfully", "product": product}

    async def admin_update_product(self, ctx: RequestContext) -> Dict[str, Any]:
        product_id = parse_positive_id(ctx.params.get("id"))
        fields = validate_product_fields(await ctx.json_body(), partial=True)
        product = await self.catalog.update_product(product_id, fields)
        self.logger.info("Admin updated product", product_id=product_id, fields=sorted(fields))
        return {"message": "Product updated successfully", "product": product}

    async def admin_delete_product(self, ctx: RequestContext) -> Dict[str, Any]:
        product_id = parse_positive_id(ctx.params.get("id"))
        await self.catalog.delete_product(product_id)
        return {"message": "Product deleted successfully"}

    async def admin_orders(self, ctx: RequestContext) -> Dict[str, Any]:
        limit, offset = self._page(ctx, self.config.default_orders_page, MAX_ORDERS_PAGE)
        orders = await self.store.recent_orders(limit, offset)
        return {
            "orders": [order.to_public() for order in orders],
            "count": len(orders),
            "limit": limit,
            "offset": offset,
        }

    async def admin_analytics(self, ctx: RequestContext) -> Dict[str, Any]:
        days = parse_int_param(ctx.params, "days", DEFAULT_ANALYTICS_DAYS)
        detailed = parse_bool_param(ctx.params, "detailed")
        return await self.store.analytics(days, detailed)

    async def admin_status(self, ctx: RequestContext) -> Dict[str, Any]:
        status = await self.store.health_check()
        status["config_warnings"] = self.config.validate_settings()
        status["rate_limits"] = self.rate_limiter.get_stats()
        status["cache"] = self.catalog.cache.get_stats()
        status["api_version"] = API_VERSION
        if self._uptime is not None:
            status["uptime_seconds"] = round(self._uptime(), 2)
        status["memory_usage"] = process_memory()
        status["execution_time"] = elapsed_since(ctx.started)
        return status
