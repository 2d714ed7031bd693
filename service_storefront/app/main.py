"""
Storefront service: FastAPI wiring for the request gateway.
"""

from typing import Optional

from fastapi import Request

from shared.base_service import BaseService
from shared.config import StorefrontConfig
from shared.errors import utc_timestamp
from .adapters import CatalogStore, build_store
from .auth import BasicAuthGuard
from .caching import ResponseCache
from .catalog import CatalogService
from .domain.gateway import StorefrontGateway
from .ratelimit import SlidingWindowRateLimiter


# Every method reaches the gateway; unsupported ones get the endpoint catalog
API_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


class StorefrontService(BaseService):
    """Storefront service implementation.

    Collaborators can be injected; anything omitted is built from config.
    """

    def __init__(self, config: Optional[StorefrontConfig] = None,
                 store: Optional[CatalogStore] = None,
                 rate_limiter: Optional[SlidingWindowRateLimiter] = None,
                 cache: Optional[ResponseCache] = None,
                 auth_guard: Optional[BasicAuthGuard] = None):
        super().__init__("storefront", config)

        self.store = store if store is not None else build_store(self.config)
        self.rate_limiter = rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter(
            max_requests=self.config.rate_limit_requests
        )
        self.cache = cache if cache is not None else ResponseCache(
            "catalog", ttl_seconds=self.config.cache_ttl_seconds
        )
        self.auth_guard = auth_guard if auth_guard is not None else BasicAuthGuard(
            self.config.admin_username,
            self.config.admin_password.get_secret_value(),
        )
        self.catalog = CatalogService(self.store, self.cache, metrics=self.metrics)
        self.gateway = StorefrontGateway(
            self.config,
            self.store,
            self.catalog,
            self.rate_limiter,
            self.auth_guard,
            metrics=self.metrics,
            uptime=self.get_uptime,
        )

        self._setup_storefront_routes()

    async def on_startup(self) -> None:
        for warning in self.config.validate_settings():
            self.logger.warning("Configuration warning", warning=warning)
        await self.store.start()
        self.logger.info(
            "Storefront service started",
            store_backend=self.store.backend,
            rate_limit=self.rate_limiter.max_requests,
            cache_ttl_seconds=self.cache.ttl_seconds
        )

    async def on_shutdown(self) -> None:
        await self.store.stop()
        self.logger.info("Storefront service stopped")

    def _setup_storefront_routes(self):
        """Set up storefront routes."""

        @self.app.api_route("/api", methods=API_METHODS)
        async def api(request: Request):
            """Single entry point; the operation is chosen by ``?endpoint=`` and the method."""
            return await self.gateway.handle(request)

        @self.app.get("/healthz")
        async def healthz():
            """Liveness probe; does not touch the store."""
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": round(self.get_uptime(), 2),
                "timestamp": utc_timestamp(),
            }


def create_app():
    """Create FastAPI application."""
    service = StorefrontService()
    return service.app


if __name__ == "__main__":
    service = StorefrontService()
    service.run()
