"""
Catalog read/write coordination between the store and the response cache.
"""

from typing import Any, Dict, List, Optional

from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..adapters.catalog_store import CatalogStore
from ..caching.response_cache import (
    CATALOG_PREFIX,
    ResponseCache,
    make_catalog_key,
    make_product_key,
)


class CatalogService:
    """Cached catalog reads and cache-invalidating writes.

    Reads capture the cache generation before going to the store so a fill
    that races a write is dropped. Writes invalidate every catalog entry
    before returning, so the next read always sees the write.
    """

    def __init__(self, store: CatalogStore, cache: ResponseCache,
                 metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("storefront.catalog")

    def _count(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.cache.name)

    async def list_products(self, include_inactive: bool, limit: int, offset: int) -> List[Dict[str, Any]]:
        key = make_catalog_key(include_inactive, limit, offset)
        generation = self.cache.generation

        cached, hit = self.cache.get(key)
        if hit:
            self._count("cache_hits_total")
            return cached

        self._count("cache_misses_total")
        products = await self.store.list_products(include_inactive, limit, offset)
        payload = [product.to_public() for product in products]
        self.cache.put(key, payload, generation)
        return payload

    async def get_product(self, product_id: int) -> Dict[str, Any]:
        """Active product by id; raises NotFoundError otherwise."""
        key = make_product_key(product_id)
        generation = self.cache.generation

        cached, hit = self.cache.get(key)
        if hit:
            self._count("cache_hits_total")
            return cached

        self._count("cache_misses_total")
        product = await self.store.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")

        payload = product.to_public()
        self.cache.put(key, payload, generation)
        return payload

    async def create_product(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        try:
            product_id = await self.store.create_product(fields)
        finally:
            self.invalidate()

        product = await self.store.get_product(product_id, include_inactive=True)
        if product is None:
            raise NotFoundError("Product not found")
        return product.to_public()

    async def update_product(self, product_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        try:
            updated = await self.store.update_product(product_id, fields)
        finally:
            self.invalidate()

        if not updated:
            raise NotFoundError("Product not found")

        product = await self.store.get_product(product_id, include_inactive=True)
        if product is None:
            raise NotFoundError("Product not found")
        return product.to_public()

    async def delete_product(self, product_id: int) -> None:
        """Soft delete; a missing or already-inactive product is a NotFoundError."""
        try:
            deleted = await self.store.soft_delete_product(product_id)
        finally:
            self.invalidate()

        if not deleted:
            raise NotFoundError("Product not found or already deleted")
        self.logger.info("Product deactivated", product_id=product_id)

    def invalidate(self) -> int:
        removed = self.cache.invalidate(CATALOG_PREFIX)
        self._count("cache_invalidations_total")
        return removed
