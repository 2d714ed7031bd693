"""
Catalog/order store interface consumed by the storefront gateway.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..domain.models import CartItem, Order, Product


MAX_ORDERS_PAGE = 100
MIN_ANALYTICS_DAYS = 1
MAX_ANALYTICS_DAYS = 365
POPULAR_PRODUCTS_LIMIT = 10


def clamp_days(days: int) -> int:
    return max(MIN_ANALYTICS_DAYS, min(MAX_ANALYTICS_DAYS, int(days)))


def clamp_orders_limit(limit: int) -> int:
    return max(1, min(MAX_ORDERS_PAGE, int(limit)))


class CatalogStore(ABC):
    """Persistence boundary for products and orders.

    Implementations raise :class:`shared.errors.StoreError` for persistence
    failures and must make each multi-statement write atomic.
    """

    backend = "abstract"

    async def start(self) -> None:
        """Establish connections and ensure the schema exists."""

    async def stop(self) -> None:
        """Release connections."""

    @abstractmethod
    async def list_products(self, include_inactive: bool, limit: int, offset: int) -> List[Product]:
        """Products ordered by sort order then name."""

    @abstractmethod
    async def get_product(self, product_id: int, include_inactive: bool = False) -> Optional[Product]:
        """One product, or None when absent (or inactive unless requested)."""

    @abstractmethod
    async def create_product(self, fields: Dict[str, Any]) -> int:
        """Insert an active product and return its id."""

    @abstractmethod
    async def update_product(self, product_id: int, fields: Dict[str, Any]) -> bool:
        """Apply a partial update; False when no such product exists."""

    @abstractmethod
    async def soft_delete_product(self, product_id: int) -> bool:
        """Mark an active product inactive; False when absent or already inactive."""

    @abstractmethod
    async def create_order(self, cart: List[CartItem], phone: Optional[str] = None,
                           notes: Optional[str] = None) -> int:
        """Persist a pending order and return its id."""

    @abstractmethod
    async def recent_orders(self, limit: int, offset: int) -> List[Order]:
        """Orders newest first."""

    @abstractmethod
    async def analytics(self, days: int, detailed: bool = False) -> Dict[str, Any]:
        """Aggregate order statistics over the trailing ``days``."""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Table existence, row counts and write capability."""
