"""
Catalog/order store adapters.
"""

from shared.config import StorefrontConfig
from .catalog_store import CatalogStore
from .memory_store import InMemoryCatalogStore
from .postgres_store import PostgresCatalogStore


def build_store(config: StorefrontConfig) -> CatalogStore:
    """Create the store selected by ``store_backend``."""
    if config.store_backend == "memory":
        return InMemoryCatalogStore()
    return PostgresCatalogStore(
        config.postgres_dsn,
        connect_attempts=config.store_connect_attempts,
        connect_base_delay=config.store_connect_base_delay,
    )


__all__ = [
    "CatalogStore",
    "InMemoryCatalogStore",
    "PostgresCatalogStore",
    "build_store",
]
