"""
Storefront caching package.

Provides the short-lived response cache used by the gateway to keep catalog
reads off the store. Entries are process-local and are invalidated
explicitly on every catalog write.
"""

from .response_cache import (
    CATALOG_PREFIX,
    CacheEntry,
    ResponseCache,
    make_catalog_key,
    make_product_key,
)

__all__ = [
    "CATALOG_PREFIX",
    "CacheEntry",
    "ResponseCache",
    "make_catalog_key",
    "make_product_key",
]
