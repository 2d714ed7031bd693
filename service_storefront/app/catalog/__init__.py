"""
Catalog service package.
"""

from .service import CatalogService

__all__ = [
    "CatalogService",
]
