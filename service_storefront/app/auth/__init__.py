"""
Authentication helpers for the storefront gateway.
"""

from .basic import BasicAuthGuard

__all__ = [
    "BasicAuthGuard",
]
