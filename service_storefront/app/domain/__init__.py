"""
Storefront domain: models, route table, envelopes and the request gateway.
"""

from .models import CartItem, Order, OrderStatus, Product, Unit, cart_total

__all__ = [
    "CartItem",
    "Order",
    "OrderStatus",
    "Product",
    "Unit",
    "cart_total",
]
