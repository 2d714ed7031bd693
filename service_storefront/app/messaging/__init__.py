"""
Customer messaging helpers.
"""

from .order_message import build_checkout_link, format_order_message

__all__ = [
    "build_checkout_link",
    "format_order_message",
]
