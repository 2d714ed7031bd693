"""
WhatsApp checkout link construction.
"""

from typing import List, Optional
from urllib.parse import quote

from ..domain.models import CartItem


WHATSAPP_BASE_URL = "https://wa.me"


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_order_message(order_id: int, cart: List[CartItem], total: float, business_name: str,
                         phone: Optional[str] = None, notes: Optional[str] = None) -> str:
    """Plain-text order summary sent to the business over WhatsApp."""
    lines = [f"Hello, I want to place an order from {business_name}.", f"Order #{order_id}"]

    for item in cart:
        qty = _format_amount(item.qty)
        label = item.name or f"Product #{item.id}"
        lines.append(
            f"- {qty} {item.unit} {label} (₹{_format_amount(item.price)}/{item.unit})"
            f" = ₹{_format_amount(item.line_total)}"
        )

    lines.append(f"Total: ₹{_format_amount(total)}")
    if phone:
        lines.append(f"Phone: {phone}")
    if notes:
        lines.append(f"Notes: {notes}")
    return "\n".join(lines)


def build_checkout_link(whatsapp_number: str, message: str) -> str:
    return f"{WHATSAPP_BASE_URL}/{whatsapp_number}?text={quote(message, safe='')}"
