"""
Storefront data models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Unit(str, Enum):
    """Sale unit of a product."""
    KG = "kg"
    GRAM = "gram"
    PACKET = "packet"
    PIECE = "piece"
    LITER = "liter"
    BOX = "box"


class OrderStatus(str, Enum):
    """Order lifecycle status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Product(BaseModel):
    """Catalog product as returned by the store."""

    id: int = Field(gt=0)
    name: str = Field(max_length=255)
    price: float = Field(ge=0)
    description: str = ""
    image_url: str = ""
    unit: Unit = Unit.KG
    stock_qty: int = Field(default=1000, ge=0)
    active: bool = True
    sort_order: int = Field(default=99, ge=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class CartItem(BaseModel):
    """Request-scoped cart line; persisted only as part of an order."""

    id: int = Field(gt=0)
    name: str = ""
    price: float = Field(ge=0)
    qty: float = Field(gt=0)
    unit: str = Unit.KG.value

    @property
    def line_total(self) -> float:
        return round(self.price * self.qty, 2)


class Order(BaseModel):
    """Customer order."""

    id: int = Field(gt=0)
    cart: List[CartItem]
    customer_phone: Optional[str] = None
    total_amount: float = Field(ge=0)
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    order_date: Optional[datetime] = None

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def cart_total(cart: List[CartItem]) -> float:
    """Sum of price x qty over a cart, rounded to cents."""
    return round(sum(item.price * item.qty for item in cart), 2)
