"""Pydantic schemas for checkout.

Request schemas validate incoming API payloads. Record schemas
(``DiscountRecord``, ``ShippingZoneRecord``) normalize loosely typed
catalog rows (string-or-number percentages and prices, ISO or datetime
timestamps) into the single representation the core works with.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain import (
    CartLine,
    Discount,
    PaymentMethod,
    ShippingMethod,
    ShippingZone,
)
from .pricing import coerce_percentage

PHONE_RE = re.compile(r"^\+?[0-9 ()-]{6,20}$")


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class DiscountRecord(BaseModel):
    """A discount row as stored by the catalog.

    Attributes:
        id: Discount id (string or number).
        product_id: Target product id (string or number).
        discount_percentage: Percentage as string or number; unparsable
            values become NaN instead of failing validation.
        start_date: Window start, naive values are taken as UTC.
        end_date: Window end, naive values are taken as UTC.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    product_id: str = Field(alias="productId")
    discount_percentage: float = Field(alias="discountPercentage")
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("id", "product_id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v)

    @field_validator("discount_percentage", mode="before")
    @classmethod
    def normalize_percentage(cls, v) -> float:
        return coerce_percentage(v)

    @field_validator("start_date", "end_date", "created_at")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _aware(v) if v is not None else None

    def to_domain(self) -> Discount:
        return Discount(
            id=self.id,
            product_id=self.product_id,
            percentage=self.discount_percentage,
            start=self.start_date,
            end=self.end_date,
            created_at=self.created_at,
        )


class ShippingZoneRecord(BaseModel):
    id: str
    name: str
    cost: float = Field(ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v)

    def to_domain(self) -> ShippingZone:
        return ShippingZone(id=self.id, name=self.name, cost=self.cost)


class CartLineIn(BaseModel):
    """Input schema for a single cart line.

    Attributes:
        product_id: Product identifier, numbers are accepted and
            converted to strings.
        title: Display title captured at add-to-cart time.
        price: Unit price snapshot, non-negative.
        quantity: Positive integer.
    """

    product_id: str = Field(min_length=1, max_length=64)
    title: str = Field(default="", max_length=200)
    price: float = Field(ge=0)
    quantity: int = Field(gt=0)

    @field_validator("product_id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v)

    def to_domain(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            title=self.title,
            unit_price=self.price,
            quantity=self.quantity,
        )


class ContactIn(BaseModel):
    name: str = Field(default="", max_length=200)
    phone: str = Field(default="", max_length=32)
    address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Reject malformed phone numbers; an empty value is left to checkout."""
        v2 = v.strip()
        if v2 and not PHONE_RE.match(v2):
            raise ValueError("Invalid phone number")
        return v2


class CheckoutDTO(BaseModel):
    """Schema for a checkout quote or submission.

    Every choice is optional so a partially filled checkout can be quoted;
    submission reports the first missing field.
    """

    items: list[CartLineIn]
    payment_method: Optional[PaymentMethod] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_zone_id: Optional[str] = None
    contact: ContactIn = Field(default_factory=ContactIn)

    @field_validator("shipping_zone_id", mode="before")
    @classmethod
    def stringify_zone(cls, v):
        return None if v is None else str(v)


class OrderLineReadDTO(BaseModel):
    product_id: str
    title: str
    quantity: int
    unit_price: Decimal
    discounted_unit_price: Decimal
    discount_id: Optional[str] = None


class OrderReadDTO(BaseModel):
    id: str
    order_number: int
    status: str
    payment_method: str
    shipping_method: str
    shipping_zone: str
    customer_name: str
    shipping_phone: str
    shipping_address: Optional[str] = None
    subtotal: Decimal
    shipping_cost: Decimal
    total: Decimal
    currency: str
    created_at: datetime
    items: Optional[list[OrderLineReadDTO]] = None


class OrdersQuery(BaseModel):
    """Query parameters of the order listing."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)

    @field_validator("page_size")
    @classmethod
    def cap_page_size(cls, v: int) -> int:
        return min(v, 100)
