from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Product(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    product_id: str
    name: str
    unit_price: int = Field(..., ge=0)


class Variant(BaseModel):
    size: str | None = None
    color: str | None = None


class CartItem(BaseModel):
    """One cart line. `unit_price` is in whole currency units (rupees for INR), not paise."""

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

    id: str
    product_id: str
    # The commerce service names these product_name/price.
    name: str = Field(..., validation_alias=AliasChoices("name", "product_name"))
    unit_price: int = Field(..., ge=0, validation_alias=AliasChoices("unit_price", "price"))
    quantity: int = Field(..., ge=1)
    size: str | None = None
    color: str | None = None

    def merge_key(self) -> tuple[str, str | None, str | None]:
        return (self.product_id, self.size, self.color)


class Cart(BaseModel):
    """Cart with derived totals.

    Every amount is an int in whole currency units (rupees for INR). Only the payment
    gateway works in subunits; convert with `money.to_gateway_amount` at that boundary.
    """

    items: list[CartItem] = Field(default_factory=list)
    coupon_code: str | None = None
    subtotal: int = 0
    discount: int = 0
    shipping: int = 0
    total: int = 0
    item_count: int = 0


class CouponKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(BaseModel):
    code: str
    kind: CouponKind
    value: int = Field(..., ge=0)
    min_subtotal: int | None = None
    expires_at: datetime | None = None


class AddItemRequest(BaseModel):
    product: Product
    quantity: int = 1
    size: str | None = None
    color: str | None = None


class UpdateQuantityRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1)


class CartView(BaseModel):
    """Cart plus display strings for the storefront."""

    cart: Cart
    currency: str
    display: dict[str, str]
    synced: bool
