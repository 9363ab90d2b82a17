from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from services.checkout.app.models.cart import CartItem


class PaymentMethod(str, Enum):
    RAZORPAY = "razorpay"
    CASH_ON_DELIVERY = "cod"


class AddressInput(BaseModel):
    name: str = ""
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address_line1: str = Field(..., min_length=1)
    address_line2: str | None = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)
    is_default: bool = False


class Address(AddressInput):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str


class Order(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    order_number: str
    status: str = "confirmed"
    items: list[CartItem] = Field(default_factory=list)
    address: Address | None = None
    subtotal: int = 0
    discount: int = 0
    shipping: int = 0
    total: int = 0
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_reference: str | None = None
    # "ONLINE" for gateway-created orders, "OFFLINE" for simulated ones.
    mode: str = "ONLINE"


class SelectAddressRequest(BaseModel):
    address_id: str


class StartPaymentRequest(BaseModel):
    payment_method: PaymentMethod


class PaymentCallbackRequest(BaseModel):
    payment_reference: str | None = None
    gateway_order_id: str | None = None
    signature: str | None = None
    error: str | None = None
