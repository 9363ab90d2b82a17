from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from services.checkout.app.models.cart import CartItem
from services.checkout.app.models.checkout import Address, AddressInput, Order, PaymentMethod


class GatewayMode(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


@dataclass(frozen=True, slots=True)
class RemoteCart:
    """The gateway's view of the cart. Only server-owned fields are trusted from it."""

    items: list[CartItem]
    coupon_code: str | None


@dataclass(frozen=True, slots=True)
class PaymentOrder:
    gateway_order_id: str
    amount: int
    currency: str


@dataclass(frozen=True, slots=True)
class OrderRequest:
    idempotency_key: str
    address_id: str
    payment_method: PaymentMethod
    payment_reference: str | None
    items: list[CartItem]
    subtotal: int
    discount: int
    shipping: int
    total: int
    coupon_code: str | None = None
    address: Address | None = None

    def to_payload(self) -> dict:
        return {
            "address_id": self.address_id,
            "payment_method": self.payment_method.value,
            "payment_id": self.payment_reference,
            "coupon_code": self.coupon_code,
            "items": [
                {
                    "product_id": i.product_id,
                    "quantity": i.quantity,
                    "size": i.size,
                    "color": i.color,
                }
                for i in self.items
            ],
            "expected_total": self.total,
        }


class CommerceGateway(Protocol):
    """Client-side contract of the commerce + payment services.

    Cart methods return None when there is no remote cart to reconcile against.
    """

    mode: GatewayMode

    def fetch_cart(self) -> RemoteCart | None: ...

    def add_item(
        self, product_id: str, quantity: int, size: str | None, color: str | None
    ) -> RemoteCart | None: ...

    def update_item(self, item_id: str, quantity: int) -> RemoteCart | None: ...

    def remove_item(self, item_id: str) -> RemoteCart | None: ...

    def clear_cart(self) -> None: ...

    def apply_coupon(self, code: str) -> RemoteCart | None: ...

    def remove_coupon(self) -> RemoteCart | None: ...

    def list_addresses(self) -> list[Address]: ...

    def create_address(self, address: AddressInput) -> Address: ...

    def set_default_address(self, address_id: str) -> None: ...

    def create_payment_order(self, amount: int, currency: str) -> PaymentOrder: ...

    def verify_payment(
        self, gateway_order_id: str, payment_reference: str, signature: str | None
    ) -> bool: ...

    def create_order(self, request: OrderRequest) -> Order: ...
