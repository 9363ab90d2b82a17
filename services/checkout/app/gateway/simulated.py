from __future__ import annotations

import secrets
import string
import time
from uuid import uuid4

from services.checkout.app.gateway.base import (
    GatewayMode,
    OrderRequest,
    PaymentOrder,
    RemoteCart,
)
from services.checkout.app.models.checkout import Address, AddressInput, Order

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def _seed_addresses() -> list[Address]:
    return [
        Address(
            id="1",
            name="Home",
            full_name="Priya Sharma",
            phone="+91 98765 43210",
            address_line1="123, MG Road",
            address_line2="Koramangala",
            city="Bangalore",
            state="Karnataka",
            pincode="560034",
            is_default=True,
        ),
        Address(
            id="2",
            name="Office",
            full_name="Priya Sharma",
            phone="+91 98765 43210",
            address_line1="456, Tech Park",
            address_line2="Electronic City",
            city="Bangalore",
            state="Karnataka",
            pincode="560100",
            is_default=False,
        ),
    ]


def synthetic_order_number() -> str:
    return "AC" + "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(9))


class SimulatedCommerceGateway:
    """Local stand-in for the commerce and payment services.

    There is no remote cart: the cart store stays authoritative, so cart calls return None.
    """

    mode = GatewayMode.OFFLINE

    def __init__(self, addresses: list[Address] | None = None) -> None:
        self._addresses = addresses if addresses is not None else _seed_addresses()
        self._payment_orders: dict[str, PaymentOrder] = {}
        self._orders: dict[str, Order] = {}

    def fetch_cart(self) -> RemoteCart | None:
        return None

    def add_item(
        self, product_id: str, quantity: int, size: str | None, color: str | None
    ) -> RemoteCart | None:
        del product_id, quantity, size, color
        return None

    def update_item(self, item_id: str, quantity: int) -> RemoteCart | None:
        del item_id, quantity
        return None

    def remove_item(self, item_id: str) -> RemoteCart | None:
        del item_id
        return None

    def clear_cart(self) -> None:
        return None

    def apply_coupon(self, code: str) -> RemoteCart | None:
        del code
        return None

    def remove_coupon(self) -> RemoteCart | None:
        return None

    def list_addresses(self) -> list[Address]:
        return [a.model_copy() for a in self._addresses]

    def create_address(self, address: AddressInput) -> Address:
        address_id = f"local-{int(time.time() * 1000)}-{uuid4().hex[:4]}"
        created = Address(id=address_id, **address.model_dump(exclude={"id"}))
        if created.is_default:
            self._addresses = [a.model_copy(update={"is_default": False}) for a in self._addresses]
        self._addresses.append(created)
        return created.model_copy()

    def set_default_address(self, address_id: str) -> None:
        if not any(a.id == address_id for a in self._addresses):
            return
        self._addresses = [
            a.model_copy(update={"is_default": a.id == address_id}) for a in self._addresses
        ]

    def create_payment_order(self, amount: int, currency: str) -> PaymentOrder:
        order = PaymentOrder(
            gateway_order_id=f"order_demo_{uuid4().hex[:12]}",
            amount=amount,
            currency=currency,
        )
        self._payment_orders[order.gateway_order_id] = order
        return order

    def verify_payment(
        self, gateway_order_id: str, payment_reference: str, signature: str | None
    ) -> bool:
        del signature
        return gateway_order_id in self._payment_orders and bool(payment_reference)

    def create_order(self, request: OrderRequest) -> Order:
        existing = self._orders.get(request.idempotency_key)
        if existing is not None:
            return existing

        order = Order(
            id=f"ORD-{int(time.time() * 1000)}",
            order_number=synthetic_order_number(),
            status="confirmed",
            items=[i.model_copy() for i in request.items],
            address=request.address,
            subtotal=request.subtotal,
            discount=request.discount,
            shipping=request.shipping,
            total=request.total,
            payment_method=request.payment_method,
            payment_reference=request.payment_reference,
            mode=self.mode.value,
        )
        self._orders[request.idempotency_key] = order
        return order

    @staticmethod
    def demo_payment_reference() -> str:
        return f"pay_demo_{int(time.time() * 1000)}"
