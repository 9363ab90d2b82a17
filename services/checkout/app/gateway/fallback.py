from __future__ import annotations

import logging
from collections.abc import Callable

from services.checkout.app.errors import GatewayUnavailableError
from services.checkout.app.gateway.base import (
    CommerceGateway,
    GatewayMode,
    OrderRequest,
    PaymentOrder,
    RemoteCart,
)
from services.checkout.app.gateway.simulated import SimulatedCommerceGateway
from services.checkout.app.models.checkout import Address, AddressInput, Order

logger = logging.getLogger(__name__)

FallbackListener = Callable[[str, str], None]


class FallbackGateway:
    """Routes to the remote gateway until it is unreachable, then to the simulator for good.

    The switch is one-way. Once OFFLINE, nothing is sent to the remote services again, so
    simulated state never mixes with remote state. Order creation and payment verification
    are never rerouted while ONLINE: those failures go back to the caller.
    """

    def __init__(
        self,
        primary: CommerceGateway,
        simulated: SimulatedCommerceGateway | None = None,
        on_fallback: FallbackListener | None = None,
    ) -> None:
        self._primary = primary
        self._simulated = simulated or SimulatedCommerceGateway()
        self._on_fallback = on_fallback
        self._mode = GatewayMode.ONLINE
        self.fallback_reason: str | None = None

    @property
    def mode(self) -> GatewayMode:
        return self._mode

    def _active(self) -> CommerceGateway:
        return self._primary if self._mode is GatewayMode.ONLINE else self._simulated

    def _activate_fallback(self, error: GatewayUnavailableError) -> None:
        self._mode = GatewayMode.OFFLINE
        self.fallback_reason = str(error)
        logger.warning(
            "Commerce gateway unreachable at %s, switching to simulated mode: %s",
            error.endpoint,
            error.reason,
        )
        if self._on_fallback is not None:
            self._on_fallback(error.endpoint, error.reason)

    def _call(self, name: str, *args):
        if self._mode is GatewayMode.ONLINE:
            try:
                return getattr(self._primary, name)(*args)
            except GatewayUnavailableError as e:
                self._activate_fallback(e)
        return getattr(self._simulated, name)(*args)

    def fetch_cart(self) -> RemoteCart | None:
        return self._call("fetch_cart")

    def add_item(
        self, product_id: str, quantity: int, size: str | None, color: str | None
    ) -> RemoteCart | None:
        return self._call("add_item", product_id, quantity, size, color)

    def update_item(self, item_id: str, quantity: int) -> RemoteCart | None:
        return self._call("update_item", item_id, quantity)

    def remove_item(self, item_id: str) -> RemoteCart | None:
        return self._call("remove_item", item_id)

    def clear_cart(self) -> None:
        self._call("clear_cart")

    def apply_coupon(self, code: str) -> RemoteCart | None:
        return self._call("apply_coupon", code)

    def remove_coupon(self) -> RemoteCart | None:
        return self._call("remove_coupon")

    def list_addresses(self) -> list[Address]:
        return self._call("list_addresses")

    def create_address(self, address: AddressInput) -> Address:
        return self._call("create_address", address)

    def set_default_address(self, address_id: str) -> None:
        self._call("set_default_address", address_id)

    def create_payment_order(self, amount: int, currency: str) -> PaymentOrder:
        return self._call("create_payment_order", amount, currency)

    def verify_payment(
        self, gateway_order_id: str, payment_reference: str, signature: str | None
    ) -> bool:
        return self._active().verify_payment(gateway_order_id, payment_reference, signature)

    def create_order(self, request: OrderRequest) -> Order:
        return self._active().create_order(request)
