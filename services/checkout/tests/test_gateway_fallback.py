from __future__ import annotations

import pytest
from services.checkout.app.errors import GatewayRequestError, GatewayUnavailableError
from services.checkout.app.gateway.base import GatewayMode, OrderRequest
from services.checkout.app.gateway.fallback import FallbackGateway
from services.checkout.app.models.checkout import PaymentMethod


class _DownGateway:
    """Remote gateway that fails every call the same way."""

    mode = GatewayMode.ONLINE

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls: list[str] = []

    def __getattr__(self, name: str):
        def _call(*args: object):
            del args
            self.calls.append(name)
            raise self.error

        return _call


def _order_request() -> OrderRequest:
    return OrderRequest(
        idempotency_key="chk-1",
        address_id="1",
        payment_method=PaymentMethod.CASH_ON_DELIVERY,
        payment_reference=None,
        items=[],
        subtotal=5999,
        discount=0,
        shipping=0,
        total=5999,
    )


def test_unreachable_gateway_switches_to_simulated_once() -> None:
    primary = _DownGateway(GatewayUnavailableError("GET /cart", "connection refused"))
    switches: list[tuple[str, str]] = []
    gateway = FallbackGateway(primary, on_fallback=lambda e, r: switches.append((e, r)))

    assert gateway.fetch_cart() is None
    assert gateway.mode is GatewayMode.OFFLINE
    assert switches == [("GET /cart", "connection refused")]

    addresses = gateway.list_addresses()
    gateway.add_item("15", 1, None, None)

    assert [a.id for a in addresses] == ["1", "2"]
    assert primary.calls == ["fetch_cart"]
    assert len(switches) == 1
    assert "connection refused" in gateway.fallback_reason


def test_request_errors_do_not_trigger_fallback() -> None:
    primary = _DownGateway(GatewayRequestError("POST /cart/coupon", 422, "Invalid coupon"))
    gateway = FallbackGateway(primary)

    with pytest.raises(GatewayRequestError):
        gateway.apply_coupon("NOPE")
    assert gateway.mode is GatewayMode.ONLINE


def test_order_creation_is_never_rerouted_while_online() -> None:
    primary = _DownGateway(GatewayUnavailableError("POST /orders", "timed out"))
    gateway = FallbackGateway(primary)

    with pytest.raises(GatewayUnavailableError):
        gateway.create_order(_order_request())
    with pytest.raises(GatewayUnavailableError):
        gateway.verify_payment("order_1", "pay_1", "sig")

    assert gateway.mode is GatewayMode.ONLINE


def test_orders_are_simulated_after_fallback() -> None:
    primary = _DownGateway(GatewayUnavailableError("GET /addresses", "connection refused"))
    gateway = FallbackGateway(primary)
    gateway.list_addresses()

    order = gateway.create_order(_order_request())

    assert order.mode == "OFFLINE"
    assert order.order_number.startswith("AC")
    assert "create_order" not in primary.calls
