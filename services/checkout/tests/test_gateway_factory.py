import pytest
from services.checkout.app.gateway.base import GatewayMode
from services.checkout.app.gateway.factory import get_commerce_gateway
from services.checkout.app.gateway.fallback import FallbackGateway
from services.checkout.app.gateway.http import HttpCommerceGateway


def test_get_commerce_gateway_defaults_to_simulated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STOREFRONT_GATEWAY", raising=False)
    gateway = get_commerce_gateway()
    assert gateway.mode is GatewayMode.OFFLINE


def test_http_gateway_is_wrapped_in_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_GATEWAY", "http")
    monkeypatch.delenv("STOREFRONT_GATEWAY_FALLBACK", raising=False)

    gateway = get_commerce_gateway()
    assert isinstance(gateway, FallbackGateway)
    assert gateway.mode is GatewayMode.ONLINE


def test_http_gateway_without_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_GATEWAY", "HTTP")
    monkeypatch.setenv("STOREFRONT_GATEWAY_FALLBACK", "false")

    assert isinstance(get_commerce_gateway(), HttpCommerceGateway)


def test_get_commerce_gateway_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STOREFRONT_GATEWAY", "nope")
    with pytest.raises(ValueError, match="Unknown STOREFRONT_GATEWAY"):
        get_commerce_gateway()
