from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from services.checkout.app.errors import GatewayRequestError, GatewayUnavailableError
from services.checkout.app.gateway.base import (
    GatewayMode,
    OrderRequest,
    PaymentOrder,
    RemoteCart,
)
from services.checkout.app.models.cart import CartItem
from services.checkout.app.models.checkout import Address, AddressInput, Order

_UNAVAILABLE_STATUSES = {502, 503, 504}


@dataclass(frozen=True, slots=True)
class _HttpConfig:
    commerce_url: str
    payment_url: str
    timeout_s: float
    auth_token: str | None


class HttpCommerceGateway:
    """JSON client for the commerce and payment services.

    Env vars:
    - STOREFRONT_COMMERCE_URL (default: http://localhost:8010)
    - STOREFRONT_PAYMENT_URL (default: http://localhost:8020)
    - STOREFRONT_GATEWAY_TIMEOUT_S (default: 10)
    - STOREFRONT_AUTH_TOKEN (optional bearer token)
    """

    mode = GatewayMode.ONLINE

    def __init__(self, cfg: _HttpConfig) -> None:
        self._cfg = cfg

    @classmethod
    def from_env(cls) -> "HttpCommerceGateway":
        token = os.getenv("STOREFRONT_AUTH_TOKEN", "").strip() or None
        return cls(
            _HttpConfig(
                commerce_url=os.getenv("STOREFRONT_COMMERCE_URL", "http://localhost:8010").rstrip(
                    "/"
                ),
                payment_url=os.getenv("STOREFRONT_PAYMENT_URL", "http://localhost:8020").rstrip(
                    "/"
                ),
                timeout_s=float(os.getenv("STOREFRONT_GATEWAY_TIMEOUT_S", "10")),
                auth_token=token,
            )
        )

    # Cart

    def fetch_cart(self) -> RemoteCart | None:
        return _parse_cart(self._commerce("GET", "/cart"), "GET /cart")

    def add_item(
        self, product_id: str, quantity: int, size: str | None, color: str | None
    ) -> RemoteCart | None:
        data = self._commerce(
            "POST",
            "/cart/items",
            {"product_id": product_id, "quantity": quantity, "size": size, "color": color},
        )
        return _parse_cart(data, "POST /cart/items")

    def update_item(self, item_id: str, quantity: int) -> RemoteCart | None:
        data = self._commerce("PUT", f"/cart/items/{item_id}", {"quantity": quantity})
        return _parse_cart(data, "PUT /cart/items")

    def remove_item(self, item_id: str) -> RemoteCart | None:
        return _parse_cart(self._commerce("DELETE", f"/cart/items/{item_id}"), "DELETE /cart/items")

    def clear_cart(self) -> None:
        self._commerce("DELETE", "/cart")

    def apply_coupon(self, code: str) -> RemoteCart | None:
        data = self._commerce("POST", "/cart/coupon", {"code": code})
        return _parse_cart(data, "POST /cart/coupon")

    def remove_coupon(self) -> RemoteCart | None:
        return _parse_cart(self._commerce("DELETE", "/cart/coupon"), "DELETE /cart/coupon")

    # Addresses

    def list_addresses(self) -> list[Address]:
        data = self._commerce("GET", "/addresses")
        raw = data.get("addresses", []) if isinstance(data, dict) else data
        return _validate(lambda: [Address.model_validate(a) for a in raw or []], "GET /addresses")

    def create_address(self, address: AddressInput) -> Address:
        data = self._commerce("POST", "/addresses", address.model_dump())
        raw = data.get("address", data) if isinstance(data, dict) else data
        return _validate(lambda: Address.model_validate(raw), "POST /addresses")

    def set_default_address(self, address_id: str) -> None:
        self._commerce("PUT", f"/addresses/{address_id}/default")

    # Payments

    def create_payment_order(self, amount: int, currency: str) -> PaymentOrder:
        data = self._request(
            "POST",
            f"{self._cfg.payment_url}/api/v1/payment/orders",
            {"amount": amount, "currency": currency},
            endpoint="POST /payment/orders",
        )
        try:
            return PaymentOrder(
                gateway_order_id=str(data["order_id"]),
                amount=int(data.get("amount", amount)),
                currency=str(data.get("currency", currency)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayRequestError(
                "POST /payment/orders", 200, f"Unexpected response shape: {data!r}"
            ) from e

    def verify_payment(
        self, gateway_order_id: str, payment_reference: str, signature: str | None
    ) -> bool:
        data = self._request(
            "POST",
            f"{self._cfg.payment_url}/api/v1/payment/verify",
            {
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": payment_reference,
                "razorpay_signature": signature,
            },
            endpoint="POST /payment/verify",
        )
        return bool(isinstance(data, dict) and data.get("verified", data.get("success")))

    # Orders

    def create_order(self, request: OrderRequest) -> Order:
        data = self._request(
            "POST",
            f"{self._cfg.commerce_url}/api/v1/orders",
            request.to_payload(),
            endpoint="POST /orders",
            headers={"Idempotency-Key": request.idempotency_key},
        )
        raw = data.get("order", data) if isinstance(data, dict) else data
        return _validate(lambda: Order.model_validate(raw), "POST /orders")

    def _commerce(self, method: str, path: str, body: dict | None = None) -> Any:
        return self._request(
            method,
            f"{self._cfg.commerce_url}/api/v1{path}",
            body,
            endpoint=f"{method} {path}",
        )

    def _request(
        self,
        method: str,
        url: str,
        body: dict | None,
        *,
        endpoint: str,
        headers: dict[str, str] | None = None,
    ) -> Any:
        req = urllib.request.Request(url, method=method)
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "application/json")
        if self._cfg.auth_token:
            req.add_header("Authorization", f"Bearer {self._cfg.auth_token}")
        for name, value in (headers or {}).items():
            req.add_header(name, value)

        data = json.dumps(body).encode("utf-8") if body is not None else None

        try:
            with urllib.request.urlopen(req, data=data, timeout=self._cfg.timeout_s) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            detail = _error_detail(e.read().decode("utf-8", errors="replace"), e.code)
            if e.code in _UNAVAILABLE_STATUSES:
                raise GatewayUnavailableError(endpoint, f"HTTP {e.code}: {detail}") from e
            raise GatewayRequestError(endpoint, e.code, detail) from e
        except urllib.error.URLError as e:
            raise GatewayUnavailableError(endpoint, str(e.reason)) from e
        except (TimeoutError, ConnectionError) as e:
            raise GatewayUnavailableError(endpoint, f"{type(e).__name__}: {e}") from e

        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise GatewayRequestError(endpoint, 200, "Response was not JSON") from e


def _error_detail(raw: str, status: int) -> str:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return raw.strip() or f"Request failed: {status}"

    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("message")
        if detail:
            return str(detail)
    return f"Request failed: {status}"


def _validate(build, endpoint: str):
    try:
        return build()
    except (ValidationError, TypeError, AttributeError) as e:
        raise GatewayRequestError(endpoint, 200, f"Unexpected response shape: {e}") from e


def _parse_cart(data: Any, endpoint: str) -> RemoteCart:
    if not isinstance(data, dict):
        raise GatewayRequestError(endpoint, 200, f"Unexpected cart payload: {data!r}")

    raw_items = data.get("items") or []
    items = _validate(lambda: [CartItem.model_validate(i) for i in raw_items], endpoint)
    return RemoteCart(items=items, coupon_code=data.get("coupon_code"))
