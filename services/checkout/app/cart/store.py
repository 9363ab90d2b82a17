from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from uuid import uuid4

from services.checkout.app.cart.coupons import (
    NOT_FOUND,
    CouponAccepted,
    CouponBook,
    CouponRejected,
    evaluate,
    normalize_code,
    price_coupon,
)
from services.checkout.app.cart.shipping import ShippingPolicy
from services.checkout.app.errors import CouponInvalidError, GatewayError, ItemNotFoundError
from services.checkout.app.gateway.base import CommerceGateway, RemoteCart
from services.checkout.app.models.cart import Cart, CartItem, Coupon, Product, Variant
from services.checkout.app.money import clamp, line_total, sum_minor, validate_quantity

logger = logging.getLogger(__name__)

EventSink = Callable[[str, dict], None]

_LOCAL_ID_PREFIX = "local-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartStore:
    """Single source of truth for one shopper's cart.

    Local state is authoritative. Every mutation is applied and priced locally first, then
    mirrored to the gateway; a failed sync keeps the local change. Sync responses are only
    used to learn server-assigned item ids, never quantities.
    """

    def __init__(
        self,
        gateway: CommerceGateway,
        *,
        coupons: Mapping[str, Coupon] | None = None,
        shipping: ShippingPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_event: EventSink | None = None,
    ) -> None:
        self._gateway = gateway
        self._coupons = coupons if coupons is not None else CouponBook.default()
        self._shipping = shipping or ShippingPolicy()
        self._clock = clock
        self._on_event = on_event

        self._items: list[CartItem] = []
        self._coupon_code: str | None = None
        self._cart = Cart()
        self._synced = True
        self._disposed = False

    # Lifecycle

    def init(self) -> Cart:
        self._disposed = False
        return self.refresh_cart()

    def dispose(self) -> None:
        self._items = []
        self._coupon_code = None
        self._cart = Cart()
        self._disposed = True

    # Reads

    @property
    def cart(self) -> Cart:
        return self._cart.model_copy(deep=True)

    def snapshot(self) -> Cart:
        return self.cart

    @property
    def synced(self) -> bool:
        return self._synced

    # Mutations

    def add_item(self, product: Product, quantity: int = 1, variant: Variant | None = None) -> Cart:
        self._ensure_open()
        quantity = validate_quantity(quantity)
        variant = variant or Variant()

        key = (product.product_id, variant.size, variant.color)
        existing = next((i for i in self._items if i.merge_key() == key), None)
        if existing is not None:
            existing.quantity += quantity
        else:
            self._items.append(
                CartItem(
                    id=f"{_LOCAL_ID_PREFIX}{uuid4().hex[:12]}",
                    product_id=product.product_id,
                    name=product.name,
                    unit_price=product.unit_price,
                    quantity=quantity,
                    size=variant.size,
                    color=variant.color,
                )
            )
        self._recompute()

        size, color = variant.size, variant.color
        self._sync(
            "add_item",
            lambda: self._gateway.add_item(product.product_id, quantity, size, color),
        )
        return self.cart

    def update_quantity(self, item_id: str, quantity: int) -> Cart:
        self._ensure_open()
        item = self._find(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity <= 0:
            return self._remove(item)

        item.quantity = validate_quantity(quantity)
        self._recompute()

        self._sync("update_quantity", lambda: self._gateway.update_item(item_id, item.quantity))
        return self.cart

    def remove_item(self, item_id: str) -> Cart:
        self._ensure_open()
        item = self._find(item_id)
        if item is None:
            return self.cart
        return self._remove(item)

    def clear_cart(self) -> Cart:
        self._ensure_open()
        self._items = []
        self._coupon_code = None
        self._recompute()

        try:
            self._gateway.clear_cart()
        except GatewayError as e:
            self._sync_failed("clear_cart", e)
        else:
            self._synced = True
        return self.cart

    def apply_coupon(self, code: str) -> Cart:
        self._ensure_open()
        normalized = normalize_code(code or "")
        if not normalized:
            raise CouponInvalidError(code or "", NOT_FOUND)

        result = evaluate(self._cart, normalized, self._coupons, now=self._clock())
        if isinstance(result, CouponRejected):
            self._emit("COUPON_REJECTED", {"code": normalized, "reason": result.reason})
            raise CouponInvalidError(normalized, result.reason)

        self._coupon_code = result.code
        self._recompute()
        self._emit("COUPON_APPLIED", {"code": result.code, "discount": self._cart.discount})

        self._sync("apply_coupon", lambda: self._gateway.apply_coupon(result.code))
        return self.cart

    def remove_coupon(self) -> Cart:
        self._ensure_open()
        if self._coupon_code is None:
            return self.cart

        self._coupon_code = None
        self._recompute()

        self._sync("remove_coupon", self._gateway.remove_coupon)
        return self.cart

    def refresh_cart(self) -> Cart:
        self._ensure_open()
        try:
            remote = self._gateway.fetch_cart()
        except GatewayError as e:
            logger.warning("Cart refresh failed, keeping local cart: %s", e)
            return self.cart

        if remote is None:
            return self.cart

        if not self._synced:
            # Local changes never reached the server; only learn ids.
            self._adopt_ids(remote)
            return self.cart

        self._items = [i.model_copy() for i in remote.items]
        self._coupon_code = normalize_code(remote.coupon_code) if remote.coupon_code else None
        self._recompute()
        return self.cart

    # Internals

    def _ensure_open(self) -> None:
        if self._disposed:
            raise RuntimeError("Cart store has been disposed")

    def _find(self, item_id: str) -> CartItem | None:
        return next((i for i in self._items if i.id == item_id), None)

    def _remove(self, item: CartItem) -> Cart:
        self._items = [i for i in self._items if i.id != item.id]
        self._recompute()

        self._sync("remove_item", lambda: self._gateway.remove_item(item.id))
        return self.cart

    def _recompute(self) -> None:
        subtotal = sum_minor(line_total(i.unit_price, i.quantity) for i in self._items)

        discount = 0
        if self._coupon_code is not None:
            coupon = self._coupons.get(self._coupon_code)
            if coupon is None:
                result = CouponRejected(code=self._coupon_code, reason=NOT_FOUND)
            else:
                result = price_coupon(coupon, subtotal, self._clock())

            if isinstance(result, CouponAccepted):
                discount = clamp(result.discount, 0, subtotal)
            else:
                logger.info("Dropping coupon %s: %s", self._coupon_code, result.reason)
                self._emit("COUPON_DROPPED", {"code": self._coupon_code, "reason": result.reason})
                self._coupon_code = None

        shipping = self._shipping.quote(subtotal)
        self._cart = Cart(
            items=[i.model_copy() for i in self._items],
            coupon_code=self._coupon_code,
            subtotal=subtotal,
            discount=discount,
            shipping=shipping,
            total=max(0, subtotal - discount + shipping),
            item_count=sum(i.quantity for i in self._items),
        )

    def _sync(self, operation: str, call: Callable[[], RemoteCart | None]) -> None:
        try:
            remote = call()
        except GatewayError as e:
            self._sync_failed(operation, e)
            return

        if remote is not None:
            self._adopt_ids(remote)

    def _sync_failed(self, operation: str, error: GatewayError) -> None:
        self._synced = False
        logger.warning("Cart %s sync failed, keeping local change: %s", operation, error)
        self._emit("CART_SYNC_FAILED", {"operation": operation, "error": str(error)})

    def _adopt_ids(self, remote: RemoteCart) -> None:
        taken = {i.id for i in self._items}
        changed = False
        for item in self._items:
            if not item.id.startswith(_LOCAL_ID_PREFIX):
                continue
            candidates = (r for r in remote.items if r.merge_key() == item.merge_key())
            match = next((r for r in candidates if r.id not in taken), None)
            if match is not None:
                taken.discard(item.id)
                item.id = match.id
                taken.add(match.id)
                changed = True

        if changed:
            self._recompute()

    def _emit(self, event_type: str, payload: dict) -> None:
        if self._on_event is not None:
            self._on_event(event_type, payload)
