from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest
from services.checkout.app.cart.coupons import BELOW_MINIMUM, EXPIRED, CouponBook
from services.checkout.app.cart.store import CartStore
from services.checkout.app.errors import (
    CouponInvalidError,
    GatewayUnavailableError,
    InvalidQuantityError,
    ItemNotFoundError,
)
from services.checkout.app.gateway.base import GatewayMode, RemoteCart
from services.checkout.app.models.cart import CartItem, Product, Variant

NOW = datetime(2024, 11, 1, 12, 0, tzinfo=timezone.utc)

GOWN = Product(product_id="15", name="Silk Evening Gown", unit_price=5999)
KURTA = Product(product_id="8", name="Cotton Kurta", unit_price=999)


class _FakeGateway:
    mode = GatewayMode.ONLINE

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail: Exception | None = None
        self.remote: RemoteCart | None = None

    def _hit(self, name: str, *args: object) -> RemoteCart | None:
        self.calls.append((name, *args))
        if self.fail is not None:
            raise self.fail
        return self.remote

    def fetch_cart(self) -> RemoteCart | None:
        return self._hit("fetch_cart")

    def add_item(self, product_id, quantity, size, color) -> RemoteCart | None:
        return self._hit("add_item", product_id, quantity, size, color)

    def update_item(self, item_id, quantity) -> RemoteCart | None:
        return self._hit("update_item", item_id, quantity)

    def remove_item(self, item_id) -> RemoteCart | None:
        return self._hit("remove_item", item_id)

    def clear_cart(self) -> None:
        self._hit("clear_cart")

    def apply_coupon(self, code) -> RemoteCart | None:
        return self._hit("apply_coupon", code)

    def remove_coupon(self) -> RemoteCart | None:
        return self._hit("remove_coupon")


def _store(gateway: _FakeGateway | None = None, events: list | None = None) -> CartStore:
    sink = (lambda t, p: events.append((t, p))) if events is not None else None
    return CartStore(
        gateway or _FakeGateway(),
        coupons=CouponBook.default(NOW),
        clock=lambda: NOW,
        on_event=sink,
    )


def _remote_item(item_id: str, quantity: int, unit_price: int = 5999, **variant) -> CartItem:
    return CartItem(
        id=item_id,
        product_id="15",
        name="Silk Evening Gown",
        unit_price=unit_price,
        quantity=quantity,
        **variant,
    )


def _assert_consistent(store: CartStore) -> None:
    cart = store.cart
    assert cart.subtotal == sum(i.unit_price * i.quantity for i in cart.items)
    assert 0 <= cart.discount <= cart.subtotal
    assert cart.total == cart.subtotal - cart.discount + cart.shipping
    assert cart.item_count == sum(i.quantity for i in cart.items)


def test_add_item_merges_same_variant() -> None:
    store = _store()
    store.add_item(GOWN, 1, Variant(size="M", color="Burgundy"))
    store.add_item(GOWN, 2, Variant(size="M", color="Burgundy"))
    cart = store.add_item(GOWN, 1, Variant(size="L", color="Burgundy"))

    assert len(cart.items) == 2
    assert cart.items[0].quantity == 3
    assert cart.subtotal == 5999 * 4
    _assert_consistent(store)


def test_fixed_coupon_scenario() -> None:
    store = _store()
    store.add_item(GOWN)
    cart = store.apply_coupon("FLAT500")

    assert cart.subtotal == 5999
    assert cart.discount == 500
    assert cart.shipping == 0
    assert cart.total == 5499


def test_small_cart_pays_shipping() -> None:
    store = _store()
    store.add_item(KURTA, 2)
    cart = store.apply_coupon("welcome10")

    assert cart.subtotal == 1998
    assert cart.discount == 200
    assert cart.shipping == 99
    assert cart.total == 1897
    _assert_consistent(store)


def test_empty_cart_is_all_zero() -> None:
    cart = _store().cart
    assert (cart.subtotal, cart.discount, cart.shipping, cart.total) == (0, 0, 0, 0)


def test_apply_then_remove_coupon_restores_totals() -> None:
    store = _store()
    store.add_item(GOWN)
    before = store.cart

    store.apply_coupon("FESTIVE20")
    after = store.remove_coupon()

    assert after.coupon_code is None
    assert after.total == before.total
    assert after.discount == 0


def test_rejected_coupon_leaves_cart_unchanged() -> None:
    events: list = []
    store = _store(events=events)
    store.add_item(KURTA)

    with pytest.raises(CouponInvalidError) as excinfo:
        store.apply_coupon("FLAT500")
    assert excinfo.value.reason == BELOW_MINIMUM

    with pytest.raises(CouponInvalidError) as excinfo:
        store.apply_coupon("EXPIRED10")
    assert excinfo.value.reason == EXPIRED

    assert store.cart.coupon_code is None
    assert store.cart.discount == 0
    assert [e[0] for e in events] == ["COUPON_REJECTED", "COUPON_REJECTED"]


def test_coupon_dropped_when_cart_no_longer_qualifies() -> None:
    events: list = []
    store = _store(events=events)
    gown = store.add_item(GOWN).items[0]
    store.add_item(KURTA)
    assert store.apply_coupon("FESTIVE20").discount == 1400

    cart = store.remove_item(gown.id)

    assert cart.coupon_code is None
    assert cart.discount == 0
    assert cart.total == 999 + 99
    assert ("COUPON_DROPPED", {"code": "FESTIVE20", "reason": BELOW_MINIMUM}) in events


def test_update_quantity_to_zero_removes_item() -> None:
    store = _store()
    item = store.add_item(GOWN, 2).items[0]

    assert store.update_quantity(item.id, 3).items[0].quantity == 3
    assert store.update_quantity(item.id, 0).items == []


@pytest.mark.parametrize("quantity", [0, -2, True])
def test_add_item_rejects_bad_quantity(quantity: object) -> None:
    store = _store()
    with pytest.raises(InvalidQuantityError):
        store.add_item(GOWN, quantity)  # type: ignore[arg-type]
    assert store.cart.items == []


def test_update_unknown_item_raises() -> None:
    store = _store()
    with pytest.raises(ItemNotFoundError):
        store.update_quantity("missing", 2)


def test_remove_item_is_idempotent() -> None:
    gateway = _FakeGateway()
    store = _store(gateway)
    item = store.add_item(GOWN).items[0]

    store.remove_item(item.id)
    store.remove_item(item.id)

    assert store.cart.items == []
    assert [c[0] for c in gateway.calls].count("remove_item") == 1


def test_sync_failure_keeps_local_change() -> None:
    events: list = []
    gateway = _FakeGateway()
    gateway.fail = GatewayUnavailableError("POST /cart/items", "connection refused")
    store = _store(gateway, events)

    cart = store.add_item(GOWN)

    assert cart.subtotal == 5999
    assert store.synced is False
    assert events[0][0] == "CART_SYNC_FAILED"
    assert events[0][1]["operation"] == "add_item"


def test_refresh_failure_keeps_local_cart() -> None:
    gateway = _FakeGateway()
    store = _store(gateway)
    store.add_item(GOWN)

    gateway.fail = GatewayUnavailableError("GET /cart", "timed out")
    cart = store.refresh_cart()

    assert cart.subtotal == 5999


def test_refresh_adopts_remote_cart_when_synced() -> None:
    gateway = _FakeGateway()
    gateway.remote = RemoteCart(
        items=[_remote_item("srv-1", quantity=2)],
        coupon_code="flat500",
    )
    store = _store(gateway)

    cart = store.init()

    assert [i.id for i in cart.items] == ["srv-1"]
    assert cart.coupon_code == "FLAT500"
    assert cart.total == 11998 - 500


def test_sync_response_only_adopts_server_ids() -> None:
    gateway = _FakeGateway()
    gateway.remote = RemoteCart(
        items=[_remote_item("srv-9", quantity=7, unit_price=1, size="M", color="Burgundy")],
        coupon_code=None,
    )
    store = _store(gateway)

    cart = store.add_item(GOWN, 1, Variant(size="M", color="Burgundy"))

    assert cart.items[0].id == "srv-9"
    assert cart.items[0].quantity == 1
    assert cart.items[0].unit_price == 5999


def test_unsynced_refresh_does_not_overwrite_local_quantities() -> None:
    gateway = _FakeGateway()
    store = _store(gateway)

    gateway.fail = GatewayUnavailableError("POST /cart/items", "connection refused")
    store.add_item(GOWN, 2)

    gateway.fail = None
    gateway.remote = RemoteCart(
        items=[_remote_item("srv-3", quantity=1)],
        coupon_code=None,
    )
    cart = store.refresh_cart()

    assert cart.items[0].id == "srv-3"
    assert cart.items[0].quantity == 2


def test_clear_cart_resets_everything() -> None:
    store = _store()
    store.add_item(GOWN)
    store.apply_coupon("FLAT500")

    cart = store.clear_cart()

    assert cart.items == []
    assert cart.coupon_code is None
    assert cart.total == 0


def test_disposed_store_rejects_mutations() -> None:
    store = _store()
    store.dispose()
    with pytest.raises(RuntimeError):
        store.add_item(GOWN)


def test_returned_cart_is_a_copy() -> None:
    store = _store()
    cart = store.add_item(GOWN)
    cart.items[0].quantity = 50

    assert store.cart.items[0].quantity == 1


def test_totals_stay_consistent_over_random_mutations() -> None:
    rng = random.Random(7)
    store = _store()
    products = [GOWN, KURTA, Product(product_id="23", name="Velvet Blazer", unit_price=3999)]

    for _ in range(200):
        items = store.cart.items
        op = rng.choice(["add", "update", "remove", "coupon"])
        if op == "add" or not items:
            store.add_item(rng.choice(products), rng.randint(1, 3), Variant(size=rng.choice("SML")))
        elif op == "update":
            store.update_quantity(rng.choice(items).id, rng.randint(-1, 4))
        elif op == "remove":
            store.remove_item(rng.choice(items).id)
        else:
            try:
                store.apply_coupon(rng.choice(["WELCOME10", "FLAT500", "FESTIVE20"]))
            except CouponInvalidError:
                pass
        _assert_consistent(store)
