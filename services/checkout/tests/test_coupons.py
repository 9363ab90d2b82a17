from datetime import datetime, timedelta, timezone

from services.checkout.app.cart.coupons import (
    ALREADY_APPLIED,
    BELOW_MINIMUM,
    EXPIRED,
    NOT_FOUND,
    CouponAccepted,
    CouponBook,
    CouponRejected,
    evaluate,
    price_coupon,
)
from services.checkout.app.cart.shipping import ShippingPolicy
from services.checkout.app.models.cart import Cart, Coupon, CouponKind

NOW = datetime(2024, 11, 1, 12, 0, tzinfo=timezone.utc)


def _cart(subtotal: int, coupon_code: str | None = None) -> Cart:
    return Cart(subtotal=subtotal, coupon_code=coupon_code)


def test_fixed_coupon_on_qualifying_subtotal() -> None:
    result = evaluate(_cart(5999), "flat500", CouponBook.default(NOW), now=NOW)
    assert result == CouponAccepted(code="FLAT500", discount=500)


def test_percentage_coupon_rounds_half_up() -> None:
    result = evaluate(_cart(1999), " welcome10 ", CouponBook.default(NOW), now=NOW)
    assert isinstance(result, CouponAccepted)
    assert result.discount == 200


def test_rejection_reasons() -> None:
    book = CouponBook.default(NOW)

    assert evaluate(_cart(5999), "NOPE", book, now=NOW) == CouponRejected("NOPE", NOT_FOUND)
    assert evaluate(_cart(5999), "EXPIRED10", book, now=NOW).reason == EXPIRED
    assert evaluate(_cart(1999), "FLAT500", book, now=NOW).reason == BELOW_MINIMUM
    assert evaluate(_cart(5999, "FLAT500"), "flat500", book, now=NOW).reason == ALREADY_APPLIED


def test_coupon_expiring_exactly_now_is_expired() -> None:
    coupon = Coupon(code="EDGE", kind=CouponKind.PERCENTAGE, value=5, expires_at=NOW)
    assert price_coupon(coupon, 1000, NOW) == CouponRejected("EDGE", EXPIRED)


def test_naive_expiry_is_treated_as_utc() -> None:
    coupon = Coupon(
        code="NAIVE",
        kind=CouponKind.FIXED,
        value=100,
        expires_at=(NOW + timedelta(hours=1)).replace(tzinfo=None),
    )
    assert isinstance(price_coupon(coupon, 1000, NOW), CouponAccepted)


def test_discount_never_exceeds_subtotal() -> None:
    big_fixed = Coupon(code="BIG", kind=CouponKind.FIXED, value=5000)
    over_percent = Coupon(code="ALL", kind=CouponKind.PERCENTAGE, value=150)

    assert price_coupon(big_fixed, 1200, NOW) == CouponAccepted("BIG", 1200)
    assert price_coupon(over_percent, 1200, NOW) == CouponAccepted("ALL", 1200)


def test_coupon_book_is_case_insensitive() -> None:
    book = CouponBook([Coupon(code="summer5", kind=CouponKind.PERCENTAGE, value=5)])
    assert "SUMMER5" in book
    assert book["Summer5"].value == 5
    assert len(book) == 1


def test_shipping_policy() -> None:
    policy = ShippingPolicy()
    assert policy.quote(0) == 0
    assert policy.quote(1999) == 99
    assert policy.quote(2998) == 99
    assert policy.quote(2999) == 0


def test_shipping_policy_from_env(monkeypatch) -> None:
    monkeypatch.setenv("STOREFRONT_SHIPPING_FEE", "149")
    monkeypatch.setenv("STOREFRONT_FREE_SHIPPING_THRESHOLD", "4999")

    policy = ShippingPolicy.from_env()
    assert policy.quote(3000) == 149
    assert policy.quote(4999) == 0
