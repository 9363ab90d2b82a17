"""Coupon evaluation.

Everything here is pure: no store, no network, and `now` is always passed in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from services.checkout.app.models.cart import Cart, Coupon, CouponKind
from services.checkout.app.money import percent_of

NOT_FOUND = "not_found"
EXPIRED = "expired"
BELOW_MINIMUM = "below_minimum"
ALREADY_APPLIED = "already_applied"


@dataclass(frozen=True, slots=True)
class CouponAccepted:
    code: str
    discount: int


@dataclass(frozen=True, slots=True)
class CouponRejected:
    code: str
    reason: str


CouponResult = CouponAccepted | CouponRejected


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def price_coupon(coupon: Coupon, subtotal: int, now: datetime) -> CouponResult:
    code = normalize_code(coupon.code)

    if coupon.expires_at is not None and _aware(coupon.expires_at) <= _aware(now):
        return CouponRejected(code=code, reason=EXPIRED)

    if coupon.min_subtotal is not None and subtotal < coupon.min_subtotal:
        return CouponRejected(code=code, reason=BELOW_MINIMUM)

    if coupon.kind is CouponKind.PERCENTAGE:
        discount = percent_of(subtotal, coupon.value)
    else:
        discount = min(coupon.value, subtotal)

    return CouponAccepted(code=code, discount=min(discount, subtotal))


def evaluate(
    cart: Cart,
    code: str,
    coupons: Mapping[str, Coupon],
    *,
    now: datetime,
) -> CouponResult:
    code = normalize_code(code)

    if cart.coupon_code is not None and normalize_code(cart.coupon_code) == code:
        return CouponRejected(code=code, reason=ALREADY_APPLIED)

    coupon = coupons.get(code)
    if coupon is None:
        return CouponRejected(code=code, reason=NOT_FOUND)

    return price_coupon(coupon, cart.subtotal, now)


class CouponBook(Mapping[str, Coupon]):
    """Coupon definitions keyed by normalized code."""

    def __init__(self, coupons: Iterable[Coupon] = ()) -> None:
        self._coupons = {normalize_code(c.code): c for c in coupons}

    def __getitem__(self, code: str) -> Coupon:
        return self._coupons[normalize_code(code)]

    def __iter__(self):
        return iter(self._coupons)

    def __len__(self) -> int:
        return len(self._coupons)

    @classmethod
    def default(cls, now: datetime | None = None) -> "CouponBook":
        now = now or datetime.now(timezone.utc)
        return cls(
            [
                Coupon(code="WELCOME10", kind=CouponKind.PERCENTAGE, value=10),
                Coupon(code="FLAT500", kind=CouponKind.FIXED, value=500, min_subtotal=2999),
                Coupon(code="FESTIVE20", kind=CouponKind.PERCENTAGE, value=20, min_subtotal=4999),
                Coupon(
                    code="EXPIRED10",
                    kind=CouponKind.PERCENTAGE,
                    value=10,
                    expires_at=now - timedelta(days=1),
                ),
            ]
        )
