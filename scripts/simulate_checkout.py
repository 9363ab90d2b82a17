from __future__ import annotations

import argparse
import logging

from services.checkout.app.cart.coupons import CouponBook
from services.checkout.app.cart.shipping import ShippingPolicy
from services.checkout.app.cart.store import CartStore
from services.checkout.app.checkout.addresses import AddressBook
from services.checkout.app.checkout.payment import PaymentCoordinator
from services.checkout.app.checkout.session import CheckoutSession
from services.checkout.app.checkout.submission import OrderSubmitter
from services.checkout.app.gateway.factory import get_commerce_gateway
from services.checkout.app.gateway.simulated import SimulatedCommerceGateway
from services.checkout.app.models.cart import Product, Variant
from services.checkout.app.models.checkout import PaymentMethod
from services.checkout.app.money import format_money


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one checkout against the configured gateway")
    parser.add_argument("--coupon", default=None)
    parser.add_argument("--payment", choices=[m.value for m in PaymentMethod], default="cod")
    parser.add_argument("--currency", default="INR")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    gateway = get_commerce_gateway()
    cart = CartStore(gateway, coupons=CouponBook.default(), shipping=ShippingPolicy.from_env())
    cart.init()
    cart.add_item(
        Product(product_id="15", name="Silk Evening Gown", unit_price=5999),
        1,
        Variant(size="M", color="Burgundy"),
    )
    cart.add_item(
        Product(product_id="23", name="Velvet Blazer", unit_price=3999),
        2,
        Variant(size="L", color="Navy"),
    )
    if args.coupon:
        cart.apply_coupon(args.coupon)

    addresses = AddressBook(gateway)
    addresses.load()
    address = addresses.default() or addresses.addresses[0]

    session = CheckoutSession()
    session.select_address(address.id)
    session.proceed_to_payment()

    payments = PaymentCoordinator(gateway, currency=args.currency)
    pending = payments.start(session, cart.snapshot(), PaymentMethod(args.payment))
    if pending is not None:
        # No widget here: settle with a demo reference.
        pending.channel.resolve(SimulatedCommerceGateway.demo_payment_reference())
        payments.complete(session, pending, timeout_s=5)

    totals = cart.snapshot()
    order = OrderSubmitter(gateway, addresses).submit(session, cart)

    print(f"mode={gateway.mode.value}")
    print(f"subtotal={format_money(totals.subtotal, args.currency)}")
    print(f"discount={format_money(totals.discount, args.currency)}")
    print(f"shipping={format_money(totals.shipping, args.currency)}")
    print(f"total={format_money(order.total, args.currency)}")
    print(f"order_number={order.order_number}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
