from __future__ import annotations

import logging
import os
import threading

from services.checkout.app.cart.store import CartStore
from services.checkout.app.checkout.addresses import AddressBook
from services.checkout.app.checkout.session import CheckoutSession
from services.checkout.app.errors import (
    AddressMissingError,
    GatewayRequestError,
    OrderRejectedError,
    PaymentNotConfirmedError,
    ReconciliationRequiredError,
    SubmissionInFlightError,
)
from services.checkout.app.gateway.base import CommerceGateway, OrderRequest
from services.checkout.app.models.checkout import Order, PaymentMethod
from services.checkout.app.money import to_gateway_amount

logger = logging.getLogger(__name__)

DEFAULT_SUPPORT_CONTACT = "support@aaryaclothing.example"


class OrderSubmitter:
    """Turns one checkout session plus the current cart into exactly one order.

    The session id doubles as the gateway idempotency key. Checking and taking the
    in-flight guard happen under one lock, which is released before the gateway call;
    the guard itself is released on every exit path. An online payment only counts if
    it was raised for the cart's current total.
    """

    def __init__(
        self,
        gateway: CommerceGateway,
        addresses: AddressBook | None = None,
        *,
        support_contact: str = DEFAULT_SUPPORT_CONTACT,
    ) -> None:
        self._gateway = gateway
        self._addresses = addresses
        self._support_contact = support_contact
        self._in_flight: set[str] = set()
        self._placed: dict[str, Order] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_env(
        cls, gateway: CommerceGateway, addresses: AddressBook | None = None
    ) -> "OrderSubmitter":
        contact = os.getenv("STOREFRONT_SUPPORT_CONTACT", DEFAULT_SUPPORT_CONTACT).strip()
        return cls(gateway, addresses, support_contact=contact or DEFAULT_SUPPORT_CONTACT)

    def is_in_flight(self, session: CheckoutSession) -> bool:
        return session.session_id in self._in_flight

    def placed_order(self, session: CheckoutSession) -> Order | None:
        return self._placed.get(session.session_id)

    def submit(self, session: CheckoutSession, cart_store: CartStore) -> Order:
        with self._lock:
            placed = self._placed.get(session.session_id)
            if placed is not None:
                return placed

            if session.session_id in self._in_flight:
                raise SubmissionInFlightError(session.session_id)

            request = self._build_request(session, cart_store)
            self._in_flight.add(session.session_id)

        try:
            try:
                order = self._gateway.create_order(request)
            except GatewayRequestError as e:
                raise self._rejection(session, e) from e

            if order.address is None and request.address is not None:
                order = order.model_copy(update={"address": request.address})
            with self._lock:
                self._placed[session.session_id] = order
        finally:
            with self._lock:
                self._in_flight.discard(session.session_id)

        logger.info(
            "Order %s placed for checkout %s (total=%s)",
            order.order_number,
            session.session_id,
            order.total,
        )

        cart_store.clear_cart()
        session.mark_completed(order)
        return order

    def _build_request(self, session: CheckoutSession, cart_store: CartStore) -> OrderRequest:
        if not session.address_id:
            raise AddressMissingError()
        if not session.payment_ready:
            raise PaymentNotConfirmedError()
        session.proceed_to_confirmation()

        cart = cart_store.snapshot()
        if not cart.items:
            raise OrderRejectedError("Cart is empty")

        method = session.payment_method or PaymentMethod.CASH_ON_DELIVERY
        if method is not PaymentMethod.CASH_ON_DELIVERY:
            expected = to_gateway_amount(cart.total)
            if session.payment_amount != expected:
                logger.warning(
                    "Checkout %s: payment %s covered %s but the cart now needs %s",
                    session.session_id,
                    session.payment_reference,
                    session.payment_amount,
                    expected,
                )
                session.reset_payment()
                raise PaymentNotConfirmedError(
                    "Cart total changed after payment; please pay the new total"
                )

        return OrderRequest(
            idempotency_key=session.session_id,
            address_id=session.address_id,
            payment_method=method,
            payment_reference=session.payment_reference,
            items=cart.items,
            subtotal=cart.subtotal,
            discount=cart.discount,
            shipping=cart.shipping,
            total=cart.total,
            coupon_code=cart.coupon_code,
            address=self._addresses.get(session.address_id) if self._addresses else None,
        )

    def _rejection(self, session: CheckoutSession, error: GatewayRequestError) -> Exception:
        if error.status == 402:
            return PaymentNotConfirmedError(error.detail)

        paid_online = (
            session.payment_method is not PaymentMethod.CASH_ON_DELIVERY
            and session.payment_reference is not None
        )
        if paid_online:
            logger.error(
                "Order creation rejected after payment %s for checkout %s: %s",
                session.payment_reference,
                session.session_id,
                error.detail,
            )
            return ReconciliationRequiredError(
                session.payment_reference, error.detail, self._support_contact
            )

        return OrderRejectedError(error.detail)
