from __future__ import annotations

import logging
import os
from concurrent.futures import CancelledError, Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field

from services.checkout.app.checkout.session import CheckoutSession
from services.checkout.app.errors import PaymentNotConfirmedError, PaymentTimeoutError
from services.checkout.app.gateway.base import CommerceGateway, PaymentOrder
from services.checkout.app.models.cart import Cart
from services.checkout.app.models.checkout import PaymentMethod
from services.checkout.app.money import to_gateway_amount

logger = logging.getLogger(__name__)


class PaymentChannel:
    """Single-shot result of the payment widget.

    The widget may fire its callbacks more than once; only the first resolution counts.
    """

    def __init__(self) -> None:
        self._future: Future[str] = Future()

    def resolve(self, payment_reference: str) -> bool:
        try:
            self._future.set_result(payment_reference)
        except InvalidStateError:
            return False
        return True

    def fail(self, reason: str) -> bool:
        try:
            self._future.set_exception(PaymentNotConfirmedError(reason))
        except InvalidStateError:
            return False
        return True

    def cancel(self) -> bool:
        return self._future.cancel()

    def wait(self, timeout_s: float | None) -> str:
        try:
            return self._future.result(timeout=timeout_s)
        except FutureTimeoutError as e:
            raise PaymentTimeoutError(timeout_s or 0) from e
        except CancelledError as e:
            raise PaymentNotConfirmedError("Payment was cancelled") from e


@dataclass
class PendingPayment:
    order: PaymentOrder
    channel: PaymentChannel = field(default_factory=PaymentChannel)
    signature: str | None = None


class PaymentCoordinator:
    def __init__(
        self,
        gateway: CommerceGateway,
        *,
        currency: str = "INR",
        timeout_s: float = 300.0,
    ) -> None:
        self._gateway = gateway
        self.currency = currency
        self.timeout_s = timeout_s

    @classmethod
    def from_env(cls, gateway: CommerceGateway) -> "PaymentCoordinator":
        return cls(
            gateway,
            currency=os.getenv("STOREFRONT_CURRENCY", "INR").strip().upper(),
            timeout_s=float(os.getenv("STOREFRONT_PAYMENT_TIMEOUT_S", "300")),
        )

    def start(
        self, session: CheckoutSession, cart: Cart, method: PaymentMethod
    ) -> PendingPayment | None:
        """Enter the payment stage. Returns None for cash on delivery."""

        session.choose_payment_method(method)
        if method is PaymentMethod.CASH_ON_DELIVERY:
            session.proceed_to_confirmation()
            return None

        order = self._gateway.create_payment_order(to_gateway_amount(cart.total), self.currency)
        session.attach_payment_order(order.gateway_order_id, order.amount)
        return PendingPayment(order=order)

    def complete(
        self,
        session: CheckoutSession,
        pending: PendingPayment,
        timeout_s: float | None = None,
    ) -> str:
        """Wait for the widget callback, verify it, and move the session on."""

        reference = pending.channel.wait(self.timeout_s if timeout_s is None else timeout_s)

        verified = self._gateway.verify_payment(
            pending.order.gateway_order_id, reference, pending.signature
        )
        if not verified:
            raise PaymentNotConfirmedError(f"Payment {reference} could not be verified")

        session.confirm_payment(reference)
        session.proceed_to_confirmation()
        logger.info("Payment %s confirmed for checkout %s", reference, session.session_id)
        return reference
