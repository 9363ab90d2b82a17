"""Checkout stage machine.

    AWAITING_ADDRESS -> AWAITING_PAYMENT -> AWAITING_CONFIRMATION -> COMPLETED

Any non-terminal stage can move to ABANDONED. The session lives outside the cart store:
abandoning checkout never touches the cart.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from uuid import uuid4

from services.checkout.app.checkout.storage import (
    ADDRESS_ID_KEY,
    CHECKOUT_KEYS,
    PAYMENT_AMOUNT_KEY,
    PAYMENT_ID_KEY,
    PAYMENT_METHOD_KEY,
    PAYMENT_ORDER_ID_KEY,
    InMemorySessionStorage,
    SessionStorage,
)
from services.checkout.app.errors import AddressMissingError, PaymentNotConfirmedError
from services.checkout.app.models.checkout import Order, PaymentMethod

logger = logging.getLogger(__name__)

StageListener = Callable[["CheckoutState", "CheckoutState"], None]


class CheckoutState(str, Enum):
    AWAITING_ADDRESS = "AWAITING_ADDRESS"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


_TERMINAL = {CheckoutState.COMPLETED, CheckoutState.ABANDONED}


class CheckoutSession:
    def __init__(
        self,
        storage: SessionStorage | None = None,
        *,
        session_id: str | None = None,
        on_transition: StageListener | None = None,
    ) -> None:
        self.session_id = session_id or uuid4().hex
        self._storage = storage if storage is not None else InMemorySessionStorage()
        self._on_transition = on_transition

        self.state = CheckoutState.AWAITING_ADDRESS
        self.address_id: str | None = None
        self.payment_method: PaymentMethod | None = None
        self.payment_reference: str | None = None
        self.payment_order_id: str | None = None
        # Gateway subunits the payment order was raised for.
        self.payment_amount: int | None = None
        self.order: Order | None = None

    @classmethod
    def restore(
        cls,
        storage: SessionStorage,
        *,
        session_id: str | None = None,
        on_transition: StageListener | None = None,
    ) -> "CheckoutSession":
        """Rebuild a session from storage, re-deriving the furthest stage it may be in."""

        session = cls(storage, session_id=session_id, on_transition=on_transition)
        session.address_id = storage.get(ADDRESS_ID_KEY)
        method = storage.get(PAYMENT_METHOD_KEY)
        session.payment_method = PaymentMethod(method) if method else None
        session.payment_reference = storage.get(PAYMENT_ID_KEY)
        session.payment_order_id = storage.get(PAYMENT_ORDER_ID_KEY)
        amount = storage.get(PAYMENT_AMOUNT_KEY)
        session.payment_amount = int(amount) if amount else None

        if session.address_id is not None:
            session.state = CheckoutState.AWAITING_PAYMENT
            if session.payment_ready:
                session.state = CheckoutState.AWAITING_CONFIRMATION
        return session

    @property
    def payment_ready(self) -> bool:
        if self.payment_method is PaymentMethod.CASH_ON_DELIVERY:
            return True
        return self.payment_method is not None and bool(self.payment_reference)

    @property
    def is_active(self) -> bool:
        return self.state not in _TERMINAL

    def select_address(self, address_id: str) -> None:
        self._ensure_active()
        if not address_id:
            raise AddressMissingError()

        self.address_id = address_id
        self._storage.set(ADDRESS_ID_KEY, address_id)

        # A new address invalidates anything decided at later stages.
        if self.state is not CheckoutState.AWAITING_ADDRESS:
            self._reset_payment()
            self._transition(CheckoutState.AWAITING_ADDRESS)

    def proceed_to_payment(self) -> None:
        self._ensure_active()
        if not self.address_id:
            # Deep link into payment without an address: stay on the address stage.
            self._transition(CheckoutState.AWAITING_ADDRESS)
            raise AddressMissingError()

        if self.state is CheckoutState.AWAITING_ADDRESS:
            self._transition(CheckoutState.AWAITING_PAYMENT)

    def choose_payment_method(self, method: PaymentMethod) -> None:
        self.proceed_to_payment()
        if method is not self.payment_method:
            self._reset_payment()
        self.payment_method = method
        self._storage.set(PAYMENT_METHOD_KEY, method.value)
        if self.state is CheckoutState.AWAITING_CONFIRMATION:
            self._transition(CheckoutState.AWAITING_PAYMENT)

    def attach_payment_order(self, gateway_order_id: str, amount: int) -> None:
        self._ensure_active()
        self.payment_order_id = gateway_order_id
        self.payment_amount = amount
        self._storage.set(PAYMENT_ORDER_ID_KEY, gateway_order_id)
        self._storage.set(PAYMENT_AMOUNT_KEY, str(amount))

    def confirm_payment(self, payment_reference: str) -> None:
        self._ensure_active()
        if self.state is not CheckoutState.AWAITING_PAYMENT:
            raise PaymentNotConfirmedError(f"Cannot record payment in stage {self.state.value}")
        if not payment_reference:
            raise PaymentNotConfirmedError("Empty payment reference")

        self.payment_reference = payment_reference
        self._storage.set(PAYMENT_ID_KEY, payment_reference)

    def proceed_to_confirmation(self) -> None:
        self._ensure_active()
        if not self.address_id:
            self._transition(CheckoutState.AWAITING_ADDRESS)
            raise AddressMissingError()
        if not self.payment_ready:
            raise PaymentNotConfirmedError()

        if self.state is CheckoutState.AWAITING_PAYMENT:
            self._transition(CheckoutState.AWAITING_CONFIRMATION)

    def mark_completed(self, order: Order) -> None:
        """Only order submission calls this, after the gateway created the order."""

        if self.state is not CheckoutState.AWAITING_CONFIRMATION:
            raise RuntimeError(f"Cannot complete checkout from stage {self.state.value}")

        self.order = order
        self._transition(CheckoutState.COMPLETED)
        self.clear()

    def abandon(self) -> None:
        if not self.is_active:
            return
        self._transition(CheckoutState.ABANDONED)
        self.clear()

    def clear(self) -> None:
        self.address_id = None
        self.payment_method = None
        self.payment_reference = None
        self.payment_order_id = None
        self.payment_amount = None
        for key in CHECKOUT_KEYS:
            self._storage.remove(key)

    def reset_payment(self) -> None:
        """Forget the captured payment and send the shopper back to the payment stage."""

        self._ensure_active()
        self._reset_payment()
        if self.state is CheckoutState.AWAITING_CONFIRMATION:
            self._transition(CheckoutState.AWAITING_PAYMENT)

    def _reset_payment(self) -> None:
        self.payment_reference = None
        self.payment_order_id = None
        self.payment_amount = None
        self._storage.remove(PAYMENT_ID_KEY)
        self._storage.remove(PAYMENT_ORDER_ID_KEY)
        self._storage.remove(PAYMENT_AMOUNT_KEY)

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise RuntimeError(f"Checkout session {self.session_id} is {self.state.value}")

    def _transition(self, target: CheckoutState) -> None:
        if target is self.state:
            return
        previous, self.state = self.state, target
        logger.debug("Checkout %s: %s -> %s", self.session_id, previous.value, target.value)
        if self._on_transition is not None:
            self._on_transition(previous, target)
