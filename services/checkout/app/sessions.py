from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.checkout.app.cart.coupons import CouponBook
from services.checkout.app.cart.shipping import ShippingPolicy
from services.checkout.app.cart.store import CartStore
from services.checkout.app.checkout.addresses import AddressBook
from services.checkout.app.checkout.payment import PaymentCoordinator, PendingPayment
from services.checkout.app.checkout.session import CheckoutSession, CheckoutState
from services.checkout.app.checkout.storage import (
    InMemorySessionStorage,
    SessionStorage,
    SqlSessionStorage,
)
from services.checkout.app.checkout.submission import OrderSubmitter
from services.checkout.app.gateway.base import CommerceGateway, GatewayMode
from services.checkout.app.gateway.factory import get_commerce_gateway
from services.checkout.app.models.cart import Coupon
from services.checkout.app.services.audit import AuditRecorder
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

GatewayFactory = Callable[..., CommerceGateway]


@dataclass
class ShopperContext:
    """Everything one browser tab owns: its cart, addresses and current checkout."""

    shopper_id: str
    gateway: CommerceGateway
    cart: CartStore
    addresses: AddressBook
    payments: PaymentCoordinator
    submitter: OrderSubmitter
    storage: SessionStorage
    audit: AuditRecorder | None = None
    checkout: CheckoutSession | None = None
    pending_payment: PendingPayment | None = field(default=None, repr=False)

    @property
    def gateway_mode(self) -> GatewayMode:
        return self.gateway.mode

    def record(
        self,
        entity_type: EntityTypeV1,
        entity_id: str,
        event_type: EventTypeV1,
        payload: dict | None = None,
    ) -> None:
        if self.audit is not None:
            self.audit.record(entity_type, entity_id, event_type, payload)

    def begin_checkout(self) -> CheckoutSession:
        if self.checkout is not None and self.checkout.is_active:
            return self.checkout

        self.pending_payment = None
        self.checkout = CheckoutSession.restore(
            self.storage, on_transition=self._on_checkout_transition
        )
        return self.checkout

    def abandon_checkout(self) -> None:
        if self.pending_payment is not None:
            self.pending_payment.channel.cancel()
            self.pending_payment = None
        if self.checkout is not None:
            self.checkout.abandon()

    def dispose(self) -> None:
        self.abandon_checkout()
        self.cart.dispose()
        self.storage.clear()

    def _on_checkout_transition(self, previous: CheckoutState, current: CheckoutState) -> None:
        checkout_id = self.checkout.session_id if self.checkout is not None else ""
        self.record(
            EntityTypeV1.CHECKOUT,
            checkout_id,
            EventTypeV1.CHECKOUT_STAGE_CHANGED,
            {"from": previous.value, "to": current.value},
        )


class ShopperRegistry:
    """Live shopper sessions, created and disposed explicitly."""

    def __init__(
        self,
        sessions: sessionmaker | None = None,
        *,
        coupons: Mapping[str, Coupon] | None = None,
        shipping: ShippingPolicy | None = None,
        gateway_factory: GatewayFactory = get_commerce_gateway,
    ) -> None:
        self._sessions = sessions
        self._coupons = coupons if coupons is not None else CouponBook.default()
        self._shipping = shipping or ShippingPolicy.from_env()
        self._gateway_factory = gateway_factory
        self._contexts: dict[str, ShopperContext] = {}

    def open(self) -> ShopperContext:
        shopper_id = uuid4().hex
        audit = AuditRecorder(self._sessions, shopper_id) if self._sessions is not None else None

        def on_fallback(endpoint: str, reason: str) -> None:
            if audit is not None:
                audit.record(
                    EntityTypeV1.GATEWAY,
                    endpoint,
                    EventTypeV1.FALLBACK_ACTIVATED,
                    {"endpoint": endpoint, "reason": reason},
                )

        def on_cart_event(event_type: str, payload: dict) -> None:
            if audit is not None:
                audit.record(EntityTypeV1.CART, shopper_id, EventTypeV1(event_type), payload)

        gateway = self._gateway_factory(on_fallback=on_fallback)
        storage: SessionStorage
        if self._sessions is not None:
            storage = SqlSessionStorage(self._sessions, scope=shopper_id)
        else:
            storage = InMemorySessionStorage()

        addresses = AddressBook(gateway)
        ctx = ShopperContext(
            shopper_id=shopper_id,
            gateway=gateway,
            cart=CartStore(
                gateway, coupons=self._coupons, shipping=self._shipping, on_event=on_cart_event
            ),
            addresses=addresses,
            payments=PaymentCoordinator.from_env(gateway),
            submitter=OrderSubmitter.from_env(gateway, addresses),
            storage=storage,
            audit=audit,
        )
        ctx.cart.init()

        self._contexts[shopper_id] = ctx
        ctx.record(
            EntityTypeV1.SHOPPER_SESSION,
            shopper_id,
            EventTypeV1.SESSION_OPENED,
            {"gateway_mode": ctx.gateway_mode.value},
        )
        logger.info("Opened shopper session %s (%s)", shopper_id, ctx.gateway_mode.value)
        return ctx

    def get(self, shopper_id: str) -> ShopperContext | None:
        return self._contexts.get(shopper_id)

    def close(self, shopper_id: str) -> bool:
        ctx = self._contexts.pop(shopper_id, None)
        if ctx is None:
            return False

        ctx.dispose()
        ctx.record(EntityTypeV1.SHOPPER_SESSION, shopper_id, EventTypeV1.SESSION_CLOSED, {})
        return True

    def close_all(self) -> None:
        for shopper_id in list(self._contexts):
            self.close(shopper_id)
