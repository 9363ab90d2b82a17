from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from packages.shared.schemas.checkout_v1 import (
    CheckoutActionTypeV1,
    CheckoutActionV1,
    CheckoutCardV1,
    CheckoutStageV1,
)
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.checkout.app.checkout.session import CheckoutSession, CheckoutState
from services.checkout.app.deps import get_shopper
from services.checkout.app.errors import (
    CheckoutError,
    OrderRejectedError,
    PaymentNotConfirmedError,
)
from services.checkout.app.gateway.base import GatewayMode
from services.checkout.app.gateway.simulated import SimulatedCommerceGateway
from services.checkout.app.models.checkout import (
    Order,
    PaymentCallbackRequest,
    SelectAddressRequest,
    StartPaymentRequest,
)
from services.checkout.app.money import format_money
from services.checkout.app.routers.http_errors import raise_checkout_http_error
from services.checkout.app.sessions import ShopperContext

logger = logging.getLogger(__name__)

router = APIRouter()

_STAGES = {
    CheckoutState.AWAITING_ADDRESS: CheckoutStageV1.ADDRESS,
    CheckoutState.AWAITING_PAYMENT: CheckoutStageV1.PAYMENT,
    CheckoutState.AWAITING_CONFIRMATION: CheckoutStageV1.CONFIRMATION,
    CheckoutState.COMPLETED: CheckoutStageV1.DONE,
    CheckoutState.ABANDONED: CheckoutStageV1.ABANDONED,
}

_TITLES = {
    CheckoutStageV1.ADDRESS: "Delivery address",
    CheckoutStageV1.PAYMENT: "Payment",
    CheckoutStageV1.CONFIRMATION: "Review and place order",
    CheckoutStageV1.DONE: "Order confirmed",
    CheckoutStageV1.ABANDONED: "Checkout abandoned",
}


@router.get("/v1/checkout", response_model=CheckoutCardV1)
def get_checkout(ctx: ShopperContext = Depends(get_shopper)) -> CheckoutCardV1:
    session = ctx.begin_checkout()
    try:
        ctx.addresses.load()
    except Exception as e:
        raise_checkout_http_error(e)
    return _card(ctx, session)


@router.post("/v1/checkout/address", response_model=CheckoutCardV1)
def select_address(
    payload: SelectAddressRequest, ctx: ShopperContext = Depends(get_shopper)
) -> CheckoutCardV1:
    session = ctx.begin_checkout()
    try:
        ctx.addresses.load()
        address = ctx.addresses.require(payload.address_id)
        session.select_address(address.id)
        session.proceed_to_payment()
    except Exception as e:
        raise_checkout_http_error(e)
    return _card(ctx, session)


@router.post("/v1/checkout/payment", response_model=CheckoutCardV1)
def start_payment(
    payload: StartPaymentRequest, ctx: ShopperContext = Depends(get_shopper)
) -> CheckoutCardV1:
    session = ctx.begin_checkout()
    warnings: list[str] = []
    try:
        cart = ctx.cart.snapshot()
        if not cart.items:
            raise OrderRejectedError("Cart is empty")

        if ctx.pending_payment is not None:
            ctx.pending_payment.channel.cancel()
        ctx.pending_payment = ctx.payments.start(session, cart, payload.payment_method)

        if ctx.pending_payment is not None and ctx.gateway_mode is GatewayMode.OFFLINE:
            # No payment widget offline: settle with a demo reference straight away.
            ctx.pending_payment.channel.resolve(SimulatedCommerceGateway.demo_payment_reference())
            _complete_payment(ctx, session)
            warnings.append("Simulated payment: the commerce gateway is offline")
    except Exception as e:
        raise_checkout_http_error(e)
    return _card(ctx, session, warnings=warnings)


@router.post("/v1/checkout/payment/callback", response_model=CheckoutCardV1)
def payment_callback(
    payload: PaymentCallbackRequest, ctx: ShopperContext = Depends(get_shopper)
) -> CheckoutCardV1:
    session = ctx.begin_checkout()
    try:
        pending = ctx.pending_payment
        if pending is None:
            # Widgets can repeat their success callback; the first one already settled it.
            if payload.payment_reference and payload.payment_reference == session.payment_reference:
                return _card(ctx, session)
            raise PaymentNotConfirmedError("No payment is in progress")

        if payload.gateway_order_id and payload.gateway_order_id != pending.order.gateway_order_id:
            raise PaymentNotConfirmedError("Payment callback does not match the payment order")

        if payload.error or not payload.payment_reference:
            pending.channel.fail(payload.error or "Payment failed")
        else:
            pending.signature = payload.signature
            pending.channel.resolve(payload.payment_reference)

        _complete_payment(ctx, session)
    except Exception as e:
        raise_checkout_http_error(e)
    return _card(ctx, session)


@router.post("/v1/checkout/confirm", response_model=CheckoutCardV1)
def confirm_order(ctx: ShopperContext = Depends(get_shopper)) -> CheckoutCardV1:
    session = ctx.checkout if ctx.checkout is not None else ctx.begin_checkout()
    placed = ctx.submitter.placed_order(session)
    if placed is not None:
        return _card(ctx, session, order=placed)

    try:
        order = ctx.submitter.submit(session, ctx.cart)
    except CheckoutError as e:
        ctx.record(
            EntityTypeV1.ORDER,
            session.session_id,
            EventTypeV1.ORDER_FAILED,
            {"error": str(e), "kind": type(e).__name__},
        )
        raise_checkout_http_error(e)
    except Exception as e:
        raise_checkout_http_error(e)

    ctx.record(
        EntityTypeV1.ORDER,
        order.id,
        EventTypeV1.ORDER_SUBMITTED,
        {
            "order_number": order.order_number,
            "total": order.total,
            "checkout_id": session.session_id,
            "mode": order.mode,
        },
    )
    return _card(ctx, session, order=order)


@router.delete("/v1/checkout", response_model=CheckoutCardV1)
def abandon_checkout(ctx: ShopperContext = Depends(get_shopper)) -> CheckoutCardV1:
    session = ctx.begin_checkout()
    ctx.abandon_checkout()
    return _card(ctx, session)


def _complete_payment(ctx: ShopperContext, session: CheckoutSession) -> None:
    pending = ctx.pending_payment
    if pending is None:
        raise PaymentNotConfirmedError("No payment is in progress")

    try:
        reference = ctx.payments.complete(session, pending)
    finally:
        ctx.pending_payment = None

    ctx.record(
        EntityTypeV1.CHECKOUT,
        session.session_id,
        EventTypeV1.PAYMENT_CONFIRMED,
        {"payment_reference": reference, "gateway_order_id": pending.order.gateway_order_id},
    )


def _card(
    ctx: ShopperContext,
    session: CheckoutSession,
    *,
    order: Order | None = None,
    warnings: list[str] | None = None,
) -> CheckoutCardV1:
    stage = _STAGES[session.state]
    order = order or session.order
    warnings = list(warnings or [])
    if ctx.gateway_mode is GatewayMode.OFFLINE:
        warnings.append("Offline mode: orders are simulated and will not be fulfilled")

    cart = ctx.cart.snapshot()
    currency = ctx.payments.currency
    total = order.total if order is not None else cart.total

    body: dict = {"address_id": session.address_id}
    actions: list[CheckoutActionV1] = []

    if stage is CheckoutStageV1.ADDRESS:
        body["addresses"] = [a.model_dump() for a in ctx.addresses.addresses]
        default = ctx.addresses.default()
        body["suggested_address_id"] = default.id if default is not None else None
        actions.append(
            CheckoutActionV1(type=CheckoutActionTypeV1.SELECT_ADDRESS, label="Continue")
        )
    elif stage is CheckoutStageV1.PAYMENT:
        body["payment_method"] = session.payment_method.value if session.payment_method else None
        if ctx.pending_payment is not None:
            body["payment_order"] = {
                "gateway_order_id": ctx.pending_payment.order.gateway_order_id,
                "amount": ctx.pending_payment.order.amount,
                "currency": ctx.pending_payment.order.currency,
            }
        actions.append(
            CheckoutActionV1(
                type=CheckoutActionTypeV1.PAY, label=f"Pay {format_money(total, currency)}"
            )
        )
    elif stage is CheckoutStageV1.CONFIRMATION:
        body["payment_method"] = session.payment_method.value if session.payment_method else None
        body["payment_reference"] = session.payment_reference
        body["cart"] = cart.model_dump()
        actions.append(CheckoutActionV1(type=CheckoutActionTypeV1.PLACE_ORDER, label="Place Order"))
    elif stage is CheckoutStageV1.DONE and order is not None:
        body["order"] = order.model_dump(mode="json")
    elif stage is CheckoutStageV1.ABANDONED:
        actions.append(
            CheckoutActionV1(type=CheckoutActionTypeV1.RESUME, label="Back to checkout")
        )

    return CheckoutCardV1(
        stage=stage,
        title=_TITLES[stage],
        summary=_summary(stage, order),
        shopper_id=ctx.shopper_id,
        checkout_id=session.session_id,
        gateway_mode=ctx.gateway_mode.value,
        total=total,
        total_display=format_money(total, currency),
        body=body,
        actions=actions,
        warnings=warnings,
    )


def _summary(stage: CheckoutStageV1, order: Order | None) -> str:
    if stage is CheckoutStageV1.DONE and order is not None:
        return f"Order {order.order_number} has been placed"
    if stage is CheckoutStageV1.ABANDONED:
        return "Your cart has been kept"
    if stage is CheckoutStageV1.ADDRESS:
        return "Choose where we should deliver your order"
    if stage is CheckoutStageV1.PAYMENT:
        return "Choose how you would like to pay"
    return "Check your order before placing it"
