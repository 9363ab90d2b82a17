from __future__ import annotations

import os

from fastapi import APIRouter, Depends
from services.checkout.app.deps import get_shopper
from services.checkout.app.models.cart import (
    AddItemRequest,
    ApplyCouponRequest,
    Cart,
    CartView,
    UpdateQuantityRequest,
    Variant,
)
from services.checkout.app.money import format_money
from services.checkout.app.routers.http_errors import raise_checkout_http_error
from services.checkout.app.sessions import ShopperContext

router = APIRouter()


def cart_view(ctx: ShopperContext, cart: Cart | None = None) -> CartView:
    cart = cart if cart is not None else ctx.cart.snapshot()
    currency = os.getenv("STOREFRONT_CURRENCY", "INR").strip().upper()
    return CartView(
        cart=cart,
        currency=currency,
        display={
            "subtotal": format_money(cart.subtotal, currency),
            "discount": f"-{format_money(cart.discount, currency)}" if cart.discount else "",
            "shipping": format_money(cart.shipping, currency) if cart.shipping else "Free",
            "total": format_money(cart.total, currency),
        },
        synced=ctx.cart.synced,
    )


@router.get("/v1/cart", response_model=CartView)
def get_cart(ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    return cart_view(ctx)


@router.post("/v1/cart/items", response_model=CartView)
def add_item(payload: AddItemRequest, ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    try:
        cart = ctx.cart.add_item(
            payload.product,
            payload.quantity,
            Variant(size=payload.size, color=payload.color),
        )
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.put("/v1/cart/items/{item_id}", response_model=CartView)
def update_item(
    item_id: str, payload: UpdateQuantityRequest, ctx: ShopperContext = Depends(get_shopper)
) -> CartView:
    try:
        cart = ctx.cart.update_quantity(item_id, payload.quantity)
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.delete("/v1/cart/items/{item_id}", response_model=CartView)
def remove_item(item_id: str, ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    try:
        cart = ctx.cart.remove_item(item_id)
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.delete("/v1/cart", response_model=CartView)
def clear_cart(ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    try:
        cart = ctx.cart.clear_cart()
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.post("/v1/cart/coupon", response_model=CartView)
def apply_coupon(
    payload: ApplyCouponRequest, ctx: ShopperContext = Depends(get_shopper)
) -> CartView:
    try:
        cart = ctx.cart.apply_coupon(payload.code)
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.delete("/v1/cart/coupon", response_model=CartView)
def remove_coupon(ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    try:
        cart = ctx.cart.remove_coupon()
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)


@router.post("/v1/cart/refresh", response_model=CartView)
def refresh_cart(ctx: ShopperContext = Depends(get_shopper)) -> CartView:
    try:
        cart = ctx.cart.refresh_cart()
    except Exception as e:
        raise_checkout_http_error(e)
    return cart_view(ctx, cart)
