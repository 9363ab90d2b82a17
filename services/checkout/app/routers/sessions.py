from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from services.checkout.app.deps import get_registry
from services.checkout.app.models.cart import CartView
from services.checkout.app.routers.cart import cart_view
from services.checkout.app.sessions import ShopperRegistry

router = APIRouter()


class ShopperSessionOut(BaseModel):
    shopper_id: str
    gateway_mode: str
    cart: CartView


@router.post("/v1/sessions", response_model=ShopperSessionOut)
def open_session(registry: ShopperRegistry = Depends(get_registry)) -> ShopperSessionOut:
    ctx = registry.open()
    return ShopperSessionOut(
        shopper_id=ctx.shopper_id,
        gateway_mode=ctx.gateway_mode.value,
        cart=cart_view(ctx),
    )


@router.delete("/v1/sessions/{shopper_id}", status_code=204)
def close_session(shopper_id: str, registry: ShopperRegistry = Depends(get_registry)) -> Response:
    if not registry.close(shopper_id):
        raise HTTPException(status_code=404, detail="Shopper session not found")
    return Response(status_code=204)
