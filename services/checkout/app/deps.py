from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from services.checkout.app.sessions import ShopperContext, ShopperRegistry


def get_registry(request: Request) -> ShopperRegistry:
    registry = getattr(request.app.state, "shoppers", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Shopper registry not initialised")
    return registry


def get_shopper(
    x_shopper_session: str = Header(...),
    registry: ShopperRegistry = Depends(get_registry),
) -> ShopperContext:
    ctx = registry.get(x_shopper_session)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Shopper session not found")
    return ctx
