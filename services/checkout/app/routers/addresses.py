from __future__ import annotations

from fastapi import APIRouter, Depends
from services.checkout.app.deps import get_shopper
from services.checkout.app.models.checkout import Address, AddressInput
from services.checkout.app.routers.http_errors import raise_checkout_http_error
from services.checkout.app.sessions import ShopperContext

router = APIRouter()


@router.get("/v1/addresses", response_model=list[Address])
def list_addresses(ctx: ShopperContext = Depends(get_shopper)) -> list[Address]:
    try:
        return ctx.addresses.load(force=True)
    except Exception as e:
        raise_checkout_http_error(e)


@router.post("/v1/addresses", response_model=Address)
def create_address(payload: AddressInput, ctx: ShopperContext = Depends(get_shopper)) -> Address:
    try:
        ctx.addresses.load()
        return ctx.addresses.add(payload)
    except Exception as e:
        raise_checkout_http_error(e)


@router.put("/v1/addresses/{address_id}/default", response_model=Address)
def set_default_address(address_id: str, ctx: ShopperContext = Depends(get_shopper)) -> Address:
    try:
        ctx.addresses.load()
        return ctx.addresses.set_default(address_id)
    except Exception as e:
        raise_checkout_http_error(e)
