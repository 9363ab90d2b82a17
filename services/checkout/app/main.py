"""Storefront checkout service entrypoint."""

import logging
import os

from fastapi import FastAPI

from services.checkout.app.db.database import get_sessionmaker
from services.checkout.app.db.init_db import init_db
from services.checkout.app.routers.addresses import router as addresses_router
from services.checkout.app.routers.audit import router as audit_router
from services.checkout.app.routers.cart import router as cart_router
from services.checkout.app.routers.checkout import router as checkout_router
from services.checkout.app.routers.sessions import router as sessions_router
from services.checkout.app.sessions import ShopperRegistry

logging.basicConfig(
    level=os.getenv("STOREFRONT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Storefront Checkout API")

app.include_router(sessions_router)
app.include_router(cart_router)
app.include_router(addresses_router)
app.include_router(checkout_router)
app.include_router(audit_router)


@app.on_event("startup")
def _startup() -> None:
    init_db()
    app.state.shoppers = ShopperRegistry(get_sessionmaker())


@app.on_event("shutdown")
def _shutdown() -> None:
    registry = getattr(app.state, "shoppers", None)
    if registry is not None:
        registry.close_all()


@app.get("/health")
def health() -> dict:
    return {
        "status": "ok",
        "gateway": os.getenv("STOREFRONT_GATEWAY", "simulated").strip().lower(),
    }
