from __future__ import annotations

import os

from services.checkout.app.gateway.base import CommerceGateway
from services.checkout.app.gateway.fallback import FallbackGateway, FallbackListener
from services.checkout.app.gateway.simulated import SimulatedCommerceGateway

_TRUTHY = {"1", "true", "yes", "y"}


def get_commerce_gateway(on_fallback: FallbackListener | None = None) -> CommerceGateway:
    """Select a gateway based on env vars.

    Defaults to the simulated gateway so tests and local dev are deterministic unless
    explicitly configured otherwise. Each shopper session gets its own instance, so a
    fallback to simulated mode is scoped to that session.
    """

    mode = os.getenv("STOREFRONT_GATEWAY", "simulated").strip().lower()

    if mode == "simulated":
        return SimulatedCommerceGateway()

    if mode == "http":
        from services.checkout.app.gateway.http import HttpCommerceGateway

        primary = HttpCommerceGateway.from_env()
        if os.getenv("STOREFRONT_GATEWAY_FALLBACK", "true").strip().lower() not in _TRUTHY:
            return primary
        return FallbackGateway(primary, SimulatedCommerceGateway(), on_fallback=on_fallback)

    raise ValueError(f"Unknown STOREFRONT_GATEWAY={mode!r}. Expected simulated or http.")
