"""Shared event schema (v1).

The checkout service stores an append-only event log per shopper session. Support tooling
reads it to tell simulated (offline) checkouts from real ones.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    SHOPPER_SESSION = "ShopperSession"
    CART = "Cart"
    CHECKOUT = "Checkout"
    GATEWAY = "Gateway"
    ORDER = "Order"


class EventTypeV1(str, Enum):
    SESSION_OPENED = "SESSION_OPENED"
    SESSION_CLOSED = "SESSION_CLOSED"
    FALLBACK_ACTIVATED = "FALLBACK_ACTIVATED"
    CART_SYNC_FAILED = "CART_SYNC_FAILED"
    COUPON_APPLIED = "COUPON_APPLIED"
    COUPON_REJECTED = "COUPON_REJECTED"
    COUPON_DROPPED = "COUPON_DROPPED"
    CHECKOUT_STAGE_CHANGED = "CHECKOUT_STAGE_CHANGED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    ORDER_SUBMITTED = "ORDER_SUBMITTED"
    ORDER_FAILED = "ORDER_FAILED"


class EventV1(BaseModel):
    id: str
    shopper_id: str

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
