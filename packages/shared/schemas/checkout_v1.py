"""Shared checkout card payload schema (v1).

The storefront renders one card per checkout step: where the shopper is, what they can do
next, and any warning that needs their attention.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class CheckoutStageV1(str, Enum):
    ADDRESS = "ADDRESS"
    PAYMENT = "PAYMENT"
    CONFIRMATION = "CONFIRMATION"
    DONE = "DONE"
    ABANDONED = "ABANDONED"


class CheckoutActionTypeV1(str, Enum):
    SELECT_ADDRESS = "SELECT_ADDRESS"
    PAY = "PAY"
    PLACE_ORDER = "PLACE_ORDER"
    RESUME = "RESUME"


class CheckoutActionV1(BaseModel):
    type: CheckoutActionTypeV1
    label: str
    payload: dict[str, Any] = Field(default_factory=dict)


class CheckoutCardV1(BaseModel):
    version: str = "1"
    stage: CheckoutStageV1

    title: str
    summary: str

    shopper_id: str
    checkout_id: str
    # ONLINE or OFFLINE (simulated).
    gateway_mode: str

    total: int | None = None
    total_display: str | None = None

    # Stage-specific rendering payload.
    body: dict[str, Any] = Field(default_factory=dict)

    actions: list[CheckoutActionV1] = Field(default_factory=list, max_length=4)
    warnings: list[str] = Field(default_factory=list, max_length=8)
