from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ShippingPolicy:
    flat_fee: int = 99
    free_threshold: int = 2999

    @classmethod
    def from_env(cls) -> "ShippingPolicy":
        return cls(
            flat_fee=int(os.getenv("STOREFRONT_SHIPPING_FEE", "99")),
            free_threshold=int(os.getenv("STOREFRONT_FREE_SHIPPING_THRESHOLD", "2999")),
        )

    def quote(self, subtotal: int) -> int:
        # An empty cart never carries a shipping-only total.
        if subtotal <= 0 or subtotal >= self.free_threshold:
            return 0
        return self.flat_fee
