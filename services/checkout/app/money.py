"""Integer money helpers.

Amounts are always ints in the catalog's unit. Floats never enter a price calculation.
"""

from __future__ import annotations

from collections.abc import Iterable

from services.checkout.app.errors import InvalidQuantityError

_CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

# Payment gateways charge in the currency subunit (paise for INR).
GATEWAY_SUBUNITS = 100


def _require_int(value: object, what: str) -> int:
    # bool is an int subclass; True must not price as 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an int, got {type(value).__name__}")
    return value


def validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity)
    return quantity


def line_total(unit_price: int, quantity: int) -> int:
    unit_price = _require_int(unit_price, "unit_price")
    quantity = _require_int(quantity, "quantity")
    if unit_price < 0:
        raise ValueError(f"unit_price must not be negative, got {unit_price}")
    return unit_price * quantity


def sum_minor(values: Iterable[int]) -> int:
    return sum(_require_int(v, "amount") for v in values)


def percent_of(amount: int, percent: int) -> int:
    """round(amount * percent / 100), half-up, without leaving integer arithmetic."""

    amount = _require_int(amount, "amount")
    percent = _require_int(percent, "percent")
    return (amount * percent + 50) // 100


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def to_gateway_amount(amount: int) -> int:
    return _require_int(amount, "amount") * GATEWAY_SUBUNITS


def _group_digits(digits: str, *, indian: bool) -> str:
    if len(digits) <= 3:
        return digits

    head, tail = digits[:-3], digits[-3:]
    size = 2 if indian else 3
    groups: list[str] = []
    while head:
        groups.insert(0, head[-size:])
        head = head[:-size]
    return ",".join([*groups, tail])


def format_money(amount: int, currency: str = "INR") -> str:
    """Display string in whole units, e.g. 13997 -> '₹13,997'."""

    amount = _require_int(amount, "amount")
    currency = currency.upper()
    symbol = _CURRENCY_SYMBOLS.get(currency, f"{currency} ")

    sign = "-" if amount < 0 else ""
    grouped = _group_digits(str(abs(amount)), indian=currency == "INR")
    return f"{sign}{symbol}{grouped}"
