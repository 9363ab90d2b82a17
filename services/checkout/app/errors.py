from __future__ import annotations


class CheckoutError(Exception):
    """Base class for cart and checkout errors."""


class InvalidQuantityError(CheckoutError):
    def __init__(self, quantity: object) -> None:
        super().__init__(f"Quantity must be a positive integer, got {quantity!r}")
        self.quantity = quantity


class ItemNotFoundError(CheckoutError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Cart item not found: {item_id}")
        self.item_id = item_id


class CouponInvalidError(CheckoutError):
    def __init__(self, code: str, reason: str) -> None:
        super().__init__(f"Coupon {code!r} rejected: {reason}")
        self.code = code
        self.reason = reason


class AddressMissingError(CheckoutError):
    def __init__(self, detail: str = "Please select a delivery address") -> None:
        super().__init__(detail)


class GatewayError(CheckoutError):
    """Base class for remote commerce gateway failures."""


class GatewayUnavailableError(GatewayError):
    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"Commerce gateway unavailable ({endpoint}): {reason}")
        self.endpoint = endpoint
        self.reason = reason


class GatewayRequestError(GatewayError):
    """The gateway answered with a non-2xx status."""

    def __init__(self, endpoint: str, status: int, detail: str) -> None:
        super().__init__(f"Commerce gateway HTTP {status} ({endpoint}): {detail}")
        self.endpoint = endpoint
        self.status = status
        self.detail = detail


class PaymentNotConfirmedError(CheckoutError):
    def __init__(self, detail: str = "Payment has not been confirmed") -> None:
        super().__init__(detail)


class PaymentTimeoutError(PaymentNotConfirmedError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Payment was not confirmed within {timeout_s:g}s")
        self.timeout_s = timeout_s


class OrderRejectedError(CheckoutError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ReconciliationRequiredError(OrderRejectedError):
    """Payment was captured but the order was not created. Never retried automatically."""

    def __init__(self, payment_reference: str, detail: str, support_contact: str) -> None:
        super().__init__(
            f"Payment {payment_reference} was received but the order could not be created: "
            f"{detail}. Please contact {support_contact} and do not pay again."
        )
        self.payment_reference = payment_reference
        self.support_contact = support_contact


class SubmissionInFlightError(CheckoutError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"An order submission is already in progress for session {session_id}")
        self.session_id = session_id
