from __future__ import annotations

from fastapi import HTTPException
from services.checkout.app.errors import (
    AddressMissingError,
    CouponInvalidError,
    GatewayRequestError,
    GatewayUnavailableError,
    InvalidQuantityError,
    ItemNotFoundError,
    OrderRejectedError,
    PaymentNotConfirmedError,
    ReconciliationRequiredError,
    SubmissionInFlightError,
)


def raise_checkout_http_error(e: Exception) -> None:
    if isinstance(e, InvalidQuantityError):
        raise HTTPException(
            status_code=422, detail={"message": str(e), "code": "invalid_quantity"}
        ) from e

    if isinstance(e, ItemNotFoundError):
        raise HTTPException(
            status_code=404, detail={"message": str(e), "code": "item_not_found"}
        ) from e

    if isinstance(e, CouponInvalidError):
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "code": "coupon_invalid", "reason": e.reason},
        ) from e

    if isinstance(e, AddressMissingError):
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "code": "address_missing", "redirect_to": "/checkout"},
        ) from e

    if isinstance(e, PaymentNotConfirmedError):
        raise HTTPException(
            status_code=402,
            detail={
                "message": str(e),
                "code": "payment_not_confirmed",
                "redirect_to": "/checkout/payment",
            },
        ) from e

    if isinstance(e, SubmissionInFlightError):
        raise HTTPException(
            status_code=409, detail={"message": str(e), "code": "submission_in_flight"}
        ) from e

    if isinstance(e, ReconciliationRequiredError):
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "code": "reconciliation_required",
                "payment_reference": e.payment_reference,
                "support_contact": e.support_contact,
                "retry": False,
            },
        ) from e

    if isinstance(e, OrderRejectedError):
        raise HTTPException(
            status_code=422, detail={"message": str(e), "code": "order_rejected", "retry": True}
        ) from e

    if isinstance(e, GatewayUnavailableError):
        raise HTTPException(
            status_code=503,
            detail={"message": str(e), "code": "gateway_unavailable", "retry": True},
        ) from e

    if isinstance(e, GatewayRequestError):
        raise HTTPException(
            status_code=502, detail={"message": str(e), "code": "gateway_error", "retry": True}
        ) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e
