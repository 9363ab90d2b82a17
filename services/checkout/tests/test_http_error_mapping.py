import pytest
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
    PaymentTimeoutError,
    ReconciliationRequiredError,
    SubmissionInFlightError,
)
from services.checkout.app.routers.http_errors import raise_checkout_http_error


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (InvalidQuantityError(0), 422, "invalid_quantity"),
        (ItemNotFoundError("x"), 404, "item_not_found"),
        (CouponInvalidError("NOPE", "not_found"), 422, "coupon_invalid"),
        (AddressMissingError(), 409, "address_missing"),
        (PaymentNotConfirmedError(), 402, "payment_not_confirmed"),
        (PaymentTimeoutError(300), 402, "payment_not_confirmed"),
        (SubmissionInFlightError("chk-1"), 409, "submission_in_flight"),
        (
            ReconciliationRequiredError("pay_1", "Stock changed", "help@x"),
            409,
            "reconciliation_required",
        ),
        (OrderRejectedError("Out of stock"), 422, "order_rejected"),
        (GatewayUnavailableError("GET /cart", "down"), 503, "gateway_unavailable"),
        (GatewayRequestError("GET /cart", 400, "bad"), 502, "gateway_error"),
    ],
)
def test_checkout_errors_map_to_statuses(exc: Exception, status: int, code: str) -> None:
    with pytest.raises(HTTPException) as excinfo:
        raise_checkout_http_error(exc)

    assert excinfo.value.status_code == status
    assert excinfo.value.detail["code"] == code
    assert excinfo.value.detail["message"]


def test_reconciliation_detail_forbids_retry() -> None:
    with pytest.raises(HTTPException) as excinfo:
        raise_checkout_http_error(ReconciliationRequiredError("pay_1", "boom", "help@x"))

    detail = excinfo.value.detail
    assert detail["retry"] is False
    assert detail["payment_reference"] == "pay_1"
    assert detail["support_contact"] == "help@x"


def test_unknown_error_is_500() -> None:
    with pytest.raises(HTTPException) as excinfo:
        raise_checkout_http_error(Exception("x"))

    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "Internal Server Error"
