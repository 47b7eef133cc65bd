"""Payment-method payload rules and derived values."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from syspay.common.errors import ValidationError
from syspay.services.charges.schemas import ChargeCreateRequest
from syspay.services.charges.validation import (
    expiration_for,
    installment_amount,
    validate_payment_method_data,
)

EXPIRES = "2030-01-01T12:00:00Z"
CARD = {
    "cardHolderName": "Ana Souza",
    "cardToken": "tok_123",
    "cardLastDigits": "4242",
    "cardBrand": "VISA",
    "installments": 3,
}


def _request(method: str, **payloads) -> ChargeCreateRequest:
    return ChargeCreateRequest.model_validate(
        {"amount": "100.00", "paymentMethod": method, "userId": str(uuid4()), **payloads}
    )


def test_matching_sub_payload_passes():
    validate_payment_method_data(_request("PIX", pixData={"expiresAt": EXPIRES}))
    validate_payment_method_data(_request("CREDIT_CARD", creditCardData=CARD))
    validate_payment_method_data(_request("BOLETO", boletoData={"dueDate": EXPIRES}))


def test_missing_sub_payload_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_payment_method_data(_request("CREDIT_CARD"))
    assert exc_info.value.message == "creditCardData required when paymentMethod=CREDIT_CARD"
    assert exc_info.value.errors[0]["code"] == "MISSING_PAYMENT_DATA"


def test_foreign_sub_payload_is_rejected():
    req = _request("PIX", pixData={"expiresAt": EXPIRES}, boletoData={"dueDate": EXPIRES})
    with pytest.raises(ValidationError) as exc_info:
        validate_payment_method_data(req)
    assert [e["field"] for e in exc_info.value.errors] == ["boletoData"]
    assert exc_info.value.errors[0]["code"] == "UNEXPECTED_PAYMENT_DATA"


def test_every_violation_is_reported():
    req = _request("BOLETO", pixData={"expiresAt": EXPIRES}, creditCardData=CARD)
    with pytest.raises(ValidationError) as exc_info:
        validate_payment_method_data(req)
    assert exc_info.value.message == "invalid payment method data"
    assert {e["field"] for e in exc_info.value.errors} == {"pixData", "creditCardData", "boletoData"}


def test_expiration_follows_payment_method():
    expected = datetime(2030, 1, 1, 12, tzinfo=timezone.utc)
    assert expiration_for(_request("PIX", pixData={"expiresAt": EXPIRES})) == expected
    assert expiration_for(_request("BOLETO", boletoData={"dueDate": EXPIRES})) == expected
    assert expiration_for(_request("CREDIT_CARD", creditCardData=CARD)) is None


@pytest.mark.parametrize(
    "amount, installments, expected",
    [
        ("100.00", 1, "100.00"),
        ("100.00", 3, "33.33"),
        ("0.25", 2, "0.12"),
        ("0.35", 2, "0.18"),
    ],
)
def test_installment_amount_uses_bankers_rounding(amount, installments, expected):
    assert installment_amount(Decimal(amount), installments) == Decimal(expected)


def test_installment_amount_rejects_zero_installments():
    with pytest.raises(ValidationError):
        installment_amount(Decimal("10.00"), 0)
