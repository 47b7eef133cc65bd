"""Payment-method payload rules and derived charge fields."""

from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal

from syspay.common.errors import ValidationError
from syspay.services.charges.models import PaymentMethod
from syspay.services.charges.schemas import ChargeCreateRequest

# payment method -> (python attribute, wire field)
SUB_PAYLOADS: dict[PaymentMethod, tuple[str, str]] = {
    PaymentMethod.PIX: ("pix_data", "pixData"),
    PaymentMethod.CREDIT_CARD: ("credit_card_data", "creditCardData"),
    PaymentMethod.BOLETO: ("boleto_data", "boletoData"),
}

CENTS = Decimal("0.01")


def validate_payment_method_data(req: ChargeCreateRequest) -> None:
    """Require the sub-payload matching `payment_method` and reject the others.

    Every violation is reported, one error entry per field.
    """

    method = PaymentMethod(req.payment_method)
    errors = []
    for candidate, (attr, field) in SUB_PAYLOADS.items():
        present = getattr(req, attr) is not None
        if candidate is method and not present:
            errors.append(
                {
                    "field": field,
                    "message": f"{field} required when paymentMethod={method.value}",
                    "code": "MISSING_PAYMENT_DATA",
                }
            )
        elif candidate is not method and present:
            errors.append(
                {
                    "field": field,
                    "message": f"{field} not allowed when paymentMethod={method.value}",
                    "code": "UNEXPECTED_PAYMENT_DATA",
                }
            )
    if errors:
        message = errors[0]["message"] if len(errors) == 1 else "invalid payment method data"
        raise ValidationError(message, errors=errors)


def expiration_for(req: ChargeCreateRequest) -> datetime | None:
    """PIX expires with its QR code, boleto on its due date, cards never."""

    if req.payment_method == PaymentMethod.PIX and req.pix_data is not None:
        return req.pix_data.expires_at
    if req.payment_method == PaymentMethod.BOLETO and req.boleto_data is not None:
        return req.boleto_data.due_date
    return None


def installment_amount(amount: Decimal, installments: int = 1) -> Decimal:
    """Per-installment value, banker's rounding to cents."""

    if installments < 1:
        raise ValidationError(
            "installments must be at least 1",
            errors=[{"field": "creditCardData.installments", "message": "must be at least 1"}],
        )
    return (Decimal(amount) / Decimal(installments)).quantize(CENTS, rounding=ROUND_HALF_EVEN)
