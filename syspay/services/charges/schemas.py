"""API request/response schemas for charge endpoints."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from pydantic import ConfigDict, Field

from syspay.common.schemas import CamelModel, Money, UtcDateTime
from syspay.services.charges.models import Currency, PaymentMethod
from syspay.services.charges.state_machine import ChargeStatus


class PixDataIn(CamelModel):
    model_config = ConfigDict(extra="forbid")

    pix_key: str | None = Field(default=None, max_length=255)
    expires_at: UtcDateTime


class CreditCardDataIn(CamelModel):
    model_config = ConfigDict(extra="forbid")

    card_holder_name: str = Field(min_length=1, max_length=255)
    card_token: str = Field(min_length=1, max_length=255)
    card_last_digits: str = Field(pattern=r"^\d{4}$")
    card_brand: str = Field(min_length=1, max_length=32)
    installments: int = Field(default=1, ge=1)


class BoletoDataIn(CamelModel):
    model_config = ConfigDict(extra="forbid")

    due_date: UtcDateTime


class ChargeCreateRequest(CamelModel):
    """Payload accepted by `POST /charges`.

    Which sub-payload must be present depends on `payment_method`; that rule
    is enforced by the service, not here.
    """

    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: Currency = Currency.BRL
    payment_method: PaymentMethod
    user_id: UUID
    description: str | None = Field(default=None, max_length=500)
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=255)
    pix_data: PixDataIn | None = None
    credit_card_data: CreditCardDataIn | None = None
    boleto_data: BoletoDataIn | None = None


class ChargeStatusUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    status: ChargeStatus


@dataclass(frozen=True)
class ChargeFilters:
    """Exact-match AND filters for charge listing; None means no predicate."""

    user_id: str | None = None
    status: ChargeStatus | None = None
    payment_method: PaymentMethod | None = None
    limit: int | None = None
    offset: int = 0


class UserSummary(CamelModel):
    id: str
    name: str
    email: str


class PixDataOut(CamelModel):
    id: str
    pix_key: str | None = None
    expires_at: UtcDateTime
    qr_code: str
    emv_code: str
    created_at: UtcDateTime | None = None


class CreditCardDataOut(CamelModel):
    id: str
    card_holder_name: str
    card_last_digits: str
    card_brand: str
    installments: int
    installment_amount: Money
    created_at: UtcDateTime | None = None


class BoletoDataOut(CamelModel):
    id: str
    due_date: UtcDateTime
    barcode: str
    digitable_line: str
    boleto_url: str
    created_at: UtcDateTime | None = None


class ChargeResponse(CamelModel):
    """Charge joined with its payment-method record and owner projection."""

    id: str
    amount: Money
    currency: Currency
    payment_method: PaymentMethod
    status: ChargeStatus
    description: str | None = None
    idempotency_key: str | None = None
    user_id: str
    created_at: UtcDateTime | None = None
    updated_at: UtcDateTime | None = None
    paid_at: UtcDateTime | None = None
    expires_at: UtcDateTime | None = None
    pix_data: PixDataOut | None = None
    credit_card_data: CreditCardDataOut | None = None
    boleto_data: BoletoDataOut | None = None
    user: UserSummary | None = None
