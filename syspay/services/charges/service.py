"""Charge orchestration: creation, reads and status transitions.

Creation is idempotent per `idempotency_key`: a lookup rejects known keys
early, and the unique constraint on the column rejects whatever races past
that lookup. Both paths surface the same conflict error.
"""

from typing import Protocol
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from syspay.common.config import settings
from syspay.common.db import UNIQUE_VIOLATION, classify_integrity_error, utcnow
from syspay.common.errors import ConflictError, NotFoundError
from syspay.common.logging import charge_id_ctx, logger
from syspay.common.metrics import (
    charge_status_transitions_total,
    charges_created_total,
    idempotency_conflicts_total,
)
from syspay.services.charges.models import BoletoData, Charge, CreditCardData, PaymentMethod, PixData
from syspay.services.charges.provider import MockPaymentProvider, PaymentProvider
from syspay.services.charges.repository import ChargeRepository
from syspay.services.charges.schemas import ChargeCreateRequest, ChargeFilters, ChargeResponse
from syspay.services.charges.state_machine import INITIAL_STATUS, ChargeStatus, validate_transition
from syspay.services.charges.validation import (
    expiration_for,
    installment_amount,
    validate_payment_method_data,
)

IDEMPOTENCY_CONSTRAINT = "uq_charges_idempotency_key"


class UserDirectory(Protocol):
    def get_user(self, user_id: str): ...


def _duplicate_key_error() -> ConflictError:
    return ConflictError(
        "duplicate idempotency key",
        errors=[
            {
                "field": "idempotencyKey",
                "message": "idempotency key already used",
                "code": "DUPLICATE_IDEMPOTENCY_KEY",
            }
        ],
    )


def _is_idempotency_violation(exc: IntegrityError) -> bool:
    kind, column = classify_integrity_error(exc)
    return kind == UNIQUE_VIOLATION and (
        column == "idempotency_key" or IDEMPOTENCY_CONSTRAINT in str(exc.orig)
    )


class ChargeService:
    """Owns charge creation and the status state machine."""

    def __init__(
        self,
        session_factory,
        users: UserDirectory,
        provider: PaymentProvider | None = None,
        repository: ChargeRepository | None = None,
        service_name: str = settings.service_name,
    ) -> None:
        self.session_factory = session_factory
        self.users = users
        self.provider = provider or MockPaymentProvider()
        self.repository = repository or ChargeRepository()
        self.service_name = service_name

    def _build_charge(self, req: ChargeCreateRequest, user_id: str) -> Charge:
        charge = Charge(
            id=str(uuid4()),
            amount=req.amount,
            currency=req.currency,
            payment_method=req.payment_method,
            status=INITIAL_STATUS,
            description=req.description,
            idempotency_key=req.idempotency_key,
            user_id=user_id,
            expires_at=expiration_for(req),
        )
        if req.payment_method == PaymentMethod.PIX:
            codes = self.provider.pix_codes(charge.id, req.amount, req.pix_data.expires_at)
            charge.pix_data = PixData(
                pix_key=req.pix_data.pix_key,
                expires_at=req.pix_data.expires_at,
                qr_code=codes.qr_code,
                emv_code=codes.emv_code,
            )
        elif req.payment_method == PaymentMethod.CREDIT_CARD:
            card = req.credit_card_data
            charge.credit_card_data = CreditCardData(
                card_holder_name=card.card_holder_name,
                card_last_digits=card.card_last_digits,
                card_brand=card.card_brand,
                installments=card.installments,
                installment_amount=installment_amount(req.amount, card.installments),
                card_token=card.card_token,
            )
        else:
            codes = self.provider.boleto_codes(charge.id, req.amount, req.boleto_data.due_date)
            charge.boleto_data = BoletoData(
                due_date=req.boleto_data.due_date,
                barcode=codes.barcode,
                digitable_line=codes.digitable_line,
                boleto_url=codes.boleto_url,
            )
        return charge

    def create(self, req: ChargeCreateRequest) -> ChargeResponse:
        """Validate, persist charge + sub-record in one transaction, return it joined."""

        user_id = str(req.user_id)
        if self.users.get_user(user_id) is None:
            raise NotFoundError("user")

        with self.session_factory() as db:
            if req.idempotency_key and self.repository.find_by_idempotency_key(db, req.idempotency_key):
                idempotency_conflicts_total.labels(service=self.service_name, stage="lookup").inc()
                raise _duplicate_key_error()

            validate_payment_method_data(req)
            charge = self._build_charge(req, user_id)
            try:
                self.repository.add(db, charge)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if _is_idempotency_violation(exc):
                    idempotency_conflicts_total.labels(service=self.service_name, stage="insert").inc()
                    logger.info("idempotency key raced past lookup key=%s", req.idempotency_key)
                    raise _duplicate_key_error() from exc
                raise

            charge_id_ctx.set(charge.id)
            charges_created_total.labels(
                service=self.service_name, payment_method=charge.payment_method.value
            ).inc()
            logger.info("charge created charge_id=%s method=%s", charge.id, charge.payment_method.value)
            return self._load_response(db, charge.id)

    def _load_response(self, db, charge_id: str) -> ChargeResponse:
        charge = self.repository.get(db, charge_id)
        if charge is None:
            raise NotFoundError("charge")
        return ChargeResponse.model_validate(charge)

    def find_all(self, filters: ChargeFilters) -> list[ChargeResponse]:
        """Newest first; every absent filter is simply not applied."""

        with self.session_factory() as db:
            return [ChargeResponse.model_validate(c) for c in self.repository.list(db, filters)]

    def find_one(self, charge_id: str) -> ChargeResponse:
        """Ownership is the caller's concern."""

        with self.session_factory() as db:
            return self._load_response(db, charge_id)

    def update_status(self, charge_id: str, new_status: ChargeStatus) -> ChargeResponse:
        """Apply one validated transition; entering PAID stamps `paid_at`."""

        new_status = ChargeStatus(new_status)
        with self.session_factory() as db:
            charge = self.repository.get(db, charge_id)
            if charge is None:
                raise NotFoundError("charge")
            charge_id_ctx.set(charge.id)
            from_status = ChargeStatus(charge.status)
            validate_transition(from_status, new_status)

            paid_at = utcnow() if new_status == ChargeStatus.PAID else None
            self.repository.set_status(db, charge, new_status, paid_at=paid_at)
            db.commit()

            charge_status_transitions_total.labels(
                service=self.service_name,
                from_status=from_status.value,
                to_status=new_status.value,
            ).inc()
            logger.info(
                "charge status changed charge_id=%s from=%s to=%s", charge.id, from_status.value, new_status.value
            )
            return ChargeResponse.model_validate(charge)
