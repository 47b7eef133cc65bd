"""Persistence adapter for charges and their payment-method records."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import joinedload, selectinload

from syspay.services.auth.models import User
from syspay.services.charges.models import Charge
from syspay.services.charges.schemas import ChargeFilters
from syspay.services.charges.state_machine import ChargeStatus


def _with_details():
    return (
        selectinload(Charge.pix_data),
        selectinload(Charge.credit_card_data),
        selectinload(Charge.boleto_data),
        joinedload(Charge.user).load_only(User.id, User.name, User.email),
    )


class ChargeRepository:
    """Queries always eager-load the sub-record and the owner projection."""

    def get(self, db, charge_id: str) -> Charge | None:
        return db.execute(
            select(Charge).options(*_with_details()).where(Charge.id == charge_id)
        ).scalar_one_or_none()

    def find_by_idempotency_key(self, db, idempotency_key: str) -> Charge | None:
        return db.execute(
            select(Charge).where(Charge.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def list(self, db, filters: ChargeFilters) -> list[Charge]:
        stmt = select(Charge).options(*_with_details())
        if filters.user_id is not None:
            stmt = stmt.where(Charge.user_id == filters.user_id)
        if filters.status is not None:
            stmt = stmt.where(Charge.status == filters.status)
        if filters.payment_method is not None:
            stmt = stmt.where(Charge.payment_method == filters.payment_method)
        stmt = stmt.order_by(Charge.created_at.desc(), Charge.id.desc())
        if filters.offset:
            stmt = stmt.offset(filters.offset)
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)
        return list(db.execute(stmt).scalars().unique().all())

    def add(self, db, charge: Charge) -> Charge:
        """Stage a charge together with its attached sub-record."""

        db.add(charge)
        db.flush()
        return charge

    def set_status(self, db, charge: Charge, status: ChargeStatus, paid_at: datetime | None = None) -> Charge:
        charge.status = status
        if paid_at is not None:
            charge.paid_at = paid_at
        db.flush()
        return charge
