"""Charge database models.

A charge owns exactly one payment-method record (PIX, credit card or boleto),
written in the same transaction as the charge row.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from syspay.common.db import Base, utcnow
from syspay.services.auth.models import User
from syspay.services.charges.state_machine import INITIAL_STATUS, ChargeStatus


class PaymentMethod(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    BOLETO = "BOLETO"


class Currency(str, Enum):
    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"


def _enum_column(enum_cls: type[Enum], name: str) -> SAEnum:
    # VARCHAR storage keeps migrations portable between SQLite and Postgres.
    return SAEnum(enum_cls, name=name, native_enum=False, length=16, validate_strings=True)


class Charge(Base):
    """One payment obligation owned by a user."""

    __tablename__ = "charges"
    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_charges_idempotency_key"),
        CheckConstraint("amount > 0", name="ck_charges_amount_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[Currency] = mapped_column(_enum_column(Currency, "currency"), default=Currency.BRL)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        _enum_column(PaymentMethod, "payment_method"), index=True
    )
    status: Mapped[ChargeStatus] = mapped_column(
        _enum_column(ChargeStatus, "charge_status"), default=INITIAL_STATUS, index=True
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship()
    pix_data: Mapped[Optional["PixData"]] = relationship(
        back_populates="charge", uselist=False, cascade="all, delete-orphan"
    )
    credit_card_data: Mapped[Optional["CreditCardData"]] = relationship(
        back_populates="charge", uselist=False, cascade="all, delete-orphan"
    )
    boleto_data: Mapped[Optional["BoletoData"]] = relationship(
        back_populates="charge", uselist=False, cascade="all, delete-orphan"
    )


class PixData(Base):
    __tablename__ = "pix_data"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    charge_id: Mapped[str] = mapped_column(ForeignKey("charges.id", ondelete="CASCADE"), unique=True)
    pix_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    qr_code: Mapped[str] = mapped_column(Text)
    emv_code: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    charge: Mapped[Charge] = relationship(back_populates="pix_data")


class CreditCardData(Base):
    __tablename__ = "credit_card_data"
    __table_args__ = (CheckConstraint("installments >= 1", name="ck_credit_card_data_installments"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    charge_id: Mapped[str] = mapped_column(ForeignKey("charges.id", ondelete="CASCADE"), unique=True)
    card_holder_name: Mapped[str] = mapped_column(String(255))
    card_last_digits: Mapped[str] = mapped_column(String(4))
    card_brand: Mapped[str] = mapped_column(String(32))
    installments: Mapped[int] = mapped_column(Integer, default=1)
    installment_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    card_token: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    charge: Mapped[Charge] = relationship(back_populates="credit_card_data")


class BoletoData(Base):
    __tablename__ = "boleto_data"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    charge_id: Mapped[str] = mapped_column(ForeignKey("charges.id", ondelete="CASCADE"), unique=True)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    barcode: Mapped[str] = mapped_column(String(64))
    digitable_line: Mapped[str] = mapped_column(String(64))
    boleto_url: Mapped[str] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    charge: Mapped[Charge] = relationship(back_populates="boleto_data")
