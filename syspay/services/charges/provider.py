"""Payment provider seam.

`ChargeService` asks a provider for the customer-facing payment artifacts
(PIX QR/EMV payloads, boleto barcode and URL). `MockPaymentProvider` fabricates
plausible values locally; a real integration implements the same protocol.
"""

import secrets
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import uuid4

# Boleto due-date factor counts days from this base; it wrapped back to 1000
# on 2025-02-22 once it reached 9999.
_BOLETO_FACTOR_BASE = date(1997, 10, 7)


@dataclass(frozen=True)
class PixCodes:
    qr_code: str
    emv_code: str


@dataclass(frozen=True)
class BoletoCodes:
    barcode: str
    digitable_line: str
    boleto_url: str


class PaymentProvider(Protocol):
    def pix_codes(self, charge_id: str, amount: Decimal, expires_at: datetime) -> PixCodes: ...

    def boleto_codes(self, charge_id: str, amount: Decimal, due_date: datetime) -> BoletoCodes: ...


def mod10(digits: str) -> int:
    """Check digit used on each digitable-line block."""

    total = 0
    weight = 2
    for digit in reversed(digits):
        product = int(digit) * weight
        total += product // 10 + product % 10
        weight = 1 if weight == 2 else 2
    return (10 - total % 10) % 10


def mod11(digits: str) -> int:
    """General barcode check digit (weights 2..9 from the right)."""

    total = 0
    weight = 2
    for digit in reversed(digits):
        total += int(digit) * weight
        weight = 2 if weight == 9 else weight + 1
    check = 11 - total % 11
    return 1 if check in (0, 10, 11) else check


def due_date_factor(due: date) -> int:
    days = (due - _BOLETO_FACTOR_BASE).days
    if days <= 9999:
        return max(days, 0)
    return (days - 10000) % 9000 + 1000


def build_boleto_barcode(bank_code: str, amount: Decimal, due: date, free_field: str) -> str:
    """Assemble the 44-digit boleto barcode with its general check digit."""

    cents = int((Decimal(amount) * 100).to_integral_value())
    amount_field = f"{cents:010d}" if cents < 10**10 else "0" * 10
    body = f"{bank_code}9{due_date_factor(due):04d}{amount_field}{free_field}"
    return body[:4] + str(mod11(body)) + body[4:]


def digitable_line_for(barcode: str) -> str:
    """Human-typable line derived from the barcode."""

    block1 = barcode[0:4] + barcode[19:24]
    block2 = barcode[24:34]
    block3 = barcode[34:44]
    block1 += str(mod10(block1))
    block2 += str(mod10(block2))
    block3 += str(mod10(block3))
    return (
        f"{block1[:5]}.{block1[5:]} {block2[:5]}.{block2[5:]} "
        f"{block3[:5]}.{block3[5:]} {barcode[4]} {barcode[5:19]}"
    )


class MockPaymentProvider:
    """Stand-in provider producing random, well-formed artifacts."""

    def __init__(self, bank_code: str = "237", boleto_base_url: str = "https://boleto.example.com") -> None:
        self.bank_code = bank_code
        self.boleto_base_url = boleto_base_url.rstrip("/")

    def pix_codes(self, charge_id: str, amount: Decimal, expires_at: datetime) -> PixCodes:
        txid = uuid4()
        return PixCodes(
            qr_code=f"00020126580014br.gov.bcb.pix0136{txid}520400005303986",
            emv_code=f"00020126580014br.gov.bcb.pix0136{txid}5204000053039865802BR",
        )

    def boleto_codes(self, charge_id: str, amount: Decimal, due_date: datetime) -> BoletoCodes:
        free_field = "".join(str(secrets.randbelow(10)) for _ in range(25))
        barcode = build_boleto_barcode(self.bank_code, amount, due_date.date(), free_field)
        return BoletoCodes(
            barcode=barcode,
            digitable_line=digitable_line_for(barcode),
            boleto_url=f"{self.boleto_base_url}/{uuid4()}",
        )
