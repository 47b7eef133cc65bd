"""Boleto/PIX artifact generation by the mock provider."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from syspay.services.charges.provider import (
    MockPaymentProvider,
    build_boleto_barcode,
    digitable_line_for,
    due_date_factor,
    mod10,
    mod11,
)

# Published sample boleto: bank 001, R$ 1,00, factor 3737.
SAMPLE_BARCODE = "00193373700000001000500940144816060680935031"
SAMPLE_LINE = "00190.50095 40144.816069 06809.350314 3 37370000000100"


def test_check_digits_match_sample():
    assert mod10("001905009") == 5
    assert mod11(SAMPLE_BARCODE[:4] + SAMPLE_BARCODE[5:]) == 3


def test_barcode_and_digitable_line_match_sample():
    due = date(1997, 10, 7) + timedelta(days=3737)
    barcode = build_boleto_barcode("001", Decimal("1.00"), due, "0500940144816060680935031")
    assert barcode == SAMPLE_BARCODE
    assert digitable_line_for(barcode) == SAMPLE_LINE


def test_due_date_factor_wraps_after_9999():
    assert due_date_factor(date(2000, 7, 3)) == 1000
    assert due_date_factor(date(2025, 2, 21)) == 9999
    assert due_date_factor(date(2025, 2, 22)) == 1000


def test_mock_boleto_codes_are_well_formed():
    provider = MockPaymentProvider(bank_code="237", boleto_base_url="https://boleto.example.com/")
    codes = provider.boleto_codes("c1", Decimal("250.75"), datetime(2030, 1, 15, tzinfo=timezone.utc))

    assert len(codes.barcode) == 44 and codes.barcode.isdigit()
    assert codes.barcode.startswith("2379")
    assert codes.barcode[9:19] == "0000025075"
    assert int(codes.barcode[4]) == mod11(codes.barcode[:4] + codes.barcode[5:])
    assert codes.digitable_line == digitable_line_for(codes.barcode)
    assert codes.boleto_url.startswith("https://boleto.example.com/")
    assert "//" not in codes.boleto_url.removeprefix("https://")


def test_mock_pix_codes_are_unique():
    provider = MockPaymentProvider()
    expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
    first = provider.pix_codes("c1", Decimal("10.00"), expires)
    second = provider.pix_codes("c1", Decimal("10.00"), expires)

    assert first.qr_code != second.qr_code
    assert first.emv_code.startswith("000201")
    assert "br.gov.bcb.pix" in first.emv_code
