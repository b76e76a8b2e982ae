from __future__ import annotations

from decimal import Decimal

import pytest

from carddemo.decimals import DecimalPolicy
from carddemo.validation import (
    FieldFormat,
    ValidationResult,
    luhn_checksum_ok,
    validate_account_id,
    validate_card_number,
    validate_currency,
    validate_date_field,
    validate_field,
    validate_numeric_field,
    validate_required,
    validate_transaction_type,
)

VALID_CARD = "4111111111111111"


def test_required_field():
    assert validate_required("x") is ValidationResult.VALID
    assert validate_required("   ") is ValidationResult.BLANK_FIELD
    assert validate_required(None) is ValidationResult.BLANK_FIELD


def test_numeric_field_exact_length():
    assert validate_numeric_field("12345", 5) is True
    assert validate_numeric_field("1234", 5) is False
    assert validate_numeric_field("12a45", 5) is False


def test_field_format_max_length_and_allowed_values():
    fmt = FieldFormat("source", 4, allowed=frozenset({"POS", "WEB"}))
    assert validate_field("POS", fmt) is ValidationResult.VALID
    assert validate_field("ATM", fmt) is ValidationResult.INVALID_VALUE
    assert validate_field("KIOSK", fmt) is ValidationResult.INVALID_LENGTH


def test_optional_field_may_be_blank():
    fmt = FieldFormat("merchant_zip", 10, required=False)
    assert validate_field(None, fmt) is ValidationResult.VALID


def test_field_format_render_pads_and_truncates():
    assert FieldFormat("type_code", 4).render("AB") == "AB  "
    assert FieldFormat("category", 4, pad="left", fill="0").render("7") == "0007"
    assert FieldFormat("name", 3).render("ABCDEF") == "ABC"
    assert FieldFormat("name", 3).render(None) == "   "


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("12345678901", ValidationResult.VALID),
        ("00000000000", ValidationResult.INVALID_RANGE),
        ("1234567890", ValidationResult.INVALID_LENGTH),
        ("1234567890A", ValidationResult.INVALID_FORMAT),
        ("", ValidationResult.BLANK_FIELD),
    ],
)
def test_account_id(value, expected):
    assert validate_account_id(value) is expected


def test_card_number_luhn():
    assert luhn_checksum_ok(VALID_CARD) is True
    assert luhn_checksum_ok("4111111111111112") is False
    assert validate_card_number(VALID_CARD) is ValidationResult.VALID
    assert validate_card_number("4111111111111112") is ValidationResult.INVALID_FORMAT
    assert validate_card_number("4111111111111112", check_luhn=False) is ValidationResult.VALID
    assert validate_card_number("411111111111") is ValidationResult.INVALID_LENGTH


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("20240229", ValidationResult.VALID),
        ("19991231", ValidationResult.VALID),
        ("20230229", ValidationResult.INVALID_DATE),
        ("21000101", ValidationResult.INVALID_RANGE),
        ("2024011", ValidationResult.INVALID_LENGTH),
    ],
)
def test_date_field(value, expected):
    assert validate_date_field(value) is expected


def test_currency():
    assert validate_currency(Decimal("100.50")) is ValidationResult.VALID
    assert validate_currency(Decimal("100.505")) is ValidationResult.INVALID_FORMAT
    assert validate_currency(Decimal("100.505"), DecimalPolicy(scale=3)) is ValidationResult.VALID
    assert validate_currency(Decimal("10000000000.00")) is ValidationResult.INVALID_RANGE
    assert validate_currency(None) is ValidationResult.BLANK_FIELD


def test_transaction_type():
    assert validate_transaction_type("01") is ValidationResult.VALID
    assert validate_transaction_type("99") is ValidationResult.INVALID_VALUE
    assert validate_transaction_type(None) is ValidationResult.BLANK_FIELD
