"""
Field validation rules for CardDemo records.

Each rule is a pure function returning a `ValidationResult`. Generic checks run
against a declarative `FieldFormat` descriptor; the concrete rules (account id,
card number, dates, currency) encode the edit checks of the online screens.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import FrozenSet, Literal, Optional

from carddemo.decimals import DecimalPolicy
from carddemo.utils.logging import get_logger

log = get_logger(__name__)

ACCOUNT_ID_LENGTH = 11
CARD_NUMBER_LENGTH = 16
MAX_MONETARY_AMOUNT = Decimal("9999999999.99")
VALID_CENTURIES = frozenset({19, 20})

# Transaction type codes from the TRANTYPE reference file.
TRANSACTION_TYPES = {
    "01": "Purchase",
    "02": "Payment",
    "03": "Credit",
    "04": "Authorization",
    "05": "Refund",
    "06": "Reversal",
    "07": "Adjustment",
}

_DIGITS = re.compile(r"^[0-9]+$")


class ValidationResult(str, enum.Enum):
    VALID = "VALID"
    BLANK_FIELD = "BLANK_FIELD"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_LENGTH = "INVALID_LENGTH"
    INVALID_RANGE = "INVALID_RANGE"
    INVALID_VALUE = "INVALID_VALUE"
    INVALID_DATE = "INVALID_DATE"

    @property
    def is_valid(self) -> bool:
        return self is ValidationResult.VALID


@dataclass(frozen=True)
class FieldFormat:
    """
    Declarative description of a fixed-width record field.

    Attributes
    ----------
    name : str
        Field name used in log messages.
    length : int
        Maximum width; numeric fields must fill it exactly.
    numeric : bool
        Digits only.
    required : bool
        Blank values fail with BLANK_FIELD.
    allowed : frozenset[str] | None
        Closed set of permitted values.
    pad : {"left", "right"}
        Justification when the field is rendered fixed-width.
    fill : str
        Padding character when rendered fixed-width.
    """

    name: str
    length: int
    numeric: bool = False
    required: bool = True
    allowed: Optional[FrozenSet[str]] = None
    pad: Literal["left", "right"] = "right"
    fill: str = " "

    def render(self, value: Optional[str]) -> str:
        """Pad or truncate `value` to exactly `length` characters."""
        text = "" if value is None else str(value)
        if self.pad == "left":
            return text.rjust(self.length, self.fill)[-self.length :]
        return text.ljust(self.length, self.fill)[: self.length]


def validate_field(value: Optional[str], fmt: FieldFormat) -> ValidationResult:
    """Check `value` against a field descriptor."""
    if value is None or not str(value).strip():
        if fmt.required:
            log.debug("Field %s blank", fmt.name)
            return ValidationResult.BLANK_FIELD
        return ValidationResult.VALID

    cleaned = str(value).strip()
    if fmt.numeric:
        if not _DIGITS.match(cleaned):
            return ValidationResult.INVALID_FORMAT
        if len(cleaned) != fmt.length:
            return ValidationResult.INVALID_LENGTH
    elif len(cleaned) > fmt.length:
        return ValidationResult.INVALID_LENGTH

    if fmt.allowed is not None and cleaned not in fmt.allowed:
        log.debug("Field %s value %r not in allowed set", fmt.name, cleaned)
        return ValidationResult.INVALID_VALUE
    return ValidationResult.VALID


def validate_required(value: Optional[str]) -> ValidationResult:
    if value is None or not str(value).strip():
        return ValidationResult.BLANK_FIELD
    return ValidationResult.VALID


def validate_numeric_field(value: Optional[str], length: int) -> bool:
    """True when `value` is exactly `length` digits."""
    return validate_field(value, FieldFormat("numeric", length, numeric=True)).is_valid


def validate_account_id(value: Optional[str]) -> ValidationResult:
    result = validate_field(value, FieldFormat("account_id", ACCOUNT_ID_LENGTH, numeric=True))
    if result.is_valid and int(str(value).strip()) == 0:
        return ValidationResult.INVALID_RANGE
    return result


def luhn_checksum_ok(number: str) -> bool:
    if not number or not _DIGITS.match(number):
        return False
    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card_number(value: Optional[str], check_luhn: bool = True) -> ValidationResult:
    result = validate_field(value, FieldFormat("card_number", CARD_NUMBER_LENGTH, numeric=True))
    if not result.is_valid:
        return result
    if check_luhn and not luhn_checksum_ok(str(value).strip()):
        log.debug("Card number failed Luhn checksum")
        return ValidationResult.INVALID_FORMAT
    return ValidationResult.VALID


def validate_date_field(value: Optional[str]) -> ValidationResult:
    """Validate a CCYYMMDD date as entered on the online screens."""
    result = validate_field(value, FieldFormat("date", 8, numeric=True))
    if not result.is_valid:
        return result
    cleaned = str(value).strip()
    century = int(cleaned[:2])
    if century not in VALID_CENTURIES:
        return ValidationResult.INVALID_RANGE
    try:
        date(int(cleaned[:4]), int(cleaned[4:6]), int(cleaned[6:8]))
    except ValueError:
        return ValidationResult.INVALID_DATE
    return ValidationResult.VALID


def validate_currency(
    amount: Optional[Decimal], policy: Optional[DecimalPolicy] = None
) -> ValidationResult:
    """Amounts must fit the policy scale and the S9(10)V99 field range."""
    if amount is None:
        return ValidationResult.BLANK_FIELD
    policy = policy or DecimalPolicy()
    if not isinstance(amount, Decimal) or not amount.is_finite():
        return ValidationResult.INVALID_FORMAT
    if -amount.as_tuple().exponent > policy.scale:
        return ValidationResult.INVALID_FORMAT
    if abs(amount) > MAX_MONETARY_AMOUNT:
        return ValidationResult.INVALID_RANGE
    return ValidationResult.VALID


TRANSACTION_TYPE_FORMAT = FieldFormat(
    "type_code", 2, numeric=True, allowed=frozenset(TRANSACTION_TYPES)
)


def validate_transaction_type(value: Optional[str]) -> ValidationResult:
    return validate_field(value, TRANSACTION_TYPE_FORMAT)


__all__ = [
    "FieldFormat",
    "TRANSACTION_TYPES",
    "ValidationResult",
    "luhn_checksum_ok",
    "validate_account_id",
    "validate_card_number",
    "validate_currency",
    "validate_date_field",
    "validate_field",
    "validate_numeric_field",
    "validate_required",
    "validate_transaction_type",
]
