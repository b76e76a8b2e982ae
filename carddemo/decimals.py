"""
Decimal conversion utilities with COBOL COMP-3 parity.

Every monetary value in the posting batch is a `Decimal` with a fixed number
of fractional digits, rounded half-up at each boundary operation. The scale and
rounding mode travel as an explicit `DecimalPolicy` instead of module globals,
so alternate scales can be used side by side.

Usage:
    from carddemo.decimals import DecimalPolicy, from_comp3, preserve_precision

    policy = DecimalPolicy(scale=2)
    from_comp3(b"\\x12\\x34\\x5C", scale=2)   # Decimal("123.45")
    preserve_precision("100.005", 2)           # Decimal("100.01")
"""

from __future__ import annotations

import decimal
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Iterable, Literal, Optional, Union

if TYPE_CHECKING:  # pragma: no cover
    from carddemo.config import Settings

Number = Union[Decimal, int, float, str]

_ROUNDING_MODES = frozenset(
    {
        decimal.ROUND_CEILING,
        decimal.ROUND_DOWN,
        decimal.ROUND_FLOOR,
        decimal.ROUND_HALF_DOWN,
        decimal.ROUND_HALF_EVEN,
        decimal.ROUND_HALF_UP,
        decimal.ROUND_UP,
        decimal.ROUND_05UP,
    }
)

# Sign nibbles: C and F (unsigned) are positive, D is negative.
_POSITIVE_SIGNS = frozenset({0x0C, 0x0F})
_NEGATIVE_SIGN = 0x0D

# Wide enough for any PIC S9(18)V9(18) field.
_WORKING_PRECISION = 60


def _context() -> decimal.Context:
    return decimal.Context(prec=_WORKING_PRECISION)


@dataclass(frozen=True)
class DecimalPolicy:
    """
    Fixed-point arithmetic rules for monetary values.

    Attributes
    ----------
    scale : int
        Number of fractional digits every result carries.
    rounding : str
        A `decimal` rounding constant; COBOL parity requires ROUND_HALF_UP.
    """

    scale: int = 2
    rounding: str = ROUND_HALF_UP

    def __post_init__(self) -> None:
        if self.scale < 0:
            raise ValueError(f"Scale cannot be negative: {self.scale}")
        if self.rounding not in _ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode: {self.rounding}")

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "DecimalPolicy":
        if settings is None:
            from carddemo.config import get_settings

            settings = get_settings()
        return cls(scale=settings.monetary_scale, rounding=settings.rounding_mode)

    def zero(self) -> Decimal:
        return preserve_precision(None, self.scale, self.rounding)

    def quantize(self, value: Optional[Number]) -> Decimal:
        return preserve_precision(value, self.scale, self.rounding)

    def add(self, left: Number, right: Number) -> Decimal:
        return self.quantize(_context().add(to_decimal(left), to_decimal(right)))

    def subtract(self, left: Number, right: Number) -> Decimal:
        return self.quantize(_context().subtract(to_decimal(left), to_decimal(right)))

    def divide(self, dividend: Number, divisor: Number) -> Decimal:
        denominator = to_decimal(divisor)
        if denominator == 0:
            raise ValueError("Division by zero")
        return self.quantize(_context().divide(to_decimal(dividend), denominator))

    def total(self, values: Iterable[Number]) -> Decimal:
        result = self.zero()
        for value in values:
            result = self.add(result, value)
        return result


def to_decimal(value: Optional[Number], scale: Optional[int] = None) -> Decimal:
    """
    Convert a loosely typed number into a `Decimal`.

    Floats are converted through their shortest `repr` so `0.1` becomes
    `Decimal("0.1")` rather than its binary expansion. `None` becomes zero.
    When `scale` is given the result is rescaled half-up.
    """
    if value is None:
        result = Decimal(0)
    elif isinstance(value, bool):
        raise ValueError("Booleans are not numeric values")
    elif isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Cannot convert string to Decimal: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported value type for Decimal conversion: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Value must be finite: {value!r}")
    if scale is not None:
        return preserve_precision(result, scale)
    return result


def preserve_precision(
    value: Optional[Number], scale: int, rounding: str = ROUND_HALF_UP
) -> Decimal:
    """
    Rescale `value` to exactly `scale` fractional digits.

    An absent value is zero at that scale. Applying the function twice with the
    same scale returns the same result.
    """
    if scale < 0:
        raise ValueError(f"Scale cannot be negative: {scale}")
    number = to_decimal(value) if value is not None else Decimal(0)
    exponent = Decimal(1).scaleb(-scale)
    return number.quantize(exponent, rounding=rounding, context=_context())


def from_comp3(data: Union[bytes, bytearray, Iterable[int], None], scale: int) -> Decimal:
    """
    Decode a COMP-3 (packed decimal) field.

    Each byte holds two decimal digits, most significant first; the low nibble
    of the final byte is the sign. The unscaled digits are placed `scale` places
    after the decimal point.

    Raises
    ------
    ValueError
        On empty input, a negative scale, a non-decimal digit nibble, or an
        unrecognised sign nibble.
    """
    if data is None:
        raise ValueError("COMP-3 packed data cannot be None")
    if isinstance(data, (int, str)):
        raise ValueError(f"COMP-3 packed data must be bytes, got {type(data).__name__}")
    raw = bytes(data)
    if not raw:
        raise ValueError("COMP-3 packed data cannot be empty")
    if scale < 0:
        raise ValueError(f"Scale cannot be negative: {scale}")

    sign_nibble = raw[-1] & 0x0F
    if sign_nibble in _POSITIVE_SIGNS:
        negative = False
    elif sign_nibble == _NEGATIVE_SIGN:
        negative = True
    else:
        raise ValueError(f"Invalid COMP-3 sign nibble 0x{sign_nibble:X}")

    digits = []
    for byte in raw[:-1]:
        digits.append(byte >> 4)
        digits.append(byte & 0x0F)
    digits.append(raw[-1] >> 4)
    if any(digit > 9 for digit in digits):
        raise ValueError("Invalid COMP-3 data: non-decimal digit nibble")

    if not any(digits):
        negative = False
    return Decimal((1 if negative else 0, tuple(digits), -scale))


def to_comp3(value: Optional[Number], scale: int, digits: Optional[int] = None) -> bytes:
    """
    Encode a number as COMP-3 bytes with a C (positive) or D (negative) sign.

    `digits` is the declared digit count of the field (e.g. 11 for
    PIC S9(9)V99); the value is left-padded with zeros to fill it.
    """
    number = preserve_precision(value, scale)
    sign, digit_tuple, _ = number.as_tuple()
    nibbles = list(digit_tuple)
    if digits is not None:
        if len(nibbles) > digits:
            raise ValueError(f"Value {number} does not fit in {digits} digits")
        nibbles = [0] * (digits - len(nibbles)) + nibbles
    if len(nibbles) % 2 == 0:
        nibbles.insert(0, 0)
    negative = bool(sign) and any(nibbles)
    nibbles.append(_NEGATIVE_SIGN if negative else 0x0C)
    return bytes((nibbles[i] << 4) | nibbles[i + 1] for i in range(0, len(nibbles), 2))


def to_display(
    value: Optional[Number],
    policy: Optional[DecimalPolicy] = None,
    currency_symbol: Optional[str] = None,
    grouping: bool = False,
) -> str:
    """
    Render a value as a fixed-scale display string.

    The minus sign precedes the currency symbol: `-$1,234.50`.
    """
    policy = policy or DecimalPolicy()
    amount = policy.quantize(value)
    pattern = f",.{policy.scale}f" if grouping else f".{policy.scale}f"
    body = format(abs(amount), pattern)
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency_symbol or ''}{body}"


def format_currency(value: Optional[Number], policy: Optional[DecimalPolicy] = None) -> str:
    """US currency rendering with thousands separators."""
    return to_display(value, policy, currency_symbol="$", grouping=True)


def parse_implied_decimal(text: Optional[str], scale: int) -> Decimal:
    """
    Parse COBOL display digits with an implied decimal point.

    `"12345"` at scale 2 is `123.45`. A leading `+` or `-` is honoured; blank
    input is zero.
    """
    if scale < 0:
        raise ValueError(f"Scale cannot be negative: {scale}")
    if text is None or not text.strip():
        return preserve_precision(None, scale)
    cleaned = text.strip()
    negative = cleaned.startswith("-")
    if cleaned[0] in "+-":
        cleaned = cleaned[1:]
    if not cleaned.isdigit():
        raise ValueError(f"Invalid implied-decimal value: {text!r}")
    digit_tuple = tuple(int(ch) for ch in cleaned)
    if not any(digit_tuple):
        negative = False
    return Decimal((1 if negative else 0, digit_tuple, -scale))


_PIC_PATTERN = re.compile(
    r"^PIC\s+(?P<sign>S)?(?P<kind>[X9])(?:\((?P<length>\d+)\))?"
    r"(?:V(?:9\((?P<fraction_len>\d+)\)|(?P<fraction>9+)))?$"
)
_SIGNED_NUMERIC = re.compile(r"^[+-]?\d*\.?\d*$")


@dataclass(frozen=True)
class PicClause:
    """
    Parsed COBOL PIC clause.

    `length` is the number of characters (PIC X) or integer digits (PIC 9);
    `scale` is the number of implied fractional digits after `V`.
    """

    kind: Literal["alphanumeric", "unsigned", "signed"]
    length: int
    scale: int = 0

    @classmethod
    def parse(cls, text: Optional[str]) -> "PicClause":
        if text is None or not text.strip():
            raise ValueError("PIC clause cannot be empty")
        normalized = " ".join(text.strip().upper().split())
        match = _PIC_PATTERN.match(normalized)
        if match is None:
            raise ValueError(f"Unsupported PIC clause format: {text}")
        length = int(match.group("length") or 1)
        if match.group("fraction_len"):
            scale = int(match.group("fraction_len"))
        elif match.group("fraction"):
            scale = len(match.group("fraction"))
        else:
            scale = 0
        if match.group("kind") == "X":
            if match.group("sign") or scale:
                raise ValueError(f"Unsupported PIC clause format: {text}")
            return cls(kind="alphanumeric", length=length)
        kind = "signed" if match.group("sign") else "unsigned"
        return cls(kind=kind, length=length, scale=scale)


def convert_pic_string(value: Optional[str], max_length: int) -> str:
    """Trim a PIC X value and enforce its declared length."""
    if value is None:
        return ""
    trimmed = value.strip()
    if len(trimmed) > max_length:
        raise ValueError(
            f"String length {len(trimmed)} exceeds maximum {max_length} for PIC X({max_length})"
        )
    return trimmed


def _integer_digits(number: Decimal) -> int:
    integral = abs(int(number))
    return len(str(integral)) if integral else 0


def convert_to_python_type(value: object, pic: str) -> Union[str, int, Decimal]:
    """
    Convert a raw field value according to its PIC clause.

    PIC X becomes `str`, PIC 9 without decimals becomes `int`, and any field
    with implied decimals or a sign becomes a `Decimal` at the clause's scale.
    """
    clause = PicClause.parse(pic)
    if clause.kind == "alphanumeric":
        return convert_pic_string("" if value is None else str(value), clause.length)

    if value is None or not str(value).strip():
        if clause.kind == "unsigned" and clause.scale == 0:
            return 0
        return preserve_precision(None, clause.scale)

    text = str(value).strip()
    if clause.kind == "unsigned" and clause.scale == 0:
        if not text.isdigit():
            raise ValueError(f"Invalid numeric value for PIC 9: {value!r}")
        significant = text.lstrip("0") or "0"
        if len(significant) > clause.length:
            raise ValueError(
                f"Numeric value length {len(significant)} exceeds PIC 9({clause.length}) specification"
            )
        return int(significant)

    if not _SIGNED_NUMERIC.match(text) or text in {"", "+", "-", ".", "+.", "-."}:
        raise ValueError(f"Invalid numeric value for {pic}: {value!r}")
    number = to_decimal(text, clause.scale)
    if clause.kind == "unsigned" and number < 0:
        raise ValueError(f"Unsigned field {pic} cannot hold negative value {value!r}")
    if _integer_digits(number) > clause.length:
        raise ValueError(f"Value {value!r} exceeds {clause.length} integer digits for {pic}")
    return number


def validate_cobol_field(value: object, pic: str) -> bool:
    """Return True when `value` converts cleanly under `pic`."""
    if pic is None or not pic.strip():
        raise ValueError("PIC clause is required for validation")
    try:
        convert_to_python_type(value, pic)
    except ValueError:
        return False
    return True


__all__ = [
    "DecimalPolicy",
    "PicClause",
    "convert_pic_string",
    "convert_to_python_type",
    "format_currency",
    "from_comp3",
    "parse_implied_decimal",
    "preserve_precision",
    "to_comp3",
    "to_decimal",
    "to_display",
    "validate_cobol_field",
]
