"""Parsers for the numeric encodings backends use in protocol and genesis data."""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, Dict, Optional

from .errors import DecodeFailedError


def parse_fraction(value: Any, field: str = "") -> Fraction:
    """
    Parse "a/b", a decimal string, or a plain number into an exact Fraction.

    Missing values (None or "") parse to 0.
    """
    if value is None or value == "":
        return Fraction(0)
    if isinstance(value, bool):
        raise DecodeFailedError(f"boolean is not a number: {value!r}", key=field or None)
    if isinstance(value, Fraction):
        return value
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        return Fraction(str(value))
    if isinstance(value, dict):
        return parse_pair(value.get("numerator"), value.get("denominator"), field)
    if not isinstance(value, str):
        raise DecodeFailedError(f"unsupported numeric type {type(value).__name__}", key=field or None)

    text = value.strip()
    if "/" in text:
        num, _, den = text.partition("/")
        if not num.strip() or not den.strip():
            raise DecodeFailedError(f"malformed rational {value!r}", key=field or None)
        return parse_pair(num, den, field)
    try:
        return Fraction(Decimal(text))
    except (InvalidOperation, ValueError, OverflowError):
        raise DecodeFailedError(f"malformed rational {value!r}", key=field or None)


def parse_pair(numerator: Any, denominator: Any, field: str = "") -> Fraction:
    """Numerator/denominator pair. A missing pair is zero; a zero denominator is an error."""
    if numerator is None and denominator is None:
        return Fraction(0)
    num = parse_int(numerator, field)
    den = parse_int(denominator if denominator is not None else 1, field)
    if den == 0:
        raise DecodeFailedError(f"zero denominator in {numerator}/{denominator}", key=field or None)
    return Fraction(num, den)


def parse_ratio(value: Any, field: str = "") -> float:
    """Rational in any supported encoding, as float."""
    return float(parse_fraction(value, field))


def parse_int(value: Any, field: str = "", default: int = 0) -> int:
    """Integer from an int or decimal string (arbitrary size). None parses to default."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise DecodeFailedError(f"boolean is not an integer: {value!r}", key=field or None)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isascii() and digits.isdigit():
            try:
                return int(text)
            except ValueError:
                # past the interpreter's integer string length limit
                raise DecodeFailedError(f"integer too long ({len(text)} digits)", key=field or None)
    raise DecodeFailedError(f"malformed integer {value!r}", key=field or None)


def parse_quantity(value: Any, field: str = "") -> int:
    """Non-negative ledger quantity. Unlike parse_int, a missing value is an error."""
    if value is None:
        raise DecodeFailedError("missing quantity", key=field or None)
    qty = parse_int(value, field)
    if qty < 0:
        raise DecodeFailedError(f"negative quantity {qty}", key=field or None)
    return qty


def lovelace_of(value: Optional[Dict[str, Any]], field: str = "") -> int:
    """Ogmios style {"ada": {"lovelace": n}} or plain integer."""
    if isinstance(value, dict):
        return parse_int(value.get("ada", {}).get("lovelace"), field)
    return parse_int(value, field)


def iso_to_unix(timestamp: str, field: str = "") -> int:
    """ISO-8601 timestamp (trailing "Z" allowed) to unix seconds."""
    try:
        return int(datetime.fromisoformat(timestamp.replace("Z", "+00:00")).timestamp())
    except (AttributeError, ValueError):
        raise DecodeFailedError(f"malformed timestamp {timestamp!r}", key=field or None)
