"""
Input Validation Module

Coerces raw request values into the types the ledger works with. Numbers
arrive as int, float, Decimal or numeric strings; booleans are never numbers.
Accepted numbers are kept within a range the Decimal context can compute
with, so a stored loan always stays readable.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ValidationError


# Magnitude limits for any nonzero number
MAX_MAGNITUDE = Decimal('1e15')
MIN_MAGNITUDE = Decimal('1e-12')


def _to_decimal(value: Any, field: str) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}", field=field)
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError(f"Field {field} must be a number", field=field)
    try:
        # str() first so floats keep their shortest repr
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Field {field} must be a number", field=field)
    if not amount.is_finite():
        raise ValidationError(f"Field {field} must be a finite number", field=field)
    if amount and not MIN_MAGNITUDE <= abs(amount) <= MAX_MAGNITUDE:
        raise ValidationError(f"Field {field} is out of range", field=field)
    return amount


def require_positive_amount(value: Any, field: str) -> Decimal:
    """Parse an amount that must be strictly greater than zero"""
    amount = _to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"Field {field} must be greater than zero", field=field)
    return amount


def require_non_negative_amount(value: Any, field: str) -> Decimal:
    """Parse an amount that may be zero but not negative"""
    amount = _to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"Field {field} must not be negative", field=field)
    return amount


def require_positive_int(value: Any, field: str, maximum: Optional[int] = None) -> int:
    """Parse a whole number greater than zero and, if given, at most maximum"""
    number = _to_decimal(value, field)
    if number != number.to_integral_value():
        raise ValidationError(f"Field {field} must be a whole number", field=field)
    if number <= 0:
        raise ValidationError(f"Field {field} must be greater than zero", field=field)
    if maximum is not None and number > maximum:
        raise ValidationError(f"Field {field} must be at most {maximum}", field=field)
    return int(number)


def require_text(value: Any, field: str) -> str:
    """Parse a non-empty string"""
    if value is None:
        raise ValidationError(f"Missing required field: {field}", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"Field {field} must be a string", field=field)
    text = value.strip()
    if not text:
        raise ValidationError(f"Missing required field: {field}", field=field)
    return text
