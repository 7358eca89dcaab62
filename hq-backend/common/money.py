# common/money.py
"""
Exact decimal helpers. Money never goes through binary floating point:
amounts travel and are stored as decimal strings.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from common.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def parse_decimal(value, field="value"):
    """
    Parse an exact decimal from a Decimal, int or canonical decimal string.
    Floats are refused: they already lost precision before reaching us.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be a decimal string, got {type(value).__name__}", field=field)
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} is not a valid decimal: {value!r}", field=field)
    elif value is None:
        raise ValidationError(f"{field} is required", field=field)
    else:
        raise ValidationError(f"{field} must be a decimal string", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return result


def to_money(amount):
    """Round to the cent, half up."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(amount):
    if amount is None:
        return None
    return str(to_money(amount))
