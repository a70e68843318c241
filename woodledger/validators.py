"""
Input coercion for ledger operations.

Each helper returns the cleaned value or raises woodledger ValidationError.
"""

from decimal import Decimal, InvalidOperation

from woodledger.exceptions import ValidationError

CENT = Decimal('0.01')


def to_decimal(value, field: str, *, allow_none: bool = False) -> Decimal | None:
    """Coerce int/str/Decimal to Decimal. Floats go through str() to avoid binary noise."""
    if value is None or value == '':
        if allow_none:
            return None
        raise ValidationError('MISSING_FIELD', field=field)
    if isinstance(value, bool):
        raise ValidationError('INVALID_INPUT', message=f"{field} must be a number", field=field)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(
            'INVALID_INPUT', message=f"{field} must be a number, got {value!r}", field=field
        ) from None
    if not result.is_finite():
        raise ValidationError('INVALID_INPUT', message=f"{field} must be finite", field=field)
    return result


def two_places(amount: Decimal, field: str) -> Decimal:
    """Reject amounts the 2-decimal columns would round. Trailing zeros are fine."""
    try:
        exact = amount == amount.quantize(CENT)
    except InvalidOperation:
        exact = False
    if not exact:
        raise ValidationError(
            'INVALID_INPUT', message=f"{field} {amount} has more than 2 decimal places",
            field=field,
        )
    return amount


def quantity(value, field: str = 'quantity', *, allow_zero: bool = False) -> Decimal:
    """A stock quantity: a number with at most 2 decimal places, > 0 (>= 0 with allow_zero)."""
    amount = to_decimal(value, field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError('INVALID_QUANTITY', requested=amount, field=field)
    return two_places(amount, field)


def non_negative(value, field: str, *, allow_none: bool = False) -> Decimal | None:
    amount = to_decimal(value, field, allow_none=allow_none)
    if amount is None:
        return None
    if amount < 0:
        raise ValidationError(
            'INVALID_INPUT', message=f"{field} cannot be negative, got {amount}", field=field
        )
    return two_places(amount, field)


def positive_int(value, field: str) -> int:
    """Coerce an id to a positive int. Accepts ints and digit strings only."""
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            'INVALID_INPUT', message=f"{field} must be a whole number, got {value!r}", field=field
        )
    if value <= 0:
        raise ValidationError(
            'INVALID_INPUT', message=f"{field} must be positive, got {value}", field=field
        )
    return value


def required_text(value, field: str, *, min_length: int = 1, max_length: int | None = None) -> str:
    text = '' if value is None else str(value).strip()
    if not text:
        raise ValidationError('MISSING_FIELD', field=field)
    if len(text) < min_length or (max_length is not None and len(text) > max_length):
        raise ValidationError(
            'INVALID_INPUT',
            message=f"{field} must be {min_length}-{max_length or '∞'} characters",
            field=field,
        )
    return text


def choice(value, choices, field: str, *, allow_none: bool = False):
    """Check value against a TextChoices class."""
    if value is None and allow_none:
        return None
    if value not in choices.values:
        raise ValidationError('INVALID_CHOICE', field=field, value=value)
    return value
