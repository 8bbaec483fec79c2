"""Exact-decimal helpers for monetary values."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from caja.app.core.exceptions import ValidationError

Q = Decimal("0.0001")
ZERO = Decimal("0")
# Numeric(20, 4) columns hold at most 16 integer digits.
MAX_AMOUNT = Decimal("1e16")


def parse_amount(value: object, field: str, *, positive: bool = False) -> Decimal:
    """Coerce *value* to a finite Decimal at storage precision.

    Floats go through ``str`` so 0.1 stays 0.1. The sign and zero checks run
    on the quantized value, so ``0.00001`` counts as zero. Raises
    ``ValidationError`` for non-numeric, NaN/Infinity, out-of-range and
    negative amounts and, when *positive* is set, for zero.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required", code="INVALID_AMOUNT", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(
            f"{field} is not a valid amount: {value!r}", code="INVALID_AMOUNT", field=field
        )
    if not amount.is_finite():
        raise ValidationError(
            f"{field} must be a finite amount", code="INVALID_AMOUNT", field=field
        )
    try:
        amount = amount.quantize(Q, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(
            f"{field} is not a valid amount: {value!r}", code="INVALID_AMOUNT", field=field
        )
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(
            f"{field} is out of range: {value!r}", code="INVALID_AMOUNT", field=field
        )
    if amount.is_zero():
        amount = abs(amount)
    if amount < ZERO:
        raise ValidationError(
            f"{field} must be non-negative", code="NEGATIVE_AMOUNT", field=field
        )
    if positive and amount == ZERO:
        raise ValidationError(
            f"{field} must be greater than zero", code="NON_POSITIVE_AMOUNT", field=field
        )
    return amount


def money_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(Q, rounding=ROUND_HALF_UP))
