"""
Money helpers.

The ledger stores and compares integer minor units (paise). Major-unit
decimals only exist at the API boundary.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from floorplan.errors import ValidationFailed

MINOR_PER_MAJOR = 100
TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, int, str, float]


def to_minor(amount: Number) -> int:
    """Convert a major-unit amount to minor units, rejecting sub-paise precision."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Invalid money amount: {amount!r}.")
    if not value.is_finite():
        raise ValidationFailed(f"Invalid money amount: {amount!r}.")
    minor = value * MINOR_PER_MAJOR
    if minor != minor.to_integral_value():
        raise ValidationFailed(f"Amount {amount} has more than two decimal places.")
    return int(minor)


def to_major(minor: int) -> Decimal:
    return (Decimal(int(minor or 0)) / MINOR_PER_MAJOR).quantize(TWO_PLACES)


def round_minor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))
