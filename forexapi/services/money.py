"""Money / rounding helpers.

Centralized so conversions, rate tables and historical series use identical
rounding semantics: half away from zero (``ROUND_HALF_UP`` on Decimal).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP, getcontext, localcontext
from typing import Union

Number = Union[Decimal, float, int, str]

CONVERSION_PLACES = 5
RATE_PLACES = 4

# Wide enough for any accepted amount times a rate, with the places kept.
WORKING_PRECISION = 60


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def working_context():
    """Decimal context for intermediate conversion arithmetic."""
    ctx = getcontext().copy()
    ctx.prec = WORKING_PRECISION
    return localcontext(ctx)


def round_half_up(value: Number, places: int) -> Decimal:
    value = to_decimal(value)
    exponent = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # quantize fails when the result needs more digits than the context allows
        ctx.prec = max(ctx.prec, WORKING_PRECISION, value.adjusted() + places + 2)
        return value.quantize(exponent, rounding=ROUND_HALF_UP)
