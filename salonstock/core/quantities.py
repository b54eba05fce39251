"""Fixed-point helpers for stock quantities and money.

Every quantity the ledger touches is a ``Decimal`` with exactly two places.
Values are rounded half-up once, when they enter the system, and stored as an
integer count of hundredths (see ``salonstock.db.types.Hundredths``), so
repeated additions and subtractions never accumulate binary float error.

Caller input goes through ``parse_amount``: it must be non-negative and below
``MAX_QUANTITY``. The ceiling keeps every stored value, as hundredths, far inside
SQLite's signed 64-bit INTEGER.
"""

from __future__ import annotations

from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_QUANTITY = Decimal("1e13")

# Wide enough for a product of two bounded values (summary totals).
_CONTEXT = Context(prec=40)


def quantize(value: Decimal) -> Decimal:
    try:
        return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP, context=_CONTEXT)
    except InvalidOperation as exc:
        raise ValueError("quantity is out of range") from exc


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError("quantity must be a number")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        # repr() gives the shortest round-tripping form, so 3.05 stays 3.05.
        number = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError("quantity must be a number") from exc
    else:
        raise ValueError("quantity must be a number")
    if not number.is_finite():
        raise ValueError("quantity must be finite")
    return number


def parse_quantity(value: Any) -> Decimal:
    """Convert a signed value into a two-place ``Decimal``.

    Used for stored values, which include negative ledger deltas. Raises
    ``ValueError`` for booleans, non-numbers, NaN and infinities.
    """

    return quantize(_to_decimal(value))


def parse_amount(value: Any) -> Decimal:
    """Validate caller input: a finite number in ``[0, MAX_QUANTITY)``.

    The sign and size checks run on the raw value, so ``-0.004`` is rejected
    rather than rounded to zero first.
    """

    number = _to_decimal(value)
    if number < 0:
        raise ValueError("quantity must not be negative")
    if number >= MAX_QUANTITY:
        raise ValueError("quantity is too large")
    # copy_abs() turns a -0.0 input into 0.00
    return quantize(number).copy_abs()


def to_hundredths(value: Any) -> int:
    return int(parse_quantity(value) * 100)


def from_hundredths(value: int) -> Decimal:
    return Decimal(int(value)).scaleb(-2)


__all__ = [
    "MAX_QUANTITY",
    "TWOPLACES",
    "ZERO",
    "from_hundredths",
    "parse_amount",
    "parse_quantity",
    "quantize",
    "to_hundredths",
]
