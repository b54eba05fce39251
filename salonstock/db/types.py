from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import Integer
from sqlalchemy.types import TypeDecorator

from ..core.quantities import from_hundredths, to_hundredths


class Hundredths(TypeDecorator):
    """Two-place decimal stored as an INTEGER count of hundredths.

    ``Decimal("5.10")`` is written as ``510`` and read back as
    ``Decimal("5.10")``. Floats and numeric strings are accepted on the way in
    and rounded half-up to two places.
    """

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> int | None:
        if value is None:
            return None
        return to_hundredths(value)

    def process_result_value(self, value: Any, dialect) -> Decimal | None:
        if value is None:
            return None
        return from_hundredths(value)
