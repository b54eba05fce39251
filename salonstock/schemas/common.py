from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

# Quantities travel as JSON numbers; pydantic would otherwise emit Decimal as a string.
Quantity = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
