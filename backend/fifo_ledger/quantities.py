from __future__ import annotations

from decimal import Decimal
from typing import Optional

# Lots hold fractional stock (e.g. 2.5 bottles); Numeric(12, 3) in the schema.
QUANTITY_PLACES = Decimal("0.001")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_PLACES)


def format_quantity(value: Optional[Decimal]) -> Optional[str]:
    """Render a quantity without trailing zeros ("50", "2.5")."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value == 0:
        return "0"
    # normalize() turns 50 into 5E+1; the "f" format expands it back
    return format(value.normalize(), "f")
