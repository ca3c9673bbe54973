from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalize a number (int/str/Decimal) to a 2-place Decimal, half-up."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_json(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(to_money(value))
