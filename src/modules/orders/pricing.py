"""Line amount arithmetic.

``amount = quantity x price_for(pricing_mode)``, rounded half-up to cents.
A missing price counts as zero, as the catalog import leaves gaps.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from modules.orders.constants import PricingMode

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Optional[Decimal | int | float | str]) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def price_for(
    pricing_mode: str,
    unit_price: Optional[Decimal],
    case_price: Optional[Decimal],
) -> Decimal:
    price = unit_price if pricing_mode == PricingMode.UNIT else case_price
    return Decimal(price) if price is not None else ZERO


def compute_amount(
    quantity: int,
    pricing_mode: str,
    unit_price: Optional[Decimal],
    case_price: Optional[Decimal],
) -> Decimal:
    total = price_for(pricing_mode, unit_price, case_price) * quantity
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)
