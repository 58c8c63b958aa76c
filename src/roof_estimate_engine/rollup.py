from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .calculator import round2
from .errors import InvalidPercentage
from .models.estimate import EstimateTotals
from .models.line_item import EstimateLineItem

OVERHEAD_RANGE = (0.0, 50.0)
PROFIT_RANGE = (0.0, 50.0)
TAX_RANGE = (0.0, 20.0)


@dataclass(frozen=True)
class PriceBandPolicy:
    """How far the low/high prices sit from the likely price, in percent."""

    low_percent: float = 10.0
    high_percent: float = 15.0

    def __post_init__(self) -> None:
        for name in ("low_percent", "high_percent"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value!r}")
        if self.low_percent >= 100:
            raise ValueError("low_percent must be below 100")

    def low(self, price_likely: float) -> float:
        return round2(price_likely * (1 - self.low_percent / 100))

    def high(self, price_likely: float) -> float:
        return round2(price_likely * (1 + self.high_percent / 100))


def _check(field: str, value: float, bounds: tuple[float, float]) -> None:
    low, high = bounds
    if value is None or not math.isfinite(value) or not low <= value <= high:
        raise InvalidPercentage(field, value, low, high)


def validate_percentages(overhead_pct: float, profit_pct: float, tax_pct: float) -> None:
    _check("overhead_percent", overhead_pct, OVERHEAD_RANGE)
    _check("profit_percent", profit_pct, PROFIT_RANGE)
    _check("tax_percent", tax_pct, TAX_RANGE)


def rollup(
    line_items: Sequence[EstimateLineItem],
    overhead_pct: float,
    profit_pct: float,
    tax_pct: float,
    band: PriceBandPolicy | None = None,
) -> EstimateTotals:
    """Aggregate priced line items into estimate totals and price bands.

    Only included items count. Percentages outside their range raise
    ``InvalidPercentage`` before anything is computed.
    """
    validate_percentages(overhead_pct, profit_pct, tax_pct)
    band = band or PriceBandPolicy()

    included = [item for item in line_items if item.is_included]
    total_material = round2(sum(item.material_total for item in included))
    total_labor = round2(sum(item.labor_total for item in included))
    total_equipment = round2(sum(item.equipment_total for item in included))
    subtotal = total_material + total_labor + total_equipment

    overhead_amount = round2(subtotal * overhead_pct / 100)
    profit_amount = round2((subtotal + overhead_amount) * profit_pct / 100)
    taxable_amount = subtotal + overhead_amount + profit_amount
    tax_amount = round2(taxable_amount * tax_pct / 100)
    price_likely = taxable_amount + tax_amount

    return EstimateTotals(
        total_material=total_material,
        total_labor=total_labor,
        total_equipment=total_equipment,
        subtotal=subtotal,
        overhead_amount=overhead_amount,
        profit_amount=profit_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        price_low=band.low(price_likely),
        price_likely=price_likely,
        price_high=band.high(price_likely),
    )


__all__ = [
    "OVERHEAD_RANGE",
    "PROFIT_RANGE",
    "PriceBandPolicy",
    "TAX_RANGE",
    "rollup",
    "validate_percentages",
]
