from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from pydantic import BaseModel

from .dictionaries import DEFAULT_TIERS, TIER_CONFIGS, TIER_LEVELS, TierConfig
from .models.estimate import EstimateTotals


class PricingTier(BaseModel):
    level: str
    name: str
    description: str
    price_multiplier: float
    price_low: int
    price_likely: int
    price_high: int
    material_name: str
    manufacturer_warranty: str
    workmanship_warranty: str
    features: Sequence[str]
    is_recommended: bool = False


class PricingTiers(BaseModel):
    tiers: Sequence[PricingTier]
    selected_tier: str


def _whole_dollars(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tier_configs(material: str | None) -> Mapping[str, TierConfig]:
    return TIER_CONFIGS.get(material or "", DEFAULT_TIERS)


def calculate_pricing_tiers(
    totals: EstimateTotals,
    material: str | None = None,
    recommended: str = "better",
) -> PricingTiers:
    """Good/better/best options scaled from the estimate's price band.

    The base estimate is the "good" tier; tier prices are whole dollars.
    """
    if recommended not in TIER_LEVELS:
        raise ValueError(f"Unknown tier level: {recommended}")
    configs = tier_configs(material)
    tiers = []
    for level in TIER_LEVELS:
        config = configs[level]
        tiers.append(
            PricingTier(
                level=level,
                name=config.name,
                description=config.description,
                price_multiplier=config.price_multiplier,
                price_low=_whole_dollars(totals.price_low * config.price_multiplier),
                price_likely=_whole_dollars(totals.price_likely * config.price_multiplier),
                price_high=_whole_dollars(totals.price_high * config.price_multiplier),
                material_name=config.material_name,
                manufacturer_warranty=config.manufacturer_warranty,
                workmanship_warranty=config.workmanship_warranty,
                features=list(config.features),
                is_recommended=level == recommended,
            )
        )
    return PricingTiers(tiers=tiers, selected_tier=recommended)


def monthly_payment(price: float, term_months: int = 60, apr: float = 0.0699) -> int:
    """Amortized monthly payment, rounded to whole dollars."""
    if term_months <= 0:
        raise ValueError("term_months must be positive")
    if apr == 0:
        return _whole_dollars(price / term_months)
    rate = apr / 12
    growth = (1 + rate) ** term_months
    return _whole_dollars(price * rate * growth / (growth - 1))


__all__ = ["PricingTier", "PricingTiers", "calculate_pricing_tiers", "monthly_payment", "tier_configs"]
