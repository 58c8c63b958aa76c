from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

from .models.geographic import CostMultipliers, GeographicPricing

logger = logging.getLogger(__name__)


class GeographicPricingLookup(Protocol):
    def get(self, geo_pricing_id: str) -> GeographicPricing | None:
        ...


class InMemoryGeographicPricing:
    def __init__(self, regions: Iterable[GeographicPricing] = ()) -> None:
        self._regions = {region.id: region for region in regions}

    def get(self, geo_pricing_id: str) -> GeographicPricing | None:
        return self._regions.get(geo_pricing_id)

    def for_zip(self, zip_code: str) -> GeographicPricing | None:
        for region in self._regions.values():
            if region.is_active and zip_code in region.zip_codes:
                return region
        return None

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryGeographicPricing":
        if not path.exists():
            raise FileNotFoundError(f"Geographic pricing file not found: {path}")
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        return cls(GeographicPricing.model_validate(entry) for entry in data)


def resolve_multipliers(
    geo_pricing_id: str | None, lookup: GeographicPricingLookup | None
) -> CostMultipliers:
    """Multipliers for a pricing region, neutral (1, 1, 1) when none applies."""
    if geo_pricing_id is None or lookup is None:
        return CostMultipliers.neutral()
    pricing = lookup.get(geo_pricing_id)
    if pricing is None:
        logger.warning(
            "Geographic pricing region not found, using neutral multipliers",
            extra={"geo_pricing_id": geo_pricing_id},
        )
        return CostMultipliers.neutral()
    return CostMultipliers.from_pricing(pricing)


__all__ = ["GeographicPricingLookup", "InMemoryGeographicPricing", "resolve_multipliers"]
