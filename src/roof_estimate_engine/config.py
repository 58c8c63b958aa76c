from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .rollup import PriceBandPolicy
from .versioning import VersioningPolicy


@dataclass(frozen=True)
class EngineSettings:
    environment: str = "dev"
    project_id: str | None = None
    versioning_policy: VersioningPolicy = VersioningPolicy.additive
    price_band_low_percent: float = 10.0
    price_band_high_percent: float = 15.0
    recalculation_max_attempts: int = 3
    max_line_items: int = 500
    catalog_path: Path = Path("data/catalog/line_items.json")
    geographic_pricing_path: Path | None = None

    @property
    def band(self) -> PriceBandPolicy:
        return PriceBandPolicy(
            low_percent=self.price_band_low_percent,
            high_percent=self.price_band_high_percent,
        )


def load_settings() -> EngineSettings:
    """Read engine settings from the environment.

    ``ESTIMATE_VERSIONING_POLICY`` defaults to ``ADDITIVE`` when unset and is
    matched case-insensitively; an unrecognised value raises ``ValueError``.
    """
    geo_path = os.getenv("GEOGRAPHIC_PRICING_PATH")
    return EngineSettings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        project_id=os.getenv("PROJECT_ID"),
        versioning_policy=VersioningPolicy(
            os.getenv("ESTIMATE_VERSIONING_POLICY", VersioningPolicy.additive.value).upper()
        ),
        price_band_low_percent=float(os.getenv("PRICE_BAND_LOW_PERCENT", "10")),
        price_band_high_percent=float(os.getenv("PRICE_BAND_HIGH_PERCENT", "15")),
        recalculation_max_attempts=int(os.getenv("RECALCULATION_MAX_ATTEMPTS", "3")),
        max_line_items=int(os.getenv("MAX_LINE_ITEMS", "500")),
        catalog_path=Path(os.getenv("CATALOG_PATH", "data/catalog/line_items.json")),
        geographic_pricing_path=Path(geo_path) if geo_path else None,
    )


__all__ = ["EngineSettings", "load_settings"]
