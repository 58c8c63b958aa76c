from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

DEFAULT_OVERHEAD_PERCENT = 10.0
DEFAULT_PROFIT_PERCENT = 15.0
DEFAULT_TAX_PERCENT = 0.0

# Named quantity formulas offered in the line-item editor.
COMMON_FORMULAS: Mapping[str, str] = {
    "squares": "SQ",
    "squares_with_waste_10": "SQ*1.10",
    "squares_with_waste_15": "SQ*1.15",
    "eave": "EAVE",
    "eave_and_rake": "EAVE+RAKE",
    "ridge": "R",
    "ridge_and_hip": "R+HIP",
    "valley": "VAL",
    "perimeter": "P",
    # 3 ft of ice & water shield along the eaves, in squares
    "ice_and_water": "EAVE*3/100",
    "ice_and_water_valley": "VAL",
    "skylights": "SKYLIGHT_COUNT",
    "chimneys": "CHIMNEY_COUNT",
    "pipe_boots": "PIPE_COUNT",
    "vents": "VENT_COUNT",
    "gutters": "GUTTER_LF",
    "downspouts": "DS_COUNT",
    "downspout_length": "DS_COUNT*10",
    "gutter_hangers": "GUTTER_LF/2",
}

SUGGESTED_FORMULAS: Mapping[str, str] = {
    "tear_off": "SQ",
    "underlayment": "SQ",
    "shingles": "SQ",
    "metal_roofing": "SQ",
    "tile_roofing": "SQ",
    "flat_roofing": "SQ",
    "flashing": "EAVE+RAKE",
    "ventilation": "R",
    "gutters": "GUTTER_LF",
    "skylights": "SKYLIGHT_COUNT",
    "chimneys": "CHIMNEY_COUNT",
    "disposal": "SQ",
}

# Roof area increase per rise/12 pitch.
PITCH_MULTIPLIERS: Mapping[int, float] = {
    0: 1.000,
    1: 1.003,
    2: 1.014,
    3: 1.031,
    4: 1.054,
    5: 1.083,
    6: 1.118,
    7: 1.158,
    8: 1.202,
    9: 1.250,
    10: 1.302,
    11: 1.357,
    12: 1.414,
    13: 1.474,
    14: 1.537,
    15: 1.601,
    16: 1.667,
    17: 1.734,
    18: 1.803,
}

INTAKE_PITCHES: Mapping[str, float] = {
    "flat": 1,
    "low": 3,
    "medium": 5,
    "steep": 8,
    "very_steep": 12,
    "unknown": 5,
}


@dataclass(frozen=True)
class TierConfig:
    level: str
    name: str
    description: str
    price_multiplier: float
    material_name: str
    manufacturer_warranty: str
    workmanship_warranty: str
    features: Sequence[str]


ASPHALT_TIERS: Mapping[str, TierConfig] = {
    "good": TierConfig(
        level="good",
        name="Essential",
        description="Quality protection at an affordable price",
        price_multiplier=1.0,
        material_name="3-Tab Shingles",
        manufacturer_warranty="25-Year Limited",
        workmanship_warranty="5 Years",
        features=(
            "Standard 3-tab shingles",
            "Synthetic underlayment",
            "Basic ridge vent",
        ),
    ),
    "better": TierConfig(
        level="better",
        name="Premium",
        description="Enhanced durability and curb appeal",
        price_multiplier=1.15,
        material_name="Architectural Shingles",
        manufacturer_warranty="30-Year Limited Lifetime",
        workmanship_warranty="7 Years",
        features=(
            "Architectural dimensional shingles",
            "Premium synthetic underlayment",
            "Enhanced ridge ventilation",
            "Upgraded drip edge",
        ),
    ),
    "best": TierConfig(
        level="best",
        name="Elite",
        description="Maximum protection and premium aesthetics",
        price_multiplier=1.35,
        material_name="Designer Shingles",
        manufacturer_warranty="50-Year or Lifetime",
        workmanship_warranty="10 Years",
        features=(
            "Designer high-definition shingles",
            "Ice & water shield at all valleys",
            "Premium ventilation system",
            "Transferable warranty",
        ),
    ),
}

METAL_TIERS: Mapping[str, TierConfig] = {
    "good": TierConfig(
        level="good",
        name="Essential",
        description="Quality metal roofing at a great value",
        price_multiplier=1.0,
        material_name="Corrugated Metal",
        manufacturer_warranty="25-Year Paint Warranty",
        workmanship_warranty="5 Years",
        features=("Corrugated metal panels", "Standard underlayment", "Basic trim package"),
    ),
    "better": TierConfig(
        level="better",
        name="Premium",
        description="Concealed fasteners and a cleaner profile",
        price_multiplier=1.2,
        material_name="Standing Seam",
        manufacturer_warranty="40-Year Paint Warranty",
        workmanship_warranty="7 Years",
        features=("Standing seam panels", "High-temp underlayment", "Custom trim package"),
    ),
    "best": TierConfig(
        level="best",
        name="Elite",
        description="Premium coatings and heavier gauge panels",
        price_multiplier=1.45,
        material_name="Premium Standing Seam",
        manufacturer_warranty="50-Year Paint Warranty",
        workmanship_warranty="10 Years",
        features=(
            "24-gauge standing seam",
            "Kynar 500 finish",
            "Snow guards where required",
            "Transferable warranty",
        ),
    ),
}

DEFAULT_TIERS: Mapping[str, TierConfig] = {
    "good": TierConfig(
        level="good",
        name="Essential",
        description="Reliable protection for your home",
        price_multiplier=1.0,
        material_name="Standard Materials",
        manufacturer_warranty="Manufacturer Standard",
        workmanship_warranty="5 Years",
        features=("Standard materials", "Professional installation"),
    ),
    "better": TierConfig(
        level="better",
        name="Premium",
        description="Upgraded materials and ventilation",
        price_multiplier=1.15,
        material_name="Upgraded Materials",
        manufacturer_warranty="Extended Manufacturer",
        workmanship_warranty="7 Years",
        features=("Upgraded materials", "Enhanced ventilation", "Upgraded flashing"),
    ),
    "best": TierConfig(
        level="best",
        name="Elite",
        description="Top-of-line materials and coverage",
        price_multiplier=1.35,
        material_name="Premium Materials",
        manufacturer_warranty="Lifetime Manufacturer",
        workmanship_warranty="10 Years",
        features=("Premium materials", "All upgraded accessories", "Transferable warranty"),
    ),
}

TIER_CONFIGS: Mapping[str, Mapping[str, TierConfig]] = {
    "asphalt_shingle": ASPHALT_TIERS,
    "metal": METAL_TIERS,
}

TIER_LEVELS: Sequence[str] = ("good", "better", "best")


__all__ = [
    "COMMON_FORMULAS",
    "DEFAULT_OVERHEAD_PERCENT",
    "DEFAULT_PROFIT_PERCENT",
    "DEFAULT_TAX_PERCENT",
    "DEFAULT_TIERS",
    "INTAKE_PITCHES",
    "PITCH_MULTIPLIERS",
    "SUGGESTED_FORMULAS",
    "TIER_CONFIGS",
    "TIER_LEVELS",
    "TierConfig",
]
