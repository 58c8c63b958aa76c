from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class GeographicPricing(BaseModel):
    id: str
    name: str
    state: str | None = None
    material_multiplier: float = Field(default=1.0, gt=0)
    labor_multiplier: float = Field(default=1.0, gt=0)
    equipment_multiplier: float = Field(default=1.0, gt=0)
    zip_codes: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator(
        "material_multiplier", "labor_multiplier", "equipment_multiplier", mode="before"
    )
    @classmethod
    def _default_missing(cls, value: float | None) -> float:
        return 1.0 if value is None else value


class CostMultipliers(BaseModel):
    material: float = 1.0
    labor: float = 1.0
    equipment: float = 1.0

    @classmethod
    def neutral(cls) -> "CostMultipliers":
        return cls()

    @classmethod
    def from_pricing(cls, pricing: GeographicPricing) -> "CostMultipliers":
        return cls(
            material=pricing.material_multiplier,
            labor=pricing.labor_multiplier,
            equipment=pricing.equipment_multiplier,
        )

    @property
    def adjustment(self) -> float:
        return (self.material + self.labor + self.equipment) / 3


__all__ = ["CostMultipliers", "GeographicPricing"]
