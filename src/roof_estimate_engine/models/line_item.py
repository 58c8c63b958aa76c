from __future__ import annotations

from pydantic import BaseModel, Field

from .catalog import UnitType


class EstimateLineItem(BaseModel):
    id: str
    line_item_type_id: str = Field(description="Catalog entry this row is priced from")
    item_code: str | None = None
    name: str | None = None
    category: str | None = None
    unit_type: UnitType = UnitType.each

    quantity: float = Field(default=0.0, ge=0)
    quantity_formula: str | None = None
    quantity_override: bool = False
    slope: str | None = Field(default=None, description="Scope the formula to one roof slope")
    waste_factor: float | None = 1.0

    material_unit_cost: float = Field(default=0.0, ge=0)
    labor_unit_cost: float = Field(default=0.0, ge=0)
    equipment_unit_cost: float = Field(default=0.0, ge=0)
    cost_override: bool = False

    material_total: float = 0.0
    labor_total: float = 0.0
    equipment_total: float = 0.0
    line_total: float = 0.0

    is_included: bool = True
    is_optional: bool = False
    sort_order: int = 0
    group_name: str | None = None
    notes: str | None = None

    @property
    def has_formula(self) -> bool:
        return bool(self.quantity_formula and self.quantity_formula.strip())

    @property
    def effective_waste_factor(self) -> float:
        if self.waste_factor is None or self.waste_factor <= 0:
            return 1.0
        return self.waste_factor

    @property
    def quantity_with_waste(self) -> float:
        return self.quantity * self.effective_waste_factor


__all__ = ["EstimateLineItem"]
