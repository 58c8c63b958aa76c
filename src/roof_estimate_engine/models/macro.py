from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, Field


class MacroLineItem(BaseModel):
    line_item_type_id: str
    quantity_formula: str | None = None
    waste_factor: float | None = None
    material_cost_override: float | None = Field(default=None, ge=0)
    labor_cost_override: float | None = Field(default=None, ge=0)
    equipment_cost_override: float | None = Field(default=None, ge=0)
    is_optional: bool = False
    is_selected_by_default: bool = True
    sort_order: int = 0
    group_name: str | None = None
    notes: str | None = None

    @property
    def has_cost_override(self) -> bool:
        return any(
            value is not None
            for value in (
                self.material_cost_override,
                self.labor_cost_override,
                self.equipment_cost_override,
            )
        )


class EstimateMacro(BaseModel):
    """A reusable template of line items, e.g. "Architectural tear-off"."""

    id: str
    name: str
    description: str | None = None
    roof_type: str | None = None
    line_items: Sequence[MacroLineItem] = Field(default_factory=list)


__all__ = ["EstimateMacro", "MacroLineItem"]
