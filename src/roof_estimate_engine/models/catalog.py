from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class UnitType(str, Enum):
    squares = "SQ"
    square_feet = "SF"
    linear_feet = "LF"
    each = "EA"
    hour = "HR"
    day = "DAY"
    ton = "TON"
    gallon = "GAL"
    bundle = "BDL"
    roll = "RL"


class CatalogLineItem(BaseModel):
    id: str
    item_code: str
    name: str
    category: str
    unit_type: UnitType = UnitType.each
    base_material_cost: float = Field(default=0.0, ge=0)
    base_labor_cost: float = Field(default=0.0, ge=0)
    base_equipment_cost: float = Field(default=0.0, ge=0)
    quantity_formula: str | None = None
    default_waste_factor: float = Field(default=1.0, gt=0)
    is_active: bool = True


__all__ = ["CatalogLineItem", "UnitType"]
