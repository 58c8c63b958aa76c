from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class AdjustmentType(str, Enum):
    discount_percent = "discount_percent"
    discount_fixed = "discount_fixed"
    price_override = "price_override"


class PriceAdjustment(BaseModel):
    id: str
    adjustment_type: AdjustmentType
    value: float
    amount: float
    original_price: float
    new_price: float
    description: str | None = None
    reason: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["AdjustmentType", "PriceAdjustment"]
