from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field

from .adjustment import PriceAdjustment
from .line_item import EstimateLineItem
from .variables import RoofVariables


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EstimateStatus(str, Enum):
    draft = "draft"
    sent = "sent"
    accepted = "accepted"
    declined = "declined"
    expired = "expired"


class EstimateTotals(BaseModel):
    total_material: float = 0.0
    total_labor: float = 0.0
    total_equipment: float = 0.0
    subtotal: float = 0.0
    overhead_amount: float = 0.0
    profit_amount: float = 0.0
    taxable_amount: float = 0.0
    tax_amount: float = 0.0
    price_low: float = 0.0
    price_likely: float = 0.0
    price_high: float = 0.0


class Estimate(BaseModel):
    id: str
    lead_id: str
    name: str = "Estimate"
    version: int = 1
    revision: int = 0
    status: EstimateStatus = EstimateStatus.draft
    is_superseded: bool = False

    variables: RoofVariables = Field(default_factory=RoofVariables)
    geographic_pricing_id: str | None = None
    geographic_adjustment: float = 1.0
    overhead_percent: float = 10.0
    profit_percent: float = 15.0
    tax_percent: float = 0.0

    line_items: Sequence[EstimateLineItem] = Field(default_factory=list)
    totals: EstimateTotals = Field(default_factory=EstimateTotals)
    adjusted_price: float | None = None
    adjustments: Sequence[PriceAdjustment] = Field(default_factory=list)

    internal_notes: str | None = None
    customer_notes: str | None = None
    valid_until: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    sent_at: datetime | None = None
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    expired_at: datetime | None = None

    def line_item(self, item_id: str) -> EstimateLineItem | None:
        for item in self.line_items:
            if item.id == item_id:
                return item
        return None


__all__ = ["Estimate", "EstimateStatus", "EstimateTotals"]
