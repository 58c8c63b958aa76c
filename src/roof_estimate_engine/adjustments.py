from __future__ import annotations

import math
import uuid
from typing import Sequence

from .calculator import round2
from .errors import AdjustmentNotFound, InvalidAdjustment
from .models.adjustment import AdjustmentType, PriceAdjustment
from .models.estimate import Estimate

MAX_DISCOUNT_PERCENT = 50.0


def _validate(adjustment_type: AdjustmentType, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise InvalidAdjustment("Adjustment value must be a positive number")
    if adjustment_type is AdjustmentType.discount_percent and value > MAX_DISCOUNT_PERCENT:
        raise InvalidAdjustment(f"Discount percentage cannot exceed {MAX_DISCOUNT_PERCENT:g}%")


def _price_after(base_price: float, adjustment_type: AdjustmentType, value: float) -> tuple[float, float]:
    """Return ``(amount, new_price)`` for one adjustment applied to ``base_price``."""
    if adjustment_type is AdjustmentType.discount_percent:
        amount = round2(base_price * value / 100)
        new_price = round2(base_price - amount)
    elif adjustment_type is AdjustmentType.discount_fixed:
        amount = round2(value)
        new_price = round2(base_price - amount)
    else:
        amount = round2(base_price - value)
        new_price = round2(value)
    if new_price < 0:
        raise InvalidAdjustment(f"Adjustment would make the price negative ({new_price:.2f})")
    return amount, new_price


def apply_adjustment(
    estimate: Estimate,
    adjustment_type: AdjustmentType,
    value: float,
    *,
    description: str | None = None,
    reason: str | None = None,
) -> tuple[Estimate, PriceAdjustment]:
    """Discount or override the customer price of an estimate.

    Adjustments stack: each one starts from the current adjusted price, or the
    likely price when nothing has been adjusted yet.
    """
    _validate(adjustment_type, value)
    base_price = estimate.adjusted_price if estimate.adjusted_price is not None else estimate.totals.price_likely
    amount, new_price = _price_after(base_price, adjustment_type, value)

    adjustment = PriceAdjustment(
        id=f"adj_{uuid.uuid4().hex[:12]}",
        adjustment_type=adjustment_type,
        value=value,
        amount=amount,
        original_price=base_price,
        new_price=new_price,
        description=description,
        reason=reason,
    )
    updated = estimate.model_copy(
        update={
            "adjusted_price": new_price,
            "adjustments": [*estimate.adjustments, adjustment],
        }
    )
    return updated, adjustment


def replay_adjustments(estimate: Estimate, adjustments: Sequence[PriceAdjustment] | None = None) -> Estimate:
    """Rebuild the adjusted price from ``totals.price_likely``.

    Each adjustment is applied again in order, so records and the customer
    price follow the current likely price. With no adjustments the adjusted
    price is cleared.
    """
    remaining = list(estimate.adjustments if adjustments is None else adjustments)
    price = estimate.totals.price_likely
    replayed: list[PriceAdjustment] = []
    for adjustment in remaining:
        amount, new_price = _price_after(price, adjustment.adjustment_type, adjustment.value)
        replayed.append(
            adjustment.model_copy(update={"amount": amount, "original_price": price, "new_price": new_price})
        )
        price = new_price
    return estimate.model_copy(
        update={
            "adjusted_price": price if replayed else None,
            "adjustments": replayed,
        }
    )


def remove_adjustment(estimate: Estimate, adjustment_id: str) -> tuple[Estimate, PriceAdjustment]:
    """Drop one adjustment and replay the rest from the likely price."""
    removed = next((a for a in estimate.adjustments if a.id == adjustment_id), None)
    if removed is None:
        raise AdjustmentNotFound(estimate.id, adjustment_id)
    remaining = [a for a in estimate.adjustments if a.id != adjustment_id]
    return replay_adjustments(estimate, remaining), removed


__all__ = ["MAX_DISCOUNT_PERCENT", "apply_adjustment", "remove_adjustment", "replay_adjustments"]
