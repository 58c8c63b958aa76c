from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .calculator import recalculate_line_items, round2
from .catalog import CatalogLookup
from .errors import RevisionConflict
from .estimate_store import EstimateStore
from .geographic import GeographicPricingLookup, resolve_multipliers
from .models.diagnostics import Diagnostic
from .models.estimate import Estimate
from .rollup import PriceBandPolicy, rollup, validate_percentages

logger = logging.getLogger(__name__)


@dataclass
class RecalculationResult:
    estimate: Estimate
    diagnostics: list[Diagnostic] = field(default_factory=list)
    recalculated: int = 0


class EstimateRecalculator:
    """Runs snapshot -> per-item calculation -> rollup -> guarded write."""

    def __init__(
        self,
        *,
        store: EstimateStore,
        catalog: CatalogLookup,
        geographic: GeographicPricingLookup | None = None,
        band: PriceBandPolicy | None = None,
        max_line_items: int | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._geographic = geographic
        self._band = band or PriceBandPolicy()
        self._max_line_items = max_line_items

    def recalculate(self, estimate_id: str, *, max_attempts: int = 1) -> RecalculationResult:
        attempt = 1
        while True:
            snapshot = self._store.get_estimate(estimate_id)
            result = self.compute(snapshot)
            try:
                stored = self._store.save_estimate(
                    result.estimate, expected_revision=snapshot.revision
                )
            except RevisionConflict:
                logger.warning(
                    "Estimate changed during recalculation",
                    extra={"estimate_id": estimate_id, "attempt": attempt},
                )
                if attempt >= max_attempts:
                    raise
                attempt += 1
                continue
            logger.info(
                "Recalculated estimate",
                extra={
                    "estimate_id": estimate_id,
                    "line_items": result.recalculated,
                    "diagnostics": len(result.diagnostics),
                    "price_likely": stored.totals.price_likely,
                },
            )
            result.estimate = stored
            return result

    def compute(self, estimate: Estimate) -> RecalculationResult:
        """Recalculate an estimate snapshot without touching the store."""
        if self._max_line_items is not None and len(estimate.line_items) > self._max_line_items:
            raise ValueError(
                f"Estimate {estimate.id} has {len(estimate.line_items)} line items; "
                f"limit is {self._max_line_items}"
            )
        multipliers = resolve_multipliers(estimate.geographic_pricing_id, self._geographic)
        items, diagnostics = recalculate_line_items(
            estimate.line_items, estimate.variables, multipliers, self._catalog
        )
        totals = rollup(
            items,
            estimate.overhead_percent,
            estimate.profit_percent,
            estimate.tax_percent,
            self._band,
        )
        updated = estimate.model_copy(
            update={
                "line_items": items,
                "totals": totals,
                "geographic_adjustment": round2(multipliers.adjustment),
            }
        )
        return RecalculationResult(estimate=updated, diagnostics=diagnostics, recalculated=len(items))

    def refresh_totals(
        self,
        estimate_id: str,
        *,
        overhead_percent: float | None = None,
        profit_percent: float | None = None,
        tax_percent: float | None = None,
    ) -> Estimate:
        """Apply new percentages and recompute the rollup from stored line items."""
        snapshot = self._store.get_estimate(estimate_id)
        overhead = snapshot.overhead_percent if overhead_percent is None else overhead_percent
        profit = snapshot.profit_percent if profit_percent is None else profit_percent
        tax = snapshot.tax_percent if tax_percent is None else tax_percent
        validate_percentages(overhead, profit, tax)
        totals = rollup(snapshot.line_items, overhead, profit, tax, self._band)
        updated = snapshot.model_copy(
            update={
                "overhead_percent": overhead,
                "profit_percent": profit,
                "tax_percent": tax,
                "totals": totals,
            }
        )
        return self._store.save_estimate(updated, expected_revision=snapshot.revision)


__all__ = ["EstimateRecalculator", "RecalculationResult"]
