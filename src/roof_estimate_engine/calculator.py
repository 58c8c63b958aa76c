from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from .catalog import CatalogLookup
from .errors import FormulaError
from .formula import evaluate
from .models.diagnostics import Diagnostic, DiagnosticKind
from .models.geographic import CostMultipliers
from .models.line_item import EstimateLineItem
from .models.variables import RoofVariables

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def round2(value: float) -> float:
    """Round to cents, halves away from zero.

    Works on the shortest decimal form of the float so 27.555 rounds to 27.56
    even though its binary value sits just below the half.
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot round non-finite value {value!r}")
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass
class LineItemResult:
    item: EstimateLineItem
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def _resolve_quantity(
    item: EstimateLineItem, variables: RoofVariables, diagnostics: list[Diagnostic]
) -> float:
    if item.quantity_override and not item.has_formula:
        return item.quantity
    if not item.has_formula:
        return item.quantity
    try:
        quantity = evaluate(item.quantity_formula, variables.bindings(item.slope))
    except FormulaError as exc:
        logger.warning(
            "Formula evaluation failed, keeping stored quantity",
            extra={"item_id": item.id, "formula": item.quantity_formula, "error": str(exc)},
        )
        diagnostics.append(
            Diagnostic(
                item_id=item.id,
                kind=DiagnosticKind(exc.kind),
                message=str(exc),
                position=exc.position,
            )
        )
        return item.quantity
    if quantity < 0:
        diagnostics.append(
            Diagnostic(
                item_id=item.id,
                kind=DiagnosticKind.negative_quantity,
                message=f"Formula {item.quantity_formula!r} produced {quantity:g}",
            )
        )
        return item.quantity
    return quantity


def _resolve_unit_costs(
    item: EstimateLineItem,
    multipliers: CostMultipliers,
    catalog: CatalogLookup,
    diagnostics: list[Diagnostic],
) -> tuple[float, float, float]:
    stored = (item.material_unit_cost, item.labor_unit_cost, item.equipment_unit_cost)
    if item.cost_override:
        return stored
    entry = catalog.get(item.line_item_type_id)
    if entry is None:
        logger.warning(
            "Catalog entry missing, keeping stored unit costs",
            extra={"item_id": item.id, "line_item_type_id": item.line_item_type_id},
        )
        diagnostics.append(
            Diagnostic(
                item_id=item.id,
                kind=DiagnosticKind.catalog_entry_missing,
                message=f"Catalog entry not found: {item.line_item_type_id}",
            )
        )
        return stored
    return (
        entry.base_material_cost * multipliers.material,
        entry.base_labor_cost * multipliers.labor,
        entry.base_equipment_cost * multipliers.equipment,
    )


def recalculate_line_item(
    item: EstimateLineItem,
    variables: RoofVariables,
    multipliers: CostMultipliers,
    catalog: CatalogLookup,
) -> LineItemResult:
    """Recompute quantity, unit costs and totals for one line item.

    Formula and catalog failures never abort: the stored quantity or unit costs
    are kept and a diagnostic is returned alongside the refreshed item.
    """
    diagnostics: list[Diagnostic] = []
    quantity = _resolve_quantity(item, variables, diagnostics)
    material_unit, labor_unit, equipment_unit = _resolve_unit_costs(
        item, multipliers, catalog, diagnostics
    )

    quantity_with_waste = quantity * item.effective_waste_factor
    material_total = round2(quantity_with_waste * material_unit)
    labor_total = round2(quantity_with_waste * labor_unit)
    equipment_total = round2(quantity_with_waste * equipment_unit)

    updated = item.model_copy(
        update={
            "quantity": quantity,
            "material_unit_cost": material_unit,
            "labor_unit_cost": labor_unit,
            "equipment_unit_cost": equipment_unit,
            "material_total": material_total,
            "labor_total": labor_total,
            "equipment_total": equipment_total,
            "line_total": round2(material_total + labor_total + equipment_total),
        }
    )
    return LineItemResult(item=updated, diagnostics=diagnostics)


def ordered(items: Sequence[EstimateLineItem]) -> list[EstimateLineItem]:
    return [item for _, item in sorted(enumerate(items), key=lambda pair: (pair[1].sort_order, pair[0]))]


def recalculate_line_items(
    items: Sequence[EstimateLineItem],
    variables: RoofVariables,
    multipliers: CostMultipliers,
    catalog: CatalogLookup,
) -> tuple[list[EstimateLineItem], list[Diagnostic]]:
    updated: list[EstimateLineItem] = []
    diagnostics: list[Diagnostic] = []
    for item in ordered(items):
        result = recalculate_line_item(item, variables, multipliers, catalog)
        updated.append(result.item)
        diagnostics.extend(result.diagnostics)
    return updated, diagnostics


__all__ = [
    "LineItemResult",
    "ordered",
    "recalculate_line_item",
    "recalculate_line_items",
    "round2",
]
