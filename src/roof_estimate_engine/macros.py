from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from .calculator import recalculate_line_item
from .catalog import CatalogLookup
from .models.diagnostics import Diagnostic, DiagnosticKind
from .models.geographic import CostMultipliers
from .models.line_item import EstimateLineItem
from .models.macro import EstimateMacro, MacroLineItem
from .models.variables import RoofVariables

logger = logging.getLogger(__name__)


@dataclass
class MacroApplication:
    line_items: list[EstimateLineItem] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _new_item_id() -> str:
    return f"eli_{uuid.uuid4().hex[:12]}"


def _draft_item(entry, row: MacroLineItem, multipliers: CostMultipliers) -> EstimateLineItem:
    waste = row.waste_factor if row.waste_factor and row.waste_factor > 0 else entry.default_waste_factor
    costs: dict[str, float] = {}
    if row.has_cost_override:
        # Override rows are priced once here and then kept as stored.
        material = entry.base_material_cost if row.material_cost_override is None else row.material_cost_override
        labor = entry.base_labor_cost if row.labor_cost_override is None else row.labor_cost_override
        equipment = (
            entry.base_equipment_cost
            if row.equipment_cost_override is None
            else row.equipment_cost_override
        )
        costs = {
            "material_unit_cost": material * multipliers.material,
            "labor_unit_cost": labor * multipliers.labor,
            "equipment_unit_cost": equipment * multipliers.equipment,
        }
    return EstimateLineItem(
        id=_new_item_id(),
        line_item_type_id=entry.id,
        item_code=entry.item_code,
        name=entry.name,
        category=entry.category,
        unit_type=entry.unit_type,
        quantity_formula=row.quantity_formula or entry.quantity_formula,
        waste_factor=waste,
        cost_override=row.has_cost_override,
        is_included=row.is_selected_by_default,
        is_optional=row.is_optional,
        sort_order=row.sort_order,
        group_name=row.group_name,
        notes=row.notes,
        **costs,
    )


def apply_macro(
    macro: EstimateMacro,
    catalog: CatalogLookup,
    variables: RoofVariables,
    multipliers: CostMultipliers | None = None,
) -> MacroApplication:
    """Expand a macro into priced line items for the given roof."""
    multipliers = multipliers or CostMultipliers.neutral()
    application = MacroApplication()
    for row in sorted(macro.line_items, key=lambda row: row.sort_order):
        entry = catalog.get(row.line_item_type_id)
        if entry is None:
            logger.warning(
                "Macro references a missing catalog entry",
                extra={"macro_id": macro.id, "line_item_type_id": row.line_item_type_id},
            )
            application.diagnostics.append(
                Diagnostic(
                    item_id=row.line_item_type_id,
                    kind=DiagnosticKind.catalog_entry_missing,
                    message=f"Macro {macro.id} references unknown catalog entry",
                )
            )
            continue
        result = recalculate_line_item(_draft_item(entry, row, multipliers), variables, multipliers, catalog)
        application.line_items.append(result.item)
        application.diagnostics.extend(result.diagnostics)
    return application


__all__ = ["MacroApplication", "apply_macro"]
