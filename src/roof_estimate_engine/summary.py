from __future__ import annotations

from dataclasses import dataclass

from .calculator import round2
from .formula import format_formula
from .models.catalog import UnitType
from .models.estimate import Estimate

DEFAULT_SQUARES = 20.0


@dataclass(frozen=True)
class EstimateSummary:
    total_cost: float
    cost_per_square: float
    material_percentage: int
    labor_percentage: int
    included_items: int
    optional_items: int


def cost_per_square(total_cost: float, squares: float) -> float:
    if squares <= 0:
        return 0.0
    return round2(total_cost / squares)


def summarize(estimate: Estimate) -> EstimateSummary:
    totals = estimate.totals
    included = [item for item in estimate.line_items if item.is_included]
    optional = [item for item in estimate.line_items if item.is_optional]
    material_pct = totals.total_material / totals.subtotal * 100 if totals.subtotal > 0 else 0.0
    labor_pct = totals.total_labor / totals.subtotal * 100 if totals.subtotal > 0 else 0.0
    squares = estimate.variables.SQ
    if squares <= 0:
        shingles = next(
            (
                item
                for item in estimate.line_items
                if item.unit_type is UnitType.squares and item.category == "shingles"
            ),
            None,
        )
        squares = shingles.quantity_with_waste if shingles else DEFAULT_SQUARES
    return EstimateSummary(
        total_cost=totals.price_likely,
        cost_per_square=cost_per_square(totals.price_likely, squares),
        material_percentage=round(material_pct),
        labor_percentage=round(labor_pct),
        included_items=len(included),
        optional_items=len(optional),
    )


def render_summary_markdown(estimate: Estimate) -> str:
    summary = summarize(estimate)
    totals = estimate.totals
    rows = []
    for item in estimate.line_items:
        if not item.is_included:
            continue
        formula = f" ({format_formula(item.quantity_formula)})" if item.has_formula else ""
        rows.append(
            f"- {item.name or item.item_code or item.id}: "
            f"{item.quantity_with_waste:.2f} {item.unit_type.value}{formula} = ${item.line_total:,.2f}"
        )
    lines = [
        "## Estimate summary",
        f"- Estimate: {estimate.name} (v{estimate.version})",
        f"- Status: {estimate.status.value}",
        f"- Subtotal: ${totals.subtotal:,.2f}",
        f"- Overhead ({estimate.overhead_percent:g}%): ${totals.overhead_amount:,.2f}",
        f"- Profit ({estimate.profit_percent:g}%): ${totals.profit_amount:,.2f}",
        f"- Tax ({estimate.tax_percent:g}%): ${totals.tax_amount:,.2f}",
        f"- Price range: ${totals.price_low:,.2f} - ${totals.price_high:,.2f}",
        f"- Likely price: ${totals.price_likely:,.2f}",
        f"- Cost per square: ${summary.cost_per_square:,.2f}",
        "",
        "## Line items",
        "\n".join(rows) if rows else "- none",
    ]
    if estimate.adjusted_price is not None:
        lines.insert(9, f"- Adjusted price: ${estimate.adjusted_price:,.2f}")
    return "\n".join(lines)


__all__ = ["EstimateSummary", "cost_per_square", "render_summary_markdown", "summarize"]
