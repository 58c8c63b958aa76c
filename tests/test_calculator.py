import math
from pathlib import Path

import pytest

from roof_estimate_engine.calculator import (
    ordered,
    recalculate_line_item,
    recalculate_line_items,
    round2,
)
from roof_estimate_engine.catalog import InMemoryCatalog, LocalCatalog
from roof_estimate_engine.models.catalog import CatalogLineItem
from roof_estimate_engine.models.diagnostics import DiagnosticKind
from roof_estimate_engine.models.geographic import CostMultipliers
from roof_estimate_engine.models.line_item import EstimateLineItem
from roof_estimate_engine.models.variables import RoofVariables, SlopeVariables

NEUTRAL = CostMultipliers.neutral()


def load_catalog() -> LocalCatalog:
    return LocalCatalog(path=Path("data/catalog/line_items.json"))


def make_variables() -> RoofVariables:
    return RoofVariables(
        SQ=20,
        EAVE=100,
        RAKE=60,
        R=40,
        slopes={"F1": SlopeVariables(SQ=12, EAVE=50), "F2": SlopeVariables(SQ=8, EAVE=50)},
    )


def make_item(**fields) -> EstimateLineItem:
    defaults = {"id": "eli_1", "line_item_type_id": "li_shingle_arch"}
    return EstimateLineItem(**{**defaults, **fields})


def test_round2_half_away_from_zero():
    assert round2(27.555) == 27.56
    assert round2(25.05) == 25.05
    assert round2(0.005) == 0.01
    assert round2(-0.005) == -0.01
    assert round2(1.004) == 1.0


def test_round2_is_idempotent():
    for value in (27.555, 1 / 3, 2200.0000000000005, 8059.315, 0.0):
        assert round2(round2(value)) == round2(value)


def test_round2_rejects_non_finite():
    with pytest.raises(ValueError):
        round2(math.inf)


def test_scenario_c_waste_then_round():
    catalog = InMemoryCatalog()
    flat = make_item(quantity=10, material_unit_cost=2.505, cost_override=True)
    assert recalculate_line_item(flat, make_variables(), NEUTRAL, catalog).item.material_total == 25.05

    wasted = make_item(quantity=10, waste_factor=1.1, material_unit_cost=2.505, cost_override=True)
    result = recalculate_line_item(wasted, make_variables(), NEUTRAL, catalog)
    assert wasted.quantity_with_waste == 11
    assert result.item.material_total == 27.56


def test_formula_quantity_and_catalog_costs():
    item = make_item(quantity_formula="SQ", waste_factor=1.1)
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())

    assert result.ok
    assert result.item.quantity == 20
    assert result.item.material_unit_cost == 100
    assert result.item.labor_unit_cost == 60
    assert result.item.material_total == 2200
    assert result.item.labor_total == 1320
    assert result.item.equipment_total == 0
    assert result.item.line_total == 3520


def test_geographic_multipliers_scale_unit_costs():
    multipliers = CostMultipliers(material=1.1, labor=1.2, equipment=1.0)
    item = make_item(line_item_type_id="li_tearoff", quantity_formula="SQ")
    result = recalculate_line_item(item, make_variables(), multipliers, load_catalog())

    assert result.item.labor_unit_cost == pytest.approx(54.0)
    assert result.item.equipment_unit_cost == 5
    assert result.item.labor_total == 1080
    assert result.item.equipment_total == 100


def test_slope_scoped_formula():
    item = make_item(quantity_formula="SQ", slope="F1")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert result.item.quantity == 12

    prefixed = make_item(quantity_formula="F1SQ+F2SQ")
    assert recalculate_line_item(prefixed, make_variables(), NEUTRAL, load_catalog()).item.quantity == 20


def test_unknown_slope_keeps_quantity():
    item = make_item(quantity=7, quantity_formula="SQ", slope="F9")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert result.item.quantity == 7
    assert [diagnostic.kind for diagnostic in result.diagnostics] == [DiagnosticKind.unknown_variable]


def test_scenario_b_failed_formula_keeps_stored_quantity():
    item = make_item(quantity=15, quantity_formula="EAVE / 0")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())

    assert result.item.quantity == 15
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.item_id == "eli_1"
    assert diagnostic.kind is DiagnosticKind.division_by_zero
    # costs and totals are still refreshed from the kept quantity
    assert result.item.material_total == round2(15 * 1.0 * 100)


def test_syntax_error_diagnostic_has_position():
    item = make_item(quantity=3, quantity_formula="SQ+")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert result.item.quantity == 3
    assert result.diagnostics[0].kind is DiagnosticKind.syntax_error
    assert result.diagnostics[0].position == 3


def test_negative_formula_result_is_rejected():
    item = make_item(quantity=4, quantity_formula="SQ-100")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert result.item.quantity == 4
    assert result.diagnostics[0].kind is DiagnosticKind.negative_quantity


def test_override_without_formula_is_preserved():
    item = make_item(quantity=5, quantity_override=True, line_item_type_id="li_pipe_boot")
    catalog = load_catalog()
    variables = make_variables()
    for _ in range(3):
        item = recalculate_line_item(item, variables, NEUTRAL, catalog).item
        assert item.quantity == 5
    assert item.line_total == 200


def test_override_with_formula_still_evaluates():
    item = make_item(quantity=5, quantity_override=True, quantity_formula="SQ")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert result.item.quantity == 20


def test_cost_override_keeps_unit_costs():
    item = make_item(
        quantity=2,
        material_unit_cost=300,
        labor_unit_cost=200,
        cost_override=True,
        line_item_type_id="li_not_in_catalog",
    )
    result = recalculate_line_item(item, make_variables(), CostMultipliers(material=2.0), load_catalog())
    assert result.ok
    assert result.item.material_unit_cost == 300
    assert result.item.line_total == 1000


def test_scenario_e_missing_catalog_entry_keeps_costs():
    item = make_item(
        id="eli_gone",
        line_item_type_id="li_discontinued",
        quantity=2,
        material_unit_cost=12.5,
        labor_unit_cost=4,
    )
    result = recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())

    assert result.item.material_unit_cost == 12.5
    assert result.item.labor_unit_cost == 4
    assert result.item.material_total == 25
    assert [(d.item_id, d.kind) for d in result.diagnostics] == [
        ("eli_gone", DiagnosticKind.catalog_entry_missing)
    ]


@pytest.mark.parametrize("waste", [None, 0, -1])
def test_unset_or_non_positive_waste_means_none(waste):
    item = make_item(quantity=10, waste_factor=waste, material_unit_cost=1, cost_override=True)
    assert recalculate_line_item(item, make_variables(), NEUTRAL, InMemoryCatalog()).item.material_total == 10


def test_line_total_sums_rounded_parts():
    item = make_item(
        quantity=1,
        material_unit_cost=0.005,
        labor_unit_cost=0.005,
        equipment_unit_cost=0.005,
        cost_override=True,
    )
    result = recalculate_line_item(item, make_variables(), NEUTRAL, InMemoryCatalog())
    assert result.item.material_total == 0.01
    assert result.item.line_total == pytest.approx(0.03)


def test_input_item_is_not_mutated():
    item = make_item(quantity=0, quantity_formula="SQ")
    recalculate_line_item(item, make_variables(), NEUTRAL, load_catalog())
    assert item.quantity == 0
    assert item.line_total == 0


def test_batch_is_ordered_and_isolates_failures():
    items = [
        make_item(id="b", quantity_formula="EAVE/0", quantity=1, sort_order=2),
        make_item(id="a", quantity_formula="SQ", sort_order=1),
        make_item(id="c", quantity_formula="R", sort_order=2, line_item_type_id="li_ridge_vent"),
    ]
    updated, diagnostics = recalculate_line_items(items, make_variables(), NEUTRAL, load_catalog())

    assert [item.id for item in updated] == ["a", "b", "c"]
    assert [item.quantity for item in updated] == [20, 1, 40]
    assert [d.item_id for d in diagnostics] == ["b"]


def test_recalculation_is_deterministic():
    items = [make_item(id=str(n), quantity_formula="SQ*1.15", waste_factor=1.1) for n in range(5)]
    first = recalculate_line_items(items, make_variables(), NEUTRAL, load_catalog())
    second = recalculate_line_items(items, make_variables(), NEUTRAL, load_catalog())
    assert first == second


def test_ordered_is_stable():
    items = [make_item(id=name, sort_order=0) for name in "xyz"]
    assert [item.id for item in ordered(items)] == ["x", "y", "z"]


def test_totals_are_finite_and_non_negative():
    catalog = InMemoryCatalog(
        [CatalogLineItem(id="li_big", item_code="BIG", name="Big", category="misc", base_material_cost=1e6)]
    )
    item = make_item(line_item_type_id="li_big", quantity_formula="SQ*SQ*SQ")
    result = recalculate_line_item(item, make_variables(), NEUTRAL, catalog)
    for value in (result.item.material_total, result.item.labor_total, result.item.line_total):
        assert math.isfinite(value)
        assert value >= 0


def test_long_formula_does_not_abort_the_batch():
    items = [
        make_item(id="short", quantity_formula="SQ"),
        make_item(id="long", quantity_formula="+".join(["SQ"] * 2000), quantity=3),
        make_item(id="broken", quantity_formula="SQ/0", quantity=7),
    ]
    updated, diagnostics = recalculate_line_items(items, RoofVariables(SQ=2), NEUTRAL, load_catalog())

    assert [item.quantity for item in updated] == [2, 4000, 7]
    assert [d.item_id for d in diagnostics] == ["broken"]
