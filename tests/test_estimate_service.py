from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from roof_estimate_engine.catalog import LocalCatalog
from roof_estimate_engine.errors import (
    AdjustmentNotFound,
    CatalogEntryMissing,
    EstimateNotDeletable,
    EstimateNotFound,
    InvalidPercentage,
    InvalidStatusTransition,
    LineItemNotFound,
)
from roof_estimate_engine.estimate_service import EstimateService
from roof_estimate_engine.estimate_store import InMemoryEstimateStore
from roof_estimate_engine.geographic import InMemoryGeographicPricing
from roof_estimate_engine.models.adjustment import AdjustmentType
from roof_estimate_engine.models.estimate import EstimateStatus
from roof_estimate_engine.models.macro import EstimateMacro
from roof_estimate_engine.models.variables import RoofVariables
from roof_estimate_engine.versioning import VersioningPolicy

VARIABLES = RoofVariables(SQ=20, SF=2000, EAVE=100, RAKE=60, R=40, PIPE_COUNT=3, GUTTER_LF=100)


def make_service(policy: VersioningPolicy = VersioningPolicy.additive) -> EstimateService:
    return EstimateService(
        store=InMemoryEstimateStore(),
        catalog=LocalCatalog(path=Path("data/catalog/line_items.json")),
        geographic=InMemoryGeographicPricing.from_file(Path("data/geographic/regions.json")),
        policy=policy,
    )


def test_new_estimate_starts_empty_with_zero_totals():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)

    assert estimate.version == 1
    assert estimate.status is EstimateStatus.draft
    assert estimate.line_items == []
    assert estimate.totals.price_likely == 0
    assert estimate.name == "Estimate v1"
    assert estimate.id.startswith("est_")


def test_create_rejects_bad_percentages():
    service = make_service()
    with pytest.raises(InvalidPercentage):
        service.create_estimate("L1", profit_percent=75)
    assert service.list_estimates("L1") == []


def test_additive_policy_keeps_every_version_current():
    service = make_service(VersioningPolicy.additive)
    first = service.create_estimate("L1")
    second = service.create_estimate("L1")

    assert second.version == 2
    assert service.get_estimate(first.id).is_superseded is False
    assert [e.version for e in service.list_estimates("L1")] == [2, 1]


def test_supersede_policy_marks_previous_estimates():
    service = make_service(VersioningPolicy.supersede_on_create)
    first = service.create_estimate("L1")
    second = service.create_estimate("L1")
    third = service.create_estimate("L1")

    assert service.get_estimate(first.id).is_superseded
    assert service.get_estimate(second.id).is_superseded
    assert [e.id for e in service.list_estimates("L1")] == [third.id]
    assert service.current_estimate("L1").id == third.id


def test_add_line_item_uses_catalog_defaults():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)

    result = service.add_line_item(estimate.id, "li_shingle_arch")
    item = result.estimate.line_items[0]

    assert item.quantity_formula == "SQ"
    assert item.waste_factor == 1.1
    assert item.quantity == 20
    assert item.line_total == 3520
    assert result.estimate.totals.subtotal == 3520
    assert result.estimate.revision == 1


def test_add_line_item_falls_back_to_suggested_formula():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item = service.add_line_item(estimate.id, "li_underlayment").estimate.line_items[0]
    assert item.quantity_formula == "SQ"
    assert item.quantity == 20


def test_add_line_item_with_explicit_quantity_is_an_override():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item = service.add_line_item(estimate.id, "li_dumpster", quantity=2).estimate.line_items[0]

    assert item.quantity_override
    assert item.quantity_formula is None
    assert item.equipment_total == 900


def test_add_line_item_rejects_unknown_or_inactive_entries():
    service = make_service()
    estimate = service.create_estimate("L1")
    with pytest.raises(CatalogEntryMissing):
        service.add_line_item(estimate.id, "li_nope")
    with pytest.raises(CatalogEntryMissing):
        service.add_line_item(estimate.id, "li_shingle_3tab")


def test_manual_quantity_survives_recalculation():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item_id = service.add_line_item(estimate.id, "li_drip_edge").estimate.line_items[0].id

    edited = service.update_line_item(estimate.id, item_id, quantity=175).estimate.line_item(item_id)
    assert edited.quantity_override
    assert edited.quantity_formula is None

    service.update_estimate(estimate.id, variables=VARIABLES.model_copy(update={"EAVE": 500}))
    recalculated = service.recalculate(estimate.id).estimate.line_item(item_id)
    assert recalculated.quantity == 175
    assert recalculated.material_total == 262.5


def test_setting_a_formula_clears_the_override():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item_id = service.add_line_item(estimate.id, "li_dumpster", quantity=2).estimate.line_items[0].id

    item = service.update_line_item(estimate.id, item_id, quantity_formula="SQ/10").estimate.line_item(item_id)
    assert not item.quantity_override
    assert item.quantity == 2


def test_manual_cost_is_kept_when_region_changes():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item_id = service.add_line_item(estimate.id, "li_tearoff").estimate.line_items[0].id

    service.update_line_item(estimate.id, item_id, labor_unit_cost=40)
    result = service.update_estimate(estimate.id, geographic_pricing_id="geo_denver")
    item = result.estimate.line_item(item_id)

    assert item.cost_override
    assert item.labor_unit_cost == 40
    assert item.labor_total == 800


def test_update_line_item_validates_fields():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    item_id = service.add_line_item(estimate.id, "li_tearoff").estimate.line_items[0].id

    with pytest.raises(ValueError):
        service.update_line_item(estimate.id, item_id, line_total=1)
    with pytest.raises(ValueError):
        service.update_line_item(estimate.id, item_id, material_unit_cost=-5)
    with pytest.raises(LineItemNotFound):
        service.update_line_item(estimate.id, "eli_missing", quantity=1)


def test_remove_line_item_updates_totals():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES, overhead_percent=0, profit_percent=0)
    keep = service.add_line_item(estimate.id, "li_tearoff").estimate.line_items[0].id
    drop = service.add_line_item(estimate.id, "li_drip_edge").estimate.line_items[1].id

    result = service.remove_line_item(estimate.id, drop)
    assert [item.id for item in result.estimate.line_items] == [keep]
    assert result.estimate.totals.price_likely == 1000
    with pytest.raises(LineItemNotFound):
        service.remove_line_item(estimate.id, drop)


def test_header_edits_without_pricing_changes_skip_recalculation():
    service = make_service()
    estimate = service.create_estimate("L1")
    result = service.update_estimate(estimate.id, name="Front and back", customer_notes="Weekend work ok")
    assert result.recalculated == 0
    assert result.estimate.name == "Front and back"
    with pytest.raises(ValueError):
        service.update_estimate(estimate.id, version=9)
    with pytest.raises(InvalidPercentage):
        service.update_estimate(estimate.id, tax_percent=21)


def test_copy_from_previous_version():
    service = make_service(VersioningPolicy.supersede_on_create)
    first = service.create_estimate("L1", variables=VARIABLES)
    service.add_line_item(first.id, "li_tearoff")
    source = service.add_line_item(first.id, "li_shingle_arch").estimate

    second = service.create_estimate("L1", copy_from_id=first.id, overhead_percent=0, profit_percent=0)

    assert second.version == 2
    assert second.variables == VARIABLES
    assert len(second.line_items) == 2
    assert {item.id for item in second.line_items}.isdisjoint(item.id for item in source.line_items)
    assert second.totals.subtotal == 4520
    assert service.get_estimate(first.id).is_superseded


def test_add_macro_appends_after_existing_items():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES)
    service.add_line_item(estimate.id, "li_pipe_boot")
    macro = EstimateMacro.model_validate_json(Path("data/macros/arch-tear-off.json").read_text(encoding="utf-8"))

    result = service.add_macro(estimate.id, macro)

    assert [item.line_item_type_id for item in result.estimate.line_items] == [
        "li_pipe_boot",
        "li_tearoff",
        "li_shingle_arch",
        "li_underlayment",
        "li_drip_edge",
        "li_dumpster",
        "li_gutter",
    ]
    assert [d.item_id for d in result.diagnostics] == ["li_retired_item"]


def test_status_flow_and_delete_guard():
    service = make_service()
    estimate = service.create_estimate("L1")
    sent = service.change_status(estimate.id, EstimateStatus.sent)
    assert sent.sent_at is not None

    with pytest.raises(EstimateNotDeletable):
        service.delete_estimate(estimate.id)
    with pytest.raises(InvalidStatusTransition):
        service.change_status(estimate.id, EstimateStatus.draft)

    accepted = service.change_status(estimate.id, EstimateStatus.accepted)
    assert accepted.accepted_at is not None


def test_delete_draft():
    service = make_service()
    estimate = service.create_estimate("L1")
    service.delete_estimate(estimate.id)
    with pytest.raises(EstimateNotFound):
        service.get_estimate(estimate.id)


def test_adjustments_are_persisted():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES, overhead_percent=0, profit_percent=0)
    service.add_line_item(estimate.id, "li_tearoff")

    updated, adjustment = service.apply_adjustment(estimate.id, AdjustmentType.discount_percent, 10)
    assert adjustment.new_price == 900
    assert service.get_estimate(estimate.id).adjusted_price == 900
    assert updated.totals.price_likely == 1000


def test_expire_due_persists_expired_estimates():
    service = make_service()
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    lapsed = service.create_estimate("L1", valid_until=now - timedelta(days=2))
    fresh = service.create_estimate("L1", valid_until=now + timedelta(days=2))
    service.change_status(lapsed.id, EstimateStatus.sent)
    service.change_status(fresh.id, EstimateStatus.sent)

    expired = service.expire_due("L1", now=now)

    assert [e.id for e in expired] == [lapsed.id]
    assert service.get_estimate(lapsed.id).status is EstimateStatus.expired
    assert service.get_estimate(fresh.id).status is EstimateStatus.sent


def test_removing_adjustments_restores_the_price():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES, overhead_percent=0, profit_percent=0)
    service.add_line_item(estimate.id, "li_tearoff")
    _, percent = service.apply_adjustment(estimate.id, AdjustmentType.discount_percent, 10)
    _, fixed = service.apply_adjustment(estimate.id, AdjustmentType.discount_fixed, 100)

    updated, removed = service.remove_adjustment(estimate.id, percent.id)
    assert removed.id == percent.id
    assert updated.adjusted_price == 900
    assert [a.id for a in service.get_estimate(estimate.id).adjustments] == [fixed.id]

    updated, _ = service.remove_adjustment(estimate.id, fixed.id)
    assert updated.adjusted_price is None
    with pytest.raises(AdjustmentNotFound):
        service.remove_adjustment(estimate.id, fixed.id)


def test_rebase_adjustments_after_repricing():
    service = make_service()
    estimate = service.create_estimate("L1", variables=VARIABLES, overhead_percent=0, profit_percent=0)
    service.add_line_item(estimate.id, "li_tearoff")
    service.apply_adjustment(estimate.id, AdjustmentType.discount_percent, 10)

    service.update_estimate(estimate.id, variables=VARIABLES.model_copy(update={"SQ": 40}))
    assert service.get_estimate(estimate.id).adjusted_price == 900

    rebased = service.rebase_adjustments(estimate.id)
    assert rebased.totals.price_likely == 2000
    assert rebased.adjusted_price == 1800
