from pathlib import Path

import pytest

from roof_estimate_engine.catalog import LocalCatalog
from roof_estimate_engine.geographic import InMemoryGeographicPricing, resolve_multipliers
from roof_estimate_engine.models.catalog import UnitType
from roof_estimate_engine.models.geographic import CostMultipliers


def load_regions() -> InMemoryGeographicPricing:
    return InMemoryGeographicPricing.from_file(Path("data/geographic/regions.json"))


def test_local_catalog_loads_entries():
    catalog = LocalCatalog(path=Path("data/catalog/line_items.json"))

    shingles = catalog.get("li_shingle_arch")
    assert shingles.unit_type is UnitType.squares
    assert shingles.default_waste_factor == 1.1
    assert catalog.get("li_nope") is None
    assert {item.id for item in catalog.by_category("flashing")} == {"li_drip_edge", "li_pipe_boot"}


def test_missing_catalog_file():
    with pytest.raises(FileNotFoundError):
        LocalCatalog(path=Path("data/catalog/missing.json"))


def test_region_lookup_by_id_and_zip():
    regions = load_regions()
    assert regions.get("geo_denver").labor_multiplier == 1.2
    assert regions.for_zip("80202").id == "geo_denver"
    assert regions.for_zip("99999") is None


def test_missing_multiplier_defaults_to_one():
    assert load_regions().get("geo_rural_tx").equipment_multiplier == 1.0


def test_resolve_multipliers():
    regions = load_regions()
    assert resolve_multipliers(None, regions) == CostMultipliers.neutral()
    assert resolve_multipliers("geo_denver", None) == CostMultipliers.neutral()
    assert resolve_multipliers("geo_unknown", regions) == CostMultipliers.neutral()
    assert resolve_multipliers("geo_denver", regions) == CostMultipliers(material=1.1, labor=1.2, equipment=1.0)
