import pytest

from roof_estimate_engine.models.estimate import EstimateTotals
from roof_estimate_engine.pricing_tiers import calculate_pricing_tiers, monthly_payment

TOTALS = EstimateTotals(price_low=900, price_likely=1000, price_high=1150)


def test_asphalt_tiers():
    tiers = calculate_pricing_tiers(TOTALS, "asphalt_shingle")

    assert [tier.level for tier in tiers.tiers] == ["good", "better", "best"]
    assert [tier.price_likely for tier in tiers.tiers] == [1000, 1150, 1350]
    assert tiers.tiers[0].price_low == 900
    assert tiers.tiers[1].material_name == "Architectural Shingles"
    assert tiers.selected_tier == "better"
    assert [tier.is_recommended for tier in tiers.tiers] == [False, True, False]


def test_metal_and_default_tiers():
    metal = calculate_pricing_tiers(TOTALS, "metal", recommended="best")
    assert metal.tiers[2].price_likely == 1450
    assert metal.tiers[2].is_recommended

    fallback = calculate_pricing_tiers(TOTALS, "slate")
    assert fallback.tiers[1].material_name == "Upgraded Materials"


def test_unknown_recommended_level():
    with pytest.raises(ValueError):
        calculate_pricing_tiers(TOTALS, recommended="platinum")


def test_monthly_payment():
    assert monthly_payment(12000, term_months=60, apr=0) == 200
    financed = monthly_payment(12000)
    assert 230 < financed < 245
    with pytest.raises(ValueError):
        monthly_payment(12000, term_months=0)


def test_payments_round_halves_up():
    assert monthly_payment(150, term_months=60, apr=0) == 3
    assert monthly_payment(90, term_months=60, apr=0) == 2
