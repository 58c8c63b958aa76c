from pathlib import Path

import pytest

from roof_estimate_engine.config import load_settings
from roof_estimate_engine.versioning import VersioningPolicy


def test_defaults(monkeypatch):
    for name in (
        "ENVIRONMENT",
        "PROJECT_ID",
        "ESTIMATE_VERSIONING_POLICY",
        "PRICE_BAND_LOW_PERCENT",
        "PRICE_BAND_HIGH_PERCENT",
        "RECALCULATION_MAX_ATTEMPTS",
        "MAX_LINE_ITEMS",
        "CATALOG_PATH",
        "GEOGRAPHIC_PRICING_PATH",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.environment == "dev"
    assert settings.versioning_policy is VersioningPolicy.additive
    assert settings.band.low(1000) == 900
    assert settings.band.high(1000) == 1150
    assert settings.recalculation_max_attempts == 3
    assert settings.max_line_items == 500
    assert settings.catalog_path == Path("data/catalog/line_items.json")
    assert settings.geographic_pricing_path is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ESTIMATE_VERSIONING_POLICY", "supersede_on_create")
    monkeypatch.setenv("PRICE_BAND_LOW_PERCENT", "5")
    monkeypatch.setenv("PRICE_BAND_HIGH_PERCENT", "20")
    monkeypatch.setenv("GEOGRAPHIC_PRICING_PATH", "data/geographic/regions.json")

    settings = load_settings()

    assert settings.versioning_policy is VersioningPolicy.supersede_on_create
    assert settings.band.low(1000) == 950
    assert settings.band.high(1000) == 1200
    assert settings.geographic_pricing_path == Path("data/geographic/regions.json")


def test_unknown_policy_is_rejected(monkeypatch):
    monkeypatch.setenv("ESTIMATE_VERSIONING_POLICY", "whatever")
    with pytest.raises(ValueError):
        load_settings()


def test_policy_name_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("ESTIMATE_VERSIONING_POLICY", "Additive")
    assert load_settings().versioning_policy is VersioningPolicy.additive
