import pytest

from roof_estimate_engine.measurements import (
    pitch_multiplier,
    sqft_to_squares,
    squares_to_sqft,
    validate_variables,
    variables_from_dimensions,
    variables_from_intake,
)
from roof_estimate_engine.models.variables import RoofVariables


def test_pitch_multiplier_table_and_interpolation():
    assert pitch_multiplier(0) == 1.0
    assert pitch_multiplier(6) == 1.118
    assert pitch_multiplier(6.5) == pytest.approx(1.138)
    assert pitch_multiplier(24) == 1.803


def test_square_conversions():
    assert sqft_to_squares(2500) == 25
    assert squares_to_sqft(12.5) == 1250


def test_variables_from_dimensions():
    variables = variables_from_dimensions(length_ft=40, width_ft=25, pitch=6, chimneys=1)

    assert variables.SQ == pytest.approx(11.18)
    assert variables.SF == 1118
    assert variables.P == 130
    assert variables.EAVE == 80
    assert variables.R == 40
    assert variables.RAKE == 50
    assert variables.GUTTER_LF == 80
    assert variables.CHIMNEY_COUNT == 1
    assert set(variables.slopes) == {"F1", "F2"}
    assert variables.slopes["F1"].SQ == pytest.approx(5.59)
    assert validate_variables(variables).warnings == []


def test_variables_from_intake():
    variables = variables_from_intake(roof_size_sqft=2500, roof_pitch="steep", stories=2, has_skylights=True)

    assert variables.SQ == pytest.approx(30.05, abs=0.01)
    assert variables.PIPE_COUNT == 4
    assert variables.VENT_COUNT == 5
    assert variables.DS_COUNT == 3
    assert variables.SKYLIGHT_COUNT == 1
    assert variables.bindings("F1")["PITCH"] == 8


def test_intake_defaults():
    variables = variables_from_intake()
    assert variables.SQ == pytest.approx(21.66, abs=0.01)


def test_validate_variables_warnings():
    warnings = validate_variables(RoofVariables(SQ=2, SF=900, P=500)).warnings
    assert "Very small roof (<5 squares)" in warnings
    assert "SF and SQ values are inconsistent" in warnings
    assert "Unusual shape - very long/narrow" in warnings
