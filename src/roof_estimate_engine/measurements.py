from __future__ import annotations

import math
from dataclasses import dataclass, field

from .dictionaries import INTAKE_PITCHES, PITCH_MULTIPLIERS
from .models.variables import RoofVariables, SlopeVariables

MAX_PITCH = 18


def pitch_multiplier(pitch: float) -> float:
    """Area factor for a rise/12 pitch, interpolated between whole pitches."""
    if pitch <= 0:
        return 1.0
    if pitch >= MAX_PITCH:
        return PITCH_MULTIPLIERS[MAX_PITCH]
    lower = math.floor(pitch)
    upper = math.ceil(pitch)
    if lower == upper:
        return PITCH_MULTIPLIERS[lower]
    low, high = PITCH_MULTIPLIERS[lower], PITCH_MULTIPLIERS[upper]
    return low + (high - low) * (pitch - lower)


def sqft_to_squares(sqft: float) -> float:
    return sqft / 100


def squares_to_sqft(squares: float) -> float:
    return squares * 100


def variables_from_dimensions(
    *,
    length_ft: float,
    width_ft: float,
    pitch: float,
    skylights: int = 0,
    chimneys: int = 0,
    pipe_boots: int = 2,
    vents: int = 0,
    gutter_lf: float | None = None,
    downspouts: int = 2,
) -> RoofVariables:
    """Approximate a simple two-facet gable roof from its footprint."""
    actual_sqft = length_ft * width_ft * pitch_multiplier(pitch)
    squares = sqft_to_squares(actual_sqft)
    eave = length_ft * 2
    ridge = length_ft
    rake = width_ft * 2
    facet = SlopeVariables(
        SQ=round(squares / 2, 2),
        SF=round(actual_sqft / 2),
        PITCH=pitch,
        EAVE=round(eave / 2),
        RIDGE=round(ridge / 2),
        RAKE=round(rake / 2),
    )
    return RoofVariables(
        SQ=round(squares, 2),
        SF=round(actual_sqft),
        P=round(2 * (length_ft + width_ft)),
        EAVE=round(eave),
        R=round(ridge),
        RAKE=round(rake),
        SKYLIGHT_COUNT=skylights,
        CHIMNEY_COUNT=chimneys,
        PIPE_COUNT=pipe_boots,
        VENT_COUNT=vents,
        GUTTER_LF=round(eave if gutter_lf is None else gutter_lf),
        DS_COUNT=downspouts,
        slopes={"F1": facet, "F2": facet},
    )


def variables_from_intake(
    *,
    roof_size_sqft: float | None = None,
    roof_pitch: str | None = None,
    stories: int | None = None,
    has_skylights: bool = False,
    has_chimneys: bool = False,
) -> RoofVariables:
    """Rough variables from a lead intake form, assuming a square footprint."""
    base_sqft = roof_size_sqft or 2000
    side = math.sqrt(base_sqft)
    return variables_from_dimensions(
        length_ft=side,
        width_ft=side,
        pitch=INTAKE_PITCHES.get(roof_pitch or "medium", 5),
        skylights=1 if has_skylights else 0,
        chimneys=1 if has_chimneys else 0,
        pipe_boots=2 + (stories or 1),
        vents=math.ceil(base_sqft / 500),
        downspouts=math.ceil(side / 20),
    )


@dataclass
class VariableCheck:
    warnings: list[str] = field(default_factory=list)


def validate_variables(variables: RoofVariables) -> VariableCheck:
    """Plausibility warnings; negative values are already rejected by the model."""
    check = VariableCheck()
    if variables.SQ > 200:
        check.warnings.append("Very large roof (>200 squares)")
    if variables.SQ < 5:
        check.warnings.append("Very small roof (<5 squares)")
    if abs(variables.SF - squares_to_sqft(variables.SQ)) > 10:
        check.warnings.append("SF and SQ values are inconsistent")
    if variables.SF > 0 and variables.P > 0:
        ratio = variables.SF / variables.P
        if ratio < 5:
            check.warnings.append("Unusual shape - very long/narrow")
        if ratio > 50:
            check.warnings.append("Perimeter seems too small for area")
    return check


__all__ = [
    "VariableCheck",
    "pitch_multiplier",
    "sqft_to_squares",
    "squares_to_sqft",
    "validate_variables",
    "variables_from_dimensions",
    "variables_from_intake",
]
