from __future__ import annotations

import re
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import UnknownSlope

_SLOPE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

AGGREGATE_FIELDS = (
    "SQ",
    "SF",
    "P",
    "EAVE",
    "R",
    "VAL",
    "HIP",
    "RAKE",
    "SKYLIGHT_COUNT",
    "CHIMNEY_COUNT",
    "PIPE_COUNT",
    "VENT_COUNT",
    "GUTTER_LF",
    "DS_COUNT",
)

SLOPE_FIELDS = ("SQ", "SF", "PITCH", "EAVE", "RIDGE", "VALLEY", "HIP", "RAKE")


class SlopeVariables(BaseModel):
    """Measurements for a single roof facet."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    SQ: float = Field(default=0.0, ge=0, description="Squares (100 SF)")
    SF: float = Field(default=0.0, ge=0, description="Square feet")
    PITCH: float = Field(default=0.0, ge=0, description="Rise per 12 run")
    EAVE: float = Field(default=0.0, ge=0)
    RIDGE: float = Field(default=0.0, ge=0)
    VALLEY: float = Field(default=0.0, ge=0)
    HIP: float = Field(default=0.0, ge=0)
    RAKE: float = Field(default=0.0, ge=0)


class RoofVariables(BaseModel):
    """Aggregate roof measurements that quantity formulas read."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    SQ: float = Field(default=0.0, ge=0, description="Total squares")
    SF: float = Field(default=0.0, ge=0, description="Total square feet")
    P: float = Field(default=0.0, ge=0, description="Perimeter (LF)")
    EAVE: float = Field(default=0.0, ge=0)
    R: float = Field(default=0.0, ge=0, description="Ridge (LF)")
    VAL: float = Field(default=0.0, ge=0, description="Valley (LF)")
    HIP: float = Field(default=0.0, ge=0)
    RAKE: float = Field(default=0.0, ge=0)
    SKYLIGHT_COUNT: float = Field(default=0.0, ge=0)
    CHIMNEY_COUNT: float = Field(default=0.0, ge=0)
    PIPE_COUNT: float = Field(default=0.0, ge=0)
    VENT_COUNT: float = Field(default=0.0, ge=0)
    GUTTER_LF: float = Field(default=0.0, ge=0)
    DS_COUNT: float = Field(default=0.0, ge=0)
    slopes: Dict[str, SlopeVariables] = Field(default_factory=dict)

    @field_validator("slopes")
    @classmethod
    def _check_slope_names(cls, value: Dict[str, SlopeVariables]) -> Dict[str, SlopeVariables]:
        for name in value:
            if not _SLOPE_NAME.match(name):
                raise ValueError(f"slope name must be an identifier: {name!r}")
        return value

    @classmethod
    def empty(cls) -> "RoofVariables":
        return cls()

    def bindings(self, slope: str | None = None) -> dict[str, float]:
        """Flatten into the name -> value map formulas are evaluated against.

        Every slope is exposed with a prefix (``F1SQ``, ``F2EAVE``...). When
        ``slope`` is given, that slope's fields shadow the aggregate ones so a
        formula like ``SQ*1.1`` reads the facet's squares.
        """
        values: dict[str, float] = {name: float(getattr(self, name)) for name in AGGREGATE_FIELDS}
        for key, facet in self.slopes.items():
            for name in SLOPE_FIELDS:
                values[f"{key}{name}"] = float(getattr(facet, name))
        if slope is not None:
            facet = self.slopes.get(slope)
            if facet is None:
                raise UnknownSlope(slope)
            for name in SLOPE_FIELDS:
                values[name] = float(getattr(facet, name))
        return values

    def known_variables(self) -> list[str]:
        return sorted(self.bindings())


__all__ = ["AGGREGATE_FIELDS", "SLOPE_FIELDS", "RoofVariables", "SlopeVariables"]
