"""
Traverse Input Schemas
Lenient pydantic models for the structured calls produced by the upstream
text-to-schema extractor. The extractor is an LLM, so numeric fields may arrive
as strings ("100.5 feet", "approx. 40") or be missing; values that cannot be
read as numbers become None instead of failing the whole request.
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER.search(value.replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


class RawCall(BaseModel):
    """One call exactly as the extractor emitted it."""

    model_config = ConfigDict(extra="allow")

    call_number: Optional[int] = None
    call_type: Optional[str] = "line"
    direction_text: Optional[str] = None
    quadrant: Optional[str] = None
    degrees: Optional[float] = None
    minutes: Optional[float] = None
    seconds: Optional[float] = None
    bearing_decimal: Optional[float] = None
    distance_feet: Optional[float] = None
    distance_qualifier: Optional[str] = None
    monument: Optional[str] = None
    monument_condition: Optional[str] = None
    along_description: Optional[str] = None

    # curve data
    curve_direction: Optional[str] = None
    concave_direction: Optional[str] = None
    radius: Optional[float] = None
    arc_length: Optional[float] = None
    chord_bearing_text: Optional[str] = None
    chord_bearing_decimal: Optional[float] = None
    chord_quadrant: Optional[str] = None
    chord_degrees: Optional[float] = None
    chord_minutes: Optional[float] = None
    chord_seconds: Optional[float] = None
    chord_distance: Optional[float] = None
    delta_degrees: Optional[float] = None
    delta_minutes: Optional[float] = None
    delta_seconds: Optional[float] = None
    delta_decimal: Optional[float] = None
    radial_bearing_text: Optional[str] = None
    radial_quadrant: Optional[str] = None
    radial_degrees: Optional[float] = None
    radial_minutes: Optional[float] = None
    radial_seconds: Optional[float] = None

    # non-radial / unplottable data
    approx_direction: Optional[str] = None
    unplottable: Optional[bool] = None
    unplottable_reason: Optional[str] = None

    @field_validator(
        "degrees", "minutes", "seconds", "bearing_decimal", "distance_feet",
        "radius", "arc_length", "chord_bearing_decimal", "chord_degrees",
        "chord_minutes", "chord_seconds", "chord_distance", "delta_degrees",
        "delta_minutes", "delta_seconds", "delta_decimal", "radial_degrees",
        "radial_minutes", "radial_seconds",
        mode="before",
    )
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return _coerce_number(value)

    @field_validator("call_number", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any) -> Optional[int]:
        number = _coerce_number(value)
        return int(number) if number is not None else None

    @field_validator(
        "call_type", "direction_text", "quadrant", "distance_qualifier",
        "monument", "monument_condition", "along_description",
        "curve_direction", "concave_direction", "chord_bearing_text",
        "chord_quadrant", "radial_bearing_text", "radial_quadrant",
        "approx_direction", "unplottable_reason",
        mode="before",
    )
    @classmethod
    def _lenient_text(cls, value: Any) -> Optional[str]:
        return _coerce_text(value)

    @field_validator("unplottable", mode="before")
    @classmethod
    def _lenient_flag(cls, value: Any) -> Optional[bool]:
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)


class RawParcel(BaseModel):
    model_config = ConfigDict(extra="allow")

    parcel_id: Optional[str] = None
    parcel_name: Optional[str] = None
    pob_description: Optional[str] = None
    pob_reference: Optional[str] = None
    calls: Optional[List[RawCall]] = None
    called_area_value: Optional[float] = None
    called_area_unit: Optional[str] = None
    is_centerline: Optional[bool] = None

    @field_validator("parcel_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Optional[str]:
        return _coerce_text(value)

    @field_validator("called_area_value", mode="before")
    @classmethod
    def _lenient_area(cls, value: Any) -> Optional[float]:
        return _coerce_number(value)


class StartPoint(BaseModel):
    northing: float = 0.0
    easting: float = 0.0


class TraverseRequest(BaseModel):
    """Full extractor payload: optional tie lines plus one or more parcels."""

    model_config = ConfigDict(extra="allow")

    poc_description: Optional[str] = None
    poc_reference: Optional[str] = None
    tie_lines: List[RawCall] = Field(default_factory=list)
    parcels: List[RawParcel] = Field(default_factory=list)
    start: Optional[StartPoint] = None

    @field_validator("tie_lines", "parcels", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value
