"""
Traverse Data Model
Immutable records shared by the normalizer, traverse, closure and export stages.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

SQFT_PER_ACRE = 43560.0


class Quadrant(str, Enum):
    NE = "NE"
    SE = "SE"
    SW = "SW"
    NW = "NW"


class CallType(str, Enum):
    LINE = "line"
    CURVE = "curve"
    NON_RADIAL = "non_radial"


class CurveDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class TraverseDirection(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


class ClosureQuality(str, Enum):
    EXCELLENT = "Excellent"
    VERY_GOOD = "VeryGood"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    MARGINAL = "Marginal"
    POOR = "Poor"


class UnplottableCategory(str, Enum):
    UPSTREAM = "upstream"
    MEANDER = "meander"
    MULTIPLE_DIRECTIONS = "multiple_directions"
    VAGUE_DIRECTION = "vague_direction"
    NO_BEARING = "no_bearing"
    QUALIFIED_DISTANCE = "qualified_distance"


class WarningType(str, Enum):
    CLOSURE = "closure"
    AREA = "area"
    ERROR_ZONE = "error_zone"
    BEARING_CORRECTION = "bearing_correction"
    LOW_CONFIDENCE = "low_confidence"
    UNPLOTTABLE = "unplottable"
    CENTERLINE = "centerline"
    SELF_INTERSECTION = "self_intersection"


@dataclass(frozen=True)
class Bearing:
    """
    Surveyor quadrant bearing.

    The azimuth is always derived from the components; there is no stored
    decimal that could drift out of agreement with them.
    """

    quadrant: Quadrant
    degrees: float = 0.0
    minutes: float = 0.0
    seconds: float = 0.0

    @property
    def angle(self) -> float:
        """Quadrant angle in decimal degrees (0-90)."""
        return self.degrees + self.minutes / 60.0 + self.seconds / 3600.0

    @property
    def decimal(self) -> float:
        """Azimuth in decimal degrees, clockwise from north."""
        theta = self.angle
        if self.quadrant == Quadrant.NE:
            azimuth = theta
        elif self.quadrant == Quadrant.SE:
            azimuth = 180.0 - theta
        elif self.quadrant == Quadrant.SW:
            azimuth = 180.0 + theta
        else:
            azimuth = 360.0 - theta
        return azimuth % 360.0

    @classmethod
    def from_azimuth(cls, azimuth: float) -> "Bearing":
        az = azimuth % 360.0
        if az <= 90.0:
            quadrant, theta = Quadrant.NE, az
        elif az <= 180.0:
            quadrant, theta = Quadrant.SE, 180.0 - az
        elif az <= 270.0:
            quadrant, theta = Quadrant.SW, az - 180.0
        else:
            quadrant, theta = Quadrant.NW, 360.0 - az

        total_seconds = round(theta * 3600.0, 2)
        degrees = int(total_seconds // 3600)
        minutes = int((total_seconds - degrees * 3600) // 60)
        seconds = round(total_seconds - degrees * 3600 - minutes * 60, 2)
        if seconds >= 60.0:
            seconds -= 60.0
            minutes += 1
        if minutes >= 60:
            minutes -= 60
            degrees += 1
        return cls(quadrant=quadrant, degrees=degrees, minutes=minutes, seconds=seconds)

    def format(self, degree_symbol: str = "°") -> str:
        ns, ew = self.quadrant.value[0], self.quadrant.value[1]
        return f"{ns} {self.degrees:g}{degree_symbol}{self.minutes:02g}'{self.seconds:02g}\" {ew}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quadrant": self.quadrant.value,
            "degrees": self.degrees,
            "minutes": self.minutes,
            "seconds": self.seconds,
            "bearing_decimal": round(self.decimal, 6),
            "formatted": self.format(),
        }


@dataclass(frozen=True)
class Monument:
    description: str
    condition: Optional[str] = None


@dataclass(frozen=True)
class Call:
    """
    One leg of a boundary description.

    Concrete legs are LineCall, CurveCall and NonRadialCall; ``course`` gives
    the single (azimuth, distance) interpretation used to move the traverse.
    """

    call_number: int = 0
    direction_text: Optional[str] = None
    along_description: Optional[str] = None
    monument: Optional[Monument] = None
    unplottable_reason: Optional[str] = None
    bearing_source: str = "none"
    low_confidence: bool = False
    had_bearing_error: bool = False

    call_type = CallType.LINE

    def course(self) -> Tuple[float, float]:
        raise NotImplementedError

    def called_distance(self) -> Optional[float]:
        return None

    def has_explicit_bearing(self) -> bool:
        return self.bearing_source in ("components", "text", "cardinal")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "call_number": self.call_number,
            "call_type": self.call_type.value,
            "direction_text": self.direction_text,
            "along_description": self.along_description,
            "bearing_source": self.bearing_source,
            "low_confidence": self.low_confidence,
            "had_bearing_error": self.had_bearing_error,
        }
        if self.monument is not None:
            data["monument"] = self.monument.description
            data["monument_condition"] = self.monument.condition
        if self.unplottable_reason:
            data["unplottable_reason"] = self.unplottable_reason
        return data


@dataclass(frozen=True)
class LineCall(Call):
    bearing: Optional[Bearing] = None
    distance: float = 0.0
    qualifier: Optional[str] = None

    call_type = CallType.LINE

    def course(self) -> Tuple[float, float]:
        azimuth = self.bearing.decimal if self.bearing is not None else 0.0
        return azimuth, self.distance

    def called_distance(self) -> Optional[float]:
        return self.distance

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "bearing": self.bearing.to_dict() if self.bearing else None,
            "distance_feet": self.distance,
            "distance_qualifier": self.qualifier,
        })
        return data


@dataclass(frozen=True)
class CurveCall(Call):
    radius: Optional[float] = None
    arc_length: Optional[float] = None
    chord_bearing: Optional[Bearing] = None
    chord_bearing_text: Optional[str] = None
    chord_distance: Optional[float] = None
    central_angle: Optional[float] = None
    curve_direction: Optional[CurveDirection] = None
    concave_direction: Optional[str] = None
    radial_bearing: Optional[Bearing] = None

    call_type = CallType.CURVE

    def course(self) -> Tuple[float, float]:
        azimuth = self.chord_bearing.decimal if self.chord_bearing is not None else 0.0
        distance = self.chord_distance if self.chord_distance is not None else (self.arc_length or 0.0)
        return azimuth, distance

    def called_distance(self) -> Optional[float]:
        return self.arc_length if self.arc_length is not None else self.chord_distance

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "radius": self.radius,
            "arc_length": self.arc_length,
            "chord_bearing": self.chord_bearing.to_dict() if self.chord_bearing else None,
            "chord_bearing_text": self.chord_bearing_text,
            "chord_distance": self.chord_distance,
            "central_angle": self.central_angle,
            "curve_direction": self.curve_direction.value if self.curve_direction else None,
            "concave_direction": self.concave_direction,
            "radial_bearing": self.radial_bearing.to_dict() if self.radial_bearing else None,
        })
        return data


@dataclass(frozen=True)
class NonRadialCall(Call):
    approx_direction: Optional[str] = None
    distance: Optional[float] = None
    bearing: Optional[Bearing] = None
    qualifier: Optional[str] = None

    call_type = CallType.NON_RADIAL

    def course(self) -> Tuple[float, float]:
        azimuth = self.bearing.decimal if self.bearing is not None else 0.0
        return azimuth, self.distance or 0.0

    def called_distance(self) -> Optional[float]:
        return self.distance

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "approx_direction": self.approx_direction,
            "distance_feet": self.distance,
            "distance_qualifier": self.qualifier,
            "bearing": self.bearing.to_dict() if self.bearing else None,
        })
        return data


@dataclass(frozen=True)
class Coordinate:
    northing: float
    easting: float
    label: str = ""
    source_call_index: Optional[int] = None

    def distance_to(self, other: "Coordinate") -> float:
        return math.hypot(other.easting - self.easting, other.northing - self.northing)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "northing": self.northing,
            "easting": self.easting,
            "n": round(self.northing, 3),
            "e": round(self.easting, 3),
            "label": self.label,
            "call_index": self.source_call_index,
        }


@dataclass(frozen=True)
class Parcel:
    parcel_id: str
    calls: Tuple[Call, ...]
    name: Optional[str] = None
    pob_description: Optional[str] = None
    pob_reference: Optional[str] = None
    called_area_value: Optional[float] = None
    called_area_unit: Optional[str] = None
    is_centerline: bool = False

    @property
    def called_area_sqft(self) -> Optional[float]:
        if not self.called_area_value:
            return None
        unit = (self.called_area_unit or "").strip().lower()
        if unit.startswith("acre") or unit in ("ac", "a"):
            return self.called_area_value * SQFT_PER_ACRE
        return self.called_area_value


@dataclass(frozen=True)
class BearingCorrection:
    call_number: int
    field: str
    original: float
    fixed: float
    reason: str = "remove leading digit"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_number": self.call_number,
            "field": self.field,
            "original": self.original,
            "fixed": self.fixed,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ParcelWarning:
    type: WarningType
    severity: str
    message: str
    call_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity,
            "message": self.message,
            "call_number": self.call_number,
        }


@dataclass(frozen=True)
class ClosureReport:
    error_distance: float
    error_north: float
    error_east: float
    perimeter: float
    precision_ratio: Optional[int]
    closes: bool
    quality: ClosureQuality

    @property
    def precision_text(self) -> str:
        if self.precision_ratio is None:
            return "Perfect"
        return f"1:{self.precision_ratio:,}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_distance": round(self.error_distance, 3),
            "error_north": round(self.error_north, 3),
            "error_east": round(self.error_east, 3),
            "perimeter": round(self.perimeter, 2),
            "precision_ratio": self.precision_text,
            "closes": self.closes,
            "closure_quality": self.quality.value,
        }


@dataclass(frozen=True)
class GapRecord:
    forward_index: int
    reverse_index: int
    forward_coord: Coordinate
    reverse_coord: Coordinate
    distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forward_index": self.forward_index,
            "reverse_index": self.reverse_index,
            "forward_label": self.forward_coord.label,
            "reverse_label": self.reverse_coord.label,
            "forward_coord": self.forward_coord.to_dict(),
            "reverse_coord": self.reverse_coord.to_dict(),
            "distance": round(self.distance, 3),
        }


ERROR_ZONE_CAVEAT = (
    "Heuristic localization only: the largest forward/reverse divergence "
    "suggests where the description disagrees with itself, it does not prove "
    "which call is wrong. A largest gap is reported only when both the "
    "misclosure and the gap exceed the noise floor."
)


@dataclass(frozen=True)
class ErrorZone:
    largest_gap: Optional[GapRecord] = None
    closest_match: Optional[GapRecord] = None
    caveat: str = ERROR_ZONE_CAVEAT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "largest_gap": self.largest_gap.to_dict() if self.largest_gap else None,
            "closest_match": self.closest_match.to_dict() if self.closest_match else None,
            "caveat": self.caveat,
        }


@dataclass(frozen=True)
class UnplottableRecord:
    call_number: int
    call_index: int
    category: UnplottableCategory
    reason: str
    matched_terms: Tuple[str, ...] = ()

    @property
    def triggers_gap_fill(self) -> bool:
        return self.category != UnplottableCategory.QUALIFIED_DISTANCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_number": self.call_number,
            "call_index": self.call_index,
            "category": self.category.value,
            "reason": self.reason,
            "matched_terms": list(self.matched_terms),
            "triggers_gap_fill": self.triggers_gap_fill,
        }


@dataclass(frozen=True)
class GapFillResult:
    gap_call_number: int
    forward_path: Tuple[Coordinate, ...]
    reverse_path: Tuple[Coordinate, ...]
    closing_bearing: Bearing
    closing_azimuth: float
    closing_distance: float
    called_distance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gap_call_number": self.gap_call_number,
            "forward_path": [c.to_dict() for c in self.forward_path],
            "reverse_path": [c.to_dict() for c in self.reverse_path],
            "closing_bearing": self.closing_bearing.to_dict(),
            "closing_azimuth": round(self.closing_azimuth, 6),
            "closing_distance": round(self.closing_distance, 3),
            "called_distance": self.called_distance,
        }


@dataclass(frozen=True)
class AreaDiscrepancy:
    called_sqft: float
    calculated_sqft: float
    difference_sqft: float
    percent_difference: float
    significant: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "called_sqft": self.called_sqft,
            "calculated_sqft": round(self.calculated_sqft, 2),
            "difference_sqft": round(self.difference_sqft, 2),
            "percent_difference": round(self.percent_difference, 2),
            "significant": self.significant,
        }


@dataclass(frozen=True)
class NormalizedCalls:
    """Output of the bearing normalizer for one call list."""

    calls: Tuple[Call, ...]
    corrections: Tuple[BearingCorrection, ...] = ()
    diagnostics: Tuple[str, ...] = ()


@dataclass
class ParcelResult:
    parcel: Parcel
    calls: Tuple[Call, ...]
    coordinates: List[Coordinate]
    reverse_coordinates: List[Coordinate]
    closure: Optional[ClosureReport]
    area_sqft: float
    error_zone: Optional[ErrorZone] = None
    gap_fill: Optional[GapFillResult] = None
    unplottable: List[UnplottableRecord] = field(default_factory=list)
    corrections: List[BearingCorrection] = field(default_factory=list)
    warnings: List[ParcelWarning] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)
    area_discrepancy: Optional[AreaDiscrepancy] = None
    self_intersects: bool = False

    @property
    def area_acres(self) -> float:
        return self.area_sqft / SQFT_PER_ACRE

    @property
    def requires_field_survey(self) -> bool:
        return bool(self.unplottable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parcel_id": self.parcel.parcel_id,
            "parcel_name": self.parcel.name,
            "pob_description": self.parcel.pob_description,
            "pob_reference": self.parcel.pob_reference,
            "called_area_value": self.parcel.called_area_value,
            "called_area_unit": self.parcel.called_area_unit,
            "calls": [c.to_dict() for c in self.calls],
            "coordinates": [c.to_dict() for c in self.coordinates],
            "reverse_coordinates": [c.to_dict() for c in self.reverse_coordinates],
            "closure": self.closure.to_dict() if self.closure else None,
            "calculated_area_sqft": round(self.area_sqft, 2),
            "calculated_area_acres": round(self.area_acres, 4),
            "area_discrepancy": self.area_discrepancy.to_dict() if self.area_discrepancy else None,
            "error_zone": self.error_zone.to_dict() if self.error_zone else None,
            "gap_fill": self.gap_fill.to_dict() if self.gap_fill else None,
            "unplottable_calls": [u.to_dict() for u in self.unplottable],
            "requires_field_survey": self.requires_field_survey,
            "bearing_corrections": [c.to_dict() for c in self.corrections],
            "self_intersects": self.self_intersects,
            "warnings": [w.to_dict() for w in self.warnings],
            "diagnostics": list(self.diagnostics),
        }


@dataclass
class TieLineResult:
    calls: Tuple[Call, ...]
    coordinates: List[Coordinate]
    poc_description: Optional[str] = None
    poc_reference: Optional[str] = None
    corrections: List[BearingCorrection] = field(default_factory=list)

    @property
    def poc(self) -> Optional[Coordinate]:
        return self.coordinates[0] if self.coordinates else None

    @property
    def pob(self) -> Optional[Coordinate]:
        return self.coordinates[-1] if self.coordinates else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poc_description": self.poc_description,
            "poc_reference": self.poc_reference,
            "calls": [c.to_dict() for c in self.calls],
            "coordinates": [c.to_dict() for c in self.coordinates],
            "bearing_corrections": [c.to_dict() for c in self.corrections],
        }
