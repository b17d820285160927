"""
Traverse Pipeline
Converts extractor output (tie lines plus parcels of calls) into coordinates,
closure, area, error localization and unplottable analysis per parcel.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import settings
from .closure import (
    analyze_closure,
    calculate_area,
    calculate_area_discrepancy,
    ring_self_intersects,
)
from .error_zone import ErrorZoneDetector
from .gap_fill import GapFillEngine
from .models import (
    Coordinate,
    Parcel,
    ParcelResult,
    ParcelWarning,
    TieLineResult,
    WarningType,
)
from .normalizer import BearingNormalizer
from .schemas import RawParcel, TraverseRequest
from .traverse import TraverseCalculator, TraverseError, TraverseInputError
from .unplottable import UnplottableDetector

logger = logging.getLogger(__name__)


def _is_centerline(raw: RawParcel) -> bool:
    if raw.is_centerline:
        return True
    text = " ".join(t for t in (raw.parcel_name, raw.pob_description) if t).lower()
    return "centerline" in text or "center line" in text


def combine_coordinates(results: List[ParcelResult], gap: Optional[float] = None) -> List[Dict[str, Any]]:
    """
    Display coordinates for several parcels at once: each parcel is shifted so
    its western edge sits a fixed gap east of the previous parcel.
    """
    gap = settings.COMBINED_GAP_FEET if gap is None else gap
    combined: List[Dict[str, Any]] = []
    offset = 0.0
    for result in results:
        if not result.coordinates:
            continue
        eastings = [c.easting for c in result.coordinates]
        min_e, max_e = min(eastings), max(eastings)
        for coord in result.coordinates:
            entry = coord.to_dict()
            entry["display_easting"] = coord.easting + offset - min_e
            entry["display_northing"] = coord.northing
            entry["parcel_id"] = result.parcel.parcel_id
            combined.append(entry)
        offset += (max_e - min_e) + gap
    return combined


class TraversePipeline:
    """
    Pipeline for turning structured legal-description calls into a checked
    traverse per parcel.
    """

    def __init__(self):
        self.normalizer = BearingNormalizer()
        self.calculator = TraverseCalculator()
        self.error_zone_detector = ErrorZoneDetector()
        self.unplottable_detector = UnplottableDetector()
        self.gap_fill_engine = GapFillEngine(self.calculator)

    def process(self, data: dict) -> dict:
        """
        Analyze a full extractor payload.

        Returns:
            dict: {"success": True, "parcels": [...], ...} or
                  {"success": False, "error": "..."}
        """
        try:
            request = TraverseRequest.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Traverse input validation failed: {e.error_count()} errors")
            return {"success": False, "error": f"Input validation failed: {e}"}

        if not request.parcels:
            return {"success": False, "error": "Input validation failed: no parcels provided"}

        try:
            tie_line, results = self.analyze(request)
        except TraverseError as e:
            logger.error(f"Traverse processing failed: {str(e)}")
            return {"success": False, "error": f"Processing failed: {str(e)}"}

        return {
            "success": True,
            "poc_description": request.poc_description,
            "poc_reference": request.poc_reference,
            "tie_line": tie_line.to_dict() if tie_line else None,
            "parcels": [r.to_dict() for r in results],
            "combined_coordinates": combine_coordinates(results) if len(results) > 1 else [],
            "metadata": {
                "total_parcels": len(results),
                "total_area_sqft": round(sum(r.area_sqft for r in results), 2),
                "requires_field_survey": any(r.requires_field_survey for r in results),
            },
        }

    def analyze(self, request: TraverseRequest) -> Tuple[Optional[TieLineResult], List[ParcelResult]]:
        """Tie lines first (they locate the POB), then each parcel independently."""
        tie_line = self.analyze_tie_lines(request)
        pob = tie_line.pob if tie_line else self._origin(request)
        results = [
            self.analyze_parcel(raw, pob, index)
            for index, raw in enumerate(request.parcels)
        ]
        return tie_line, results

    def _origin(self, request: TraverseRequest) -> Coordinate:
        if request.start is not None:
            return Coordinate(northing=request.start.northing, easting=request.start.easting, label="POB")
        return Coordinate(northing=0.0, easting=0.0, label="POB")

    def analyze_tie_lines(self, request: TraverseRequest) -> Optional[TieLineResult]:
        """Walk the tie lines from the point of commencement; their end is the POB."""
        if not request.tie_lines:
            return None

        poc = self._origin(request)
        normalized = self.normalizer.normalize_calls(request.tie_lines, start=poc, closed=False)
        coordinates = self.calculator.forward(normalized.calls, poc)
        coordinates[0] = Coordinate(northing=poc.northing, easting=poc.easting, label="POC")
        end = coordinates[-1]
        coordinates[-1] = Coordinate(
            northing=end.northing, easting=end.easting, label="POB",
            source_call_index=end.source_call_index,
        )
        logger.info(
            f"Tie line: {len(normalized.calls)} calls, POB at "
            f"N {end.northing:.3f} E {end.easting:.3f}"
        )
        return TieLineResult(
            calls=normalized.calls,
            coordinates=coordinates,
            poc_description=request.poc_description,
            poc_reference=request.poc_reference,
            corrections=list(normalized.corrections),
        )

    def analyze_parcel(self, raw: RawParcel, start: Optional[Coordinate] = None, index: int = 0) -> ParcelResult:
        """
        Analyze one parcel from its POB.

        Raises:
            TraverseInputError: the parcel has no call list at all
            TraverseError: the calls produce non-finite geometry
        """
        if isinstance(raw, dict):
            raw = RawParcel.model_validate(raw)
        parcel_id = raw.parcel_id or str(index + 1)
        if raw.calls is None:
            raise TraverseInputError(f"Parcel {parcel_id} has no call list")

        start = start or Coordinate(northing=0.0, easting=0.0, label="POB")
        centerline = _is_centerline(raw)
        normalized = self.normalizer.normalize_calls(raw.calls, start=start, closed=not centerline)
        calls = normalized.calls

        parcel = Parcel(
            parcel_id=parcel_id,
            calls=calls,
            name=raw.parcel_name,
            pob_description=raw.pob_description,
            pob_reference=raw.pob_reference,
            called_area_value=raw.called_area_value,
            called_area_unit=raw.called_area_unit,
            is_centerline=centerline,
        )

        forward = self.calculator.forward(calls, start)
        reverse = self.calculator.reverse(calls, start)
        area = calculate_area(forward)
        unplottable = self.unplottable_detector.scan(calls)

        result = ParcelResult(
            parcel=parcel,
            calls=calls,
            coordinates=forward,
            reverse_coordinates=reverse,
            closure=analyze_closure(forward),
            area_sqft=area,
            error_zone=self.error_zone_detector.detect(forward, reverse, len(calls)) if calls else None,
            gap_fill=self.gap_fill_engine.compute(calls, unplottable, start),
            unplottable=unplottable,
            corrections=list(normalized.corrections),
            diagnostics=list(normalized.diagnostics),
            area_discrepancy=calculate_area_discrepancy(parcel.called_area_sqft, area),
            self_intersects=ring_self_intersects(forward),
        )
        result.warnings = self._build_warnings(result)

        logger.info(
            f"Parcel {parcel_id}: {len(calls)} calls, area {area:.2f} sq ft, "
            f"{len(result.warnings)} warnings"
        )
        return result

    def _build_warnings(self, result: ParcelResult) -> List[ParcelWarning]:
        warnings: List[ParcelWarning] = []

        for correction in result.corrections:
            warnings.append(ParcelWarning(
                type=WarningType.BEARING_CORRECTION,
                severity="warning",
                message=(
                    f"Call {correction.call_number}: {correction.field} corrected from "
                    f"{correction.original:g} to {correction.fixed:g} ({correction.reason})"
                ),
                call_number=correction.call_number,
            ))

        for call in result.calls:
            if call.low_confidence:
                warnings.append(ParcelWarning(
                    type=WarningType.LOW_CONFIDENCE,
                    severity="warning",
                    message=f"Call {call.call_number}: bearing is low confidence (source: {call.bearing_source})",
                    call_number=call.call_number,
                ))

        closure = result.closure
        if result.parcel.is_centerline:
            warnings.append(ParcelWarning(
                type=WarningType.CENTERLINE,
                severity="info",
                message="Centerline description: not expected to close",
            ))
        elif closure is not None and not closure.closes:
            severity = "error" if closure.error_distance > settings.CLOSURE_ERROR_SEVERITY_FEET else "warning"
            warnings.append(ParcelWarning(
                type=WarningType.CLOSURE,
                severity=severity,
                message=(
                    f"Description does not close. Error: {closure.error_distance:.2f} ft "
                    f"({closure.precision_text})"
                ),
            ))

        discrepancy = result.area_discrepancy
        if discrepancy is not None and discrepancy.significant:
            severity = "error" if discrepancy.percent_difference > settings.AREA_ERROR_PERCENT else "warning"
            warnings.append(ParcelWarning(
                type=WarningType.AREA,
                severity=severity,
                message=f"Calculated area differs from called area by {discrepancy.percent_difference:.1f}%",
            ))

        if result.error_zone is not None and result.error_zone.largest_gap is not None:
            gap = result.error_zone.largest_gap
            warnings.append(ParcelWarning(
                type=WarningType.ERROR_ZONE,
                severity="error",
                message=(
                    f"Possible error between points {gap.forward_coord.label} and "
                    f"{gap.reverse_coord.label}. Gap: {gap.distance:.2f} ft"
                ),
                call_number=gap.forward_index,
            ))

        for record in result.unplottable:
            warnings.append(ParcelWarning(
                type=WarningType.UNPLOTTABLE,
                severity="warning" if record.triggers_gap_fill else "info",
                message=f"Call {record.call_number}: {record.reason}",
                call_number=record.call_number,
            ))

        if result.self_intersects:
            warnings.append(ParcelWarning(
                type=WarningType.SELF_INTERSECTION,
                severity="error",
                message="Boundary crosses itself",
            ))

        return warnings

    def get_available_options(self) -> dict:
        """Get available processing options and their descriptions"""
        return {
            "start": {
                "description": "Coordinates of the point of commencement (or POB when there are no tie lines)",
                "type": "object",
                "default": {"northing": 0.0, "easting": 0.0},
            },
            "closes_max_error_feet": {
                "description": "Misclosure below which a traverse is considered closed",
                "type": "float",
                "default": settings.CLOSES_MAX_ERROR_FEET,
            },
            "closes_min_precision": {
                "description": "Precision ratio (1:N) at or above which a traverse is considered closed",
                "type": "int",
                "default": settings.CLOSES_MIN_PRECISION,
            },
            "area_warning_percent": {
                "description": "Called vs calculated area difference that raises a warning",
                "type": "float",
                "default": settings.AREA_WARNING_PERCENT,
            },
            "error_zone_noise_floor_feet": {
                "description": "Forward/reverse divergence ignored as rounding noise",
                "type": "float",
                "default": settings.ERROR_ZONE_NOISE_FLOOR_FEET,
            },
            "dxf": {
                "description": "DXF export layout",
                "options": ["separate", "side_by_side"],
                "default": "separate",
            },
        }
