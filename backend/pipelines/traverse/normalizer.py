"""
Bearing Normalizer
Turns untrusted extractor calls into internally consistent, immutable Call
records: repairs transcription errors in minutes/seconds, rewrites cardinal
wording, recomputes every azimuth from its components and derives missing
chord data for curves.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from .bearings import (
    azimuth_between,
    correct_transcription,
    estimate_vague_azimuth,
    parse_bearing_text,
    parse_cardinal_text,
    parse_quadrant,
    side_of_travel,
)
from .models import (
    Bearing,
    BearingCorrection,
    Call,
    Coordinate,
    CurveCall,
    CurveDirection,
    LineCall,
    Monument,
    NonRadialCall,
    NormalizedCalls,
    Quadrant,
)
from .schemas import RawCall
from .traverse import advance

logger = logging.getLogger(__name__)

# Upstream decimals further than this from the recomputed azimuth are discarded
DECIMAL_TOLERANCE_DEGREES = 0.01

_COMPASS_AZIMUTHS = {
    "N": 0.0, "NE": 45.0, "E": 90.0, "SE": 135.0,
    "S": 180.0, "SW": 225.0, "W": 270.0, "NW": 315.0,
}


@dataclass(frozen=True)
class ChordContext:
    """Where the traverse stands when a curve's chord bearing is derived."""

    previous_call: Optional[Call]
    position: Coordinate
    start: Coordinate
    is_final: bool = False
    closed: bool = True

    @property
    def incoming_azimuth(self) -> Optional[float]:
        if self.previous_call is None:
            return None
        azimuth, _ = self.previous_call.course()
        return azimuth


@dataclass(frozen=True)
class ChordDerivation:
    bearing: Bearing
    source: str
    low_confidence: bool = False


ChordStrategy = Callable[[CurveCall, ChordContext], Optional[ChordDerivation]]


def _curve_side(curve: CurveCall) -> Optional[str]:
    if curve.curve_direction is not None:
        return curve.curve_direction.value
    return None


def _direction_azimuth(text: Optional[str]) -> Optional[float]:
    """Azimuth for compass wording like "northwesterly", "NW" or "north"."""
    if not text:
        return None
    vague = estimate_vague_azimuth(text)
    if vague is not None:
        return vague
    for word in re.findall(r"[A-Z]+", text.upper()):
        for name, letter in (("NORTH", "N"), ("SOUTH", "S"), ("EAST", "E"), ("WEST", "W")):
            word = word.replace(name, letter)
        if word in _COMPASS_AZIMUTHS:
            return _COMPASS_AZIMUTHS[word]
    return None


def _concave_side(curve: CurveCall, ctx: ChordContext) -> Optional[str]:
    text = (curve.concave_direction or "").lower()
    if "right" in text:
        return "right"
    if "left" in text:
        return "left"
    incoming = ctx.incoming_azimuth
    concave_azimuth = _direction_azimuth(curve.concave_direction)
    if incoming is not None and concave_azimuth is not None:
        return side_of_travel(incoming, concave_azimuth)
    return _curve_side(curve)


def chord_from_text(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    """Chord bearing given outright, as components or as text."""
    if curve.chord_bearing is not None:
        return ChordDerivation(curve.chord_bearing, "given")
    parsed = parse_bearing_text(curve.chord_bearing_text)
    if parsed is not None:
        return ChordDerivation(parsed, "text")
    return None


def chord_from_radial(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    """
    Radial bearing (PC toward the radius point) rotated 90 degrees onto the
    tangent, then deflected by half the central angle toward the center.
    """
    if curve.radial_bearing is None:
        return None
    radial = curve.radial_bearing.decimal
    side = _curve_side(curve)
    if side is None and ctx.incoming_azimuth is not None:
        side = side_of_travel(ctx.incoming_azimuth, radial)
    if side is None:
        return None

    sign = 1.0 if side == "right" else -1.0
    tangent = radial - sign * 90.0
    chord = tangent + sign * (curve.central_angle or 0.0) / 2.0
    return ChordDerivation(Bearing.from_azimuth(chord), "radial")


def chord_from_incoming_tangent(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    """Incoming bearing turned by half the central angle toward the concave side."""
    incoming = ctx.incoming_azimuth
    if incoming is None or curve.central_angle is None:
        return None
    side = _concave_side(curve, ctx)
    if side is None:
        return None
    sign = 1.0 if side == "right" else -1.0
    chord = incoming + sign * curve.central_angle / 2.0
    return ChordDerivation(Bearing.from_azimuth(chord), "tangent")


def chord_from_previous_call(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    incoming = ctx.incoming_azimuth
    if incoming is None:
        return None
    return ChordDerivation(Bearing.from_azimuth(incoming), "previous_call", low_confidence=True)


def chord_to_start(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    """Final call of a closed parcel: aim straight back at the start point."""
    if not (ctx.is_final and ctx.closed):
        return None
    if ctx.position.distance_to(ctx.start) < 1e-9:
        return None
    azimuth = azimuth_between(ctx.position.easting, ctx.position.northing, ctx.start.easting, ctx.start.northing)
    return ChordDerivation(Bearing.from_azimuth(azimuth), "closing", low_confidence=True)


CHORD_STRATEGIES: Tuple[ChordStrategy, ...] = (
    chord_from_text,
    chord_from_radial,
    chord_from_incoming_tangent,
    chord_from_previous_call,
    chord_to_start,
)


def derive_chord_bearing(curve: CurveCall, ctx: ChordContext) -> Optional[ChordDerivation]:
    for strategy in CHORD_STRATEGIES:
        derivation = strategy(curve, ctx)
        if derivation is not None:
            return derivation
    return None


def _call_kind(value: Optional[str]) -> str:
    kind = (value or "line").strip().lower().replace("-", "_").replace(" ", "_")
    if kind in ("curve", "arc"):
        return "curve"
    if kind in ("non_radial", "nonradial", "meander"):
        return "non_radial"
    return "line"


def _curve_direction(value: Optional[str]) -> Optional[CurveDirection]:
    text = (value or "").lower()
    if "counterclockwise" in text or "counter-clockwise" in text or "left" in text:
        return CurveDirection.LEFT
    if "clockwise" in text or "right" in text:
        return CurveDirection.RIGHT
    return None


class BearingNormalizer:
    """
    Reconciles raw calls into immutable Call records.

    Normalization walks the calls in order because two chord-bearing
    strategies depend on where the traverse stands; it never mutates the raw
    input.
    """

    def normalize_calls(
        self,
        raw_calls: Sequence[RawCall],
        start: Optional[Coordinate] = None,
        closed: bool = True,
    ) -> NormalizedCalls:
        start = start or Coordinate(northing=0.0, easting=0.0, label="POB")
        calls: List[Call] = []
        corrections: List[BearingCorrection] = []
        diagnostics: List[str] = []
        northing, easting = start.northing, start.easting

        for index, raw in enumerate(raw_calls):
            call_number = raw.call_number or index + 1
            kind = _call_kind(raw.call_type)
            if kind == "curve":
                ctx = ChordContext(
                    previous_call=calls[-1] if calls else None,
                    position=Coordinate(northing=northing, easting=easting),
                    start=start,
                    is_final=index == len(raw_calls) - 1,
                    closed=closed,
                )
                call = self._build_curve(raw, call_number, ctx, corrections, diagnostics)
            elif kind == "non_radial":
                call = self._build_non_radial(raw, call_number, corrections, diagnostics)
            else:
                call = self._build_line(raw, call_number, corrections, diagnostics)

            calls.append(call)
            azimuth, distance = call.course()
            northing, easting = advance(northing, easting, azimuth, distance)

        return NormalizedCalls(
            calls=tuple(calls),
            corrections=tuple(corrections),
            diagnostics=tuple(diagnostics),
        )

    def _corrected(
        self,
        value: Optional[float],
        field_name: str,
        call_number: int,
        corrections: List[BearingCorrection],
    ) -> float:
        if value is None:
            return 0.0
        fixed = correct_transcription(value)
        if fixed != value:
            logger.info(f"Call {call_number}: {field_name} {value:g} corrected to {fixed:g}")
            corrections.append(
                BearingCorrection(call_number=call_number, field=field_name, original=value, fixed=fixed)
            )
        return fixed

    def _bearing_from_components(
        self,
        quadrant: Optional[str],
        degrees: Optional[float],
        minutes: Optional[float],
        seconds: Optional[float],
        prefix: str,
        call_number: int,
        corrections: List[BearingCorrection],
    ) -> Optional[Bearing]:
        parsed_quadrant = parse_quadrant(quadrant)
        if parsed_quadrant is None or degrees is None:
            return None
        return Bearing(
            quadrant=parsed_quadrant,
            degrees=degrees,
            minutes=self._corrected(minutes, f"{prefix}minutes", call_number, corrections),
            seconds=self._corrected(seconds, f"{prefix}seconds", call_number, corrections),
        )

    def _repair_parsed(
        self,
        bearing: Bearing,
        prefix: str,
        call_number: int,
        corrections: List[BearingCorrection],
    ) -> Bearing:
        return Bearing(
            quadrant=bearing.quadrant,
            degrees=bearing.degrees,
            minutes=self._corrected(bearing.minutes, f"{prefix}minutes", call_number, corrections),
            seconds=self._corrected(bearing.seconds, f"{prefix}seconds", call_number, corrections),
        )

    def _check_decimal(
        self,
        bearing: Bearing,
        upstream: Optional[float],
        label: str,
        call_number: int,
        diagnostics: List[str],
    ) -> None:
        if upstream is None:
            return
        difference = abs((upstream - bearing.decimal + 180.0) % 360.0 - 180.0)
        if difference > DECIMAL_TOLERANCE_DEGREES:
            diagnostics.append(
                f"Call {call_number}: upstream {label} {upstream:.4f} discarded, "
                f"recomputed {bearing.decimal:.4f} from {bearing.format()}"
            )

    def _resolve_bearing(
        self,
        raw: RawCall,
        call_number: int,
        corrections: List[BearingCorrection],
        diagnostics: List[str],
    ) -> Tuple[Optional[Bearing], str]:
        """
        Resolve a line/non-radial bearing: components, then bearing text, then
        pure cardinal wording, then (low confidence) the upstream decimal or an
        estimate from vague direction words.
        """
        bearing = self._bearing_from_components(
            raw.quadrant, raw.degrees, raw.minutes, raw.seconds, "", call_number, corrections
        )
        if bearing is not None:
            self._check_decimal(bearing, raw.bearing_decimal, "bearing_decimal", call_number, diagnostics)
            return bearing, "components"

        parsed = parse_bearing_text(raw.direction_text)
        if parsed is not None:
            bearing = self._repair_parsed(parsed, "", call_number, corrections)
            self._check_decimal(bearing, raw.bearing_decimal, "bearing_decimal", call_number, diagnostics)
            return bearing, "text"

        cardinal = parse_cardinal_text(raw.direction_text)
        if cardinal is not None:
            return cardinal, "cardinal"

        if raw.bearing_decimal is not None:
            diagnostics.append(
                f"Call {call_number}: no bearing components; using upstream decimal {raw.bearing_decimal:.4f}"
            )
            return Bearing.from_azimuth(raw.bearing_decimal), "upstream_decimal"

        estimate = estimate_vague_azimuth(raw.approx_direction or raw.direction_text)
        if estimate is not None:
            diagnostics.append(f"Call {call_number}: bearing estimated from vague direction ({estimate:.1f})")
            return Bearing.from_azimuth(estimate), "estimated"

        return None, "none"

    def _common(self, raw: RawCall, call_number: int) -> dict:
        monument = None
        if raw.monument:
            monument = Monument(description=raw.monument, condition=raw.monument_condition)
        unplottable_reason = raw.unplottable_reason
        if raw.unplottable and not unplottable_reason:
            unplottable_reason = "marked unplottable by extractor"
        return {
            "call_number": call_number,
            "direction_text": raw.direction_text,
            "along_description": raw.along_description,
            "monument": monument,
            "unplottable_reason": unplottable_reason,
        }

    def _build_line(
        self,
        raw: RawCall,
        call_number: int,
        corrections: List[BearingCorrection],
        diagnostics: List[str],
    ) -> LineCall:
        before = len(corrections)
        bearing, source = self._resolve_bearing(raw, call_number, corrections, diagnostics)
        if bearing is None:
            diagnostics.append(f"Call {call_number}: no usable bearing, defaulting to north")
        if raw.distance_feet is None:
            diagnostics.append(f"Call {call_number}: no distance given, using 0")
        return LineCall(
            **self._common(raw, call_number),
            bearing=bearing,
            distance=raw.distance_feet or 0.0,
            qualifier=raw.distance_qualifier,
            bearing_source=source,
            low_confidence=source not in ("components", "text", "cardinal"),
            had_bearing_error=len(corrections) > before,
        )

    def _build_non_radial(
        self,
        raw: RawCall,
        call_number: int,
        corrections: List[BearingCorrection],
        diagnostics: List[str],
    ) -> NonRadialCall:
        before = len(corrections)
        bearing, source = self._resolve_bearing(raw, call_number, corrections, diagnostics)
        approx = raw.approx_direction
        if approx is None and source not in ("components", "text", "cardinal"):
            approx = raw.direction_text
        return NonRadialCall(
            **self._common(raw, call_number),
            approx_direction=approx,
            distance=raw.distance_feet,
            bearing=bearing,
            qualifier=raw.distance_qualifier,
            bearing_source=source,
            low_confidence=source not in ("components", "text", "cardinal"),
            had_bearing_error=len(corrections) > before,
        )

    def _central_angle(
        self,
        raw: RawCall,
        call_number: int,
        corrections: List[BearingCorrection],
    ) -> Optional[float]:
        if raw.delta_decimal is not None:
            return raw.delta_decimal
        if raw.delta_degrees is not None:
            minutes = self._corrected(raw.delta_minutes, "delta_minutes", call_number, corrections)
            seconds = self._corrected(raw.delta_seconds, "delta_seconds", call_number, corrections)
            return raw.delta_degrees + minutes / 60.0 + seconds / 3600.0
        if raw.radius and raw.arc_length:
            return math.degrees(raw.arc_length / raw.radius)
        return None

    def _build_curve(
        self,
        raw: RawCall,
        call_number: int,
        ctx: ChordContext,
        corrections: List[BearingCorrection],
        diagnostics: List[str],
    ) -> CurveCall:
        before = len(corrections)
        central_angle = self._central_angle(raw, call_number, corrections)

        chord_source = "components"
        chord_bearing = self._bearing_from_components(
            raw.chord_quadrant, raw.chord_degrees, raw.chord_minutes, raw.chord_seconds,
            "chord_", call_number, corrections,
        )
        if chord_bearing is None and raw.chord_bearing_text:
            parsed = parse_bearing_text(raw.chord_bearing_text)
            if parsed is not None:
                chord_bearing = self._repair_parsed(parsed, "chord_", call_number, corrections)
                chord_source = "text"

        radial_bearing = self._bearing_from_components(
            raw.radial_quadrant, raw.radial_degrees, raw.radial_minutes, raw.radial_seconds,
            "radial_", call_number, corrections,
        )
        if radial_bearing is None and raw.radial_bearing_text:
            parsed = parse_bearing_text(raw.radial_bearing_text)
            if parsed is not None:
                radial_bearing = self._repair_parsed(parsed, "radial_", call_number, corrections)

        chord_distance = raw.chord_distance
        if chord_distance is None:
            if raw.radius and central_angle:
                chord_distance = 2.0 * raw.radius * math.sin(math.radians(central_angle) / 2.0)
                diagnostics.append(f"Call {call_number}: chord distance derived from radius and delta")
            elif raw.arc_length is not None:
                chord_distance = raw.arc_length
                diagnostics.append(f"Call {call_number}: chord distance taken from arc length")

        curve = CurveCall(
            **self._common(raw, call_number),
            radius=raw.radius,
            arc_length=raw.arc_length,
            chord_bearing=chord_bearing,
            chord_bearing_text=raw.chord_bearing_text,
            chord_distance=chord_distance,
            central_angle=central_angle,
            curve_direction=_curve_direction(raw.curve_direction),
            concave_direction=raw.concave_direction,
            radial_bearing=radial_bearing,
        )

        derivation = derive_chord_bearing(curve, ctx)
        if derivation is None:
            diagnostics.append(f"Call {call_number}: chord bearing could not be derived, defaulting to north")
            return replace(
                curve,
                chord_bearing=Bearing(Quadrant.NE, 0, 0, 0),
                bearing_source="default",
                low_confidence=True,
                had_bearing_error=len(corrections) > before,
            )

        if derivation.bearing is not chord_bearing:
            logger.debug(f"Call {call_number}: chord bearing {derivation.bearing.format()} via {derivation.source}")
            diagnostics.append(
                f"Call {call_number}: chord bearing {derivation.bearing.format()} derived via {derivation.source}"
            )
        else:
            self._check_decimal(chord_bearing, raw.chord_bearing_decimal, "chord_bearing_decimal", call_number, diagnostics)

        source = chord_source if derivation.source == "given" else derivation.source
        return replace(
            curve,
            chord_bearing=derivation.bearing,
            bearing_source=source,
            low_confidence=derivation.low_confidence,
            had_bearing_error=len(corrections) > before,
        )
