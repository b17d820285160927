"""
DXF Encoder
Writes parcels, tie lines and free annotations as an AutoCAD R12 (AC1009)
ASCII DXF. Group-code pairs are emitted directly so identical input always
produces identical bytes.
"""
from __future__ import annotations

import logging
import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from config import settings
from pipelines.traverse.closure import PERFECT_CLOSURE_FEET
from pipelines.traverse.models import (
    Call,
    Coordinate,
    CurveCall,
    LineCall,
    NonRadialCall,
    ParcelResult,
    TieLineResult,
)

logger = logging.getLogger(__name__)

DXF_VERSION = "AC1009"

# (name, ACI color, linetype)
PARCEL_LAYERS: Tuple[Tuple[str, int, str], ...] = (
    ("BOUNDARY", 7, "CONTINUOUS"),
    ("CURVES", 5, "CONTINUOUS"),
    ("POINTS", 3, "CONTINUOUS"),
    ("POB", 1, "CONTINUOUS"),
    ("TEXT", 2, "CONTINUOUS"),
    ("BEARINGS", 8, "CONTINUOUS"),
)
SHARED_LAYERS: Tuple[Tuple[str, int, str], ...] = (
    ("POC", 6, "CONTINUOUS"),
    ("TIE_LINE", 4, "DASHED"),
    ("NOTES", 7, "CONTINUOUS"),
)


class DXFEncodingError(ValueError):
    """Geometry that cannot be written, such as NaN or infinite coordinates."""
    pass


@dataclass(frozen=True)
class Annotation:
    text: str
    northing: float
    easting: float
    height: Optional[float] = None
    rotation: float = 0.0


def _fmt(value: float, places: int = 6) -> str:
    text = f"{value:.{places}f}"
    # no "-0.000000"
    if float(text) == 0.0:
        return f"{0.0:.{places}f}"
    return text


def dxf_text(value: str) -> str:
    """Plain single-line ASCII with the degree sign as the %%d control code."""
    value = value.replace("°", "%%d").replace("\r", " ").replace("\n", " ")
    value = unicodedata.normalize("NFKD", value)
    return value.encode("ascii", "ignore").decode("ascii")


_LAYER_UNSAFE = re.compile(r"[^A-Z0-9_$-]+")
# R12 layer names stop at 31 characters; "BOUNDARY_P" uses 10
_LAYER_ID_MAX = 20


def layer_suffixes(parcels: Sequence[ParcelResult]) -> List[str]:
    """
    One "_P<id>" suffix per parcel, or "" for a single parcel. Ids are reduced
    to R12-safe characters and made unique, falling back to the parcel's
    position when nothing usable is left.
    """
    if len(parcels) <= 1:
        return [""] * len(parcels)
    suffixes: List[str] = []
    used = set()
    for position, result in enumerate(parcels, start=1):
        token = _LAYER_UNSAFE.sub("_", (result.parcel.parcel_id or "").upper()).strip("_")
        token = token[:_LAYER_ID_MAX] or str(position)
        if token in used:
            token = f"{token[:_LAYER_ID_MAX - 4]}_{position}"
        while token in used:
            token = f"{token}_"
        used.add(token)
        suffixes.append(f"_P{token}")
    return suffixes


def call_label(call: Call) -> str:
    """Bearing/distance text drawn along a leg."""
    if isinstance(call, CurveCall):
        parts = [f"C{call.call_number}"]
        if call.radius is not None:
            parts.append(f"R={call.radius:.2f}'")
        if call.arc_length is not None:
            parts.append(f"L={call.arc_length:.2f}'")
        if call.chord_bearing is not None and call.chord_distance is not None:
            parts.append(f"CH={call.chord_bearing.format('%%d')} {call.chord_distance:.2f}'")
        return " ".join(parts)
    if isinstance(call, (LineCall, NonRadialCall)) and call.bearing is not None:
        _, distance = call.course()
        return f"{call.bearing.format('%%d')} {distance:.2f}'"
    _, distance = call.course()
    return f"{call.direction_text or 'UNPLOTTABLE'} {distance:.2f}'"


class _Extents:
    def __init__(self):
        self.min_e = math.inf
        self.min_n = math.inf
        self.max_e = -math.inf
        self.max_n = -math.inf

    def add(self, easting: float, northing: float) -> None:
        self.min_e = min(self.min_e, easting)
        self.min_n = min(self.min_n, northing)
        self.max_e = max(self.max_e, easting)
        self.max_n = max(self.max_n, northing)

    def bounds(self) -> Tuple[float, float, float, float]:
        if self.min_e == math.inf:
            return 0.0, 0.0, 0.0, 0.0
        return self.min_e, self.min_n, self.max_e, self.max_n


class DXFEncoder:
    """
    Encodes analyzed parcels to DXF text.

    With more than one parcel, parcel-specific layers carry a ``_P<id>``
    suffix so each parcel can be toggled on its own.
    """

    def __init__(
        self,
        text_height: Optional[float] = None,
        point_radius: Optional[float] = None,
        label_offset: Optional[float] = None,
        side_by_side_gap: Optional[float] = None,
    ):
        self.text_height = settings.DXF_TEXT_HEIGHT if text_height is None else text_height
        self.point_radius = settings.DXF_POINT_RADIUS if point_radius is None else point_radius
        self.label_offset = settings.DXF_LABEL_OFFSET if label_offset is None else label_offset
        self.side_by_side_gap = settings.DXF_SIDE_BY_SIDE_GAP if side_by_side_gap is None else side_by_side_gap

    def encode(
        self,
        parcels: Sequence[ParcelResult],
        tie_line: Optional[TieLineResult] = None,
        annotations: Optional[Sequence[Annotation]] = None,
        side_by_side: bool = False,
    ) -> str:
        annotations = list(annotations or [])
        self._check_finite(parcels, tie_line, annotations)

        self._entities: List[str] = []
        self._extents = _Extents()

        suffixes = layer_suffixes(parcels)
        offsets = self._parcel_offsets(parcels) if side_by_side else [0.0] * len(parcels)

        if tie_line is not None:
            self._write_tie_line(tie_line)
        for result, suffix, offset in zip(parcels, suffixes, offsets):
            self._write_parcel(result, suffix, offset)
        for note in annotations:
            self._text(
                note.easting, note.northing, note.text,
                note.height or self.text_height, "NOTES", rotation=note.rotation,
            )

        out: List[str] = []
        self._write_header(out)
        self._write_tables(out, suffixes)
        out.extend(["0", "SECTION", "2", "BLOCKS", "0", "ENDSEC"])
        out.extend(["0", "SECTION", "2", "ENTITIES"])
        out.extend(self._entities)
        out.extend(["0", "ENDSEC", "0", "EOF"])

        logger.info(
            f"DXF encoded: {len(parcels)} parcels, tie line: {tie_line is not None}, "
            f"{len(annotations)} annotations"
        )
        return "\n".join(out) + "\n"

    def _check_finite(
        self,
        parcels: Sequence[ParcelResult],
        tie_line: Optional[TieLineResult],
        annotations: Sequence[Annotation],
    ) -> None:
        def check(points: Iterable[Coordinate], owner: str) -> None:
            for coord in points:
                if not (math.isfinite(coord.northing) and math.isfinite(coord.easting)):
                    raise DXFEncodingError(
                        f"{owner}: non-finite coordinate at point '{coord.label}' "
                        f"(N={coord.northing}, E={coord.easting})"
                    )

        for result in parcels:
            check(result.coordinates, f"Parcel {result.parcel.parcel_id}")
        if tie_line is not None:
            check(tie_line.coordinates, "Tie line")
        for note in annotations:
            if not (math.isfinite(note.northing) and math.isfinite(note.easting)):
                raise DXFEncodingError(f"Annotation '{note.text}': non-finite position")

    def _parcel_offsets(self, parcels: Sequence[ParcelResult]) -> List[float]:
        """Easting shift per parcel so each starts a fixed gap east of the previous one."""
        offsets: List[float] = []
        offset = 0.0
        previous_max: Optional[float] = None
        for result in parcels:
            eastings = [c.easting for c in result.coordinates]
            if not eastings:
                offsets.append(offset)
                continue
            if previous_max is not None:
                offset = previous_max - min(eastings) + self.side_by_side_gap
            offsets.append(offset)
            previous_max = max(eastings) + offset
        return offsets

    # --- entities -------------------------------------------------------

    def _line(self, a: Tuple[float, float], b: Tuple[float, float], layer: str, linetype: Optional[str] = None) -> None:
        self._entities.extend(["0", "LINE", "8", layer])
        if linetype:
            self._entities.extend(["6", linetype])
        self._entities.extend([
            "10", _fmt(a[0]), "20", _fmt(a[1]), "30", _fmt(0.0),
            "11", _fmt(b[0]), "21", _fmt(b[1]), "31", _fmt(0.0),
        ])
        self._extents.add(*a)
        self._extents.add(*b)

    def _circle(self, center: Tuple[float, float], radius: float, layer: str) -> None:
        self._entities.extend([
            "0", "CIRCLE", "8", layer,
            "10", _fmt(center[0]), "20", _fmt(center[1]), "30", _fmt(0.0),
            "40", _fmt(radius, 4),
        ])
        self._extents.add(center[0] - radius, center[1] - radius)
        self._extents.add(center[0] + radius, center[1] + radius)

    def _text(
        self,
        x: float,
        y: float,
        value: str,
        height: float,
        layer: str,
        rotation: float = 0.0,
        centered: bool = False,
    ) -> None:
        self._entities.extend([
            "0", "TEXT", "8", layer,
            "10", _fmt(x), "20", _fmt(y), "30", _fmt(0.0),
            "40", _fmt(height, 4),
            "1", dxf_text(value),
        ])
        if rotation:
            self._entities.extend(["50", _fmt(rotation, 4)])
        if centered:
            self._entities.extend(["72", "1", "11", _fmt(x), "21", _fmt(y), "31", _fmt(0.0)])
        self._extents.add(x, y)

    def _leg_label(self, a: Tuple[float, float], b: Tuple[float, float], text: str, side: int, layer: str) -> None:
        """Centered along the leg, pushed off it perpendicular on the given side."""
        de, dn = b[0] - a[0], b[1] - a[1]
        length = math.hypot(de, dn)
        if length < PERFECT_CLOSURE_FEET:
            return
        ue, un = de / length, dn / length
        mid_e = (a[0] + b[0]) / 2.0 + side * un * self.label_offset
        mid_n = (a[1] + b[1]) / 2.0 - side * ue * self.label_offset

        rotation = math.degrees(math.atan2(dn, de))
        if rotation > 90.0:
            rotation -= 180.0
        elif rotation <= -90.0:
            rotation += 180.0
        self._text(mid_e, mid_n, text, self.text_height, layer, rotation=rotation, centered=True)

    def _write_parcel(self, result: ParcelResult, suffix: str, offset: float) -> None:
        coords = result.coordinates
        if not coords:
            return
        points = [(c.easting + offset, c.northing) for c in coords]

        for i in range(1, len(points)):
            call = result.calls[coords[i].source_call_index] if coords[i].source_call_index is not None else None
            layer = "CURVES" if isinstance(call, CurveCall) else "BOUNDARY"
            self._line(points[i - 1], points[i], f"{layer}{suffix}")
            if call is not None:
                side = 1 if (i - 1) % 2 == 0 else -1
                self._leg_label(points[i - 1], points[i], call_label(call), side, f"BEARINGS{suffix}")

        closes_on_start = len(coords) > 1 and coords[-1].distance_to(coords[0]) < PERFECT_CLOSURE_FEET
        if len(coords) > 2 and not closes_on_start:
            self._line(points[-1], points[0], f"BOUNDARY{suffix}")

        for i, point in enumerate(points):
            if i == len(points) - 1 and i > 0 and closes_on_start:
                continue
            is_pob = i == 0
            self._circle(point, self.point_radius, f"POB{suffix}" if is_pob else f"POINTS{suffix}")
            self._text(
                point[0] + self.point_radius * 2, point[1] + self.point_radius * 2,
                "POB" if is_pob else str(i), self.text_height, f"TEXT{suffix}",
            )

    def _write_tie_line(self, tie_line: TieLineResult) -> None:
        points = [(c.easting, c.northing) for c in tie_line.coordinates]
        if not points:
            return
        for i in range(1, len(points)):
            self._line(points[i - 1], points[i], "TIE_LINE", linetype="DASHED")
            call = tie_line.calls[i - 1] if i - 1 < len(tie_line.calls) else None
            if call is not None:
                side = 1 if (i - 1) % 2 == 0 else -1
                self._leg_label(points[i - 1], points[i], call_label(call), side, "TIE_LINE")
        poc = points[0]
        self._circle(poc, self.point_radius, "POC")
        self._text(poc[0] + self.point_radius * 2, poc[1] + self.point_radius * 2, "POC", self.text_height, "POC")

    # --- sections -------------------------------------------------------

    def _write_header(self, out: List[str]) -> None:
        min_e, min_n, max_e, max_n = self._extents.bounds()
        out.extend(["0", "SECTION", "2", "HEADER"])
        out.extend(["9", "$ACADVER", "1", DXF_VERSION])
        out.extend(["9", "$INSBASE", "10", _fmt(0.0), "20", _fmt(0.0), "30", _fmt(0.0)])
        out.extend(["9", "$EXTMIN", "10", _fmt(min_e), "20", _fmt(min_n), "30", _fmt(0.0)])
        out.extend(["9", "$EXTMAX", "10", _fmt(max_e), "20", _fmt(max_n), "30", _fmt(0.0)])
        # decimal units, 4 places
        out.extend(["9", "$LUNITS", "70", "2"])
        out.extend(["9", "$LUPREC", "70", "4"])
        out.extend(["0", "ENDSEC"])

    def _write_tables(self, out: List[str], suffixes: Sequence[str]) -> None:
        layers: List[Tuple[str, int, str]] = []
        for suffix in (suffixes or [""]):
            layers.extend((f"{name}{suffix}", color, ltype) for name, color, ltype in PARCEL_LAYERS)
        layers.extend(SHARED_LAYERS)

        out.extend(["0", "SECTION", "2", "TABLES"])

        out.extend(["0", "TABLE", "2", "LTYPE", "70", "2"])
        out.extend([
            "0", "LTYPE", "2", "CONTINUOUS", "70", "0", "3", "Solid line",
            "72", "65", "73", "0", "40", _fmt(0.0, 4),
        ])
        out.extend([
            "0", "LTYPE", "2", "DASHED", "70", "0", "3", "Dashed __ __ __",
            "72", "65", "73", "2", "40", _fmt(0.75, 4),
            "49", _fmt(0.5, 4), "49", _fmt(-0.25, 4),
        ])
        out.extend(["0", "ENDTAB"])

        out.extend(["0", "TABLE", "2", "LAYER", "70", str(len(layers))])
        for name, color, ltype in layers:
            out.extend(["0", "LAYER", "2", name, "70", "0", "62", str(color), "6", ltype])
        out.extend(["0", "ENDTAB"])

        out.extend(["0", "TABLE", "2", "STYLE", "70", "1"])
        out.extend([
            "0", "STYLE", "2", "STANDARD", "70", "0",
            "40", _fmt(0.0, 4), "41", _fmt(1.0, 4), "50", _fmt(0.0, 4),
            "71", "0", "42", _fmt(self.text_height, 4), "3", "txt", "4", "",
        ])
        out.extend(["0", "ENDTAB"])

        out.extend(["0", "ENDSEC"])
