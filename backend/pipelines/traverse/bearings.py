"""
Bearing Utilities
Parsing and arithmetic for surveyor quadrant bearings
"""
from __future__ import annotations

import logging
import math
import re
from typing import List, Optional

from .models import Bearing, Quadrant

logger = logging.getLogger(__name__)

# Cardinal words rewritten to canonical quadrant bearings
CARDINAL_BEARINGS = {
    "N": Bearing(Quadrant.NE, 0, 0, 0),
    "S": Bearing(Quadrant.SE, 0, 0, 0),
    "E": Bearing(Quadrant.SE, 90, 0, 0),
    "W": Bearing(Quadrant.NW, 90, 0, 0),
}

VAGUE_DIRECTION_AZIMUTHS = {
    "northerly": 0.0,
    "northeasterly": 45.0,
    "easterly": 90.0,
    "southeasterly": 135.0,
    "southerly": 180.0,
    "southwesterly": 225.0,
    "westerly": 270.0,
    "northwesterly": 315.0,
}

VAGUE_DIRECTION_PATTERN = re.compile(
    r"\b(?:north|south)(?:east|west)?erly\b|\b(?:east|west)erly\b",
    re.IGNORECASE,
)

_CARDINAL_PATTERN = re.compile(
    r"^\s*(?:thence\s+)?(?:due\s+)?(north|south|east|west)\b(?!\s*(?:east|west)\b)"
    # digits are a distance unless an angle ending in E/W follows
    r"(?!\s*\d(?:[\d.\s°º˚'’\"”″,-]|degrees?|deg|minutes?|min|seconds?|sec)*(?:east|west|e|w)\b)",
    re.IGNORECASE,
)

_QUADRANT_PATTERN = re.compile(
    r"\b([NS])\s*"
    r"(\d+(?:\.\d+)?)\s*°?\s*"
    r"(?:(\d+(?:\.\d+)?)\s*'?\s*)?"
    r"(?:(\d+(?:\.\d+)?)\s*\"?\s*)?"
    r"([EW])\b"
)


def normalize_bearing_text(text: str) -> str:
    """
    Fold typographic variants and spelled-out words into a compact form the
    quadrant pattern understands, e.g. "North 45 degrees 30 minutes East"
    becomes "N 45° 30' E".
    """
    s = (text or "").upper()
    s = s.replace("º", "°").replace("˚", "°").replace("⁰", "°")
    s = s.replace("’", "'").replace("‘", "'").replace("′", "'").replace("`", "'").replace("´", "'")
    s = s.replace("”", '"').replace("“", '"').replace("″", '"').replace("''", '"')
    s = re.sub(r"\bDEGREES?\b|\bDEG\b", "°", s)
    s = re.sub(r"\bMINUTES?\b|\bMIN\b", "'", s)
    s = re.sub(r"\bSECONDS?\b|\bSEC\b", '"', s)
    s = re.sub(r"\bNORTH\b", "N", s)
    s = re.sub(r"\bSOUTH\b", "S", s)
    s = re.sub(r"\bEAST\b", "E", s)
    s = re.sub(r"\bWEST\b", "W", s)
    s = re.sub(r"(?<=[NSEW])\.", " ", s)
    s = s.replace(",", " ").replace("-", " ")
    s = re.sub(r"\s+", " ", s).strip()
    return s


def parse_bearing_text(text: Optional[str]) -> Optional[Bearing]:
    """Parse a quadrant bearing out of free text; None when no bearing is found."""
    if not text:
        return None
    normalized = normalize_bearing_text(text)
    match = _QUADRANT_PATTERN.search(normalized)
    if not match:
        logger.debug(f"No quadrant bearing in '{text}' (normalized '{normalized}')")
        return None

    ns, degrees, minutes, seconds, ew = match.groups()
    quadrant = Quadrant(f"{ns}{ew}")
    return Bearing(
        quadrant=quadrant,
        degrees=float(degrees),
        minutes=float(minutes) if minutes is not None else 0.0,
        seconds=float(seconds) if seconds is not None else 0.0,
    )


def parse_cardinal_text(text: Optional[str]) -> Optional[Bearing]:
    """
    Rewrite pure cardinal wording ("South", "due West", "East and parallel
    with the north line") to a canonical quadrant bearing.
    """
    if not text:
        return None
    match = _CARDINAL_PATTERN.match(text)
    if not match:
        return None
    return CARDINAL_BEARINGS[match.group(1)[0].upper()]


def parse_quadrant(value: Optional[str]) -> Optional[Quadrant]:
    if not value:
        return None
    folded = value.upper()
    for word, letter in (("NORTH", "N"), ("SOUTH", "S"), ("EAST", "E"), ("WEST", "W")):
        folded = folded.replace(word, letter)
    letters = re.sub(r"[^NSEW]", "", folded)
    if len(letters) != 2:
        return None
    try:
        return Quadrant(letters)
    except ValueError:
        return None


def correct_transcription(value: float) -> float:
    """
    Repair a minutes/seconds value of 60 or more by dropping its leading digit
    (906 -> 6, 75 -> 5); values below 60 are returned unchanged.
    """
    fixed = value
    while fixed >= 60:
        digits = len(str(int(fixed)))
        fixed = fixed % (10 ** (digits - 1))
    return fixed


def normalize_azimuth(azimuth: float) -> float:
    return azimuth % 360.0


def reverse_azimuth(azimuth: float) -> float:
    return (azimuth + 180.0) % 360.0


def azimuth_between(from_east: float, from_north: float, to_east: float, to_north: float) -> float:
    """Azimuth from one point to another in degrees clockwise from north."""
    return math.degrees(math.atan2(to_east - from_east, to_north - from_north)) % 360.0


def find_vague_directions(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [m.group(0).lower() for m in VAGUE_DIRECTION_PATTERN.finditer(text)]


def estimate_vague_azimuth(text: Optional[str]) -> Optional[float]:
    """
    Estimate an azimuth from vague wording such as "Northwesterly, Northeasterly
    and Northerly"; several words are averaged as unit vectors.
    """
    words = find_vague_directions(text)
    if not words:
        return None
    east = sum(math.sin(math.radians(VAGUE_DIRECTION_AZIMUTHS[w])) for w in words)
    north = sum(math.cos(math.radians(VAGUE_DIRECTION_AZIMUTHS[w])) for w in words)
    if math.hypot(east, north) < 1e-9:
        return None
    return math.degrees(math.atan2(east, north)) % 360.0


def side_of_travel(travel_azimuth: float, target_azimuth: float) -> Optional[str]:
    """Return "right" or "left" for a direction relative to the travel azimuth."""
    delta = math.sin(math.radians(target_azimuth - travel_azimuth))
    if abs(delta) < 1e-9:
        return None
    return "right" if delta > 0 else "left"
