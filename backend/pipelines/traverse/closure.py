"""
Area & Closure Analysis
Shoelace area, misclosure, precision ratio and closure quality for a traverse.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import Polygon
from shapely.validation import explain_validity

from config import settings
from .models import AreaDiscrepancy, ClosureQuality, ClosureReport, Coordinate

logger = logging.getLogger(__name__)

# Misclosures below this are treated as a perfect closure
PERFECT_CLOSURE_FEET = 0.001

# (quality, max absolute error in feet, min precision ratio); first tier met by
# either measure wins
QUALITY_TIERS: Tuple[Tuple[ClosureQuality, float, int], ...] = (
    (ClosureQuality.EXCELLENT, 0.05, 50000),
    (ClosureQuality.VERY_GOOD, 0.25, 20000),
    (ClosureQuality.GOOD, 0.5, 10000),
    (ClosureQuality.ACCEPTABLE, 1.0, 5000),
    (ClosureQuality.MARGINAL, 2.0, 2500),
)


def calculate_area(coordinates: Sequence[Coordinate]) -> float:
    """Calculate polygon area using shoelace formula (returns square feet)"""
    if len(coordinates) < 3:
        return 0.0

    area = 0.0
    n = len(coordinates)

    for i in range(n):
        j = (i + 1) % n
        area += coordinates[i].easting * coordinates[j].northing
        area -= coordinates[j].easting * coordinates[i].northing

    return abs(area) / 2.0


def calculate_perimeter(coordinates: Sequence[Coordinate]) -> float:
    """Sum of the traversed legs; the closing gap is not included"""
    return sum(
        coordinates[i - 1].distance_to(coordinates[i])
        for i in range(1, len(coordinates))
    )


def classify_quality(error_distance: float, precision_ratio: Optional[int]) -> ClosureQuality:
    ratio = math.inf if precision_ratio is None else precision_ratio
    for quality, max_error, min_ratio in QUALITY_TIERS:
        if error_distance < max_error or ratio >= min_ratio:
            return quality
    return ClosureQuality.POOR


def analyze_closure(coordinates: Sequence[Coordinate]) -> Optional[ClosureReport]:
    """
    Closure report for a forward traverse.

    The misclosure is measured between the first and last coordinate (not the
    origin), since tie lines can put the POB anywhere. Returns None when there
    are fewer than two coordinates.
    """
    if len(coordinates) < 2:
        return None

    first, last = coordinates[0], coordinates[-1]
    error_north = last.northing - first.northing
    error_east = last.easting - first.easting
    error_distance = math.hypot(error_north, error_east)
    perimeter = calculate_perimeter(coordinates)

    if error_distance < PERFECT_CLOSURE_FEET:
        precision_ratio = None
    else:
        precision_ratio = int(round(perimeter / error_distance))

    ratio = math.inf if precision_ratio is None else precision_ratio
    closes = (
        error_distance < settings.CLOSES_MAX_ERROR_FEET
        or ratio >= settings.CLOSES_MIN_PRECISION
    )

    report = ClosureReport(
        error_distance=error_distance,
        error_north=error_north,
        error_east=error_east,
        perimeter=perimeter,
        precision_ratio=precision_ratio,
        closes=closes,
        quality=classify_quality(error_distance, precision_ratio),
    )
    logger.debug(
        f"Closure: error {error_distance:.3f} ft, perimeter {perimeter:.2f} ft, "
        f"{report.precision_text}, {report.quality.value}"
    )
    return report


def calculate_area_discrepancy(called_sqft: Optional[float], calculated_sqft: float) -> Optional[AreaDiscrepancy]:
    if not called_sqft:
        return None
    difference = abs(calculated_sqft - called_sqft)
    percent = difference / called_sqft * 100.0
    return AreaDiscrepancy(
        called_sqft=called_sqft,
        calculated_sqft=calculated_sqft,
        difference_sqft=difference,
        percent_difference=percent,
        significant=percent > settings.AREA_WARNING_PERCENT,
    )


def ring_self_intersects(coordinates: Sequence[Coordinate]) -> bool:
    """True when the boundary ring crosses itself."""
    points: List[Tuple[float, float]] = [(c.easting, c.northing) for c in coordinates]
    if len(coordinates) > 1 and coordinates[0].distance_to(coordinates[-1]) < PERFECT_CLOSURE_FEET:
        points = points[:-1]
    if len(points) < 4:
        return False
    try:
        return "Self-intersection" in explain_validity(Polygon(points))
    except ValueError as e:
        logger.debug(f"Ring validity check skipped: {e}")
        return False
