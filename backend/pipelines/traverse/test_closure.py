from __future__ import annotations

import pytest

from pipelines.traverse.closure import (
    analyze_closure,
    calculate_area,
    calculate_area_discrepancy,
    classify_quality,
    ring_self_intersects,
)
from pipelines.traverse.models import Bearing, ClosureQuality, Coordinate, LineCall, Quadrant
from pipelines.traverse.traverse import TraverseCalculator


def _line(n: int, quadrant: Quadrant, degrees: float, distance: float) -> LineCall:
    return LineCall(call_number=n, bearing=Bearing(quadrant, degrees, 0, 0), distance=distance)


RECTANGLE = (
    _line(1, Quadrant.NE, 0, 100),
    _line(2, Quadrant.SE, 90, 50),
    _line(3, Quadrant.SE, 0, 100),
    _line(4, Quadrant.NW, 90, 50),
)


def _coords(*points):
    return [Coordinate(northing=n, easting=e) for n, e in points]


def test_closed_rectangle() -> None:
    coords = TraverseCalculator().forward(RECTANGLE, Coordinate(northing=0.0, easting=0.0))
    report = analyze_closure(coords)

    assert report.error_distance == pytest.approx(0.0, abs=1e-9)
    assert report.quality is ClosureQuality.EXCELLENT
    assert report.closes is True
    assert report.precision_text == "Perfect"
    assert report.perimeter == pytest.approx(300.0)
    assert calculate_area(coords) == pytest.approx(5000.0)


def test_area_is_invariant_under_translation() -> None:
    calc = TraverseCalculator()
    base = calculate_area(calc.forward(RECTANGLE, Coordinate(northing=0.0, easting=0.0)))
    shifted = calculate_area(calc.forward(RECTANGLE, Coordinate(northing=52000.25, easting=-31000.5)))
    assert shifted == pytest.approx(base)


def test_area_requires_three_points() -> None:
    assert calculate_area(_coords((0, 0), (10, 10))) == 0.0


def test_open_traverse_does_not_close() -> None:
    report = analyze_closure(_coords((0, 0), (100, 0), (100, 100)))
    assert report.error_distance == pytest.approx(141.4213562)
    assert report.error_north == pytest.approx(100.0)
    assert report.precision_ratio == 1
    assert report.precision_text == "1:1"
    assert report.closes is False
    assert report.quality is ClosureQuality.POOR


def test_small_misclosure_precision_ratio() -> None:
    report = analyze_closure(_coords((0, 0), (1000, 0), (1000, 1000), (0, 1000), (0.1, 0)))
    assert report.precision_ratio == 40000
    assert report.precision_text == "1:40,000"
    assert report.quality is ClosureQuality.VERY_GOOD
    assert report.closes is True


def test_fewer_than_two_coordinates_has_no_report() -> None:
    assert analyze_closure([]) is None
    assert analyze_closure(_coords((5, 5))) is None


@pytest.mark.parametrize(
    "error, ratio, expected",
    [
        (0.03, 1000, ClosureQuality.EXCELLENT),
        (0.3, 25000, ClosureQuality.VERY_GOOD),
        (0.4, 100, ClosureQuality.GOOD),
        (0.7, 3000, ClosureQuality.ACCEPTABLE),
        (1.5, 100, ClosureQuality.MARGINAL),
        (9.0, 2600, ClosureQuality.MARGINAL),
        (3.0, 2000, ClosureQuality.POOR),
    ],
)
def test_quality_tiers(error: float, ratio: int, expected: ClosureQuality) -> None:
    assert classify_quality(error, ratio) is expected


def test_area_discrepancy() -> None:
    discrepancy = calculate_area_discrepancy(43560.0, 43560.0 * 1.03)
    assert discrepancy.percent_difference == pytest.approx(3.0)
    assert discrepancy.significant is True

    assert calculate_area_discrepancy(43560.0, 43600.0).significant is False
    assert calculate_area_discrepancy(None, 1000.0) is None


def test_self_intersection() -> None:
    bowtie = _coords((0, 0), (10, 10), (10, 0), (0, 10), (0, 0))
    square = _coords((0, 0), (10, 0), (10, 10), (0, 10), (0, 0))
    assert ring_self_intersects(bowtie) is True
    assert ring_self_intersects(square) is False
