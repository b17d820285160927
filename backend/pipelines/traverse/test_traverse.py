from __future__ import annotations

import math

import pytest

from pipelines.traverse.models import Bearing, Coordinate, LineCall, Quadrant, TraverseDirection
from pipelines.traverse.traverse import TraverseCalculator, TraverseError, advance


def _line(n: int, quadrant: Quadrant, degrees: float, distance: float) -> LineCall:
    return LineCall(call_number=n, bearing=Bearing(quadrant, degrees, 0, 0), distance=distance)


RECTANGLE = (
    _line(1, Quadrant.NE, 0, 100),
    _line(2, Quadrant.SE, 90, 50),
    _line(3, Quadrant.SE, 0, 100),
    _line(4, Quadrant.NW, 90, 50),
)

ORIGIN = Coordinate(northing=0.0, easting=0.0)


def test_advance_uses_surveyor_azimuth() -> None:
    northing, easting = advance(0.0, 0.0, 90.0, 10.0)
    assert northing == pytest.approx(0.0, abs=1e-12)
    assert easting == pytest.approx(10.0)


def test_forward_rectangle_coordinates() -> None:
    coords = TraverseCalculator().forward(RECTANGLE, ORIGIN)

    assert [c.label for c in coords] == ["POB", "1", "2", "3", "4"]
    assert [c.source_call_index for c in coords] == [None, 0, 1, 2, 3]
    expected = [(0, 0), (100, 0), (100, 50), (0, 50), (0, 0)]
    for coord, (n, e) in zip(coords, expected):
        assert coord.northing == pytest.approx(n, abs=1e-9)
        assert coord.easting == pytest.approx(e, abs=1e-9)


def test_reverse_walks_back_bearings_last_to_first() -> None:
    coords = TraverseCalculator().traverse(RECTANGLE, ORIGIN, TraverseDirection.REVERSE)

    assert [c.label for c in coords] == ["POB", "4R", "3R", "2R", "1R"]
    assert coords[1].easting == pytest.approx(50.0)
    assert coords[2].northing == pytest.approx(100.0)


def test_forward_and_reverse_displacements_match() -> None:
    calls = (
        _line(1, Quadrant.NE, 37, 120.5),
        _line(2, Quadrant.SE, 12, 80.0),
        _line(3, Quadrant.SW, 71, 45.25),
    )
    calc = TraverseCalculator()
    forward = calc.forward(calls, ORIGIN)
    reverse = calc.reverse(calls, ORIGIN)

    assert forward[-1].distance_to(ORIGIN) == pytest.approx(reverse[-1].distance_to(ORIGIN))
    # the reverse endpoint is the forward endpoint mirrored through the start
    assert reverse[-1].northing == pytest.approx(-forward[-1].northing)
    assert reverse[-1].easting == pytest.approx(-forward[-1].easting)


def test_start_point_offsets_every_coordinate() -> None:
    start = Coordinate(northing=1000.0, easting=-250.0)
    coords = TraverseCalculator().forward(RECTANGLE, start)
    assert coords[0].northing == 1000.0
    assert coords[2].easting == pytest.approx(-200.0)


def test_empty_call_list_gives_no_coordinates() -> None:
    calc = TraverseCalculator()
    assert calc.forward([], ORIGIN) == []
    assert calc.reverse([], ORIGIN) == []


def test_non_finite_distance_raises() -> None:
    calls = (_line(1, Quadrant.NE, 10, math.inf),)
    with pytest.raises(TraverseError):
        TraverseCalculator().forward(calls, ORIGIN)


def test_partial_path_labels_calls_by_full_list_position() -> None:
    coords = TraverseCalculator().reverse(RECTANGLE[2:], ORIGIN, index_offset=2)
    assert [c.label for c in coords] == ["POB", "4R", "3R"]
    assert [c.source_call_index for c in coords[1:]] == [3, 2]
