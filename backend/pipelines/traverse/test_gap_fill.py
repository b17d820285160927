from __future__ import annotations

import math

import pytest

from pipelines.traverse.gap_fill import GapFillEngine
from pipelines.traverse.models import Coordinate
from pipelines.traverse.normalizer import BearingNormalizer
from pipelines.traverse.schemas import RawCall
from pipelines.traverse.unplottable import UnplottableDetector

ORIGIN = Coordinate(northing=0.0, easting=0.0)

CREEK = {"call_type": "non_radial", "along_description": "along the meander of Mill Creek", "distance_feet": 55}


def _run(*raw_calls: dict):
    calls = BearingNormalizer().normalize_calls([RawCall.model_validate(c) for c in raw_calls]).calls
    records = UnplottableDetector().scan(calls)
    return GapFillEngine().compute(calls, records, ORIGIN)


def test_gap_between_plottable_spans() -> None:
    result = _run(
        {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
        CREEK,
        {"quadrant": "SE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "NW", "degrees": 90, "distance_feet": 50},
    )
    assert result is not None
    assert result.gap_call_number == 2
    assert math.isfinite(result.closing_distance)
    assert result.closing_distance > 0
    assert result.closing_distance == pytest.approx(50.0)
    assert result.closing_azimuth == pytest.approx(90.0, abs=1e-6)
    assert result.called_distance == 55
    assert [c.label for c in result.forward_path] == ["POB", "1"]
    assert [c.label for c in result.reverse_path] == ["POB", "4R", "3R"]
    assert [c.source_call_index for c in result.reverse_path[1:]] == [3, 2]


def test_gap_at_either_end_is_not_filled() -> None:
    assert _run(
        CREEK,
        {"quadrant": "SE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "NW", "degrees": 90, "distance_feet": 50},
    ) is None
    assert _run(
        {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "SE", "degrees": 90, "distance_feet": 50},
        CREEK,
    ) is None


def test_more_or_less_is_not_a_gap() -> None:
    assert _run(
        {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "SE", "degrees": 90, "distance_feet": 50, "distance_qualifier": "more or less"},
        {"quadrant": "SE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "NW", "degrees": 90, "distance_feet": 50},
    ) is None


def test_first_true_gap_wins() -> None:
    result = _run(
        {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
        {"quadrant": "SE", "degrees": 90, "distance_feet": 50, "distance_qualifier": "more or less"},
        CREEK,
        {"direction_text": "Southwesterly", "distance_feet": 40},
        {"quadrant": "NW", "degrees": 90, "distance_feet": 50},
    )
    assert result.gap_call_number == 3
