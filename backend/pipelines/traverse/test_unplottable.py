from __future__ import annotations

import pytest

from pipelines.traverse.models import UnplottableCategory
from pipelines.traverse.normalizer import BearingNormalizer
from pipelines.traverse.schemas import RawCall
from pipelines.traverse.unplottable import UnplottableDetector


def _scan(*raw_calls: dict):
    calls = BearingNormalizer().normalize_calls([RawCall.model_validate(c) for c in raw_calls]).calls
    return UnplottableDetector().scan(calls)


def test_clean_calls_are_plottable() -> None:
    assert _scan(
        {"quadrant": "NE", "degrees": 10, "distance_feet": 100},
        {"direction_text": "South", "distance_feet": 100},
    ) == []


def test_upstream_reason_is_preserved_verbatim() -> None:
    records = _scan({
        "quadrant": "NE", "degrees": 10, "distance_feet": 100,
        "unplottable": True, "unplottable_reason": "Bearing illegible in source deed",
    })
    assert records[0].category is UnplottableCategory.UPSTREAM
    assert records[0].reason == "Bearing illegible in source deed"


def test_meander_call() -> None:
    records = _scan({
        "call_type": "non_radial",
        "along_description": "along the meander of Cedar Creek",
        "distance_feet": 320,
    })
    assert len(records) == 1
    assert records[0].category is UnplottableCategory.MEANDER
    assert records[0].matched_terms == ("meander", "creek")
    assert records[0].triggers_gap_fill is True


def test_multiple_vague_directions() -> None:
    records = _scan({"direction_text": "Northwesterly, Northeasterly and Northerly", "distance_feet": 500})
    assert records[0].category is UnplottableCategory.MULTIPLE_DIRECTIONS
    assert set(records[0].matched_terms) == {"northwesterly", "northeasterly", "northerly"}


def test_vague_direction_without_bearing() -> None:
    records = _scan({"direction_text": "Northerly along the fence", "distance_feet": 200})
    assert records[0].category is UnplottableCategory.VAGUE_DIRECTION


def test_vague_word_next_to_explicit_bearing_is_plottable() -> None:
    records = _scan({
        "direction_text": "Northerly, N 10° E",
        "quadrant": "NE", "degrees": 10, "distance_feet": 200,
    })
    assert records == []


def test_non_radial_without_bearing() -> None:
    records = _scan({"call_type": "non_radial", "along_description": "along the fence", "distance_feet": 75})
    assert records[0].category is UnplottableCategory.NO_BEARING


@pytest.mark.parametrize("qualifier", ["more or less", "approximately", "or thereabouts"])
def test_qualified_distance_does_not_trigger_gap_fill(qualifier: str) -> None:
    records = _scan({"quadrant": "SE", "degrees": 5, "distance_feet": 100, "distance_qualifier": qualifier})
    assert records[0].category is UnplottableCategory.QUALIFIED_DISTANCE
    assert records[0].triggers_gap_fill is False


def test_one_record_per_call_with_call_numbers() -> None:
    records = _scan(
        {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
        {"call_type": "non_radial", "along_description": "with the high water line of Lake Ray", "distance_feet": 90},
        {"quadrant": "SW", "degrees": 0, "distance_feet": 100, "distance_qualifier": "more or less"},
    )
    assert [(r.call_number, r.call_index) for r in records] == [(2, 1), (3, 2)]
    assert records[0].category is UnplottableCategory.MEANDER
