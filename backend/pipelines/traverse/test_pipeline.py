from __future__ import annotations

import pytest

from pipelines.traverse.models import WarningType
from pipelines.traverse.pipeline import TraversePipeline, combine_coordinates
from pipelines.traverse.schemas import RawParcel, TraverseRequest
from pipelines.traverse.traverse import TraverseInputError


def _rectangle() -> list:
    return [
        {"call_number": 1, "quadrant": "N E", "degrees": 0, "minutes": 0, "seconds": 0, "distance_feet": 100},
        {"call_number": 2, "quadrant": "SE", "degrees": 90, "minutes": 0, "seconds": 0, "distance_feet": 50},
        {"call_number": 3, "quadrant": "SE", "degrees": 0, "minutes": 0, "seconds": 0, "distance_feet": 100},
        {"call_number": 4, "quadrant": "NW", "degrees": 90, "minutes": 0, "seconds": 0, "distance_feet": 50},
    ]


def _warning_types(parcel: dict) -> list:
    return [w["type"] for w in parcel["warnings"]]


def test_process_closed_rectangle() -> None:
    result = TraversePipeline().process({"parcels": [{"parcel_id": "A", "calls": _rectangle()}]})

    assert result["success"] is True
    parcel = result["parcels"][0]
    assert parcel["closure"]["closure_quality"] == "Excellent"
    assert parcel["closure"]["closes"] is True
    assert parcel["calculated_area_sqft"] == pytest.approx(5000.0)
    assert parcel["error_zone"]["largest_gap"] is None
    assert parcel["requires_field_survey"] is False
    assert parcel["warnings"] == []
    assert len(parcel["coordinates"]) == 5
    assert result["combined_coordinates"] == []


def test_missing_call_list_raises_from_analyze_parcel() -> None:
    with pytest.raises(TraverseInputError):
        TraversePipeline().analyze_parcel(RawParcel(parcel_id="A"))


def test_process_wraps_errors_in_envelope() -> None:
    result = TraversePipeline().process({"parcels": [{"parcel_id": "A"}]})
    assert result["success"] is False
    assert "no call list" in result["error"]

    assert TraversePipeline().process({})["success"] is False
    assert TraversePipeline().process({"parcels": "not a list"})["success"] is False


def test_empty_call_list_is_not_an_error() -> None:
    result = TraversePipeline().analyze_parcel(RawParcel(parcel_id="A", calls=[]))
    assert result.coordinates == []
    assert result.closure is None
    assert result.area_sqft == 0.0


def test_transcription_correction_surfaces_as_warning() -> None:
    calls = _rectangle()
    calls[0]["minutes"] = 906
    result = TraversePipeline().process({"parcels": [{"parcel_id": "A", "calls": calls}]})

    parcel = result["parcels"][0]
    corrections = [w for w in parcel["warnings"] if w["type"] == WarningType.BEARING_CORRECTION.value]
    assert len(corrections) == 1
    assert "906" in corrections[0]["message"] and "to 6" in corrections[0]["message"]
    assert parcel["bearing_corrections"][0]["original"] == 906


def test_large_misclosure_warnings() -> None:
    calls = _rectangle()
    calls[1]["distance_feet"] = 60
    parcel = TraversePipeline().process({"parcels": [{"parcel_id": "A", "calls": calls}]})["parcels"][0]

    closure = next(w for w in parcel["warnings"] if w["type"] == "closure")
    assert closure["severity"] == "error"
    assert "error_zone" in _warning_types(parcel)
    assert parcel["closure"]["closes"] is False


def test_area_discrepancy_warning() -> None:
    parcel = TraversePipeline().process({"parcels": [{
        "parcel_id": "A", "calls": _rectangle(),
        "called_area_value": 0.12, "called_area_unit": "acres",
    }]})["parcels"][0]

    # 0.12 acres = 5227.2 sq ft, about 4.3% larger than computed
    area = next(w for w in parcel["warnings"] if w["type"] == "area")
    assert area["severity"] == "warning"
    assert parcel["area_discrepancy"]["significant"] is True


def test_centerline_replaces_closure_warning() -> None:
    parcel = TraversePipeline().process({"parcels": [{
        "parcel_id": "E1",
        "parcel_name": "Centerline of a 30 foot access easement",
        "calls": [
            {"quadrant": "NE", "degrees": 10, "distance_feet": 200},
            {"quadrant": "NE", "degrees": 35, "distance_feet": 150},
        ],
    }]})["parcels"][0]

    types = _warning_types(parcel)
    assert "centerline" in types
    assert "closure" not in types


def test_tie_lines_locate_the_pob() -> None:
    result = TraversePipeline().process({
        "poc_description": "the Northwest corner of Section 12",
        "tie_lines": [{"quadrant": "SE", "degrees": 90, "distance_feet": 200}],
        "parcels": [{"parcel_id": "A", "calls": _rectangle()}],
    })

    tie = result["tie_line"]
    assert tie["coordinates"][0]["label"] == "POC"
    assert tie["coordinates"][-1]["label"] == "POB"
    assert tie["coordinates"][-1]["easting"] == pytest.approx(200.0)
    assert result["parcels"][0]["coordinates"][0]["easting"] == pytest.approx(200.0)
    assert result["parcels"][0]["calculated_area_sqft"] == pytest.approx(5000.0)


def test_gap_fill_flags_field_survey() -> None:
    calls = _rectangle()
    calls[1] = {"call_type": "non_radial", "along_description": "along the bank of Bear Creek", "distance_feet": 52}
    parcel = TraversePipeline().process({"parcels": [{"parcel_id": "A", "calls": calls}]})["parcels"][0]

    assert parcel["requires_field_survey"] is True
    assert parcel["gap_fill"]["closing_distance"] == pytest.approx(50.0)
    assert parcel["gap_fill"]["called_distance"] == 52
    assert "unplottable" in _warning_types(parcel)


def test_combined_coordinates_shift_each_parcel() -> None:
    pipeline = TraversePipeline()
    request = TraverseRequest.model_validate({"parcels": [
        {"parcel_id": "A", "calls": _rectangle()},
        {"parcel_id": "B", "calls": _rectangle()},
    ]})
    _, results = pipeline.analyze(request)
    combined = combine_coordinates(results, gap=50.0)

    assert len(combined) == 10
    second = [c["display_easting"] for c in combined if c["parcel_id"] == "B"]
    assert min(second) == pytest.approx(100.0)


def test_options_describe_thresholds() -> None:
    options = TraversePipeline().get_available_options()
    assert options["closes_max_error_feet"]["default"] == 1.0
