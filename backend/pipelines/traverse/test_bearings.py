from __future__ import annotations

import pytest

from pipelines.traverse.bearings import (
    azimuth_between,
    correct_transcription,
    estimate_vague_azimuth,
    parse_bearing_text,
    parse_cardinal_text,
    parse_quadrant,
    reverse_azimuth,
    side_of_travel,
)
from pipelines.traverse.models import Bearing, Quadrant


@pytest.mark.parametrize(
    "quadrant, expected",
    [
        (Quadrant.NE, 30.5),
        (Quadrant.SE, 180.0 - 30.5),
        (Quadrant.SW, 180.0 + 30.5),
        (Quadrant.NW, 360.0 - 30.5),
    ],
)
def test_decimal_follows_quadrant_formula(quadrant: Quadrant, expected: float) -> None:
    bearing = Bearing(quadrant, degrees=30, minutes=30, seconds=0)
    assert bearing.decimal == pytest.approx(expected)


def test_decimal_wraps_north_to_zero() -> None:
    assert Bearing(Quadrant.NW, 0, 0, 0).decimal == 0.0


@pytest.mark.parametrize(
    "text, quadrant, degrees, minutes, seconds",
    [
        ("N 45°30'15\" E", Quadrant.NE, 45, 30, 15),
        ("North 45 degrees 30 minutes West", Quadrant.NW, 45, 30, 0),
        ("S 12º 34′ 56″ W", Quadrant.SW, 12, 34, 56),
        ("thence N. 4° 00' W. a distance of 200 feet", Quadrant.NW, 4, 0, 0),
        ("S89°59'E", Quadrant.SE, 89, 59, 0),
    ],
)
def test_parse_bearing_text_variants(text: str, quadrant: Quadrant, degrees: float, minutes: float, seconds: float) -> None:
    bearing = parse_bearing_text(text)
    assert bearing is not None
    assert bearing.quadrant is quadrant
    assert (bearing.degrees, bearing.minutes, bearing.seconds) == (degrees, minutes, seconds)


@pytest.mark.parametrize("text", [None, "", "along the creek", "Northerly"])
def test_parse_bearing_text_without_bearing(text) -> None:
    assert parse_bearing_text(text) is None


@pytest.mark.parametrize(
    "text, azimuth",
    [
        ("South", 180.0),
        ("North", 0.0),
        ("East", 90.0),
        ("West", 270.0),
        ("thence due West", 270.0),
        ("East and parallel with the north line of said section", 90.0),
        ("South 100 feet", 180.0),
        ("thence West 250.5 feet to an iron pipe", 270.0),
    ],
)
def test_parse_cardinal_text(text: str, azimuth: float) -> None:
    bearing = parse_cardinal_text(text)
    assert bearing is not None
    assert bearing.decimal == pytest.approx(azimuth)


@pytest.mark.parametrize("text", ["North 45 degrees East", "North 45 degrees 30 minutes East", "South 10° W", "N 10 E", "Northerly along the road", "South East"])
def test_parse_cardinal_text_ignores_real_bearings(text: str) -> None:
    assert parse_cardinal_text(text) is None


@pytest.mark.parametrize(
    "value, expected",
    [("NE", Quadrant.NE), ("sw", Quadrant.SW), ("Northwest", Quadrant.NW), ("S-E", Quadrant.SE), ("N", None), ("EN", None)],
)
def test_parse_quadrant(value: str, expected) -> None:
    assert parse_quadrant(value) is expected


@pytest.mark.parametrize("value, expected", [(906, 6), (75, 5), (59, 59), (0, 0), (60, 0)])
def test_correct_transcription(value: float, expected: float) -> None:
    assert correct_transcription(value) == expected


def test_reverse_and_between() -> None:
    assert reverse_azimuth(350.0) == pytest.approx(170.0)
    assert azimuth_between(0.0, 0.0, 10.0, 0.0) == pytest.approx(90.0)
    assert azimuth_between(0.0, 0.0, 0.0, -10.0) == pytest.approx(180.0)


def test_estimate_vague_azimuth_averages_directions() -> None:
    azimuth = estimate_vague_azimuth("Northwesterly, Northeasterly and Northerly")
    assert min(azimuth, 360.0 - azimuth) == pytest.approx(0.0, abs=1e-9)
    assert estimate_vague_azimuth("northerly and easterly") == pytest.approx(45.0)
    assert estimate_vague_azimuth("southeasterly") == pytest.approx(135.0)
    assert estimate_vague_azimuth("along the fence") is None


def test_side_of_travel() -> None:
    assert side_of_travel(0.0, 90.0) == "right"
    assert side_of_travel(0.0, 270.0) == "left"
    assert side_of_travel(0.0, 180.0) is None


@pytest.mark.parametrize(
    "bearing, text",
    [
        (Bearing(Quadrant.NE, 90, 0, 0), "N 90°00'00\" E"),
        (Bearing(Quadrant.SW, 12, 5, 7), "S 12°05'07\" W"),
        (Bearing(Quadrant.SE, 3, 45, 30.5), "S 3°45'30.5\" E"),
    ],
)
def test_bearing_format_pads_minutes_and_seconds(bearing: Bearing, text: str) -> None:
    assert bearing.format() == text
