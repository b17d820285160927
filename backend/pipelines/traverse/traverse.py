"""
Traverse Calculator
Walks normalized calls from a start point and produces ordered coordinates.
"""
from __future__ import annotations

import logging
import math
from typing import List, Sequence, Tuple

from .bearings import reverse_azimuth
from .models import Call, Coordinate, TraverseDirection

logger = logging.getLogger(__name__)


class TraverseError(Exception):
    """Unrecoverable geometry problem (non-finite coordinates)"""
    pass


class TraverseInputError(TraverseError):
    """Structurally unusable input, such as a missing call list"""
    pass


def advance(northing: float, easting: float, azimuth: float, distance: float) -> Tuple[float, float]:
    """
    Move from (northing, easting) along an azimuth (degrees clockwise from
    north) for a distance; returns the new (northing, easting).
    """
    radians = math.radians(azimuth)
    return (
        northing + math.cos(radians) * distance,
        easting + math.sin(radians) * distance,
    )


class TraverseCalculator:
    """
    Coordinate generator for forward and reverse traverses.

    Both directions return the start point first (label "POB") followed by one
    coordinate per call. The reverse traverse walks the calls last-to-first on
    back bearings; it only exists for comparison against the forward path.
    """

    def traverse(
        self,
        calls: Sequence[Call],
        start: Coordinate,
        direction: TraverseDirection = TraverseDirection.FORWARD,
        index_offset: int = 0,
    ) -> List[Coordinate]:
        """
        index_offset is the position of calls[0] in the full call list, so a
        partial path still labels points by the calls they end.
        """
        if not calls:
            return []

        first = Coordinate(northing=start.northing, easting=start.easting, label="POB")
        coordinates = [first]
        northing, easting = start.northing, start.easting

        if direction == TraverseDirection.REVERSE:
            order = range(len(calls) - 1, -1, -1)
        else:
            order = range(len(calls))

        for index in order:
            azimuth, distance = calls[index].course()
            if direction == TraverseDirection.REVERSE:
                azimuth = reverse_azimuth(azimuth)
                label = f"{index + index_offset + 1}R"
            else:
                label = f"{index + index_offset + 1}"

            northing, easting = advance(northing, easting, azimuth, distance)
            if not (math.isfinite(northing) and math.isfinite(easting)):
                raise TraverseError(
                    f"Call {calls[index].call_number} produced a non-finite coordinate "
                    f"(azimuth={azimuth}, distance={distance})"
                )
            coordinates.append(
                Coordinate(northing=northing, easting=easting, label=label, source_call_index=index + index_offset)
            )

        logger.debug(
            f"Traversed {len(calls)} calls {direction.value}: end at "
            f"N {coordinates[-1].northing:.3f} E {coordinates[-1].easting:.3f}"
        )
        return coordinates

    def forward(self, calls: Sequence[Call], start: Coordinate, index_offset: int = 0) -> List[Coordinate]:
        return self.traverse(calls, start, TraverseDirection.FORWARD, index_offset)

    def reverse(self, calls: Sequence[Call], start: Coordinate, index_offset: int = 0) -> List[Coordinate]:
        return self.traverse(calls, start, TraverseDirection.REVERSE, index_offset)
