"""
Error Zone Detection
Compares the forward and reverse traverses of a parcel to suggest where a
misclosure was introduced.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from config import settings
from .models import ERROR_ZONE_CAVEAT, Coordinate, ErrorZone, GapRecord

logger = logging.getLogger(__name__)


def _gap(forward: Sequence[Coordinate], reverse: Sequence[Coordinate], f: int, r: int) -> GapRecord:
    return GapRecord(
        forward_index=f,
        reverse_index=r,
        forward_coord=forward[f],
        reverse_coord=reverse[r],
        distance=forward[f].distance_to(reverse[r]),
    )


class ErrorZoneDetector:
    """
    Pairs forward point f with reverse point n - f + 1 (f = 1..n).

    Both lists hold the POB at index 0 followed by one point per call. The
    pairing with the largest divergence is reported as the place where the
    forward and backward readings of the description disagree most. This is
    a heuristic: compounding small errors spread over many calls are not
    localized by it.
    """

    def __init__(self, noise_floor: Optional[float] = None):
        self.noise_floor = (
            settings.ERROR_ZONE_NOISE_FLOOR_FEET if noise_floor is None else noise_floor
        )

    def detect(
        self,
        forward: Sequence[Coordinate],
        reverse: Sequence[Coordinate],
        call_count: Optional[int] = None,
    ) -> ErrorZone:
        n = call_count if call_count is not None else len(forward) - 1
        if n < 2 or len(forward) < n + 1 or len(reverse) < n + 1:
            return ErrorZone()

        largest: Optional[GapRecord] = None
        for f in range(1, n + 1):
            gap = _gap(forward, reverse, f, n - f + 1)
            if largest is None or gap.distance > largest.distance:
                largest = gap

        # nearest pair over every forward point and every reverse point short of the end
        closest: Optional[GapRecord] = None
        for f in range(1, n + 1):
            for r in range(1, n):
                gap = _gap(forward, reverse, f, r)
                if closest is None or gap.distance < closest.distance:
                    closest = gap

        misclosure = forward[n].distance_to(forward[0])
        if misclosure <= self.noise_floor or largest.distance <= self.noise_floor:
            logger.debug(f"Misclosure {misclosure:.3f} ft within noise floor, no error zone reported")
            largest = None
        else:
            logger.info(
                f"Error zone near call {largest.forward_index}: "
                f"forward/reverse gap {largest.distance:.2f} ft"
            )

        return ErrorZone(largest_gap=largest, closest_match=closest, caveat=self.caveat())

    def caveat(self) -> str:
        return (
            f"{ERROR_ZONE_CAVEAT} Noise floor: {self.noise_floor:g} ft; a figure whose "
            f"misclosure is within it has no error zone."
        )
