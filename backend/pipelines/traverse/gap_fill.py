"""
Gap Fill
Bridges a single unplottable call by traversing the plottable calls from both
ends and measuring the segment that would connect them.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from .bearings import azimuth_between
from .models import Bearing, Call, Coordinate, GapFillResult, UnplottableRecord
from .traverse import TraverseCalculator

logger = logging.getLogger(__name__)


class GapFillEngine:
    def __init__(self, calculator: Optional[TraverseCalculator] = None):
        self.calculator = calculator or TraverseCalculator()

    def find_gap(self, calls: Sequence[Call], records: Sequence[UnplottableRecord]) -> Optional[int]:
        """Index of the first gap-triggering call strictly inside the list."""
        for record in records:
            if record.triggers_gap_fill and 0 < record.call_index < len(calls) - 1:
                return record.call_index
        return None

    def compute(
        self,
        calls: Sequence[Call],
        records: Sequence[UnplottableRecord],
        start: Coordinate,
    ) -> Optional[GapFillResult]:
        """
        Forward path: calls before the gap, walked from the start.
        Reverse path: calls after the gap, walked backward from the start.
        The closing segment runs from the forward end to the reverse end.
        """
        gap = self.find_gap(calls, records)
        if gap is None:
            return None

        forward = self.calculator.forward(calls[:gap], start)
        reverse = self.calculator.reverse(calls[gap + 1:], start, index_offset=gap + 1)
        forward_end, reverse_end = forward[-1], reverse[-1]

        distance = forward_end.distance_to(reverse_end)
        azimuth = azimuth_between(
            forward_end.easting, forward_end.northing, reverse_end.easting, reverse_end.northing
        )
        gap_call = calls[gap]
        result = GapFillResult(
            gap_call_number=gap_call.call_number,
            forward_path=tuple(forward),
            reverse_path=tuple(reverse),
            closing_bearing=Bearing.from_azimuth(azimuth),
            closing_azimuth=azimuth,
            closing_distance=distance,
            called_distance=gap_call.called_distance(),
        )
        logger.info(
            f"Gap fill for call {gap_call.call_number}: "
            f"{result.closing_bearing.format()} {distance:.2f} ft"
        )
        return result
