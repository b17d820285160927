"""
Unplottable Call Detection
Flags calls whose geometry cannot be fixed from the description alone
(water boundaries, vague directions, missing bearings) so they can be sent
for field survey and bridged by gap-fill.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .bearings import find_vague_directions
from .models import Call, LineCall, NonRadialCall, UnplottableCategory, UnplottableRecord

logger = logging.getLogger(__name__)

MEANDER_TERMS = (
    "creek", "river", "stream", "shoreline", "shore", "meander", "high water",
    "low water", "water's edge", "waters edge", "bank", "bayou", "lake",
    "pond", "thread", "irregular",
)

QUALIFIER_TERMS = (
    "more or less", "approximately", "about", "approx", "or thereabouts",
)


def _term_pattern(terms: Sequence[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(t) for t in terms)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_MEANDER_PATTERN = _term_pattern(MEANDER_TERMS)
_QUALIFIER_PATTERN = _term_pattern(QUALIFIER_TERMS)


def _dedupe(terms: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for term in terms:
        if term not in seen:
            seen.append(term)
    return seen


class UnplottableDetector:
    """Keyword scan over each call's descriptive text."""

    def scan(self, calls: Sequence[Call]) -> List[UnplottableRecord]:
        records: List[UnplottableRecord] = []
        for index, call in enumerate(calls):
            record = self.classify(call, index)
            if record is not None:
                logger.info(f"Call {call.call_number} unplottable ({record.category.value}): {record.reason}")
                records.append(record)
        return records

    def classify(self, call: Call, index: int) -> Optional[UnplottableRecord]:
        direction_texts = [call.direction_text]
        if isinstance(call, NonRadialCall):
            direction_texts.append(call.approx_direction)
        qualifier = call.qualifier if isinstance(call, (LineCall, NonRadialCall)) else None
        all_texts = [t for t in direction_texts + [call.along_description, qualifier] if t]
        direction_texts = [t for t in direction_texts if t]

        def record(category: UnplottableCategory, reason: str, terms: Sequence[str] = ()) -> UnplottableRecord:
            return UnplottableRecord(
                call_number=call.call_number,
                call_index=index,
                category=category,
                reason=reason,
                matched_terms=tuple(terms),
            )

        if call.unplottable_reason:
            return record(UnplottableCategory.UPSTREAM, call.unplottable_reason)

        meander = _dedupe([m.group(0).lower() for t in all_texts for m in _MEANDER_PATTERN.finditer(t)])
        if meander:
            return record(
                UnplottableCategory.MEANDER,
                f"Follows a natural or water boundary ({', '.join(meander)})",
                meander,
            )

        vague = _dedupe([w for t in direction_texts for w in find_vague_directions(t)])
        if len(vague) > 1:
            return record(
                UnplottableCategory.MULTIPLE_DIRECTIONS,
                f"Multiple vague directions in one call ({', '.join(vague)})",
                vague,
            )
        if vague and not call.has_explicit_bearing():
            return record(
                UnplottableCategory.VAGUE_DIRECTION,
                f"Vague direction '{vague[0]}' with no bearing",
                vague,
            )

        if isinstance(call, NonRadialCall) and (call.bearing is None or call.distance is None):
            return record(UnplottableCategory.NO_BEARING, "No bearing or distance that can be plotted")
        if isinstance(call, LineCall) and call.bearing is None:
            return record(UnplottableCategory.NO_BEARING, "No bearing given")

        qualified = _dedupe([m.group(0).lower() for t in all_texts for m in _QUALIFIER_PATTERN.finditer(t)])
        if qualified:
            return record(
                UnplottableCategory.QUALIFIED_DISTANCE,
                f"Distance qualified as '{qualified[0]}'",
                qualified,
            )
        return None
