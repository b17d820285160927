"""
Traverse Pipeline Module
Bearing normalization, forward/reverse traversal, closure and error analysis for legal descriptions
"""
from .models import Bearing, Coordinate, ParcelResult, TieLineResult
from .normalizer import BearingNormalizer
from .pipeline import TraversePipeline
from .traverse import TraverseCalculator, TraverseError, TraverseInputError

__all__ = [
    "Bearing",
    "BearingNormalizer",
    "Coordinate",
    "ParcelResult",
    "TieLineResult",
    "TraverseCalculator",
    "TraverseError",
    "TraverseInputError",
    "TraversePipeline",
]
