"""
Utility modules for the traverse backend.
"""

from utils.response_models import BaseResponse, OptionsResponse, TraverseResponse

__all__ = [
    'BaseResponse',
    'OptionsResponse',
    'TraverseResponse',
]
