"""
Export Module
CAD output for analyzed parcels
"""
from .dxf_encoder import Annotation, DXFEncoder, DXFEncodingError

__all__ = ["Annotation", "DXFEncoder", "DXFEncodingError"]
