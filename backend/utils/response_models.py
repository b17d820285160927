"""
Shared Response Models
Consistent response formats across the traverse endpoints
"""
from pydantic import BaseModel
from typing import Dict, Any, Optional, List


class BaseResponse(BaseModel):
    """Base response format"""
    status: str  # "success" or "error"
    error: Optional[str] = None


class TraverseResponse(BaseResponse):
    """Response for /traverse/analyze"""
    poc_description: Optional[str] = None
    poc_reference: Optional[str] = None
    tie_line: Optional[Dict[str, Any]] = None
    parcels: List[Dict[str, Any]] = []
    combined_coordinates: List[Dict[str, Any]] = []
    metadata: Optional[Dict[str, Any]] = None


class OptionsResponse(BaseResponse):
    """Response for option discovery endpoints"""
    options: Optional[Dict[str, Any]] = None
